"""Tests for ProgressThrottle."""

import pytest

from novelsync.application.services import ProgressThrottle


class TestProgressThrottle:
    @pytest.fixture
    def emitted(self) -> list[tuple[float, str | None]]:
        return []

    @pytest.fixture
    def throttle(self, emitted, clock) -> ProgressThrottle:
        return ProgressThrottle(
            lambda value, text: emitted.append((value, text)),
            interval=0.25,
            delta=0.05,
            clock=clock,
        )

    def test_first_report_is_emitted(self, throttle, emitted):
        assert throttle.report(0.0, "start") is True
        assert emitted == [(0.0, "start")]

    def test_small_quick_steps_are_dropped(self, throttle, emitted, clock):
        throttle.report(0.0)
        clock.advance(0.01)
        assert throttle.report(0.01) is False
        assert len(emitted) == 1

    def test_delta_step_emits_immediately(self, throttle, emitted, clock):
        throttle.report(0.0)
        clock.advance(0.01)
        assert throttle.report(0.06) is True
        assert emitted[-1][0] == 0.06

    def test_interval_emits_small_steps(self, throttle, emitted, clock):
        throttle.report(0.0)
        clock.advance(0.3)
        assert throttle.report(0.01) is True

    def test_values_never_go_backwards(self, throttle, emitted, clock):
        throttle.report(0.5)
        clock.advance(1)
        throttle.report(0.2)
        assert emitted[-1][0] == 0.5

    def test_values_are_clamped(self, throttle, emitted):
        throttle.report(-3)
        assert emitted[0][0] == 0.0

    def test_flush_emits_one_exactly_once(self, throttle, emitted):
        throttle.report(0.3, "Novel A")
        throttle.report(0.31, "Novel B")
        throttle.flush()
        throttle.flush()
        assert emitted[-1] == (1.0, "Novel B")
        assert [value for value, _ in emitted].count(1.0) == 1

    def test_reports_after_flush_are_ignored(self, throttle, emitted):
        throttle.flush()
        assert throttle.report(0.9) is False
        assert len(emitted) == 1
