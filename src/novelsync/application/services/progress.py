"""Throttled progress reporting."""

import time
from collections.abc import Callable

ProgressSink = Callable[[float, str | None], None]


class ProgressThrottle:
    """Forwards progress values to a sink, at most once per interval or per delta step.

    A value is emitted when `interval` seconds passed since the last emit OR it moved at
    least `delta` past the last emitted value, whichever happens first. Values never go
    backwards, and flush() always delivers the final 1.0 exactly once.
    """

    def __init__(
        self,
        sink: ProgressSink,
        interval: float = 0.25,
        delta: float = 0.05,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._sink = sink
        self._interval = interval
        self._delta = delta
        self._clock = clock
        self._last_value: float | None = None
        self._last_emit_at: float | None = None
        self._pending: tuple[float, str | None] | None = None
        self._finished = False

    @property
    def last_value(self) -> float | None:
        return self._last_value

    def report(self, value: float, text: str | None = None) -> bool:
        """Offer a new progress value.

        Returns:
            True when the value was forwarded to the sink
        """
        if self._finished:
            return False
        value = min(max(value, 0.0), 1.0)
        if self._last_value is not None and value < self._last_value:
            value = self._last_value

        now = self._clock()
        due = (
            self._last_emit_at is None
            or now - self._last_emit_at >= self._interval
            or value - (self._last_value or 0.0) >= self._delta
        )
        if not due:
            self._pending = (value, text)
            return False

        self._emit(value, text, now)
        return True

    def flush(self, text: str | None = None) -> None:
        """Emit the final 100% report."""
        if self._finished:
            return
        if text is None and self._pending is not None:
            text = self._pending[1]
        self._emit(1.0, text, self._clock())
        self._finished = True

    def _emit(self, value: float, text: str | None, now: float) -> None:
        self._pending = None
        self._last_value = value
        self._last_emit_at = now
        self._sink(value, text)
