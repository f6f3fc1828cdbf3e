"""Tests for SearchEngine."""

import asyncio
from unittest.mock import AsyncMock

import pytest

from novelsync.application.services import SearchEngine, order_slots
from novelsync.config import SearchSettings
from novelsync.domain.dtos import NovelItem, PluginItem
from novelsync.domain.entities import SearchSlot, SearchState
from novelsync.infrastructure.plugins import SourceRegistry


def novels(*names: str) -> list[NovelItem]:
    return [NovelItem(name=name, path=f"/{name}") for name in names]


def slot_ids(state: SearchState) -> list[str]:
    return [slot.plugin.id for slot in state.results]


@pytest.fixture
def settings() -> SearchSettings:
    return SearchSettings(concurrency=2, focus_poll_interval=0.01)


@pytest.fixture
def states() -> list[SearchState]:
    return []


def build_engine(sources, settings, states=None, **kwargs) -> SearchEngine:
    engine = SearchEngine(SourceRegistry(sources), settings, **kwargs)
    if states is not None:
        engine.on_change(states.append)
    return engine


class TestOrdering:
    async def test_search_ordering_scenario(self, make_source, settings, states):
        """Non-empty slots first, the rest stay alphabetical."""
        sources = [
            make_source("delta", "Delta"),
            make_source("bravo", "Bravo"),
            make_source("alpha", "Alpha", search=novels("a1", "a2", "a3")),
            make_source("charlie", "Charlie"),
        ]
        engine = build_engine(sources, settings, states)

        state = await engine.search("overlord")

        assert slot_ids(state) == ["alpha", "bravo", "charlie", "delta"]
        assert len(state.results[0].novels) == 3
        assert all(not slot.is_loading for slot in state.results)
        assert state.progress == 1.0

    async def test_slot_with_results_moves_to_front(self, make_source, settings):
        sources = [
            make_source("alpha", "Alpha"),
            make_source("bravo", "Bravo", search=novels("b1")),
            make_source("charlie", "Charlie"),
            make_source("delta", "Delta", search=novels("d1")),
        ]
        engine = build_engine(sources, settings)

        state = await engine.search("q")

        assert slot_ids(state) == ["bravo", "delta", "alpha", "charlie"]

    async def test_initial_state_is_alphabetical_and_loading(
        self, make_source, settings, states
    ):
        sources = [make_source("z", "zeta"), make_source("a", "Alpha")]
        engine = build_engine(sources, settings, states)

        await engine.search("q")

        first = states[0]
        assert slot_ids(first) == ["a", "z"]
        assert all(slot.is_loading for slot in first.results)
        assert first.progress == 0.0

    def test_order_slots_is_stable(self):
        plugin = lambda pid: PluginItem(id=pid, name=pid)  # noqa: E731
        alphabetical = [
            SearchSlot(plugin("a"), is_loading=False),
            SearchSlot(plugin("b"), novels=tuple(novels("x")), is_loading=False),
            SearchSlot(plugin("c"), is_loading=False, error="boom"),
            SearchSlot(plugin("d"), novels=tuple(novels("y")), is_loading=False),
        ]
        assert [s.plugin.id for s in order_slots(alphabetical)] == ["b", "d", "a", "c"]


class TestFailures:
    async def test_error_is_stored_in_slot(self, make_source, settings):
        def broken(query):
            raise RuntimeError("Unexpected token < in JSON")

        sources = [
            make_source("alpha", "Alpha", search=broken),
            make_source("bravo", "Bravo", search=novels("b1")),
        ]
        engine = build_engine(sources, settings)

        state = await engine.search("q")

        bravo, alpha = state.results
        assert bravo.novels == tuple(novels("b1"))
        assert alpha.error == "Unexpected token < in JSON"
        assert alpha.is_loading is False
        assert state.progress == 1.0


class TestSession:
    async def test_same_query_is_a_noop(self, make_source, settings):
        source = make_source("alpha", "Alpha", search=novels("a"))
        engine = build_engine([source], settings)

        await engine.search("q")
        token = engine.token
        await engine.search("q")

        assert source.search_calls == ["q"]
        assert engine.token == token

    async def test_close_allows_same_query_again(self, make_source, settings):
        source = make_source("alpha", "Alpha")
        engine = build_engine([source], settings)

        await engine.search("q")
        engine.close()
        await engine.search("q")

        assert source.search_calls == ["q", "q"]

    async def test_stale_results_are_discarded(self, make_source, settings, states):
        gate = asyncio.Event()

        async def search(query):
            if query == "A":
                await gate.wait()
                return novels("from-A")
            return novels("from-B")

        source = make_source("alpha", "Alpha", search=search)
        engine = build_engine([source], settings, states)

        first = asyncio.create_task(engine.search("A"))
        while source.search_calls != ["A"]:
            await asyncio.sleep(0)
        token_a = engine.token

        final = await engine.search("B")
        gate.set()
        await first

        assert engine.state is final
        assert engine.state.query == "B"
        assert [n.name for n in engine.state.results[0].novels] == ["from-B"]
        late = [s for s in states if s.token == token_a and s.progress > 0]
        assert late == []

    async def test_progress_is_monotonic(self, make_source, settings, states):
        sources = [make_source(f"p{n}", f"Plugin {n}") for n in range(7)]
        engine = build_engine(sources, settings, states)

        await engine.search("q")

        values = [s.progress for s in states]
        assert values == sorted(values)
        assert values[-1] == 1.0
        assert len(states) == 8

    async def test_no_sources_completes_immediately(self, settings, states):
        engine = build_engine([], settings, states)

        state = await engine.search("q")

        assert state.results == ()
        assert state.is_complete

    async def test_disabled_sources_are_not_searched(self, make_source, settings):
        enabled = make_source("alpha", "Alpha")
        disabled = make_source("bravo", "Bravo")
        registry = SourceRegistry([enabled, disabled])
        registry.set_enabled("bravo", False)
        engine = SearchEngine(registry, settings)

        state = await engine.search("q")

        assert slot_ids(state) == ["alpha"]
        assert disabled.search_calls == []

    async def test_listener_failure_does_not_stop_session(self, make_source, settings):
        engine = build_engine([make_source("alpha", "Alpha")], settings)
        engine.on_change(lambda state: 1 / 0)

        state = await engine.search("q")

        assert state.is_complete

    async def test_unsubscribe(self, make_source, settings, states):
        engine = SearchEngine(SourceRegistry([make_source("alpha", "Alpha")]), settings)
        unsubscribe = engine.on_change(states.append)
        unsubscribe()

        await engine.search("q")

        assert states == []


class TestFocus:
    async def test_unfocused_engine_waits_without_losing_work(self, make_source, settings):
        sources = [make_source("alpha", "Alpha"), make_source("bravo", "Bravo")]
        engine = build_engine(sources, settings)
        engine.set_focused(False)

        task = asyncio.create_task(engine.search("q"))
        await asyncio.sleep(0.05)
        assert all(source.search_calls == [] for source in sources)
        assert task.done() is False

        engine.set_focused(True)
        state = await asyncio.wait_for(task, timeout=1)

        assert state.is_complete
        assert all(source.search_calls == ["q"] for source in sources)

    async def test_close_while_unfocused_releases_workers(self, make_source, settings):
        source = make_source("alpha", "Alpha")
        engine = build_engine([source], settings)
        engine.set_focused(False)

        task = asyncio.create_task(engine.search("q"))
        await asyncio.sleep(0.02)
        engine.close()
        await asyncio.wait_for(task, timeout=1)

        assert source.search_calls == []


class TestFilter:
    async def test_has_results_only_is_a_display_filter(self, make_source, settings):
        def broken(query):
            raise RuntimeError("boom")

        sources = [
            make_source("alpha", "Alpha", search=novels("a")),
            make_source("bravo", "Bravo"),
            make_source("charlie", "Charlie", search=broken),
        ]
        engine = build_engine(sources, settings)
        await engine.search("q")

        assert len(engine.visible_results()) == 3
        engine.set_has_results_only(True)
        assert [s.plugin.id for s in engine.visible_results()] == ["alpha"]
        assert len(engine.state.results) == 3


class TestDebounce:
    async def test_newer_debounced_query_replaces_pending_one(self, make_source, settings):
        source = make_source("alpha", "Alpha")
        engine = build_engine([source], settings, sleep=AsyncMock())

        first = engine.search_debounced("lor")
        second = engine.search_debounced("lord")
        await second

        assert first.cancelled()
        assert source.search_calls == ["lord"]

    async def test_repeating_query_after_debounce_fired_keeps_running_session(
        self, make_source, settings
    ):
        gate = asyncio.Event()

        async def search(query):
            await gate.wait()
            return novels("a1")

        source = make_source("alpha", "Alpha", search=search)
        engine = build_engine([source], settings, sleep=AsyncMock())

        first = engine.search_debounced("lord")
        while source.search_calls != ["lord"]:
            await asyncio.sleep(0)
        await engine.search_debounced("lord")
        gate.set()
        state = await first

        assert not first.cancelled()
        assert state.progress == 1.0
        assert engine.state.progress == 1.0
        assert engine.state.results[0].is_loading is False
        assert source.search_calls == ["lord"]

    async def test_debounce_waits_configured_interval(self, make_source):
        sleep = AsyncMock()
        engine = build_engine(
            [make_source("alpha", "Alpha")], SearchSettings(debounce=0.3), sleep=sleep
        )

        await engine.search_debounced("q")

        sleep.assert_awaited_once_with(0.3)
