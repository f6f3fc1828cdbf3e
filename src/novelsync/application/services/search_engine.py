"""Global search across all enabled content sources.

Hey future me - every query is a SESSION identified by a token. Starting a new query (or
closing the engine) bumps the token, and any result that comes back tagged with an older
token is dropped on arrival. In-flight source calls are NOT aborted, they just finish
into the void. Cheap, and sources don't need to support cancellation.

Workers pull plugins from a shared cursor in alphabetical order. While the host view is
not focused they wait before claiming the next plugin; the cursor stays where it is, so
nothing is lost or repeated, only delayed.
"""

import asyncio
import logging
from collections.abc import Callable
from typing import TYPE_CHECKING

from novelsync.application.services.retry_policy import Sleep
from novelsync.config.settings import SearchSettings
from novelsync.domain.entities import SearchSlot, SearchState
from novelsync.domain.exceptions import classify_error, get_error_message
from novelsync.domain.ports import IContentSource

if TYPE_CHECKING:
    from novelsync.infrastructure.plugins.registry import SourceRegistry

logger = logging.getLogger(__name__)

SearchListener = Callable[[SearchState], None]


def order_slots(alphabetical: list[SearchSlot]) -> tuple[SearchSlot, ...]:
    """Slots with results first, then the rest; each group keeps alphabetical order."""
    with_results = [slot for slot in alphabetical if slot.has_results]
    without = [slot for slot in alphabetical if not slot.has_results]
    return tuple(with_results + without)


class SearchEngine:
    """Runs search sessions and publishes SearchState snapshots to listeners.

    Example:
        engine = SearchEngine(registry, settings.search)
        engine.on_change(render)
        await engine.search("overlord")
        engine.set_focused(False)   # host view hidden, workers wait
        engine.close()              # host view gone, results discarded
    """

    def __init__(
        self,
        sources: "SourceRegistry",
        settings: SearchSettings | None = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._sources = sources
        self._settings = settings or SearchSettings()
        self._sleep = sleep
        self._token = 0
        self._query: str | None = None
        self._state = SearchState(token=0, query="")
        self._listeners: list[SearchListener] = []
        self._focused = asyncio.Event()
        self._focused.set()
        self._debounce_task: asyncio.Task[SearchState] | None = None
        self._has_results_only = self._settings.has_results_only

    # =========================================================================
    # QUERIES
    # =========================================================================

    @property
    def token(self) -> int:
        return self._token

    @property
    def state(self) -> SearchState:
        return self._state

    @property
    def is_focused(self) -> bool:
        return self._focused.is_set()

    @property
    def has_results_only(self) -> bool:
        return self._has_results_only

    def set_has_results_only(self, value: bool) -> None:
        """Toggle the display filter. Never touches a running session."""
        self._has_results_only = value

    def visible_results(self) -> tuple[SearchSlot, ...]:
        """Current slots after the "hide empty results" display filter."""
        if not self._has_results_only:
            return self._state.results
        return tuple(slot for slot in self._state.results if slot.is_visible_when_filtered)

    def on_change(self, listener: SearchListener) -> Callable[[], None]:
        """Register a snapshot listener. Returns a callable that unregisters it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # =========================================================================
    # CONTROL
    # =========================================================================

    def set_focused(self, focused: bool) -> None:
        if focused:
            self._focused.set()
        else:
            self._focused.clear()

    def close(self) -> None:
        """Invalidate the running session (host went away)."""
        self._cancel_debounce()
        self._token += 1
        self._query = None
        logger.debug(f"Search engine closed, session token now {self._token}")

    def search_debounced(self, query: str) -> "asyncio.Task[SearchState]":
        """Start `query` after the debounce interval, replacing any pending one."""
        self._cancel_debounce()

        async def delayed() -> SearchState:
            await self._sleep(self._settings.debounce)
            # Fired: from here on this is the live session, not a pending call, so a later
            # search_debounced() must not cancel it.
            if self._debounce_task is asyncio.current_task():
                self._debounce_task = None
            return await self.search(query)

        task = asyncio.create_task(delayed())
        self._debounce_task = task
        return task

    def _cancel_debounce(self) -> None:
        if self._debounce_task is not None and not self._debounce_task.done():
            self._debounce_task.cancel()
        self._debounce_task = None

    async def search(
        self, query: str, sources: list[IContentSource] | None = None
    ) -> SearchState:
        """Run a search session for `query` across all enabled sources.

        Repeating the active query is a no-op. Returns the state when this session ends
        (which is a newer session's state if this one got superseded meanwhile).
        """
        if query == self._query:
            logger.debug(f"Search for {query!r} already active, ignoring")
            return self._state

        self._token += 1
        token = self._token
        self._query = query

        if sources is None:
            sources = self._sources.enabled_sources()
        ordered = sorted(sources, key=lambda source: source.name.casefold())
        alphabetical = [SearchSlot(plugin=source.to_item()) for source in ordered]
        total = len(ordered)

        logger.info(f"Search {query!r} started across {total} source(s) (token={token})")
        self._publish(
            SearchState(
                token=token,
                query=query,
                results=tuple(alphabetical),
                progress=0.0 if total else 1.0,
            )
        )
        if total:
            await self._run_session(token, query, ordered, alphabetical)
        return self._state

    # =========================================================================
    # SESSION
    # =========================================================================

    def _is_current(self, token: int) -> bool:
        return token == self._token

    async def _run_session(
        self,
        token: int,
        query: str,
        ordered: list[IContentSource],
        alphabetical: list[SearchSlot],
    ) -> None:
        total = len(ordered)
        cursor = 0
        completed = 0

        async def worker() -> None:
            nonlocal cursor, completed
            while True:
                await self._wait_until_focused(token)
                if not self._is_current(token) or cursor >= total:
                    return
                index = cursor
                cursor += 1
                source = ordered[index]

                try:
                    novels = await source.search_novels(query, 1)
                    slot = SearchSlot(
                        plugin=alphabetical[index].plugin,
                        novels=tuple(novels),
                        is_loading=False,
                    )
                except Exception as e:
                    message = get_error_message(classify_error(e, source.plugin_id))
                    logger.warning(f"Search {query!r} failed on {source.plugin_id}: {message}")
                    slot = SearchSlot(
                        plugin=alphabetical[index].plugin, is_loading=False, error=message
                    )

                if not self._is_current(token):
                    logger.debug(f"Dropping stale result from {source.plugin_id} (token={token})")
                    return

                alphabetical[index] = slot
                completed += 1
                self._publish(
                    SearchState(
                        token=token,
                        query=query,
                        results=order_slots(alphabetical),
                        progress=completed / total,
                    )
                )

        workers = min(self._settings.concurrency, total)
        await asyncio.gather(*(worker() for _ in range(workers)))

        if self._is_current(token):
            logger.info(f"Search {query!r} finished ({total} source(s))")

    async def _wait_until_focused(self, token: int) -> None:
        # Re-check the token every poll interval so a superseded session's workers
        # exit even while the view stays hidden.
        while not self._focused.is_set():
            if not self._is_current(token):
                return
            try:
                await asyncio.wait_for(
                    self._focused.wait(), timeout=self._settings.focus_poll_interval
                )
            except TimeoutError:
                continue

    def _publish(self, state: SearchState) -> None:
        self._state = state
        for listener in list(self._listeners):
            try:
                listener(state)
            except Exception:
                logger.exception("Search listener failed")
