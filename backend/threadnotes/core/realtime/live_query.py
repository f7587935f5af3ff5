from __future__ import annotations

import asyncio
import contextlib
from typing import TYPE_CHECKING, Generic, TypeVar

from threadnotes.utils.logging import get_logger

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Iterable

    from .change_feed import ChangeEvent, ChangeFeed

logger = get_logger(__name__)

T = TypeVar("T")


class LiveQuery(Generic[T]):
    """A query that re-runs and pushes its full result whenever its data changes.

    One refresh task per subscription: a change event only marks the query
    dirty, and the task re-fetches and calls ``callback`` with the latest
    result. Bursts of changes coalesce into one delivery, and deliveries for a
    given subscriber never overlap or go backwards in time.

    A failed fetch is logged (and passed to ``on_error``) but the subscription
    stays attached and refreshes again on the next change.
    """

    def __init__(
        self,
        *,
        name: str,
        feed: ChangeFeed,
        collections: Iterable[str],
        fetch: Callable[[], Awaitable[T]],
        callback: Callable[[T], None],
        matches: Callable[[ChangeEvent], bool] | None = None,
        on_error: Callable[[Exception], None] | None = None,
    ) -> None:
        self.name = name
        self._feed = feed
        self._collections = tuple(collections)
        self._fetch = fetch
        self._callback = callback
        self._matches = matches
        self._on_error = on_error

        self._dirty = asyncio.Event()
        self._detachers: list[Callable[[], None]] = []
        self._task: asyncio.Task[None] | None = None
        self._closed = False

    @property
    def active(self) -> bool:
        return not self._closed

    def start(self) -> LiveQuery[T]:
        """Attach to the feed and schedule the initial load."""
        if self._task is not None:
            return self
        for collection in self._collections:
            self._detachers.append(self._feed.subscribe(collection, self._on_change))
        self._dirty.set()
        self._task = asyncio.create_task(self._run(), name=f"live-query:{self.name}")
        logger.debug("Live query %s started", self.name)
        return self

    def unsubscribe(self) -> None:
        """Stop deliveries and detach from the feed. Safe to call repeatedly."""
        if self._closed:
            return
        self._closed = True
        for detach in self._detachers:
            detach()
        self._detachers.clear()
        task = self._task
        # Called from inside the callback: the loop exits on the closed flag.
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()
        logger.debug("Live query %s unsubscribed", self.name)

    async def aclose(self) -> None:
        """Unsubscribe and wait for the refresh task to finish."""
        self.unsubscribe()
        task = self._task
        if task is not None and task is not asyncio.current_task():
            with contextlib.suppress(asyncio.CancelledError):
                await task

    def __call__(self) -> None:
        self.unsubscribe()

    def _on_change(self, event: ChangeEvent) -> None:
        if self._closed:
            return
        if self._matches is not None and not self._matches(event):
            return
        self._dirty.set()

    async def _run(self) -> None:
        while not self._closed:
            await self._dirty.wait()
            self._dirty.clear()
            if self._closed:
                return

            try:
                result = await self._fetch()
            except Exception as err:
                logger.error("Live query %s refresh failed: %s", self.name, err)
                if self._on_error is not None:
                    try:
                        self._on_error(err)
                    except Exception as handler_err:
                        logger.error("Live query %s error handler failed: %s", self.name, handler_err)
                continue

            if self._closed:
                return
            try:
                self._callback(result)
            except Exception as err:
                logger.error("Live query %s callback failed: %s", self.name, err)
