"""Debounced scheduling of field validation."""

import asyncio
import logging
from typing import Any, Awaitable, Callable

logger = logging.getLogger(__name__)

FieldCallback = Callable[[str, Any], Awaitable[None]]


class FieldDebouncer:
    """Runs a callback for a field once edits to it have settled.

    Each edit schedules a task that sleeps for the debounce window and then
    runs the callback with the latest value. A new edit within the window
    cancels the sleeping task and starts a fresh one. Once a callback has
    started it is left to finish; superseded results are dropped by the
    request id check of the validation engine, not by cancellation.
    """

    def __init__(self, callback: FieldCallback, delay_ms: int = 300):
        self._callback = callback
        self._delay = delay_ms / 1000
        self._sleeping: dict[str, asyncio.Task] = {}
        self._running: set[asyncio.Task] = set()

    @property
    def delay_ms(self) -> int:
        return int(self._delay * 1000)

    def schedule(self, key: str, value: Any) -> asyncio.Task:
        """Schedule the callback for ``key``, replacing a pending one.

        Must be called from within a running event loop.
        """
        pending = self._sleeping.pop(key, None)
        if pending is not None and not pending.done():
            pending.cancel()
        task = asyncio.get_running_loop().create_task(self._run(key, value))
        self._sleeping[key] = task
        self._running.add(task)
        task.add_done_callback(self._running.discard)
        return task

    async def _run(self, key: str, value: Any) -> None:
        if self._delay > 0:
            await asyncio.sleep(self._delay)
        # Past the window: no longer cancellable by a newer edit.
        if self._sleeping.get(key) is asyncio.current_task():
            del self._sleeping[key]
        try:
            await self._callback(key, value)
        except Exception:
            logger.error("Debounced callback failed for %s", key, exc_info=True)

    def is_pending(self, key: str) -> bool:
        """Whether a callback for ``key`` is still waiting out its window."""
        task = self._sleeping.get(key)
        return task is not None and not task.done()

    def cancel_all(self) -> None:
        """Cancel callbacks that have not started yet."""
        for task in self._sleeping.values():
            task.cancel()
        self._sleeping.clear()

    async def drain(self) -> None:
        """Wait until every scheduled callback has finished or been cancelled."""
        while self._running:
            await asyncio.gather(*list(self._running), return_exceptions=True)
