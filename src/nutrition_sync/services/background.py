"""Debounced background sync scheduling."""

import asyncio
import contextlib
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field

_logger = logging.getLogger(__name__)


@dataclass
class BackgroundSyncRunner:
    """Runs a sync callable after a short delay, coalescing rapid requests.

    A pending delayed run is replaced by each new request. A run that has
    already started is never cancelled; `cancel()` waits for it instead.
    """

    sync: Callable[[], Awaitable[object]]
    delay_seconds: float = 2.0
    _task: asyncio.Task[None] | None = field(default=None, init=False)
    _running: asyncio.Task[None] | None = field(default=None, init=False)

    @property
    def pending(self) -> bool:
        """Return True while a delayed run has not finished."""
        return self._task is not None and not self._task.done()

    def schedule(self) -> bool:
        """Request a sync; returns False when there is no running event loop."""
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            _logger.debug("Background sync not scheduled: no running event loop")
            return False
        if self.pending and self._task is not self._running:
            self._task.cancel()  # type: ignore[union-attr]
        self._task = loop.create_task(self._run_later())
        return True

    async def wait(self) -> None:
        """Wait for the running and pending runs, if any, to finish."""
        for task in self._tasks():
            with contextlib.suppress(asyncio.CancelledError):
                await task

    async def cancel(self) -> None:
        """Cancel the pending run and wait for a started one to complete."""
        task = self._task
        if task is not None and task is not self._running and not task.done():
            task.cancel()
        await self.wait()
        self._task = None

    def _tasks(self) -> list[asyncio.Task[None]]:
        tasks = dict.fromkeys([self._running, self._task])
        return [task for task in tasks if task is not None]

    async def _run_later(self) -> None:
        await asyncio.sleep(self.delay_seconds)
        running = self._running
        if running is not None and not running.done():
            await asyncio.shield(running)
        self._running = asyncio.current_task()  # type: ignore[assignment]
        try:
            await self.sync()
        except Exception:
            _logger.exception("Background sync failed")
        finally:
            self._running = None
