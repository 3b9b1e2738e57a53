"""Background execution of tag statistics updates.

Post writes hand the affected tag names to a ``TagStatsDispatcher`` and
return without waiting; a worker task recomputes each tag with its own
database session. ``TagSweepWorker`` periodically recomputes every tag to
correct any drift the per-post updates missed.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Iterable

from sqlalchemy.orm import Session

from underkover.services.tag_stats import TagStatsService

logger = logging.getLogger(__name__)

SessionFactory = Callable[[], Session]


class TagStatsDispatcher:
    """Queue of tag names recomputed off the request path."""

    def __init__(self, session_factory: SessionFactory) -> None:
        """Initialize the dispatcher.

        Args:
            session_factory: Callable returning a new session; each recompute
                runs in a worker thread with a session of its own.
        """
        self._session_factory = session_factory
        self._queue: asyncio.Queue[str] = asyncio.Queue()
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def submit(self, tag_names: Iterable[str]) -> None:
        """Schedule a recompute for each distinct tag name. Never blocks."""
        for name in dict.fromkeys(tag_names):
            self._queue.put_nowait(name)

    async def start(self) -> None:
        """Start the worker task."""
        if not self.running:
            self._task = asyncio.create_task(self._run())

    async def drain(self) -> None:
        """Wait until every submitted tag has been processed."""
        await self._queue.join()

    async def stop(self) -> None:
        """Process what is queued, then stop the worker task."""
        if self._task is None:
            return
        await self.drain()
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None

    async def _run(self) -> None:
        while True:
            name = await self._queue.get()
            try:
                await asyncio.to_thread(self._recompute, name)
            except Exception:
                # A failing tag must not stop the worker or its siblings.
                logger.error("Tag stats update failed for %s", name, exc_info=True)
            finally:
                self._queue.task_done()

    def _recompute(self, name: str) -> None:
        with self._session_factory() as session:
            TagStatsService(session).recompute(name)


class TagSweepWorker:
    """Periodically recomputes every tag row."""

    def __init__(self, session_factory: SessionFactory, interval_seconds: float) -> None:
        self._session_factory = session_factory
        self.interval = interval_seconds
        self._task: asyncio.Task[None] | None = None
        self._stopping = asyncio.Event()

    async def start(self) -> None:
        """Start the background sweep loop."""
        if self.interval <= 0:
            return

        if self._task is None or self._task.done():
            self._stopping.clear()
            self._task = asyncio.create_task(self._run())

    async def stop(self) -> None:
        """Stop the background sweep loop."""
        if self._task is None:
            return

        self._stopping.set()
        await self._task
        self._task = None

    async def run_once(self) -> int:
        """Recompute all tags now; returns how many were updated."""
        return await asyncio.to_thread(self._sweep)

    def _sweep(self) -> int:
        with self._session_factory() as session:
            return TagStatsService(session).recompute_all()

    async def _run(self) -> None:
        while not self._stopping.is_set():
            try:
                await asyncio.wait_for(self._stopping.wait(), timeout=self.interval)
                return
            except TimeoutError:
                pass

            try:
                await self.run_once()
            except Exception:
                logger.error("Tag sweep failed", exc_info=True)
