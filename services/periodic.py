"""
Periodic background task runner.

A task owns no engine state: each run calls a job that works purely through
storage and the event publisher. Stopping lets the run in flight finish and
prevents the next one from starting.
"""
import asyncio
import logging
from typing import Awaitable, Callable, Optional

from core.logging import LogContext


logger = logging.getLogger(__name__)


class PeriodicTask:
    """Runs an async job on a fixed interval until stopped."""

    def __init__(self, name: str, interval_seconds: float, job: Callable[[], Awaitable[object]]):
        """
        Initialize the task.

        Args:
            name: Name used in log records
            interval_seconds: Delay between the end of one run and the next
            job: Coroutine function performing one iteration
        """
        self.name = name
        self.interval_seconds = interval_seconds
        self.job = job
        self._stop_event = asyncio.Event()
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def run_once(self) -> object:
        """Run a single iteration; failures are logged, never raised."""
        with LogContext(logger, task=self.name) as context:
            try:
                return await self.job()
            except Exception:
                context.log("exception", f"Periodic task {self.name} run failed")
                return None

    def start(self) -> None:
        """Schedule the loop on the running event loop."""
        if self.running:
            return
        self._stop_event.clear()
        self._task = asyncio.create_task(self._loop(), name=f"periodic-{self.name}")
        logger.info(f"Started periodic task {self.name} every {self.interval_seconds}s")

    async def stop(self) -> None:
        """Finish the current iteration and do not start another."""
        if self._task is None:
            return
        self._stop_event.set()
        await self._task
        self._task = None
        logger.info(f"Stopped periodic task {self.name}")

    async def _loop(self) -> None:
        while not self._stop_event.is_set():
            await self.run_once()
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=self.interval_seconds)
            except asyncio.TimeoutError:
                continue
