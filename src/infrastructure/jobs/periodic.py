"""Periodic in-process task.

Runs an async action on a fixed interval until stopped. Failures of a single
run are logged and never end the loop, so one bad sweep does not disable
session cleanup for the lifetime of the process.
"""

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any

from src.domain.protocols.logger_protocol import LoggerProtocol


class PeriodicTask:
    """Fixed-interval background task on the running event loop.

    Attributes:
        name: Task name for logs.
        interval_seconds: Delay between the end of one run and the next.
    """

    def __init__(
        self,
        *,
        name: str,
        interval_seconds: float,
        action: Callable[[], Awaitable[Any]],
        logger: LoggerProtocol,
        run_immediately: bool = False,
    ) -> None:
        """Initialize periodic task.

        Args:
            name: Task name for logs.
            interval_seconds: Seconds between runs (must be positive).
            action: Coroutine function executed on every tick.
            logger: Structured logger.
            run_immediately: Run once right after start() instead of
                waiting a full interval.

        Raises:
            ValueError: If interval_seconds is not positive.
        """
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")

        self.name = name
        self.interval_seconds = interval_seconds
        self._action = action
        self._logger = logger.bind(task=name)
        self._run_immediately = run_immediately
        self._task: asyncio.Task[None] | None = None

    @property
    def is_running(self) -> bool:
        """Whether the loop is scheduled."""
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Schedule the loop on the running event loop (no-op if running)."""
        if self.is_running:
            return
        self._task = asyncio.create_task(self._loop(), name=f"periodic:{self.name}")
        self._logger.info("Periodic task started", interval_seconds=self.interval_seconds)

    async def stop(self) -> None:
        """Cancel the loop and wait for it to finish."""
        if self._task is None:
            return
        task, self._task = self._task, None
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        self._logger.info("Periodic task stopped")

    async def run_once(self) -> bool:
        """Run the action once.

        Returns:
            True if the action completed, False if it raised.
        """
        try:
            await self._action()
            return True
        except Exception as e:
            self._logger.error("Periodic task run failed", error=e)
            return False

    async def _loop(self) -> None:
        if self._run_immediately:
            await self.run_once()
        while True:
            await asyncio.sleep(self.interval_seconds)
            await self.run_once()
