"""Unit tests for PeriodicTask.

Tests cover:
- Constructor validation
- run_once() success and failure isolation
- start()/stop() lifecycle and idempotency
- Repeated execution on the interval
"""

import asyncio
from unittest.mock import AsyncMock

import pytest

from src.infrastructure.jobs.periodic import PeriodicTask


def _task(logger, action, **kwargs) -> PeriodicTask:
    return PeriodicTask(
        name="session_cleanup",
        interval_seconds=kwargs.pop("interval_seconds", 0.01),
        action=action,
        logger=logger,
        **kwargs,
    )


@pytest.mark.unit
class TestPeriodicTaskInit:
    """Test constructor."""

    @pytest.mark.parametrize("interval", [0, -1])
    def test_non_positive_interval_rejected(self, logger, interval):
        """Test interval must be positive."""
        with pytest.raises(ValueError, match="positive"):
            _task(logger, AsyncMock(), interval_seconds=interval)

    def test_logger_bound_to_task_name(self, logger):
        """Test log records carry the task name."""
        _task(logger, AsyncMock())

        logger.bind.assert_called_once_with(task="session_cleanup")


@pytest.mark.unit
class TestRunOnce:
    """Test single execution."""

    async def test_success(self, logger):
        """Test a completed action returns True."""
        action = AsyncMock(return_value=3)

        assert await _task(logger, action).run_once() is True
        action.assert_awaited_once()

    async def test_failure_is_logged_not_raised(self, logger):
        """Test a raising action returns False and logs the error."""
        error = RuntimeError("store down")
        action = AsyncMock(side_effect=error)

        assert await _task(logger, action).run_once() is False
        logger.error.assert_called_once_with("Periodic task run failed", error=error)


@pytest.mark.unit
class TestLifecycle:
    """Test start/stop."""

    async def test_runs_repeatedly_until_stopped(self, logger):
        """Test the action runs on every interval and stops on stop()."""
        action = AsyncMock()
        task = _task(logger, action)

        task.start()
        assert task.is_running is True
        await asyncio.sleep(0.05)
        await task.stop()

        assert task.is_running is False
        calls = action.await_count
        assert calls >= 2

        await asyncio.sleep(0.03)
        assert action.await_count == calls

    async def test_keeps_running_after_failure(self, logger):
        """Test a failing run does not end the loop."""
        calls = []

        async def action():
            calls.append(1)
            if len(calls) == 1:
                raise RuntimeError("boom")

        task = _task(logger, action)

        task.start()
        await asyncio.sleep(0.05)
        await task.stop()

        assert len(calls) >= 2
        logger.error.assert_called_once()

    async def test_run_immediately(self, logger):
        """Test run_immediately executes before the first interval."""
        action = AsyncMock()
        task = _task(logger, action, interval_seconds=60, run_immediately=True)

        task.start()
        await asyncio.sleep(0)
        await asyncio.sleep(0)
        await task.stop()

        action.assert_awaited_once()

    async def test_start_and_stop_are_idempotent(self, logger):
        """Test repeated start()/stop() calls are harmless."""
        task = _task(logger, AsyncMock(), interval_seconds=60)

        await task.stop()
        task.start()
        first = task._task
        task.start()
        assert task._task is first

        await task.stop()
        await task.stop()
        assert task.is_running is False


@pytest.mark.unit
class TestEventLoopSupport:
    """Test unmarked coroutine tests are driven by pytest-asyncio."""

    async def test_runs_on_a_running_loop(self, request):
        """Test async tests need no explicit asyncio marker."""
        assert request.config.getini("asyncio_mode") == "auto"
        assert asyncio.get_running_loop().is_running()
