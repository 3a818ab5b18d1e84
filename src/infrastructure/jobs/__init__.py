"""Background jobs infrastructure package.

In-process periodic tasks run on the event loop of the service that owns
them: the expired-session sweep and the optional cache warming pass.

Usage:
    from src.infrastructure.jobs import PeriodicTask

    task = PeriodicTask(
        name="session_cleanup",
        interval_seconds=900,
        action=session_manager.cleanup_expired_sessions,
        logger=logger,
    )
    task.start()
    ...
    await task.stop()
"""

from src.infrastructure.jobs.periodic import PeriodicTask

__all__ = ["PeriodicTask"]
