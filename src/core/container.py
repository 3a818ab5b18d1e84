"""Centralized dependency injection container (composition root).

Provides application-scoped factories and the explicitly constructed
CoreServices holder that owns the session and cache services and their
background tasks.

Architecture:
    - Application-scoped: @lru_cache() decorated factories (settings, logger,
      Redis client)
    - Service graph: CoreServices.build() wires adapters into services;
      start()/stop() own the background tasks and the Redis connection
    - Nothing is started at import time

Usage:
    services = CoreServices.build()
    await services.start()
    ...
    await services.stop()
"""

from collections.abc import Callable
from datetime import datetime
from functools import lru_cache
from typing import TYPE_CHECKING, Any

from src.core.config import Settings, get_settings

# Type-checking only imports: factories import adapters lazily so importing
# the container never pulls in Redis or structlog configuration.
if TYPE_CHECKING:
    from redis.asyncio import Redis

    from src.domain.protocols.logger_protocol import LoggerProtocol
    from src.infrastructure.cache.cache_manager import CacheManager
    from src.infrastructure.cache.redis_adapter import RedisAdapter
    from src.infrastructure.jobs.periodic import PeriodicTask
    from src.services.cache_strategies import CacheStrategies
    from src.session_manager.audit.base import SessionAuditBackend
    from src.session_manager.service import SessionManagerService

__all__ = [
    "CoreServices",
    "create_redis_client",
    "get_logger",
    "get_redis_client",
    "get_settings",
]


# ============================================================================
# Application-Scoped Dependencies (Singletons)
# ============================================================================


@lru_cache()
def get_logger() -> "LoggerProtocol":
    """Return the application-scoped logger singleton.

    Adapter selection is centralized here (composition root):
    - development: ConsoleAdapter (human-readable)
    - testing/ci/production: ConsoleAdapter (JSON)

    Returns:
        LoggerProtocol: Logger instance implementing the protocol.
    """
    from src.infrastructure.logging.console_adapter import ConsoleAdapter

    settings = get_settings()
    return ConsoleAdapter(
        use_json=not settings.is_development,
        level=settings.log_level,
        app_name=settings.app_name,
    )


def create_redis_client(settings: Settings) -> "Redis":
    """Create a Redis client with its own connection pool.

    Args:
        settings: Settings providing redis_url.

    Returns:
        Async Redis client (caller owns it).
    """
    from redis.asyncio import ConnectionPool, Redis

    pool = ConnectionPool.from_url(
        settings.redis_url,
        max_connections=50,
        decode_responses=False,
        socket_connect_timeout=5,
        socket_timeout=5,
        retry_on_timeout=True,
        socket_keepalive=True,
    )
    return Redis(connection_pool=pool)


@lru_cache()
def get_redis_client() -> "Redis":
    """Get Redis client singleton (app-scoped).

    Connection pool is shared across the entire application.
    """
    return create_redis_client(get_settings())


# ============================================================================
# Service Graph
# ============================================================================


class CoreServices:
    """Explicitly constructed holder of the session and cache services.

    Replaces process-wide singletons: tests build their own instance around a
    fake Redis client, and the application builds one at startup.

    Attributes:
        settings: Settings the graph was built from.
        logger: Structured logger.
        store: Redis adapter.
        cache_manager: Tagged, versioned cache.
        session_manager: Session lifecycle service.
        strategies: Domain caching policies.
    """

    def __init__(
        self,
        *,
        settings: Settings,
        logger: "LoggerProtocol",
        redis_client: "Redis",
        store: "RedisAdapter",
        cache_manager: "CacheManager",
        session_manager: "SessionManagerService",
        strategies: "CacheStrategies",
        owns_redis: bool,
    ) -> None:
        self.settings = settings
        self.logger = logger
        self.redis_client = redis_client
        self.store = store
        self.cache_manager = cache_manager
        self.session_manager = session_manager
        self.strategies = strategies
        self._owns_redis = owns_redis
        self._tasks: list["PeriodicTask"] = []
        self._started = False

    @classmethod
    def build(
        cls,
        settings: Settings | None = None,
        *,
        redis_client: "Redis | None" = None,
        logger: "LoggerProtocol | None" = None,
        audit: "SessionAuditBackend | None" = None,
        clock: Callable[[], datetime] | None = None,
    ) -> "CoreServices":
        """Wire the service graph.

        Args:
            settings: Settings (defaults to get_settings()).
            redis_client: Injected Redis client (not closed by stop()).
                When None a new client is created and owned.
            logger: Logger (defaults to get_logger()).
            audit: Session audit backend (defaults to LoggerAuditBackend).
            clock: Clock shared by the cache and session managers.

        Returns:
            Unstarted CoreServices.
        """
        from src.infrastructure.cache.cache_manager import CacheManager, WarmingConfig
        from src.infrastructure.cache.redis_adapter import RedisAdapter
        from src.infrastructure.security.session_token_service import (
            SessionTokenService,
        )
        from src.services.cache_strategies import CacheStrategies
        from src.session_manager.audit.logger import LoggerAuditBackend
        from src.session_manager.models.config import SessionConfig
        from src.session_manager.service import SessionManagerService

        settings = settings or get_settings()
        logger = logger or get_logger()
        owns_redis = redis_client is None
        client = redis_client if redis_client is not None else create_redis_client(settings)

        store = RedisAdapter(client)
        cache_manager = CacheManager(
            store=store,
            logger=logger.bind(component="cache_manager"),
            default_ttl=settings.cache_default_ttl,
            warming=WarmingConfig(
                enabled=settings.cache_warming_enabled,
                batch_size=settings.cache_warming_batch_size,
                batch_pause_seconds=settings.cache_warming_batch_pause_seconds,
            ),
            clock=clock,
        )
        session_manager = SessionManagerService(
            cache=cache_manager,
            store=store,
            token_service=SessionTokenService(
                settings.session_secret,
                issuer=settings.session_token_issuer,
                audience=settings.session_token_audience,
                expiration_seconds=settings.session_token_expire_seconds,
            ),
            config=SessionConfig.from_settings(settings),
            logger=logger.bind(component="session_manager"),
            audit=audit or LoggerAuditBackend(),
            clock=clock,
        )

        return cls(
            settings=settings,
            logger=logger,
            redis_client=client,
            store=store,
            cache_manager=cache_manager,
            session_manager=session_manager,
            strategies=CacheStrategies(cache_manager),
            owns_redis=owns_redis,
        )

    @property
    def tasks(self) -> list["PeriodicTask"]:
        """Background tasks started by start()."""
        return list(self._tasks)

    async def start(self) -> None:
        """Load cache versions and start background tasks (idempotent)."""
        from src.infrastructure.jobs.periodic import PeriodicTask

        if self._started:
            return

        await self.cache_manager.initialize()

        self._tasks.append(
            PeriodicTask(
                name="session_cleanup",
                interval_seconds=self.settings.session_cleanup_interval_seconds,
                action=self.session_manager.cleanup_expired_sessions,
                logger=self.logger,
            )
        )
        warming_interval = self.settings.cache_warming_interval_seconds
        if self.settings.cache_warming_enabled and warming_interval:
            self._tasks.append(
                PeriodicTask(
                    name="cache_warming",
                    interval_seconds=warming_interval,
                    action=self.cache_manager.warm_cache,
                    logger=self.logger,
                    run_immediately=True,
                )
            )

        for task in self._tasks:
            task.start()

        self._started = True
        self.logger.info(
            "Core services started",
            tasks=[task.name for task in self._tasks],
        )

    async def stop(self) -> None:
        """Cancel background tasks and close Redis if owned (idempotent)."""
        for task in self._tasks:
            await task.stop()
        self._tasks.clear()

        if self._owns_redis:
            await self.redis_client.aclose()
            self._owns_redis = False

        if self._started:
            self._started = False
            self.logger.info("Core services stopped")

    async def health(self) -> dict[str, Any]:
        """Structured snapshot for an external health-check endpoint."""
        session_stats = await self.session_manager.get_session_stats()
        return {
            "store_healthy": await self.cache_manager.health_check(),
            "cache": self.cache_manager.get_stats(),
            "sessions": session_stats.to_dict(),
        }
