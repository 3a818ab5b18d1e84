"""Pytest configuration and shared fixtures.

This configuration ensures:
1. Async tests run under pytest-asyncio (auto mode, see pyproject.toml)
2. Every test gets a fresh in-process Redis (fakeredis) and fresh services
3. Time-dependent session logic runs on a controllable clock
"""

from datetime import UTC, datetime, timedelta
from unittest.mock import MagicMock

import pytest
import pytest_asyncio
from fakeredis.aioredis import FakeRedis

from src.infrastructure.cache.cache_manager import CacheManager, WarmingConfig
from src.infrastructure.cache.redis_adapter import RedisAdapter
from src.infrastructure.security.session_token_service import SessionTokenService
from src.session_manager.models.config import SessionConfig
from src.session_manager.service import SessionManagerService

TEST_SESSION_SECRET = "test-session-secret-with-at-least-32-chars"
TEST_CSRF_SECRET = "test-csrf-secret"


class FakeClock:
    """Controllable UTC clock injected into the managers."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2025, 1, 6, 9, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **delta: float) -> None:
        self.now += timedelta(**delta)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def logger() -> MagicMock:
    """LoggerProtocol double; bind() returns the same mock."""
    mock_logger = MagicMock()
    mock_logger.bind.return_value = mock_logger
    return mock_logger


@pytest_asyncio.fixture
async def fake_redis():
    """Fresh fakeredis client per test."""
    client = FakeRedis()
    await client.flushall()
    yield client
    await client.flushall()
    await client.aclose()


@pytest_asyncio.fixture
async def store(fake_redis):
    """RedisAdapter over the fakeredis client, flushed after the test."""
    adapter = RedisAdapter(fake_redis)
    yield adapter
    await adapter.flush()


@pytest.fixture
def cache_manager(store, logger, clock) -> CacheManager:
    return CacheManager(
        store=store,
        logger=logger,
        clock=clock,
        warming=WarmingConfig(batch_size=2, batch_pause_seconds=0),
    )


@pytest.fixture
def token_service() -> SessionTokenService:
    return SessionTokenService(TEST_SESSION_SECRET)


@pytest.fixture
def session_config() -> SessionConfig:
    return SessionConfig(csrf_secret=TEST_CSRF_SECRET)


@pytest.fixture
def session_manager(
    cache_manager, store, token_service, session_config, logger, clock
) -> SessionManagerService:
    return SessionManagerService(
        cache=cache_manager,
        store=store,
        token_service=token_service,
        config=session_config,
        logger=logger,
        clock=clock,
    )


# Pytest markers for different test types
def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "unit: Unit tests with mocked dependencies")
    config.addinivalue_line(
        "markers", "integration: Integration tests against fakeredis"
    )
