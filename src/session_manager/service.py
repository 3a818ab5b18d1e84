"""Session manager service - orchestrator for the complete session lifecycle.

This is the main entry point for session management. It coordinates:
- Token service (signed bearer tokens locating a session)
- Cache manager (session records under ``session:{id}``)
- Key-value store (per-user reverse index ``user_sessions:{user_id}``)
- Audit (security trail)

Lifecycle rules:
- A session expires ``max_age`` after login, whatever its activity
- Last activity is refreshed lazily, once more than ``refresh_ratio`` of the
  max age has passed since the previous refresh
- A user holds at most ``max_concurrent_sessions`` sessions; creating one
  more evicts the least recently active ones
- Records are stored with TTL = remaining lifetime + ``expiry_grace`` so an
  expired session is reported as expired, not missing

Failure handling:
- Store failures are logged and degrade to None / False / 0 / []
- validate_session never raises; unexpected errors map to VALIDATION_FAILED
"""

import dataclasses
import hashlib
import hmac
import math
import secrets
from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from typing import Any

from src.core.result import Failure, Success
from src.domain.protocols.key_value_store_protocol import KeyValueStoreProtocol
from src.domain.protocols.logger_protocol import LoggerProtocol
from src.domain.protocols.session_token_protocol import SessionTokenProtocol
from src.infrastructure.cache.cache_manager import CacheConfig, CacheManager

from .audit.base import SessionAuditBackend
from .audit.noop import NoOpAuditBackend
from .models.config import SessionConfig
from .models.results import (
    SessionFailureReason,
    SessionStats,
    SessionValidationResult,
)
from .models.session import (
    CreatedSession,
    NewSession,
    SessionData,
    SessionOptions,
    UserSession,
)

# Fields refresh_session never overwrites (identity and absolute expiry)
_PROTECTED_FIELDS = frozenset({"user_id", "login_time", "max_age_seconds"})


def _short(session_id: str) -> str:
    return session_id[:8]


class SessionManagerService:
    """Session manager service - orchestrator.

    Design Pattern:
        - Facade Pattern: Simple interface over token, cache and store
        - Dependency Injection: All collaborators injected
        - Strategy Pattern: Pluggable audit backend

    Note:
        No per-user locking is done. Concurrent create_session calls for the
        same user can transiently exceed the concurrent session limit; the
        next creation for that user evicts the excess.

    Example:
        ```python
        service = SessionManagerService(
            cache=cache_manager,
            store=redis_adapter,
            token_service=SessionTokenService(secret_key=settings.session_secret),
            config=SessionConfig.from_settings(settings),
            logger=logger,
        )

        created = await service.create_session(
            NewSession(user_id="u1", email="u1@example.com", role="student")
        )
        result = await service.validate_session(created.session_token)
        ```
    """

    def __init__(
        self,
        *,
        cache: CacheManager,
        store: KeyValueStoreProtocol,
        token_service: SessionTokenProtocol,
        config: SessionConfig,
        logger: LoggerProtocol,
        audit: SessionAuditBackend | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        """Initialize session manager service.

        Args:
            cache: Cache manager holding session records.
            store: Key-value store holding the per-user reverse index.
            token_service: Signs and verifies session tokens.
            config: Session lifecycle configuration.
            logger: Structured logger.
            audit: Optional audit backend (defaults to NoOp).
            clock: Returns the current UTC time (injectable for tests).
        """
        self.cache = cache
        self.store = store
        self.token_service = token_service
        self.config = config
        self.audit = audit or NoOpAuditBackend()
        self._logger = logger
        self._keys = cache.keys
        self._clock = clock or (lambda: datetime.now(UTC))

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def create_session(
        self,
        data: NewSession,
        options: SessionOptions | None = None,
    ) -> CreatedSession:
        """Create a new session.

        Flow:
            1. Generate session id (256 bits) and CSRF token
            2. Store the record (untagged, TTL = max age + grace)
            3. Add the id to the user's reverse index
            4. Evict the oldest sessions beyond the concurrent limit
            5. Sign the session token

        Args:
            data: Verified user attributes.
            options: Per-session overrides (max age).

        Returns:
            Session id, signed session token and CSRF token.
        """
        session_id = secrets.token_hex(32)
        csrf_token = self._generate_csrf_token()
        now = self._clock()
        max_age = (options.max_age if options else None) or self.config.max_age

        session = SessionData(
            user_id=data.user_id,
            email=data.email,
            role=data.role,
            permissions=list(data.permissions),
            login_time=now,
            last_activity=now,
            ip_address=data.ip_address,
            user_agent=data.user_agent,
            csrf_token=csrf_token,
            max_age_seconds=max_age.total_seconds(),
            metadata=dict(data.metadata),
        )

        ttl = self._remaining_ttl(session, now)
        if not await self._save(session_id, session, ttl):
            self._logger.error(
                "Failed to store session",
                user_id=data.user_id,
                session_id=_short(session_id),
            )

        await self._add_user_session(data.user_id, session_id, ttl)
        await self._enforce_session_limit(data.user_id)

        session_token = self.token_service.generate(session_id, data.user_id)

        await self.audit.log_session_created(
            session_id,
            session,
            context={"max_age_seconds": session.max_age_seconds},
        )
        self._logger.info(
            "Session created",
            user_id=data.user_id,
            session_id=_short(session_id),
            max_age_seconds=session.max_age_seconds,
        )

        return CreatedSession(
            session_id=session_id,
            session_token=session_token,
            csrf_token=csrf_token,
        )

    async def validate_session(
        self,
        token: str,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> SessionValidationResult:
        """Validate a session token and resolve its session.

        An IP change is logged and audited as suspicious but not rejected.
        When more than ``refresh_ratio`` of the max age passed since the last
        refresh, last activity (and IP / user agent when given) is persisted;
        the absolute expiry is unchanged.

        Args:
            token: Session token presented by the client.
            ip_address: Client IP of the current request.
            user_agent: Client user agent of the current request.

        Returns:
            Validation result (never raises).
        """
        try:
            return await self._validate(token, ip_address, user_agent)
        except Exception as e:
            self._logger.error("Session validation failed", error=e)
            return SessionValidationResult(
                valid=False,
                reason=SessionFailureReason.VALIDATION_FAILED,
            )

    async def _validate(
        self,
        token: str,
        ip_address: str | None,
        user_agent: str | None,
    ) -> SessionValidationResult:
        match self.token_service.verify(token):
            case Success(value=claims):
                pass
            case Failure(error=err):
                self._logger.debug(
                    "Session token rejected",
                    error_code=err.code.value,
                )
                return SessionValidationResult(
                    valid=False,
                    reason=SessionFailureReason.INVALID_TOKEN,
                )
            case _:
                return SessionValidationResult(
                    valid=False,
                    reason=SessionFailureReason.INVALID_TOKEN,
                )

        session_id = claims.session_id
        session = await self._load(session_id)
        if session is None:
            return SessionValidationResult(
                valid=False,
                session_id=session_id,
                reason=SessionFailureReason.SESSION_NOT_FOUND,
            )

        if session.user_id != claims.user_id:
            self._logger.warning(
                "Session token user does not match session owner",
                session_id=_short(session_id),
            )
            await self.audit.log_suspicious_activity(
                session_id,
                "user_mismatch",
                context={"token_user_id": claims.user_id, "user_id": session.user_id},
            )
            return SessionValidationResult(
                valid=False,
                session_id=session_id,
                reason=SessionFailureReason.INVALID_TOKEN,
            )

        now = self._clock()
        if session.is_expired(now):
            await self._destroy(session_id, session, reason="expired")
            return SessionValidationResult(
                valid=False,
                session_id=session_id,
                reason=SessionFailureReason.SESSION_EXPIRED,
            )

        if ip_address and session.ip_address != ip_address:
            self._logger.warning(
                "IP address mismatch for session",
                session_id=_short(session_id),
                user_id=session.user_id,
                expected_ip=session.ip_address,
                actual_ip=ip_address,
            )
            await self.audit.log_suspicious_activity(
                session_id,
                "ip_mismatch",
                context={"expected_ip": session.ip_address, "actual_ip": ip_address},
            )

        should_refresh = (
            now - session.last_activity > session.max_age * self.config.refresh_ratio
        )
        if should_refresh:
            session.last_activity = now
            if ip_address:
                session.ip_address = ip_address
            if user_agent:
                session.user_agent = user_agent
            await self._save(session_id, session, self._remaining_ttl(session, now))

        return SessionValidationResult(
            valid=True,
            session=session,
            session_id=session_id,
            should_refresh=should_refresh,
        )

    async def get_session(self, session_id: str) -> SessionData | None:
        """Get session record by id.

        Args:
            session_id: Session identifier

        Returns:
            Session record or None if not found
        """
        return await self._load(session_id)

    async def refresh_session(
        self,
        session_id: str,
        updates: dict[str, Any] | None = None,
    ) -> bool:
        """Merge updates into a session and bump its last activity.

        Identity and absolute expiry (user_id, login_time, max_age_seconds)
        are never overwritten; an expired session is not revived.

        Args:
            session_id: Session identifier
            updates: Field values to merge (e.g. {"role": "instructor"})

        Returns:
            True if the session was updated, False if absent or on failure
        """
        session = await self._load(session_id)
        if session is None:
            return False

        now = self._clock()
        if session.is_expired(now):
            return False

        changes = dict(updates or {})
        ignored = _PROTECTED_FIELDS.intersection(changes)
        if ignored:
            self._logger.warning(
                "Ignoring protected session fields",
                session_id=_short(session_id),
                fields=sorted(ignored),
            )
            for name in ignored:
                changes.pop(name)

        try:
            updated = dataclasses.replace(session, **changes)
            # Reject values the stored record cannot hold (e.g. metadata=None)
            updated = SessionData.from_dict(updated.to_dict())
        except (KeyError, TypeError, ValueError) as e:
            self._logger.error(
                "Invalid session update",
                error=e,
                session_id=_short(session_id),
            )
            return False

        updated.last_activity = now
        return await self._save(session_id, updated, self._remaining_ttl(updated, now))

    async def rotate_session_token(self, session_id: str) -> str | None:
        """Issue a fresh signed token for an existing session.

        The session record (and its absolute expiry) is unchanged; only the
        bearer token is re-signed.

        Returns:
            New session token, or None if the session is absent or expired.
        """
        session = await self._load(session_id)
        if session is None or session.is_expired(self._clock()):
            return None
        return self.token_service.generate(session_id, session.user_id)

    async def destroy_session(self, session_id: str, reason: str = "logout") -> bool:
        """Destroy a session (idempotent).

        Removes the record and its entry in the owner's reverse index.

        Args:
            session_id: Session to destroy
            reason: Audit reason

        Returns:
            True unless the store failed (destroying an absent session is a success)
        """
        session = await self._load(session_id)
        return await self._destroy(session_id, session, reason=reason)

    async def destroy_user_sessions(
        self,
        user_id: str,
        except_session_id: str | None = None,
    ) -> int:
        """Destroy every session of a user.

        Args:
            user_id: Owner of the sessions
            except_session_id: Session to keep (e.g. the current one)

        Returns:
            Number of existing sessions destroyed
        """
        index_key = self._keys.user_sessions(user_id)

        match await self.store.smembers(index_key):
            case Success(value=members):
                session_ids = sorted(members)
            case Failure(error=err):
                self._logger.error(
                    "Failed to read user sessions",
                    user_id=user_id,
                    error_message=err.message,
                )
                return 0
            case _:
                return 0

        destroyed = 0
        removed: list[str] = []
        for session_id in session_ids:
            if session_id == except_session_id:
                continue
            removed.append(session_id)
            session = await self._load(session_id)
            if session is None:
                continue
            if await self._destroy(session_id, session, reason="user_sessions_revoked"):
                destroyed += 1

        if except_session_id is not None and except_session_id in session_ids:
            await self.store.srem(index_key, *removed)
        else:
            await self.store.delete(index_key)

        self._logger.info(
            "User sessions destroyed",
            user_id=user_id,
            count=destroyed,
            kept_current=except_session_id is not None,
        )
        return destroyed

    async def get_user_sessions(self, user_id: str) -> list[UserSession]:
        """List a user's live sessions.

        Index entries whose record is missing are removed; expired records
        still within the grace period are destroyed.

        Returns:
            Live sessions ordered by login time
        """
        index_key = self._keys.user_sessions(user_id)

        match await self.store.smembers(index_key):
            case Success(value=members):
                session_ids = sorted(members)
            case Failure(error=err):
                self._logger.error(
                    "Failed to read user sessions",
                    user_id=user_id,
                    error_message=err.message,
                )
                return []
            case _:
                return []

        now = self._clock()
        sessions: list[UserSession] = []
        for session_id in session_ids:
            session = await self._load(session_id)
            if session is None:
                await self.store.srem(index_key, session_id)
                continue
            if session.is_expired(now):
                await self._destroy(session_id, session, reason="expired")
                continue
            sessions.append(UserSession(session_id=session_id, session=session))

        sessions.sort(key=lambda entry: entry.session.login_time)
        return sessions

    # =========================================================================
    # CSRF
    # =========================================================================

    def validate_csrf_token(self, session_csrf_token: str, submitted_token: str) -> bool:
        """Check a submitted CSRF token against the session's token.

        Exact, constant-time comparison.
        """
        if not isinstance(session_csrf_token, str) or not isinstance(submitted_token, str):
            return False
        return hmac.compare_digest(
            session_csrf_token.encode("utf-8"),
            submitted_token.encode("utf-8"),
        )

    async def regenerate_csrf_token(self, session_id: str) -> str | None:
        """Issue and persist a new CSRF token for a session.

        Returns:
            New CSRF token, or None if the session is absent or the write failed.
        """
        session = await self._load(session_id)
        if session is None:
            return None

        now = self._clock()
        if session.is_expired(now):
            return None

        session.csrf_token = self._generate_csrf_token()
        if not await self._save(session_id, session, self._remaining_ttl(session, now)):
            return None
        return session.csrf_token

    # =========================================================================
    # Maintenance
    # =========================================================================

    async def cleanup_expired_sessions(self) -> int:
        """Destroy every session past its max age.

        Intended for periodic background execution; never raises.

        Returns:
            Number of sessions destroyed
        """
        cleaned = 0
        try:
            match await self.store.keys(self._keys.session_pattern()):
                case Success(value=session_keys):
                    pass
                case Failure(error=err):
                    self._logger.error(
                        "Session cleanup failed",
                        error_message=err.message,
                    )
                    return 0
                case _:
                    return 0

            now = self._clock()
            for session_key in session_keys:
                session_id = session_key.split(":", 1)[1]
                session = await self._load(session_id)
                if session is not None and session.is_expired(now):
                    if await self._destroy(session_id, session, reason="expired"):
                        cleaned += 1
        except Exception as e:
            self._logger.error("Session cleanup failed", error=e, cleaned=cleaned)
            return cleaned

        self._logger.info(
            "Expired sessions cleaned up",
            cleaned=cleaned,
            scanned=len(session_keys),
        )
        return cleaned

    async def get_session_stats(self) -> SessionStats:
        """Aggregate every session record (full scan); never raises."""
        try:
            match await self.store.keys(self._keys.session_pattern()):
                case Success(value=session_keys):
                    pass
                case Failure(error=err):
                    self._logger.error(
                        "Session stats failed",
                        error_message=err.message,
                    )
                    return SessionStats()
                case _:
                    return SessionStats()

            now = self._clock()
            stats = SessionStats()
            total_age = 0.0
            readable = 0
            for session_key in session_keys:
                session = await self._load(session_key.split(":", 1)[1])
                if session is None:
                    continue
                readable += 1
                total_age += (now - session.login_time).total_seconds()
                if session.is_expired(now):
                    stats.expired_sessions += 1
                    continue
                stats.total_active_sessions += 1
                stats.sessions_per_user[session.user_id] = (
                    stats.sessions_per_user.get(session.user_id, 0) + 1
                )

            if readable:
                stats.avg_session_age_seconds = total_age / readable
            return stats
        except Exception as e:
            self._logger.error("Session stats failed", error=e)
            return SessionStats()

    # =========================================================================
    # Helpers
    # =========================================================================

    def _generate_csrf_token(self) -> str:
        digest = hashlib.sha256()
        digest.update(secrets.token_bytes(32))
        digest.update(self.config.csrf_secret.encode("utf-8"))
        return digest.hexdigest()

    def _remaining_ttl(self, session: SessionData, now: datetime) -> int:
        """Store TTL keeping the absolute expiry plus the grace period."""
        remaining = session.expires_at - now + self.config.expiry_grace
        return max(1, math.ceil(remaining / timedelta(seconds=1)))

    async def _load(self, session_id: str) -> SessionData | None:
        raw = await self.cache.get(self._keys.session(session_id))
        if raw is None:
            return None
        try:
            return SessionData.from_dict(raw)
        except (KeyError, TypeError, ValueError) as e:
            self._logger.warning(
                "Unreadable session record",
                session_id=_short(session_id),
                error_message=str(e),
            )
            return None

    async def _save(self, session_id: str, session: SessionData, ttl: int) -> bool:
        # Untagged: tag invalidation (e.g. user-update) must not log users out
        return await self.cache.set(
            self._keys.session(session_id),
            session.to_dict(),
            CacheConfig(ttl=ttl, tags=[]),
        )

    async def _destroy(
        self,
        session_id: str,
        session: SessionData | None,
        *,
        reason: str,
    ) -> bool:
        if session is not None:
            await self.store.srem(self._keys.user_sessions(session.user_id), session_id)

        if not await self.cache.delete(self._keys.session(session_id)):
            return False

        if session is not None:
            await self.audit.log_session_destroyed(
                session_id,
                reason,
                context={"user_id": session.user_id},
            )
            self._logger.info(
                "Session destroyed",
                session_id=_short(session_id),
                user_id=session.user_id,
                reason=reason,
            )
        return True

    async def _add_user_session(self, user_id: str, session_id: str, ttl: int) -> None:
        index_key = self._keys.user_sessions(user_id)
        result = await self.store.sadd(index_key, session_id)
        if isinstance(result, Failure):
            self._logger.error(
                "Failed to index session",
                user_id=user_id,
                session_id=_short(session_id),
                error_message=result.error.message,
            )
            return

        # Never shorten the index below a longer-lived sibling session
        match await self.store.ttl(index_key):
            case Success(value=current) if current is not None and current >= ttl:
                return
            case _:
                await self.store.expire(index_key, ttl)

    async def _enforce_session_limit(self, user_id: str) -> None:
        index_key = self._keys.user_sessions(user_id)
        limit = self.config.max_concurrent_sessions

        match await self.store.smembers(index_key):
            case Success(value=members):
                session_ids = sorted(members)
            case _:
                return

        if len(session_ids) <= limit:
            return

        live: list[tuple[str, SessionData]] = []
        for session_id in session_ids:
            session = await self._load(session_id)
            if session is None:
                await self.store.srem(index_key, session_id)
            else:
                live.append((session_id, session))

        live.sort(key=lambda item: (item[1].last_activity, item[1].login_time))
        excess = len(live) - limit
        for session_id, session in live[: max(excess, 0)]:
            if await self._destroy(session_id, session, reason="evicted"):
                await self.audit.log_session_evicted(
                    session_id,
                    user_id,
                    context={"limit": limit, "active_sessions": len(live)},
                )
                self._logger.warning(
                    "Session evicted by concurrent session limit",
                    user_id=user_id,
                    session_id=_short(session_id),
                    limit=limit,
                )
