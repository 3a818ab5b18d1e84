"""Unit tests for session manager models.

Tests cover:
- SessionData serialization and expiry
- SessionOptions validation
- SessionStats serialization
"""

from datetime import UTC, datetime, timedelta

import pytest

from src.session_manager.models import (
    SessionData,
    SessionFailureReason,
    SessionOptions,
    SessionStats,
    SessionValidationResult,
)

LOGIN = datetime(2025, 1, 6, 9, 0, tzinfo=UTC)


def _session(**overrides) -> SessionData:
    values = {
        "user_id": "user-1",
        "email": "ada@example.com",
        "role": "student",
        "permissions": ["course:read"],
        "login_time": LOGIN,
        "last_activity": LOGIN,
        "ip_address": "10.0.0.1",
        "user_agent": "pytest",
        "csrf_token": "csrf",
        "max_age_seconds": 3600.0,
    }
    values.update(overrides)
    return SessionData(**values)


@pytest.mark.unit
class TestSessionData:
    """Test SessionData."""

    def test_to_dict_round_trip(self):
        """Test a record survives serialization unchanged."""
        session = _session(metadata={"device": "laptop"})

        restored = SessionData.from_dict(session.to_dict())

        assert restored == session
        assert restored.login_time.tzinfo is not None

    def test_to_dict_uses_iso_datetimes(self):
        """Test datetimes are stored as ISO-8601 strings."""
        raw = _session().to_dict()

        assert raw["login_time"] == "2025-01-06T09:00:00+00:00"
        assert raw["max_age_seconds"] == 3600.0

    def test_from_dict_defaults_optional_fields(self):
        """Test missing optional fields fall back to empty values."""
        raw = _session().to_dict()
        del raw["metadata"]
        del raw["permissions"]
        raw["ip_address"] = None

        restored = SessionData.from_dict(raw)

        assert restored.metadata == {}
        assert restored.permissions == []
        assert restored.ip_address == ""

    def test_from_dict_missing_required_field(self):
        """Test a record without a user id is rejected."""
        raw = _session().to_dict()
        del raw["user_id"]

        with pytest.raises(KeyError):
            SessionData.from_dict(raw)

    def test_from_dict_rejects_non_mapping(self):
        """Test a non-object record is rejected."""
        with pytest.raises(TypeError):
            SessionData.from_dict(["not", "a", "record"])

    def test_from_dict_rejects_bad_datetime(self):
        """Test an unparsable login time is rejected."""
        raw = _session().to_dict()
        raw["login_time"] = "yesterday"

        with pytest.raises(ValueError):
            SessionData.from_dict(raw)

    def test_expiry_is_absolute(self):
        """Test expiry is measured from login time, not last activity."""
        session = _session(last_activity=LOGIN + timedelta(minutes=50))

        assert session.expires_at == LOGIN + timedelta(hours=1)
        assert session.is_expired(LOGIN + timedelta(hours=1)) is False
        assert session.is_expired(LOGIN + timedelta(hours=1, seconds=1)) is True


@pytest.mark.unit
class TestSessionOptions:
    """Test SessionOptions validation."""

    def test_default_max_age_is_none(self):
        """Test no override by default."""
        assert SessionOptions().max_age is None

    @pytest.mark.parametrize("max_age", [timedelta(0), timedelta(seconds=-5)])
    def test_non_positive_max_age_rejected(self, max_age):
        """Test non-positive lifetimes raise ValueError."""
        with pytest.raises(ValueError, match="positive"):
            SessionOptions(max_age=max_age)


@pytest.mark.unit
class TestResults:
    """Test result models."""

    def test_invalid_result_defaults(self):
        """Test an invalid result carries only its reason."""
        result = SessionValidationResult(
            valid=False, reason=SessionFailureReason.SESSION_NOT_FOUND
        )

        assert result.session is None
        assert result.should_refresh is False
        assert result.reason.value == "Session not found"

    def test_stats_to_dict(self):
        """Test stats serialization rounds the average age."""
        stats = SessionStats(
            total_active_sessions=2,
            sessions_per_user={"user-1": 2},
            avg_session_age_seconds=12.34567,
            expired_sessions=1,
        )

        assert stats.to_dict() == {
            "total_active_sessions": 2,
            "sessions_per_user": {"user-1": 2},
            "avg_session_age_seconds": 12.346,
            "expired_sessions": 1,
        }
