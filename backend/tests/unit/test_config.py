"""Unit tests for settings validation and security helpers."""

from datetime import datetime, timedelta

import pytest
from pydantic import ValidationError

from app.config import Settings
from app.core.security import (
    generate_session_token,
    hash_password,
    hash_token,
    session_expiry,
    verify_password,
)


@pytest.mark.unit
class TestSettings:
    """Test Settings validators."""

    def test_rollover_policy_normalized(self):
        assert Settings(MONTH_ROLLOVER_POLICY=" Overflow ").MONTH_ROLLOVER_POLICY == "overflow"

    def test_rollover_policy_rejects_unknown(self):
        with pytest.raises(ValidationError):
            Settings(MONTH_ROLLOVER_POLICY="nearest")

    def test_sqlite_rejected_in_production(self, monkeypatch):
        monkeypatch.setenv("ENVIRONMENT", "production")

        with pytest.raises(ValidationError):
            Settings(DATABASE_URL="sqlite+aiosqlite:///./prod.db")

    def test_is_sqlite(self):
        assert Settings(DATABASE_URL="sqlite+aiosqlite:///:memory:").is_sqlite
        assert not Settings(DATABASE_URL="postgresql+asyncpg://u:p@localhost/db").is_sqlite


@pytest.mark.unit
class TestSecurity:
    """Test password and session token helpers."""

    def test_password_round_trip(self):
        hashed = hash_password("correct horse")

        assert hashed != "correct horse"
        assert verify_password("correct horse", hashed)
        assert not verify_password("wrong horse", hashed)

    def test_session_tokens_are_unique(self):
        assert generate_session_token() != generate_session_token()

    def test_hash_token_is_sha256_hex(self):
        digest = hash_token("abc")

        assert len(digest) == 64
        assert digest == hash_token("abc")

    def test_session_expiry_uses_configured_days(self):
        issued = datetime(2024, 2, 20, 12, 0)

        assert session_expiry(issued) == issued + timedelta(days=7)
