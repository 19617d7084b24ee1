"""
Token Service Tests
===================

Issue/verify round trips and every failure kind. `verify` must never raise.
"""

from datetime import datetime, timedelta, timezone

import jwt
import pytest

from lexboard.auth import (
    TokenClaims, TokenFailure, TokenFailureKind, TokenService,
    get_password_hash, verify_password, is_password_too_long,
)
from lexboard.db.models import UserRole

SECRET = "unit-test-secret-key-long-enough-for-hs256"


@pytest.fixture
def service():
    return TokenService(SECRET, expires=timedelta(days=7))


class TestIssueAndVerify:
    def test_round_trip(self, service):
        """verify(issue(id, role)) returns the same subject and role"""
        issued = service.issue("user-1", UserRole.ADVOCATE)
        claims = service.verify(issued.token)

        assert isinstance(claims, TokenClaims)
        assert claims.subject_id == "user-1"
        assert claims.role == UserRole.ADVOCATE
        assert claims.expires_at == issued.expires_at

    def test_expiry_is_seven_days(self, service):
        now = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)
        issued = service.issue("user-1", UserRole.PARALEGAL, now=now)
        assert issued.expires_at == now + timedelta(days=7)

    def test_each_token_is_unique(self, service):
        now = datetime.now(timezone.utc)
        first = service.issue("user-1", UserRole.ADVOCATE, now=now)
        second = service.issue("user-1", UserRole.ADVOCATE, now=now)
        assert first.token != second.token


class TestVerifyFailures:
    def test_expired(self, service):
        issued = service.issue("user-1", UserRole.ADVOCATE, now=datetime.now(timezone.utc) - timedelta(days=8))
        result = service.verify(issued.token)

        assert isinstance(result, TokenFailure)
        assert result.kind == TokenFailureKind.EXPIRED
        assert result.expired

    def test_invalid_signature(self, service):
        forged = TokenService("some-other-secret-key-also-long-enough").issue("user-1", UserRole.PARALEGAL)
        result = service.verify(forged.token)
        assert result == TokenFailure(TokenFailureKind.INVALID_SIGNATURE)

    @pytest.mark.parametrize("token", ["", "   ", "not-a-token", "a.b.c", None, 12345, b"bytes"])
    def test_malformed_inputs_do_not_raise(self, service, token):
        result = service.verify(token)
        assert result == TokenFailure(TokenFailureKind.MALFORMED)

    def test_unsigned_token_rejected(self, service):
        now = datetime.now(timezone.utc)
        token = jwt.encode(
            {"sub": "user-1", "role": "paralegal", "iat": now, "exp": now + timedelta(hours=1)},
            None,
            algorithm="none",
        )
        assert isinstance(service.verify(token), TokenFailure)

    def test_missing_role_claim(self, service):
        now = datetime.now(timezone.utc)
        token = jwt.encode({"sub": "user-1", "iat": now, "exp": now + timedelta(hours=1)}, SECRET, algorithm="HS256")
        assert service.verify(token) == TokenFailure(TokenFailureKind.MALFORMED)

    def test_missing_exp_claim(self, service):
        token = jwt.encode({"sub": "user-1", "role": "advocate", "iat": datetime.now(timezone.utc)},
                           SECRET, algorithm="HS256")
        assert service.verify(token) == TokenFailure(TokenFailureKind.MALFORMED)


class TestPasswordHashing:
    def test_hash_and_verify(self):
        hashed = get_password_hash("secret1")
        assert hashed != "secret1"
        assert verify_password("secret1", hashed)
        assert not verify_password("secret2", hashed)

    def test_password_over_72_bytes(self):
        long_password = "x" * 73
        assert is_password_too_long(long_password)
        with pytest.raises(ValueError):
            get_password_hash(long_password)
        assert not verify_password(long_password, get_password_hash("secret1"))
