"""Token issuance and verification."""

from datetime import datetime, timedelta, timezone

import jwt
import pytest

from core.errors import AuthError, Rejection
from core.tokens import TokenService

SECRET = "unit-test-secret"
T0 = datetime(2026, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def service():
    return TokenService(SECRET, lifetime=timedelta(days=7))


def _reason(fn, *args, **kwargs):
    with pytest.raises(AuthError) as info:
        fn(*args, **kwargs)
    return info.value.reason


class TestIssue:
    def test_claims_carry_only_subject_and_times(self, service):
        token = service.issue(42, now=T0)
        claims = jwt.decode(token, SECRET, algorithms=["HS256"], options={"verify_exp": False})
        assert set(claims) == {"sub", "iat", "exp"}
        assert claims["sub"] == "42"
        assert claims["exp"] - claims["iat"] == 7 * 24 * 3600

    def test_round_trip_returns_subject(self, service):
        assert service.verify(service.issue(7, now=T0), now=T0) == 7

    def test_empty_key_is_refused(self):
        with pytest.raises(RuntimeError):
            TokenService("")

    def test_non_positive_lifetime_is_refused(self):
        with pytest.raises(RuntimeError):
            TokenService(SECRET, lifetime=timedelta(0))


class TestExpiry:
    def test_valid_one_second_before_exp(self, service):
        token = service.issue(1, now=T0)
        assert service.verify(token, now=T0 + timedelta(days=7, seconds=-1)) == 1

    def test_expired_exactly_at_exp(self, service):
        token = service.issue(1, now=T0)
        assert _reason(service.verify, token, now=T0 + timedelta(days=7)) == Rejection.TOKEN_EXPIRED

    def test_expired_one_second_after_exp(self, service):
        token = service.issue(1, now=T0)
        assert (
            _reason(service.verify, token, now=T0 + timedelta(days=7, seconds=1))
            == Rejection.TOKEN_EXPIRED
        )

    def test_fractional_issue_time_keeps_full_lifetime(self, service):
        issued = T0 + timedelta(milliseconds=900)
        token = service.issue(1, now=issued)
        assert service.verify(token, now=issued + timedelta(days=7, milliseconds=-500)) == 1
        assert service.verify(token, now=issued + timedelta(days=7, milliseconds=-1)) == 1


class TestTampering:
    def test_wrong_key_is_malformed(self, service):
        token = TokenService("another-secret").issue(1, now=T0)
        assert _reason(service.verify, token, now=T0) == Rejection.MALFORMED_TOKEN

    def test_flipped_signature_is_malformed(self, service):
        token = service.issue(1, now=T0)
        head, payload, sig = token.split(".")
        flipped = ("A" if sig[0] != "A" else "B") + sig[1:]
        assert (
            _reason(service.verify, ".".join([head, payload, flipped]), now=T0)
            == Rejection.MALFORMED_TOKEN
        )

    def test_bad_signature_wins_over_expiry(self, service):
        token = TokenService("another-secret").issue(1, now=T0)
        later = T0 + timedelta(days=30)
        assert _reason(service.verify, token, now=later) == Rejection.MALFORMED_TOKEN

    def test_garbage_is_malformed(self, service):
        assert _reason(service.verify, "not-a-token", now=T0) == Rejection.MALFORMED_TOKEN

    def test_unsigned_algorithm_is_rejected(self, service):
        token = jwt.encode(
            {"sub": "1", "iat": int(T0.timestamp()), "exp": int(T0.timestamp()) + 60},
            None,
            algorithm="none",
        )
        assert _reason(service.verify, token, now=T0) == Rejection.MALFORMED_TOKEN

    def test_missing_subject_is_malformed(self, service):
        token = jwt.encode(
            {"iat": int(T0.timestamp()), "exp": int(T0.timestamp()) + 60}, SECRET, algorithm="HS256"
        )
        assert _reason(service.verify, token, now=T0) == Rejection.MALFORMED_TOKEN

    def test_non_numeric_subject_is_malformed(self, service):
        token = jwt.encode(
            {"sub": "admin", "iat": int(T0.timestamp()), "exp": int(T0.timestamp()) + 60},
            SECRET,
            algorithm="HS256",
        )
        assert _reason(service.verify, token, now=T0) == Rejection.MALFORMED_TOKEN

    def test_missing_exp_is_malformed(self, service):
        token = jwt.encode({"sub": "1", "iat": int(T0.timestamp())}, SECRET, algorithm="HS256")
        assert _reason(service.verify, token, now=T0) == Rejection.MALFORMED_TOKEN
