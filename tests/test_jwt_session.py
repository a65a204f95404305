import jwt
import pytest
from datetime import datetime, timezone

from todox.adapters.auth.jwt_session import JwtSessionVerifier
from todox.domain.errors import UnauthenticatedError

from fakes import FakeClock

SECRET = "test-session-secret-0123456789abcdef"


def test_issue_then_verify_returns_owner():
    verifier = JwtSessionVerifier(SECRET)

    token = verifier.issue("alice")

    assert verifier.verify(token) == "alice"


@pytest.mark.parametrize("token", [None, "", "not-a-jwt"])
def test_missing_or_malformed_token_is_rejected(token):
    with pytest.raises(UnauthenticatedError):
        JwtSessionVerifier(SECRET).verify(token)


def test_token_signed_with_other_secret_is_rejected():
    token = JwtSessionVerifier("another-session-secret-0123456789abcdef").issue("alice")

    with pytest.raises(UnauthenticatedError):
        JwtSessionVerifier(SECRET).verify(token)


def test_expired_token_is_rejected():
    past = FakeClock(datetime(2020, 1, 1, tzinfo=timezone.utc))
    token = JwtSessionVerifier(SECRET, ttl_seconds=60, clock=past).issue("alice")

    with pytest.raises(UnauthenticatedError) as exc:
        JwtSessionVerifier(SECRET).verify(token)
    assert exc.value.reason == "session expired"


def test_token_without_user_claim_is_rejected():
    token = jwt.encode({"exp": 4102444800}, SECRET, algorithm="HS256")

    with pytest.raises(UnauthenticatedError):
        JwtSessionVerifier(SECRET).verify(token)


def test_empty_secret_is_refused():
    with pytest.raises(ValueError):
        JwtSessionVerifier("")
