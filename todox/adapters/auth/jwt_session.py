from __future__ import annotations
import logging
from datetime import timedelta
from typing import Optional
import jwt
from todox.ports.session_verifier import SessionVerifier
from todox.ports.clock import Clock
from todox.adapters.system.clock_system import SystemClock
from todox.domain.task import OwnerId
from todox.domain.errors import UnauthenticatedError

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"
USER_CLAIM = "userID"


class JwtSessionVerifier(SessionVerifier):
    """Session tokens as HS256-signed JWTs carrying the owner in `userID`.

    :param secret: Shared signing key.
    :param ttl_seconds: Lifetime of issued tokens.
    :param clock: Time source for `iat` / `exp` of issued tokens.
    """

    def __init__(self, secret: str, ttl_seconds: int = 86400, clock: Clock | None = None) -> None:
        if not secret:
            raise ValueError("session secret must not be empty")
        self.secret = secret
        self.ttl = timedelta(seconds=ttl_seconds)
        self.clock = clock or SystemClock()

    def issue(self, owner_id: str) -> str:
        """Signs a new session token for `owner_id`."""
        now = self.clock.now()
        claims = {USER_CLAIM: owner_id, "iat": now, "exp": now + self.ttl}
        return jwt.encode(claims, self.secret, algorithm=ALGORITHM)

    def verify(self, token: Optional[str]) -> OwnerId:
        if not token:
            raise UnauthenticatedError("missing session")
        try:
            claims = jwt.decode(
                token,
                self.secret,
                algorithms=[ALGORITHM],
                options={"require": ["exp", USER_CLAIM]},
            )
        except jwt.ExpiredSignatureError:
            raise UnauthenticatedError("session expired")
        except jwt.InvalidTokenError as e:
            logger.info("Rejected session token: %s", e)
            raise UnauthenticatedError("invalid session")

        owner = claims.get(USER_CLAIM)
        if not isinstance(owner, str) or not owner:
            raise UnauthenticatedError("invalid session")
        return OwnerId(owner)

