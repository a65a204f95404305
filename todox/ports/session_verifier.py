from typing import Protocol, Optional
from todox.domain.task import OwnerId

class SessionVerifier(Protocol):
    """Port that turns an opaque session token into the caller's identity.

    :raises UnauthenticatedError: For a missing, malformed or expired token.
    """
    def verify(self, token: Optional[str]) -> OwnerId:
        pass
