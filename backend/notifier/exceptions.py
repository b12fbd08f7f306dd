"""Error taxonomy for notification dispatch."""
from typing import Optional

# Substrings in an FCM error body meaning the registration token is dead
UNREGISTERED_MARKERS = (
    "UNREGISTERED",
    "registration-token-not-registered",
    "NOT_FOUND",
)


class NotifierError(Exception):
    """Base class for notifier errors."""


class CredentialError(NotifierError):
    """Minting a push-backend bearer token failed.

    ``transient`` separates endpoint hiccups (5xx, 429, network errors)
    from misconfiguration (bad key, rejected grant) so they can be
    alerted on differently.
    """

    def __init__(self, message: str, transient: bool = False):
        super().__init__(message)
        self.transient = transient


class DeliveryError(NotifierError):
    """A single push send failed."""

    def __init__(self, token: str, status_code: Optional[int] = None, body: str = ""):
        self.token = token
        self.status_code = status_code
        self.body = body
        status = status_code if status_code is not None else "no response"
        super().__init__(f"Push send failed ({status}) for {token[:16]}...: {body[:200]}")

    @property
    def unregistered(self) -> bool:
        """True when the push backend says the token no longer exists."""
        if self.status_code is None:
            return False
        return any(marker in self.body for marker in UNREGISTERED_MARKERS)


class PersistenceError(NotifierError):
    """Writing the in-app notification trail failed."""
