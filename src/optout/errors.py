"""Exception types for token verification and suppression storage."""

from __future__ import annotations


class TokenError(Exception):
    """Base class for every reason an unsubscribe token is rejected.

    ``reason`` is the short tag returned to the client. It never contains
    token bytes, payload content or secret material.
    """

    reason = "bad token"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.reason)


class MissingToken(TokenError):
    reason = "missing token"


class MalformedToken(TokenError):
    reason = "bad token"


class SignatureInvalid(TokenError):
    reason = "signature"


class PayloadInvalid(TokenError):
    reason = "payload"


class TokenExpired(TokenError):
    reason = "expired"


class StoreError(Exception):
    """Base class for suppression storage failures."""


class StoreUnavailable(StoreError):
    """The backing table could not be reached or created."""


class StoreWriteFailed(StoreError):
    """The suppression upsert itself failed."""


class ConfigError(Exception):
    """Required configuration is missing."""
