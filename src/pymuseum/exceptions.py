"""Custom exception hierarchy for pymuseum."""

from __future__ import annotations


class MuseumError(Exception):
    """Base exception for all pymuseum errors."""


class MuseumConfigError(MuseumError):
    """Invalid or missing configuration."""


class MuseumConnectivityError(MuseumError):
    """No response was received (network down, DNS failure, timeout).

    Treated as transient: optimistic state is kept and the mutation is
    queued for a later manual sync.
    """

    def __init__(self, message: str, *, endpoint: str = "") -> None:
        self.endpoint = endpoint
        super().__init__(message)


class MuseumRejectionError(MuseumError):
    """The server responded, but with an error.

    Treated as permanent: never retried automatically, and any optimistic
    state is rolled back.
    """

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        endpoint: str = "",
    ) -> None:
        self.status_code = status_code
        self.endpoint = endpoint
        super().__init__(message)


class MuseumValidationError(MuseumRejectionError):
    """Request payload rejected (HTTP 400/422, or failed local validation)."""


class MuseumAuthRequiredError(MuseumRejectionError):
    """Credentials missing, expired, or not allowed (HTTP 401/403)."""


class MuseumNotFoundError(MuseumRejectionError):
    """Requested resource does not exist (HTTP 404)."""


class MuseumPositionUnavailableError(MuseumError):
    """Device position could not be obtained (denied, timeout, no fix).

    Recoverable: navigation continues in degraded mode.
    """


class MuseumRouteStateError(MuseumError):
    """Operation not allowed in the route's current lifecycle state."""
