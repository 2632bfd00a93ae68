from __future__ import annotations

from enum import Enum
from typing import Optional


class PortalErrorKind(str, Enum):
    NETWORK_ERROR = "NetworkError"
    PARSE_ERROR = "ParseError"
    HIP_REQUIRED = "HipRequired"
    AUTH_FAILED = "AuthFailed"
    OTHER = "Other"


class PortalError(RuntimeError):
    """
    A failed round against a GlobalProtect portal or gateway.

    `reason` is the raw or extracted diagnostic text from the server (or the transport) and is
    always preserved so it can be surfaced to the user verbatim.
    """

    default_kind: PortalErrorKind = PortalErrorKind.OTHER

    def __init__(
        self,
        reason: str,
        *,
        kind: Optional[PortalErrorKind] = None,
        status: Optional[int] = None,
    ) -> None:
        self.kind = kind or self.default_kind
        self.reason = reason
        self.status = status
        super().__init__(reason)

    def __str__(self) -> str:
        if self.status is not None:
            return f"{self.kind.value} (HTTP {self.status}): {self.reason}"
        return f"{self.kind.value}: {self.reason}"

    def with_context(self, context: str) -> "PortalError":
        """Return a copy of this error with `context` prefixed to the reason (same class and kind)."""
        return type(self)(f"{context}: {self.reason}", kind=self.kind, status=self.status)


class NetworkError(PortalError):
    """Transport or TLS failure. Terminal for the current round; the caller may retry."""

    default_kind = PortalErrorKind.NETWORK_ERROR


class ParseError(PortalError):
    """The response does not have the expected shape."""

    default_kind = PortalErrorKind.PARSE_ERROR


class HipRequiredError(PortalError):
    """
    The server demands a HIP report before it grants access.

    Never retried automatically: the caller has to submit the report out of band and retry with a
    refreshed credential.
    """

    default_kind = PortalErrorKind.HIP_REQUIRED


class AuthFailedError(PortalError):
    default_kind = PortalErrorKind.AUTH_FAILED


_KIND_TO_CLASS: dict[PortalErrorKind, type[PortalError]] = {
    PortalErrorKind.NETWORK_ERROR: NetworkError,
    PortalErrorKind.PARSE_ERROR: ParseError,
    PortalErrorKind.HIP_REQUIRED: HipRequiredError,
    PortalErrorKind.AUTH_FAILED: AuthFailedError,
    PortalErrorKind.OTHER: PortalError,
}


def portal_error(kind: PortalErrorKind, reason: str, *, status: Optional[int] = None) -> PortalError:
    """Build the most specific `PortalError` subclass for `kind`."""
    return _KIND_TO_CLASS[kind](reason, kind=kind, status=status)
