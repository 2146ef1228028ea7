"""Error taxonomy for the OPERA Cloud integration."""

from typing import Any, Optional

BODY_EXCERPT_LENGTH = 500


def _excerpt(body: Optional[str]) -> str:
    if not body:
        return ""
    return body[:BODY_EXCERPT_LENGTH]


class OperaClientError(Exception):
    """Base exception for OPERA client errors."""

    kind = "opera_error"

    def to_dict(self) -> dict[str, Any]:
        """Structured representation for the request boundary."""
        return {"kind": self.kind, "message": str(self)}


class OperaConfigurationError(OperaClientError):
    """Raised when required OPERA settings are missing."""

    kind = "configuration_error"

    def __init__(self, missing: list[str]):
        self.missing = list(missing)
        super().__init__(
            f"Missing required OPERA configuration: {', '.join(self.missing)}"
        )


class AuthError(OperaClientError):
    """Token grant or authorized call rejected by the gateway (401/403 or failed grant)."""

    kind = "auth_error"

    def __init__(self, message: str, status_code: Optional[int] = None, body: Optional[str] = None):
        self.status_code = status_code
        self.body = _excerpt(body)
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        return {**super().to_dict(), "status_code": self.status_code, "body": self.body}


class UpstreamError(OperaClientError):
    """Non-success status from an availability, reservation or lookup call."""

    kind = "upstream_error"

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        body: Optional[str] = None,
        endpoint: Optional[str] = None,
    ):
        self.status_code = status_code
        self.body = _excerpt(body)
        self.endpoint = endpoint
        super().__init__(message)

    @property
    def is_server_error(self) -> bool:
        return self.status_code is None or self.status_code >= 500

    def to_dict(self) -> dict[str, Any]:
        return {
            **super().to_dict(),
            "status_code": self.status_code,
            "body": self.body,
            "endpoint": self.endpoint,
        }


class ProtocolError(OperaClientError):
    """Upstream response does not have the expected shape."""

    kind = "protocol_error"

    def __init__(self, message: str, payload: Any = None):
        self.payload = payload
        super().__init__(message)


class OperaTimeoutError(OperaClientError, TimeoutError):
    """Connect or request timeout exceeded."""

    kind = "timeout_error"

    def __init__(self, message: str, endpoint: Optional[str] = None):
        self.endpoint = endpoint
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        return {**super().to_dict(), "endpoint": self.endpoint}


class ConfigMismatchError(OperaClientError):
    """An OPERA code with no local catalog entry.

    Never raised by the enrichment code: instances are collected as
    diagnostics while the affected room group or rate is dropped.
    """

    kind = "config_mismatch"

    ROOM_TYPE = "room_type"
    RATE_PLAN = "rate_plan"

    def __init__(self, mismatch: str, code: str, room_type_code: Optional[str] = None):
        self.mismatch = mismatch
        self.code = code
        self.room_type_code = room_type_code
        if mismatch == self.ROOM_TYPE:
            message = f"Room type {code} is not in the catalog"
        else:
            message = f"Rate plan {code} is not in the catalog (room type {room_type_code})"
        super().__init__(message)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ConfigMismatchError):
            return NotImplemented
        return (self.mismatch, self.code, self.room_type_code) == (
            other.mismatch,
            other.code,
            other.room_type_code,
        )

    def __hash__(self) -> int:
        return hash((self.mismatch, self.code, self.room_type_code))

    def to_dict(self) -> dict[str, Any]:
        return {
            **super().to_dict(),
            "mismatch": self.mismatch,
            "code": self.code,
            "room_type_code": self.room_type_code,
        }
