"""Error taxonomy for Azure DevOps operations.

Every failure that leaves the core is either a ``DevOpsError`` (tagged with an
``ErrorKind``) or an arbitrary exception that callers normalize through
``format_error``. Kinds and their payloads:

- Authentication: credential or handshake failures
- Validation: malformed config or arguments, optional structured ``response``
- ResourceNotFound: raised by operations that probe for existence
- Permission: the credential lacks access to the resource
- RateLimit: the backend throttled the caller, carries ``reset_at``
- Generic: catch-all
"""
import enum
import json
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any, Optional


class ErrorKind(str, enum.Enum):
    """Discriminant for DevOpsError."""

    AUTHENTICATION = "Authentication"
    VALIDATION = "Validation"
    RESOURCE_NOT_FOUND = "ResourceNotFound"
    PERMISSION = "Permission"
    RATE_LIMIT = "RateLimit"
    GENERIC = "Generic"


class DevOpsError(Exception):
    """A failure belonging to this system's own taxonomy."""

    def __init__(
        self,
        kind: ErrorKind,
        message: str,
        response: Any = None,
        reset_at: Optional[datetime] = None,
    ):
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.response = response
        self.reset_at = reset_at

    def __repr__(self) -> str:
        return f"DevOpsError(kind={self.kind.value!r}, message={self.message!r})"

    @classmethod
    def authentication(cls, message: str) -> "DevOpsError":
        return cls(ErrorKind.AUTHENTICATION, message)

    @classmethod
    def validation(cls, message: str, response: Any = None) -> "DevOpsError":
        return cls(ErrorKind.VALIDATION, message, response=response)

    @classmethod
    def not_found(cls, message: str) -> "DevOpsError":
        return cls(ErrorKind.RESOURCE_NOT_FOUND, message)

    @classmethod
    def permission(cls, message: str) -> "DevOpsError":
        return cls(ErrorKind.PERMISSION, message)

    @classmethod
    def rate_limit(cls, message: str, reset_at: datetime) -> "DevOpsError":
        return cls(ErrorKind.RATE_LIMIT, message, reset_at=reset_at)

    @classmethod
    def generic(cls, message: str) -> "DevOpsError":
        return cls(ErrorKind.GENERIC, message)


def is_domain_error(error: Any) -> bool:
    """Return True if ``error`` belongs to the DevOpsError taxonomy."""
    return isinstance(error, DevOpsError) and isinstance(error.kind, ErrorKind)


def cause_message(error: Any) -> str:
    """Message of an underlying cause, or 'Unknown error' when it has none."""
    if isinstance(error, BaseException):
        return str(error) or "Unknown error"
    return "Unknown error"


def to_iso8601(value: datetime) -> str:
    """Render a datetime as UTC ISO-8601 with millisecond precision (``...000Z``)."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    value = value.astimezone(timezone.utc)
    return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}Z"


def format_error(error: Any) -> str:
    """Format any raised or returned value as a single display string.

    Examples:
        >>> format_error(DevOpsError.authentication("bad token"))
        'Authentication: bad token'
        >>> format_error(None)
        'null'
    """
    if error is None:
        return "null"

    if isinstance(error, str):
        return error

    # bool is an int subclass, both land here
    if isinstance(error, (int, float)):
        return "Unknown: Unknown error"

    if is_domain_error(error):
        text = f"{error.kind.value}: {error.message or 'Unknown error'}"
        if error.kind is ErrorKind.VALIDATION and error.response is not None:
            text += f"\nResponse: {json.dumps(error.response, separators=(',', ':'), default=str)}"
        elif error.kind is ErrorKind.RATE_LIMIT and error.reset_at is not None:
            text += f"\nReset at: {to_iso8601(error.reset_at)}"
        return text

    if isinstance(error, BaseException):
        return f"{type(error).__name__}: {str(error) or 'Unknown error'}"

    if isinstance(error, Mapping):
        name = error.get("kind") or error.get("name") or "Unknown"
        message = error.get("message") or "Unknown error"
        return f"{name}: {message}"

    name = getattr(error, "kind", None) or getattr(error, "name", None) or "Unknown"
    message = getattr(error, "message", None) or "Unknown error"
    return f"{name}: {message}"
