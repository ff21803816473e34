"""Error Hierarchy — typed, categorized failures for every SDK failure mode.

Invariants:
    - Every error has a code (str), category (ErrorCategory), severity (ErrorSeverity)
    - Errors travel as data inside Failure; only MissingClientIdentifierError is raised
    - to_dict() produces a flat envelope suitable for logs and callers
    - http_status is the status of the triggering response, None when no response exists

Design Decisions:
    - Single hierarchy with SoundcloudError base: callers catch or branch on one type
    - ErrorContext as dataclass: request metadata travels with the error, not with the logger
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from soundcloud_sdk.core.json_node import JSONNode


class ErrorSeverity(str, Enum):
    """Error severity for observability and client handling."""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ErrorCategory(str, Enum):
    """High-level error categories, one per failure layer."""
    TRANSPORT = "transport"
    DECODE = "decode"
    DOMAIN = "domain"
    AUTH = "auth"
    CONFIGURATION = "configuration"


@dataclass
class ErrorContext:
    """Request metadata attached to an error."""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    method: str | None = None
    url: str | None = None
    status_code: int | None = None
    debug_info: dict[str, Any] | None = None


class SoundcloudError(Exception):
    """Base exception for all SDK errors."""

    def __init__(
        self,
        message: str,
        code: str,
        category: ErrorCategory,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        context: ErrorContext | None = None,
        http_status: int | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.category = category
        self.severity = severity
        self.context = context or ErrorContext()
        self.http_status = http_status

    def to_dict(self) -> dict:
        """Flat envelope for logging and serialization."""
        return {
            "code": self.code,
            "message": self.message,
            "category": self.category.value,
            "severity": self.severity.value,
            "http_status": self.http_status,
            "timestamp": self.context.timestamp.isoformat(),
            "context": {
                "method": self.context.method,
                "url": self.context.url,
                "status_code": self.context.status_code,
            },
        }


# ─── Request Errors ─────────────────────────────────────────────

class TransportError(SoundcloudError):
    """No response was obtained (DNS, connect, timeout, protocol)."""
    def __init__(
        self, message: str, cause: Exception | None = None,
        context: ErrorContext | None = None,
    ):
        super().__init__(
            message, "TRANSPORT_ERROR", ErrorCategory.TRANSPORT,
            ErrorSeverity.WARNING, context,
        )
        self.cause = cause


class DecodeError(SoundcloudError):
    """A response arrived but its body could not be decoded into a value."""
    EMPTY_BODY = "empty_body"
    INVALID_JSON = "invalid_json"
    UNEXPECTED_SHAPE = "unexpected_shape"
    PARSE_ERROR = "parse_error"

    def __init__(
        self, message: str, reason: str,
        context: ErrorContext | None = None, http_status: int | None = None,
    ):
        super().__init__(
            message, "DECODE_ERROR", ErrorCategory.DECODE,
            ErrorSeverity.ERROR, context, http_status,
        )
        self.reason = reason


class DomainError(SoundcloudError):
    """Well-formed JSON describing an API-level failure."""
    def __init__(
        self,
        message: str,
        api_messages: list[str] | None = None,
        http_status: int | None = None,
        context: ErrorContext | None = None,
    ):
        super().__init__(
            message, "DOMAIN_ERROR", ErrorCategory.DOMAIN,
            ErrorSeverity.ERROR, context, http_status,
        )
        self.api_messages = api_messages or [message]


class AuthExpiredError(SoundcloudError):
    """Credential refresh failed or the retry bound was exhausted."""
    def __init__(
        self, attempts: int, cause: Exception | None = None,
        context: ErrorContext | None = None,
    ):
        detail = f": {cause}" if cause else ""
        super().__init__(
            f"Session expired after {attempts} refresh attempt(s){detail}",
            "AUTH_EXPIRED", ErrorCategory.AUTH,
            ErrorSeverity.ERROR, context, 401,
        )
        self.attempts = attempts
        self.cause = cause


# ─── Configuration Errors (raised, never wrapped in Failure) ────

class MissingClientIdentifierError(SoundcloudError):
    """A URL was built before the client identifier was configured."""
    def __init__(self, context: ErrorContext | None = None):
        super().__init__(
            "Client identifier is not set; configure SOUNDCLOUD_CLIENT_ID "
            "or pass client_identifier to APIContext",
            "CLIENT_ID_MISSING", ErrorCategory.CONFIGURATION,
            ErrorSeverity.CRITICAL, context,
        )


GenericError = DecodeError


def domain_error_from_json(
    node: "JSONNode", status_code: int | None = None,
) -> DomainError | None:
    """Build a DomainError from the API error envelope, or None if absent.

    Recognized shapes:
        {"errors": [{"error_message": "..."}]}
        {"error": "..."} / {"message": "..."}
    """
    messages = node["errors"].as_array(
        lambda e: e["error_message"].as_string() or e.as_string(),
    )
    if messages:
        return DomainError(
            "; ".join(messages), api_messages=messages, http_status=status_code,
        )
    single = node["error"].as_string() or node["message"].as_string()
    if single:
        return DomainError(single, http_status=status_code)
    return None
