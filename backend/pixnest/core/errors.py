"""Error Hierarchy: typed, categorized exceptions for all PixNest failure modes.

Invariants:
    - Every error has a code (str), category (ErrorCategory), severity (ErrorSeverity)
    - Domain errors (400-level) are recoverable; infrastructure errors (500-level) are critical
    - to_response() produces the REST envelope
    - No internal details leaked in user-facing messages (auth errors never say
      whether an account exists)

Design Decisions:
    - Single hierarchy with PixNestError base: FastAPI global handler catches all
      (ADR: uniform error shape)
    - ErrorContext as dataclass: rich observability without coupling to logging framework
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any
from datetime import datetime, timezone


class ErrorSeverity(str, Enum):
    """Error severity for observability and client handling."""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ErrorCategory(str, Enum):
    """High-level error categories for routing and handling."""
    VALIDATION = "validation"
    AUTHENTICATION = "authentication"
    AUTHORIZATION = "authorization"
    RESOURCE_NOT_FOUND = "resource_not_found"
    DATABASE = "database"
    EXTERNAL_API = "external_api"
    INTERNAL = "internal"
    CONFLICT = "conflict"


@dataclass
class ErrorContext:
    """Rich context for error observability and manual retry."""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    user_id: str | None = None
    post_id: str | None = None
    folder: str | None = None
    user_message: str | None = None
    debug_info: dict[str, Any] | None = None


class PixNestError(Exception):
    """Base exception for all PixNest errors."""

    def __init__(
        self,
        message: str,
        code: str,
        category: ErrorCategory,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        context: ErrorContext | None = None,
        http_status: int = 500,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.category = category
        self.severity = severity
        self.context = context or ErrorContext()
        self.http_status = http_status

    def to_response(self) -> dict:
        """Convert to standardized REST error response."""
        return {
            "error": {
                "code": self.code,
                "message": self.context.user_message or self.message,
                "category": self.category.value,
                "severity": self.severity.value,
                "timestamp": self.context.timestamp.isoformat(),
            }
        }


# ─── Validation Errors (400-level, shown as form errors) ────────

class DuplicateIdentityError(PixNestError):
    """Username or email already belongs to another user."""
    def __init__(self, field_name: str | None = None, context: ErrorContext | None = None):
        what = field_name.capitalize() if field_name else "Username or email"
        super().__init__(
            f"{what} already exists",
            "DUPLICATE_IDENTITY", ErrorCategory.CONFLICT,
            ErrorSeverity.WARNING, context, 409,
        )
        self.field = field_name


class PasswordPolicyError(PixNestError):
    """Password cannot be hashed (bcrypt accepts at most 72 bytes)."""
    def __init__(self, message: str, context: ErrorContext | None = None):
        super().__init__(
            message, "PASSWORD_POLICY", ErrorCategory.VALIDATION,
            ErrorSeverity.WARNING, context, 400,
        )


class UnsupportedMediaError(PixNestError):
    """Uploaded content is missing or not an allowed image format."""
    def __init__(self, message: str, context: ErrorContext | None = None):
        super().__init__(
            message, "UNSUPPORTED_MEDIA", ErrorCategory.VALIDATION,
            ErrorSeverity.WARNING, context, 400,
        )


class PayloadTooLargeError(PixNestError):
    """Uploaded content exceeds the configured maximum."""
    def __init__(self, max_bytes: int, context: ErrorContext | None = None):
        super().__init__(
            f"File exceeds the maximum upload size of {max_bytes} bytes",
            "PAYLOAD_TOO_LARGE", ErrorCategory.VALIDATION,
            ErrorSeverity.WARNING, context, 413,
        )
        self.max_bytes = max_bytes


# ─── Auth Errors ────────────────────────────────────────────────

class InvalidCredentialsError(PixNestError):
    """Login failed. Deliberately does not say which part was wrong."""
    def __init__(self, context: ErrorContext | None = None):
        super().__init__(
            "Invalid username or password",
            "INVALID_CREDENTIALS", ErrorCategory.AUTHENTICATION,
            ErrorSeverity.WARNING, context, 401,
        )


class UnauthenticatedError(PixNestError):
    """Session token absent, unknown, expired, or invalidated."""
    def __init__(self, context: ErrorContext | None = None):
        super().__init__(
            "Authentication required",
            "UNAUTHENTICATED", ErrorCategory.AUTHENTICATION,
            ErrorSeverity.WARNING, context, 401,
        )


class ForbiddenError(PixNestError):
    """Authenticated user may not act on this resource."""
    def __init__(self, message: str = "Not allowed", context: ErrorContext | None = None):
        super().__init__(
            message, "FORBIDDEN", ErrorCategory.AUTHORIZATION,
            ErrorSeverity.WARNING, context, 403,
        )


class NotFoundError(PixNestError):
    """Requested resource does not exist."""
    def __init__(
        self, resource_type: str, resource_id: str, context: ErrorContext | None = None,
    ):
        super().__init__(
            f"{resource_type} '{resource_id}' not found",
            "RESOURCE_NOT_FOUND", ErrorCategory.RESOURCE_NOT_FOUND,
            ErrorSeverity.ERROR, context, 404,
        )


# ─── Infrastructure Errors (500-level) ──────────────────────────

class StorageUnavailableError(PixNestError):
    """Object storage upload did not complete. Never masked as success."""
    def __init__(
        self,
        message: str,
        retryable: bool = True,
        context: ErrorContext | None = None,
    ):
        ctx = context or ErrorContext()
        ctx.user_message = ctx.user_message or "Upload failed, please try again later"
        super().__init__(
            f"Object storage unavailable: {message}",
            "STORAGE_UNAVAILABLE", ErrorCategory.EXTERNAL_API,
            ErrorSeverity.CRITICAL, ctx, 500,
        )
        self.retryable = retryable


class DatabaseError(PixNestError):
    """Database operation failed."""
    def __init__(self, message: str, operation: str, context: ErrorContext | None = None):
        super().__init__(
            f"Database {operation} failed: {message}",
            "DATABASE_ERROR", ErrorCategory.DATABASE,
            ErrorSeverity.CRITICAL, context, 503,
        )
        self.operation = operation


class WriteConflictError(PixNestError):
    """A concurrent write violated a constraint no service anticipated."""
    def __init__(self, context: ErrorContext | None = None):
        super().__init__(
            "The resource was changed by another request, please retry",
            "WRITE_CONFLICT", ErrorCategory.CONFLICT,
            ErrorSeverity.WARNING, context, 409,
        )
