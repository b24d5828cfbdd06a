"""Error Hierarchy — typed, categorized exceptions for all Speedster failure modes.

Invariants:
    - Every error has a code (str), category (ErrorCategory), severity (ErrorSeverity)
    - Client-facing failures map to 400 (413 for oversized bodies); there is no 5xx
      for downstream failures
    - to_response() produces the plain-text body; clients get no structured envelope

Design Decisions:
    - Single hierarchy with SpeedsterError base: FastAPI global handler catches all
    - ErrorContext as dataclass: rich observability without coupling to logging framework
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any
from datetime import datetime, timezone


class ErrorSeverity(str, Enum):
    """Error severity for observability."""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ErrorCategory(str, Enum):
    """High-level error categories for routing and handling."""
    VALIDATION = "validation"
    RESOURCE_NOT_FOUND = "resource_not_found"
    DATABASE = "database"
    EXTERNAL_PROCESS = "external_process"
    INVARIANT = "invariant"


class DecodeErrorKind(str, Enum):
    """Classification of request body decoding failures."""
    TOO_LARGE = "too_large"
    MALFORMED_JSON = "malformed_json"
    TYPE_MISMATCH = "type_mismatch"
    UNKNOWN_FIELD = "unknown_field"
    EMPTY_BODY = "empty_body"
    MULTIPLE_OBJECTS = "multiple_objects"


@dataclass
class ErrorContext:
    """Rich context for error observability and debugging."""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    scan_id: str | None = None
    url: str | None = None
    debug_info: dict[str, Any] | None = None


class SpeedsterError(Exception):
    """Base exception for all Speedster errors."""

    def __init__(
        self,
        message: str,
        code: str,
        category: ErrorCategory,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        context: ErrorContext | None = None,
        http_status: int = 400,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.category = category
        self.severity = severity
        self.context = context or ErrorContext()
        self.http_status = http_status

    def to_response(self) -> str:
        """Plain-text response body."""
        return self.message


# ─── Request Errors ─────────────────────────────────────────────

class MalformedRequestError(SpeedsterError):
    """Request body could not be decoded into the target schema."""
    def __init__(
        self,
        kind: DecodeErrorKind,
        message: str,
        http_status: int = 400,
        context: ErrorContext | None = None,
    ):
        super().__init__(
            message, "MALFORMED_REQUEST", ErrorCategory.VALIDATION,
            ErrorSeverity.WARNING, context, http_status,
        )
        self.kind = kind


class InvalidScanIdError(SpeedsterError):
    """Identifier is not a well-formed ObjectId hex string."""
    def __init__(self, raw_id: str, context: ErrorContext | None = None):
        super().__init__(
            f"Invalid id: {raw_id}",
            "INVALID_ID", ErrorCategory.VALIDATION,
            ErrorSeverity.WARNING, context, 400,
        )
        self.raw_id = raw_id


class ScanNotFoundError(SpeedsterError):
    """No scan stored under the requested id."""
    def __init__(self, scan_id: str, context: ErrorContext | None = None):
        super().__init__(
            f"Scan with id {scan_id} did not exist",
            "RESOURCE_NOT_FOUND", ErrorCategory.RESOURCE_NOT_FOUND,
            ErrorSeverity.WARNING, context, 400,
        )
        self.scan_id = scan_id


class DuplicateDeleteError(SpeedsterError):
    """A delete-by-id removed more than one document."""
    def __init__(self, deleted_count: int, context: ErrorContext | None = None):
        super().__init__(
            "Multiple scans were deleted. Contact support.",
            "INVARIANT_VIOLATION", ErrorCategory.INVARIANT,
            ErrorSeverity.CRITICAL, context, 400,
        )
        self.deleted_count = deleted_count


# ─── Infrastructure Errors ──────────────────────────────────────

class DatabaseError(SpeedsterError):
    """Database operation failed."""
    def __init__(self, message: str, operation: str, context: ErrorContext | None = None):
        super().__init__(
            f"Database {operation} failed: {message}",
            "DATABASE_ERROR", ErrorCategory.DATABASE,
            ErrorSeverity.CRITICAL, context, 400,
        )
        self.operation = operation


class AuditorError(SpeedsterError):
    """Lighthouse run did not produce usable reports."""
    def __init__(self, message: str, code: str, context: ErrorContext | None = None):
        super().__init__(
            message, code, ErrorCategory.EXTERNAL_PROCESS,
            ErrorSeverity.ERROR, context, 400,
        )


class AuditorLaunchError(AuditorError):
    """The auditor binary could not be started."""
    def __init__(self, detail: str, context: ErrorContext | None = None):
        super().__init__(
            f"Lighthouse could not be started: {detail}",
            "AUDITOR_LAUNCH_FAILED", context,
        )


class AuditorProcessError(AuditorError):
    """The auditor exited with a non-zero status or timed out."""
    def __init__(self, detail: str, context: ErrorContext | None = None):
        super().__init__(
            f"Lighthouse run failed: {detail}",
            "AUDITOR_PROCESS_FAILED", context,
        )


class ArtifactMissingError(AuditorError):
    """A report file was not written."""
    def __init__(self, detail: str, context: ErrorContext | None = None):
        super().__init__(
            f"Lighthouse report missing: {detail}",
            "AUDITOR_ARTIFACT_MISSING", context,
        )


class ArtifactUnreadableError(AuditorError):
    """A report file exists but could not be read."""
    def __init__(self, detail: str, context: ErrorContext | None = None):
        super().__init__(
            f"Lighthouse report unreadable: {detail}",
            "AUDITOR_ARTIFACT_UNREADABLE", context,
        )
