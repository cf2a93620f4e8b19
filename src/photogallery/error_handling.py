"""
Centralized error handling and classification for the photogallery application.

Every service raises a subclass of GalleryError. Each error carries a
category, a stable machine code, a message that is safe to show to a user and
the HTTP status the API answers with.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any

from .logging_config import get_logger, log_error, log_security_event

logger = get_logger(__name__)


class ErrorCategory(Enum):
    """Error categories for classification and handling."""

    AUTHENTICATION = "authentication"
    AUTHORIZATION = "authorization"
    UPLOAD = "upload"
    IMAGE_PROCESSING = "image_processing"
    DATABASE = "database"
    STORAGE = "storage"
    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    RATE_LIMIT = "rate_limit"
    SYSTEM = "system"
    UNKNOWN = "unknown"


class ErrorSeverity(Enum):
    """Error severity levels."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


DEFAULT_USER_MESSAGES = {
    ErrorCategory.AUTHENTICATION: "Please sign in to continue.",
    ErrorCategory.AUTHORIZATION: "You don't have permission to edit this gallery.",
    ErrorCategory.UPLOAD: "Upload failed.",
    ErrorCategory.IMAGE_PROCESSING: "The image could not be processed.",
    ErrorCategory.DATABASE: "A database error occurred.",
    ErrorCategory.STORAGE: "A storage error occurred.",
    ErrorCategory.VALIDATION: "The submitted data is invalid.",
    ErrorCategory.NOT_FOUND: "The requested item was not found.",
    ErrorCategory.RATE_LIMIT: "Too many requests. Please try again later.",
    ErrorCategory.SYSTEM: "A system error occurred.",
    ErrorCategory.UNKNOWN: "An unexpected error occurred.",
}

HTTP_STATUS_BY_CATEGORY = {
    ErrorCategory.AUTHENTICATION: 401,
    ErrorCategory.AUTHORIZATION: 403,
    ErrorCategory.VALIDATION: 400,
    ErrorCategory.NOT_FOUND: 404,
    ErrorCategory.IMAGE_PROCESSING: 422,
    ErrorCategory.RATE_LIMIT: 429,
}


@dataclass
class ErrorInfo:
    """Structured error information."""

    category: ErrorCategory
    severity: ErrorSeverity
    code: str
    message: str
    user_message: str
    details: dict[str, Any]
    timestamp: datetime
    recoverable: bool = True
    retry_suggested: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "category": self.category.value,
            "severity": self.severity.value,
            "code": self.code,
            "message": self.message,
            "user_message": self.user_message,
            "details": self.details,
            "timestamp": self.timestamp.isoformat(),
            "recoverable": self.recoverable,
            "retry_suggested": self.retry_suggested,
        }


class GalleryError(Exception):
    """Base exception class for the photogallery application."""

    category = ErrorCategory.UNKNOWN
    severity = ErrorSeverity.MEDIUM
    default_code: str | None = None
    recoverable = True
    retry_suggested = False

    def __init__(
        self,
        message: str,
        code: str | None = None,
        user_message: str | None = None,
        details: dict[str, Any] | None = None,
        original_exception: Exception | None = None,
        category: ErrorCategory | None = None,
        severity: ErrorSeverity | None = None,
    ):
        super().__init__(message)
        if category is not None:
            self.category = category
        if severity is not None:
            self.severity = severity
        self.code = code or self.default_code or f"{self.category.value}_error"
        self.user_message = user_message or DEFAULT_USER_MESSAGES.get(self.category, "An error occurred.")
        self.details = details or {}
        self.original_exception = original_exception
        self.timestamp = datetime.now()

        self._log_error()

    @property
    def http_status(self) -> int:
        """HTTP status code the API responds with for this error."""
        return HTTP_STATUS_BY_CATEGORY.get(self.category, 500)

    def _log_error(self) -> None:
        error_context = {
            "category": self.category.value,
            "severity": self.severity.value,
            "code": self.code,
            "recoverable": self.recoverable,
            **self.details,
        }
        if self.original_exception:
            error_context["original_exception"] = str(self.original_exception)

        log_error(self, error_context)

        if self.category in (ErrorCategory.AUTHENTICATION, ErrorCategory.AUTHORIZATION):
            log_security_event(self.category.value, code=self.code)

    def get_error_info(self) -> ErrorInfo:
        return ErrorInfo(
            category=self.category,
            severity=self.severity,
            code=self.code,
            message=str(self),
            user_message=self.user_message,
            details=self.details,
            timestamp=self.timestamp,
            recoverable=self.recoverable,
            retry_suggested=self.retry_suggested,
        )


class AuthenticationError(GalleryError):
    """Authentication-related errors."""

    category = ErrorCategory.AUTHENTICATION
    severity = ErrorSeverity.HIGH
    default_code = "auth_failed"
    retry_suggested = True


class AuthorizationError(GalleryError):
    """Authorization-related errors."""

    category = ErrorCategory.AUTHORIZATION
    severity = ErrorSeverity.HIGH
    default_code = "access_denied"
    recoverable = False


class ValidationError(GalleryError):
    """Input validation errors."""

    category = ErrorCategory.VALIDATION
    severity = ErrorSeverity.LOW
    default_code = "validation_failed"


class NotFoundError(GalleryError):
    """Requested record does not exist (or is not visible to the caller)."""

    category = ErrorCategory.NOT_FOUND
    severity = ErrorSeverity.LOW
    default_code = "not_found"


class RateLimitError(GalleryError):
    """Client exceeded the request quota."""

    category = ErrorCategory.RATE_LIMIT
    severity = ErrorSeverity.LOW
    default_code = "rate_limited"
    retry_suggested = True


class UploadError(GalleryError):
    """Upload-related errors."""

    category = ErrorCategory.UPLOAD
    default_code = "upload_failed"
    retry_suggested = True


class ImageProcessingError(GalleryError):
    """Image decoding or compression errors."""

    category = ErrorCategory.IMAGE_PROCESSING
    default_code = "image_processing_failed"


class DatabaseError(GalleryError):
    """Metadata database errors."""

    category = ErrorCategory.DATABASE
    severity = ErrorSeverity.HIGH
    default_code = "database_error"
    retry_suggested = True


class StorageError(GalleryError):
    """Object storage errors."""

    category = ErrorCategory.STORAGE
    severity = ErrorSeverity.HIGH
    default_code = "storage_error"
    retry_suggested = True


class ErrorHandler:
    """Classifies arbitrary exceptions and tracks how often each code occurs."""

    KEYWORD_CLASSES: list[tuple[tuple[str, ...], type[GalleryError]]] = [
        (("authentication", "unauthorized", "jwt", "token"), AuthenticationError),
        (("permission", "access denied", "forbidden"), AuthorizationError),
        (("image", "jpeg", "pillow", "cannot identify"), ImageProcessingError),
        (("duckdb", "database", "sql"), DatabaseError),
        (("storage", "gcs", "bucket"), StorageError),
        (("upload",), UploadError),
        (("invalid", "required", "missing"), ValidationError),
    ]

    def __init__(self) -> None:
        self.error_counts: dict[str, int] = {}

    def handle_error(self, error: Exception, context: dict[str, Any] | None = None) -> ErrorInfo:
        """
        Handle and classify errors.

        Args:
            error: Exception to handle
            context: Additional context information

        Returns:
            ErrorInfo: Structured error information
        """
        if isinstance(error, GalleryError):
            error_info = error.get_error_info()
        else:
            error_info = self._classify_error(error, context or {}).get_error_info()

        self._track_error(error_info.code)
        return error_info

    def _classify_error(self, error: Exception, context: dict[str, Any]) -> GalleryError:
        message = str(error)
        lowered = message.lower()
        details = {"original_type": type(error).__name__, **context}

        for keywords, error_class in self.KEYWORD_CLASSES:
            if any(keyword in lowered for keyword in keywords):
                return error_class(message, details=details, original_exception=error)

        if isinstance(error, (OSError, MemoryError, SystemError)):
            return GalleryError(
                message,
                category=ErrorCategory.SYSTEM,
                severity=ErrorSeverity.CRITICAL,
                details=details,
                original_exception=error,
            )

        return GalleryError(message, details=details, original_exception=error)

    def _track_error(self, error_code: str) -> None:
        self.error_counts[error_code] = self.error_counts.get(error_code, 0) + 1
        if self.error_counts[error_code] % 10 == 0:
            logger.warning("frequent_error_detected", error_code=error_code, count=self.error_counts[error_code])

    def get_error_statistics(self) -> dict[str, int]:
        return self.error_counts.copy()

    def reset_statistics(self) -> None:
        self.error_counts.clear()


error_handler = ErrorHandler()


def handle_error(error: Exception, context: dict[str, Any] | None = None) -> ErrorInfo:
    """Global error handling function."""
    return error_handler.handle_error(error, context)


def get_error_handler() -> ErrorHandler:
    """Get the global error handler instance."""
    return error_handler
