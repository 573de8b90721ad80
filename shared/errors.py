"""
Unified Error Handling System for the vehicle registry.

This module provides the exception hierarchy raised by the services,
error categories, centralized error logging with structured context and
the message extraction used by the top-level save handler.

Usage:
    from shared.errors import ErrorCategory, RemoteStoreError, get_error_logger

    log_ref = get_error_logger().log_error(
        error=exc,
        category=ErrorCategory.REMOTE_STORE_ERROR,
        plate="ABC-123",
        operation="upsert_certificado",
    )
"""

import logging
import uuid
from datetime import datetime, UTC
from enum import Enum
from typing import Any


logger = logging.getLogger(__name__)


class ErrorCategory(str, Enum):
    """Categories of errors for proper handling and logging.

    USER-FACING ERRORS (explained to user):
    - VALIDATION_ERROR: Missing plate or failed document checks
    - NOT_FOUND_ERROR: Requested vehicle/certificate record not found

    SYSTEM ERRORS (logged internally):
    - REMOTE_STORE_ERROR: List store call failed
    - CONFIGURATION_ERROR: Missing or invalid configuration
    - UNEXPECTED_ERROR: Unknown/unhandled exceptions
    """
    # User-facing errors
    VALIDATION_ERROR = "validation_error"
    NOT_FOUND_ERROR = "not_found_error"

    # System errors
    REMOTE_STORE_ERROR = "remote_store_error"
    CONFIGURATION_ERROR = "configuration_error"
    UNEXPECTED_ERROR = "unexpected_error"


class RegistroError(Exception):
    """Base class for every error raised by the registry services."""

    category: ErrorCategory = ErrorCategory.UNEXPECTED_ERROR

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(RegistroError):
    """Input rejected before touching the store.

    Carries the full ordered list of violations so the caller can show
    all of them at once.
    """

    category = ErrorCategory.VALIDATION_ERROR

    def __init__(self, messages: list[str] | str, *, summary: str | None = None):
        if isinstance(messages, str):
            messages = [messages]
        self.messages = list(messages)
        super().__init__(summary or "; ".join(self.messages))


class NotFoundError(RegistroError):
    """Target record does not exist."""

    category = ErrorCategory.NOT_FOUND_ERROR


class RemoteStoreError(RegistroError):
    """A list store call failed.

    Attributes:
        status_code: HTTP status code when the server answered, else None
        server_message: Structured error message returned by the server, if any
    """

    category = ErrorCategory.REMOTE_STORE_ERROR

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        server_message: str | None = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.server_message = server_message


class StoreConfigurationError(RegistroError):
    """List store cannot be opened with the current settings."""

    category = ErrorCategory.CONFIGURATION_ERROR


class ErrorLogger:
    """Centralized error logging with structured context.

    Provides consistent error logging with plate, operation name,
    stack traces and a log reference for correlation.
    """

    def __init__(self):
        self.logger = logging.getLogger(f"{__name__}.ErrorLogger")

    def _generate_log_ref(self) -> str:
        """Generate unique reference ID for error correlation."""
        return f"err_{datetime.now(UTC).strftime('%Y%m%d_%H%M%S')}_{uuid.uuid4().hex[:8]}"

    def log_error(
        self,
        error: Exception,
        category: ErrorCategory,
        *,
        plate: str | None = None,
        operation: str | None = None,
        context: dict[str, Any] | None = None,
        exc_info: bool = True,
    ) -> str:
        """Log error with full structured context.

        Args:
            error: The exception that occurred
            category: Error category for classification
            plate: Optional vehicle plate the operation targeted
            operation: Optional operation name (e.g. "delete_all_for_plate")
            context: Additional context data
            exc_info: Whether to include stack trace

        Returns:
            log_ref: Unique reference ID for this error instance
        """
        log_ref = self._generate_log_ref()

        log_data = {
            "log_ref": log_ref,
            "error_category": category.value,
            "error_type": type(error).__name__,
            "error_message": str(error),
            "plate": plate,
            "operation": operation,
            "context": context or {},
            "timestamp": datetime.now(UTC).isoformat(),
        }

        # Log with appropriate level based on category
        if category in [
            ErrorCategory.REMOTE_STORE_ERROR,
            ErrorCategory.UNEXPECTED_ERROR,
        ]:
            self.logger.error(
                f"[{log_ref}] {category.value}: {error}",
                extra=log_data,
                exc_info=exc_info,
            )
        else:
            self.logger.warning(
                f"[{log_ref}] {category.value}: {error}",
                extra=log_data,
                exc_info=exc_info,
            )

        return log_ref


# Global error logger instance
_error_logger = ErrorLogger()


def get_error_logger() -> ErrorLogger:
    """Get the global error logger instance."""
    return _error_logger


def categorize(error: Exception) -> ErrorCategory:
    """Return the category of a registry error, UNEXPECTED_ERROR otherwise."""
    if isinstance(error, RegistroError):
        return error.category
    return ErrorCategory.UNEXPECTED_ERROR


def extract_error_message(error: BaseException) -> str:
    """Build a human-readable message for any failure.

    Preference order: the structured message sent by the store server,
    the exception's own message, and finally its repr.

    Args:
        error: Exception raised anywhere during a save

    Returns:
        Message suitable to show to the user
    """
    server_message = getattr(error, "server_message", None)
    if server_message:
        return str(server_message)

    message = str(error)
    if message:
        return message

    return repr(error)
