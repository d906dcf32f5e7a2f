"""
Structured error handling and response formatting.
Provides consistent error responses with error codes and context.
"""

from typing import Optional, Dict, Any
import logging

from shared_utils.constants import ErrorCode, LogScope
from shared_utils.logging_utils import get_scoped_logger


class AppException(Exception):
    """Base exception for application errors."""

    def __init__(
        self,
        error_code: str,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        http_status: int = 500
    ):
        self.error_code = error_code
        self.message = message
        self.context = context or {}
        self.http_status = http_status
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to response dictionary."""
        return {
            "error": {
                "code": self.error_code,
                "message": self.message,
                "context": self.context
            }
        }


class ValidationError(AppException):
    """Validation/input error."""

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(
            error_code=ErrorCode.INVALID_INPUT.value,
            message=message,
            context=context,
            http_status=400
        )


class ConfigurationError(AppException):
    """Configuration error."""

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(
            error_code=ErrorCode.INVALID_CONFIG.value,
            message=message,
            context=context,
            http_status=500
        )


class AuthenticationError(AppException):
    """Missing or invalid caller identity."""

    def __init__(self, message: str = "Authentication required", context: Optional[Dict[str, Any]] = None):
        super().__init__(
            error_code=ErrorCode.AUTHENTICATION_FAILED.value,
            message=message,
            context=context,
            http_status=401
        )


class MeetingNotFoundError(AppException):
    """Meeting id unknown to the meeting store."""

    def __init__(self, meeting_id: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(
            error_code=ErrorCode.MEETING_NOT_FOUND.value,
            message=f"Meeting {meeting_id} not found",
            context={**(context or {}), "meeting_id": meeting_id},
            http_status=404
        )


class MeetingInactiveError(AppException):
    """Meeting exists but no longer accepts joins."""

    def __init__(self, meeting_id: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(
            error_code=ErrorCode.MEETING_INACTIVE.value,
            message=f"Meeting {meeting_id} is not active",
            context={**(context or {}), "meeting_id": meeting_id},
            http_status=409
        )


class NotParticipantError(AppException):
    """Connection is not a registered member of the meeting."""

    def __init__(self, meeting_id: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(
            error_code=ErrorCode.NOT_A_PARTICIPANT.value,
            message=f"Not a participant of meeting {meeting_id}",
            context={**(context or {}), "meeting_id": meeting_id},
            http_status=403
        )


class ExternalServiceError(AppException):
    """External service unavailable error."""

    def __init__(self, service: str, message: str, context: Optional[Dict[str, Any]] = None):
        full_message = f"{service} unavailable: {message}"
        super().__init__(
            error_code=ErrorCode.EXTERNAL_SERVICE_ERROR.value,
            message=full_message,
            context={**(context or {}), "service": service},
            http_status=503
        )


class StoreUnavailableError(ExternalServiceError):
    """Meeting store query or update failed."""

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__("MeetingStore", message, context=context)
        self.error_code = ErrorCode.STORE_UNAVAILABLE.value


def log_exception(
    exc: Exception,
    scope: str = LogScope.ERROR_HANDLER,
    logger: Optional[logging.Logger] = None
) -> None:
    """Log exception with structured context.

    Args:
        exc: Exception to log
        scope: Log scope identifier
        logger: Optional custom logger (uses structlog if not provided)
    """
    if logger is None:
        logger = get_scoped_logger(scope)

    if isinstance(exc, AppException):
        logger.error(
            "app_exception",
            error_code=exc.error_code,
            message=exc.message,
            http_status=exc.http_status,
            context=exc.context
        )
    else:
        logger.error(
            "unexpected_exception",
            error_type=type(exc).__name__,
            message=str(exc),
            exc_info=exc
        )


def handle_error(
    exc: Exception,
    scope: str = LogScope.ERROR_HANDLER,
    default_error_code: str = ErrorCode.EXTERNAL_SERVICE_ERROR.value
) -> Dict[str, Any]:
    """Handle exception and return structured error response.

    Args:
        exc: Exception to handle
        scope: Log scope
        default_error_code: Default error code for non-AppException errors

    Returns:
        Structured error response dictionary
    """
    log_exception(exc, scope)

    if isinstance(exc, AppException):
        return exc.to_dict()
    else:
        # Convert unexpected exceptions to structured format
        return {
            "error": {
                "code": default_error_code,
                "message": f"An unexpected error occurred: {str(exc)}",
                "context": {"error_type": type(exc).__name__}
            }
        }
