"""
FeedPoster Custom Exceptions
============================

Exception hierarchy for FeedPoster with error codes, context information
and user-friendly messages. Every failure in the ingestion pipeline is
contained at feed or entry granularity, so these exceptions are raised by
components and caught by the pipeline and scheduler for logging.
"""

from typing import Optional, Dict, Any
from enum import Enum


class ErrorCode(str, Enum):
    """Error codes for categorizing exceptions."""

    # Configuration errors (C001-C099)
    CONFIG_INVALID = "C001"
    CONFIG_MISSING = "C002"

    # Database errors (D001-D099)
    DATABASE_CONNECTION = "D001"
    DATABASE_SCHEMA = "D002"
    DATABASE_ERROR = "D006"

    # Feed ingestion errors (F001-F099)
    FEED_INVALID_URL = "F001"
    FEED_FETCH_TIMEOUT = "F002"
    FEED_PARSE_ERROR = "F003"
    FEED_NETWORK_ERROR = "F004"
    FEED_HTTP_ERROR = "F005"

    # Content resolution errors (P001-P099)
    CONTENT_INVALID = "P001"
    CONTENT_FETCH_FAILED = "P002"
    CONTENT_EXTRACTION_FAILED = "P003"

    # Forum errors (T001-T099)
    FORUM_API_ERROR = "T001"
    FORUM_PUBLISH_REJECTED = "T002"
    FORUM_USER_NOT_FOUND = "T003"
    FORUM_NETWORK_ERROR = "T004"

    # Validation errors (V001-V099)
    VALIDATION_REQUIRED_FIELD = "V001"
    VALIDATION_INVALID_FORMAT = "V002"
    VALIDATION_OUT_OF_RANGE = "V003"


class FeedPosterError(Exception):
    """Base exception for all FeedPoster errors."""

    def __init__(
        self,
        message: str,
        error_code: Optional[ErrorCode] = None,
        context: Optional[Dict[str, Any]] = None,
        user_message: Optional[str] = None,
        recoverable: bool = False,
    ):
        """Initialize FeedPoster error.

        Args:
            message: Technical error message for logging
            error_code: Categorized error code
            context: Additional context information
            user_message: User-friendly error message
            recoverable: Whether the error is recoverable
        """
        super().__init__(message)
        self.error_code = error_code
        self.context = context or {}
        self.user_message = user_message or message
        self.recoverable = recoverable

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "error_code": self.error_code.value if self.error_code else None,
            "error_message": str(self),
            "user_message": self.user_message,
            "context": self.context,
            "recoverable": self.recoverable,
        }

    def __str__(self) -> str:
        """String representation with error code."""
        if self.error_code:
            return f"[{self.error_code.value}] {super().__str__()}"
        return super().__str__()


def _split_kwargs(kwargs: Dict[str, Any], *consumed: str) -> Dict[str, Any]:
    return {k: v for k, v in kwargs.items() if k not in consumed}


class ConfigurationError(FeedPosterError):
    """Configuration-related errors."""

    def __init__(self, message: str, config_key: Optional[str] = None, **kwargs):
        context = kwargs.get("context", {})
        if config_key:
            context["config_key"] = config_key

        super().__init__(
            message=message,
            error_code=kwargs.get("error_code", ErrorCode.CONFIG_INVALID),
            context=context,
            user_message=kwargs.get("user_message", f"Configuration error: {message}"),
            **_split_kwargs(kwargs, "context", "error_code", "user_message"),
        )


class DatabaseError(FeedPosterError):
    """Database-related errors."""

    def __init__(self, message: str, query: Optional[str] = None, **kwargs):
        """Initialize database error.

        Args:
            message: Error message
            query: SQL query that caused the error
            **kwargs: Additional arguments for FeedPosterError
        """
        context = kwargs.get("context", {})
        if query:
            context["query"] = query

        super().__init__(
            message=message,
            error_code=kwargs.get("error_code", ErrorCode.DATABASE_CONNECTION),
            context=context,
            user_message=kwargs.get("user_message", "Database operation failed"),
            recoverable=kwargs.get("recoverable", True),
            **_split_kwargs(
                kwargs, "context", "error_code", "user_message", "recoverable"
            ),
        )


class FeedError(FeedPosterError):
    """Feed ingestion and parsing errors."""

    def __init__(self, message: str, feed_url: Optional[str] = None, **kwargs):
        """Initialize feed error.

        Args:
            message: Error message
            feed_url: Feed URL that caused the error
            **kwargs: Additional arguments for FeedPosterError
        """
        context = kwargs.get("context", {})
        if feed_url:
            context["feed_url"] = feed_url

        super().__init__(
            message=message,
            error_code=kwargs.get("error_code", ErrorCode.FEED_NETWORK_ERROR),
            context=context,
            user_message=kwargs.get(
                "user_message", f"Feed processing failed: {message}"
            ),
            recoverable=kwargs.get("recoverable", True),
            **_split_kwargs(
                kwargs, "context", "error_code", "user_message", "recoverable"
            ),
        )


class FeedFetchError(FeedError):
    """Whole-feed fetch or parse failure. The feed is skipped for the cycle."""

    pass


class ValidationError(FeedPosterError):
    """Data validation errors (invalid entries, invalid feed configuration)."""

    def __init__(self, message: str, field_name: Optional[str] = None, **kwargs):
        """Initialize validation error.

        Args:
            message: Error message
            field_name: Field name that failed validation
            **kwargs: Additional arguments for FeedPosterError
        """
        context = kwargs.get("context", {})
        if field_name:
            context["field_name"] = field_name

        super().__init__(
            message=message,
            error_code=kwargs.get("error_code", ErrorCode.VALIDATION_INVALID_FORMAT),
            context=context,
            user_message=kwargs.get(
                "user_message", f"Invalid {field_name or 'input'}: {message}"
            ),
            recoverable=kwargs.get("recoverable", False),
            **_split_kwargs(
                kwargs, "context", "error_code", "user_message", "recoverable"
            ),
        )


class ContentResolutionError(FeedPosterError):
    """Linked page could not be fetched or its content region extracted."""

    def __init__(self, message: str, link: Optional[str] = None, **kwargs):
        context = kwargs.get("context", {})
        if link:
            context["link"] = link

        super().__init__(
            message=message,
            error_code=kwargs.get("error_code", ErrorCode.CONTENT_FETCH_FAILED),
            context=context,
            user_message=kwargs.get("user_message", "Content extraction failed"),
            recoverable=kwargs.get("recoverable", True),
            **_split_kwargs(
                kwargs, "context", "error_code", "user_message", "recoverable"
            ),
        )


class ForumAPIError(FeedPosterError):
    """Forum service errors."""

    def __init__(self, message: str, status: Optional[int] = None, **kwargs):
        """Initialize forum error.

        Args:
            message: Error message
            status: HTTP status returned by the forum, if any
            **kwargs: Additional arguments for FeedPosterError
        """
        context = kwargs.get("context", {})
        if status is not None:
            context["status"] = status

        super().__init__(
            message=message,
            error_code=kwargs.get("error_code", ErrorCode.FORUM_API_ERROR),
            context=context,
            user_message=kwargs.get("user_message", "Forum operation failed"),
            recoverable=kwargs.get("recoverable", True),
            **_split_kwargs(
                kwargs, "context", "error_code", "user_message", "recoverable"
            ),
        )


class PublishError(ForumAPIError):
    """Forum rejected topic creation. The entry is retried on the next poll."""

    pass


def handle_exception(
    exception: Exception,
    logger,
    operation: str,
    context: Optional[Dict[str, Any]] = None,
) -> FeedPosterError:
    """Convert generic exceptions to FeedPoster exceptions with proper logging.

    Args:
        exception: Original exception
        logger: Logger instance for error logging
        operation: Operation that was being performed
        context: Additional context information

    Returns:
        FeedPoster exception with proper categorization
    """
    context = context or {}
    context["operation"] = operation
    context["original_exception_type"] = type(exception).__name__

    if isinstance(exception, FeedPosterError):
        logger.error(f"Operation '{operation}' failed", extra=exception.to_dict())
        return exception

    elif isinstance(exception, (ConnectionError, TimeoutError)):
        error = FeedPosterError(
            message=f"Network error during {operation}: {str(exception)}",
            error_code=ErrorCode.FEED_NETWORK_ERROR,
            context=context,
            user_message="Network connection failed",
            recoverable=True,
        )

    elif isinstance(exception, FileNotFoundError):
        error = ConfigurationError(
            message=f"Required file not found during {operation}: {str(exception)}",
            error_code=ErrorCode.CONFIG_MISSING,
            context=context,
            user_message="Configuration file missing",
        )

    else:
        error = FeedPosterError(
            message=f"Unexpected error during {operation}: {str(exception)}",
            context=context,
            user_message="An unexpected error occurred",
            recoverable=True,
        )

    logger.error(f"Operation '{operation}' failed", extra=error.to_dict())
    return error
