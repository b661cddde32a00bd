"""Error handling utilities for the scope calculator."""

from dataclasses import dataclass
from typing import Optional, Dict, Any
from enum import Enum


class ErrorType(Enum):
    """Enumeration of error types in the scope calculator."""

    # Model service errors (retryable by the caller)
    UPSTREAM_RATE_LIMIT = "UPSTREAM_RATE_LIMIT"
    UPSTREAM_TIMEOUT = "UPSTREAM_TIMEOUT"
    UPSTREAM_AUTH_ERROR = "UPSTREAM_AUTH_ERROR"
    UPSTREAM_INVALID_REQUEST = "UPSTREAM_INVALID_REQUEST"
    UPSTREAM_SERVICE_ERROR = "UPSTREAM_SERVICE_ERROR"

    # Extraction errors (terminal for one extraction attempt)
    MALFORMED_EXTRACTION = "MALFORMED_EXTRACTION"
    INVALID_SHAPE = "INVALID_SHAPE"

    # Document processing errors
    PDF_EXTRACTION_FAILED = "PDF_EXTRACTION_FAILED"
    SCANNED_DOCUMENT = "SCANNED_DOCUMENT"

    # Review errors
    REVIEW_ACTION_INVALID = "REVIEW_ACTION_INVALID"
    RECORD_FINALIZED = "RECORD_FINALIZED"

    # Export and delivery errors
    EXPORT_FAILED = "EXPORT_FAILED"
    DELIVERY_FAILED = "DELIVERY_FAILED"

    # Configuration errors
    CONFIG_MISSING = "CONFIG_MISSING"
    CONFIG_INVALID = "CONFIG_INVALID"

    # System Errors
    INITIALIZATION_FAILED = "INITIALIZATION_FAILED"


@dataclass
class ErrorContext:
    """
    Context information for errors in the scope calculator.

    Attributes:
        error_type: Type of error from ErrorType enum
        message: Human-readable error message
        recoverable: Whether the caller may retry the same operation
        fallback_action: Optional description of what the user can do instead
        details: Optional additional error details
        original_exception: Optional original exception that caused this error
    """

    error_type: ErrorType
    message: str
    recoverable: bool
    fallback_action: Optional[str] = None
    details: Optional[Dict[str, Any]] = None
    original_exception: Optional[Exception] = None

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert error context to dictionary for logging/serialization.

        Returns:
            Dictionary representation of error context
        """
        return {
            "error_type": self.error_type.value,
            "message": self.message,
            "recoverable": self.recoverable,
            "fallback_action": self.fallback_action,
            "details": self.details or {},
            "original_exception": str(self.original_exception) if self.original_exception else None
        }


class ScopeProcessingError(Exception):
    """
    Base exception for all scope calculator errors.

    Wraps errors with an ErrorContext so the HTTP layer can turn them into
    a user-facing message without inspecting parser or boto3 internals.

    Attributes:
        context: ErrorContext with detailed error information
    """

    def __init__(self, context: ErrorContext):
        self.context = context
        super().__init__(context.message)

    def __str__(self) -> str:
        """String representation of the error."""
        base = f"{self.context.error_type.value}: {self.context.message}"
        if self.context.fallback_action:
            base += f" (Fallback: {self.context.fallback_action})"
        return base

    @property
    def error_type(self) -> ErrorType:
        return self.context.error_type

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        return self.context.to_dict()


class UpstreamUnavailableError(ScopeProcessingError):
    """Exception for model service failures at the network/HTTP level."""

    @classmethod
    def from_client_error(
        cls,
        error: Exception,
        operation: str,
        fallback_action: Optional[str] = None
    ) -> "UpstreamUnavailableError":
        """
        Create UpstreamUnavailableError from a boto3 ClientError.

        Args:
            error: Original boto3 ClientError
            operation: Description of operation that failed
            fallback_action: Optional fallback action description

        Returns:
            UpstreamUnavailableError instance
        """
        error_code = "Unknown"
        error_message = str(error)

        if hasattr(error, 'response'):
            error_info = error.response.get("Error", {})
            error_code = error_info.get("Code", "Unknown")
            error_message = error_info.get("Message", str(error))

        error_type_map = {
            "ThrottlingException": ErrorType.UPSTREAM_RATE_LIMIT,
            "TooManyRequestsException": ErrorType.UPSTREAM_RATE_LIMIT,
            "RequestTimeout": ErrorType.UPSTREAM_TIMEOUT,
            "RequestTimeoutException": ErrorType.UPSTREAM_TIMEOUT,
            "ModelTimeoutException": ErrorType.UPSTREAM_TIMEOUT,
            "UnauthorizedException": ErrorType.UPSTREAM_AUTH_ERROR,
            "AccessDeniedException": ErrorType.UPSTREAM_AUTH_ERROR,
            "ValidationException": ErrorType.UPSTREAM_INVALID_REQUEST,
            "ServiceUnavailableException": ErrorType.UPSTREAM_SERVICE_ERROR,
            "InternalServerException": ErrorType.UPSTREAM_SERVICE_ERROR,
        }

        error_type = error_type_map.get(error_code, ErrorType.UPSTREAM_SERVICE_ERROR)
        if error_type == ErrorType.UPSTREAM_RATE_LIMIT:
            message = "API rate limit reached. Please wait a moment and try again."
        else:
            message = f"Model service error during {operation}: {error_message}"

        context = ErrorContext(
            error_type=error_type,
            message=message,
            recoverable=error_type not in (
                ErrorType.UPSTREAM_AUTH_ERROR,
                ErrorType.UPSTREAM_INVALID_REQUEST,
            ),
            fallback_action=fallback_action or "Retry the request; your input has been kept",
            details={
                "error_code": error_code,
                "operation": operation
            },
            original_exception=error
        )

        return cls(context)

    @classmethod
    def unexpected(cls, error: Exception, operation: str) -> "UpstreamUnavailableError":
        """Wrap a transport-level failure that did not come back as a ClientError."""
        context = ErrorContext(
            error_type=ErrorType.UPSTREAM_SERVICE_ERROR,
            message=f"Unexpected error during {operation}: {str(error)}",
            recoverable=True,
            fallback_action="Retry the request; your input has been kept",
            details={"operation": operation},
            original_exception=error
        )
        return cls(context)


class ExtractionError(ScopeProcessingError):
    """Base class for model output that could not be turned into a claim record."""

    USER_MESSAGE = (
        "Unable to parse the AI response. "
        "Please try again or use the text input method."
    )

    @property
    def preview(self) -> str:
        return (self.context.details or {}).get("preview", "")


class MalformedExtractionError(ExtractionError):
    """Model text could not be coerced into JSON after every repair stage."""

    @classmethod
    def from_parse_failure(
        cls,
        cleaned_text: str,
        error: Exception,
        preview_chars: int = 500
    ) -> "MalformedExtractionError":
        """
        Create error for text that failed all repair stages.

        Args:
            cleaned_text: Fence-stripped text that was attempted
            error: Last JSON decode error
            preview_chars: Size of the preview kept for diagnosis

        Returns:
            MalformedExtractionError instance
        """
        preview = cleaned_text[:preview_chars]
        context = ErrorContext(
            error_type=ErrorType.MALFORMED_EXTRACTION,
            message=(
                f"Failed to parse JSON response after multiple attempts: {str(error)}. "
                f"Response preview: {preview}"
            ),
            recoverable=False,
            fallback_action="Resubmit the document or switch to manual text entry",
            details={"preview": preview, "parse_error": str(error)},
            original_exception=error
        )
        return cls(context)


class InvalidShapeError(ExtractionError):
    """JSON parsed but does not describe a usable claim record."""

    @classmethod
    def missing_field(cls, reason: str, preview: str = "") -> "InvalidShapeError":
        """
        Create error for parsed JSON with an unusable structure.

        Args:
            reason: What was wrong with the structure
            preview: Bounded preview of the cleaned text

        Returns:
            InvalidShapeError instance
        """
        context = ErrorContext(
            error_type=ErrorType.INVALID_SHAPE,
            message=f"Invalid response structure: {reason}",
            recoverable=False,
            fallback_action="Resubmit the document or switch to manual text entry",
            details={"reason": reason, "preview": preview}
        )
        return cls(context)


class DocumentProcessingError(ScopeProcessingError):
    """Exception for document text extraction errors."""

    @classmethod
    def pdf_extraction_failed(
        cls,
        filename: str,
        error: Exception,
        fallback_action: Optional[str] = None
    ) -> "DocumentProcessingError":
        """
        Create error for PDF extraction failure.

        Args:
            filename: Name of PDF file
            error: Original exception
            fallback_action: Optional fallback action

        Returns:
            DocumentProcessingError instance
        """
        context = ErrorContext(
            error_type=ErrorType.PDF_EXTRACTION_FAILED,
            message=f"Failed to extract text from PDF '{filename}': {str(error)}",
            recoverable=True,
            fallback_action=fallback_action or "Paste the document text manually",
            details={"filename": filename},
            original_exception=error
        )
        return cls(context)

    @classmethod
    def scanned_document(cls, filename: str, characters: int) -> "DocumentProcessingError":
        """Create error for a PDF without a usable text layer."""
        context = ErrorContext(
            error_type=ErrorType.SCANNED_DOCUMENT,
            message=(
                f"No text could be extracted from '{filename}' "
                f"({characters} characters found); it appears to be a scanned document"
            ),
            recoverable=True,
            fallback_action="Upload the document for AI processing or paste its text",
            details={"filename": filename, "characters": characters}
        )
        return cls(context)


class ReviewActionError(ScopeProcessingError):
    """Exception for review updates that do not match the record."""

    @classmethod
    def invalid(cls, message: str, **details: Any) -> "ReviewActionError":
        context = ErrorContext(
            error_type=ErrorType.REVIEW_ACTION_INVALID,
            message=message,
            recoverable=False,
            details=details
        )
        return cls(context)


class RecordFinalizedError(ScopeProcessingError):
    """Exception for edits attempted after the reviewer signed off."""

    @classmethod
    def for_action(cls, action: str) -> "RecordFinalizedError":
        context = ErrorContext(
            error_type=ErrorType.RECORD_FINALIZED,
            message=f"Cannot apply '{action}': the scope has already been finalized",
            recoverable=False,
            fallback_action="Start over to build a new scope",
            details={"action": action}
        )
        return cls(context)


class ExportError(ScopeProcessingError):
    """Exception for summary document rendering failures."""

    @classmethod
    def render_failed(cls, error: Exception) -> "ExportError":
        context = ErrorContext(
            error_type=ErrorType.EXPORT_FAILED,
            message=f"Failed to generate PDF: {str(error)}",
            recoverable=True,
            fallback_action="Retry the export",
            original_exception=error
        )
        return cls(context)


class DeliveryError(ScopeProcessingError):
    """Exception for attachment upload failures."""

    @classmethod
    def upstream_rejected(cls, status_code: int, body: str) -> "DeliveryError":
        """
        Create error for a non-success response from the attachment endpoint.

        Args:
            status_code: HTTP status returned by the endpoint
            body: Raw response body

        Returns:
            DeliveryError instance
        """
        context = ErrorContext(
            error_type=ErrorType.DELIVERY_FAILED,
            message=f"Attachment webhook failed: {status_code} - {body}",
            recoverable=True,
            fallback_action="Retry sending the document",
            details={"status_code": status_code, "body": body}
        )
        return cls(context)

    @classmethod
    def missing_customer(cls) -> "DeliveryError":
        context = ErrorContext(
            error_type=ErrorType.DELIVERY_FAILED,
            message="No customer selected. Please go back and select a customer.",
            recoverable=False,
            details={}
        )
        return cls(context)

    @classmethod
    def transport_failed(cls, error: Exception) -> "DeliveryError":
        context = ErrorContext(
            error_type=ErrorType.DELIVERY_FAILED,
            message=f"Failed to reach the attachment webhook: {str(error)}",
            recoverable=True,
            fallback_action="Retry sending the document",
            original_exception=error
        )
        return cls(context)


def handle_upstream_error(
    error: Exception,
    operation: str,
    logger,
    fallback_action: Optional[str] = None
) -> None:
    """
    Log a model service failure and raise it as UpstreamUnavailableError.

    Args:
        error: Original exception from the Bedrock API
        operation: Description of operation that failed
        logger: Logger instance for error logging
        fallback_action: Optional fallback action description

    Raises:
        UpstreamUnavailableError: Wrapped error with context
    """
    upstream_error = UpstreamUnavailableError.from_client_error(
        error=error,
        operation=operation,
        fallback_action=fallback_action
    )

    if upstream_error.context.recoverable:
        logger.warning(f"Recoverable model service error: {upstream_error}")
    else:
        logger.error(f"Non-recoverable model service error: {upstream_error}")

    raise upstream_error
