"""
Error models and exception classes.

This module defines the exception taxonomy shared by the generation
client, the pipelines and the HTTP layer, plus the error response models.
"""

from datetime import datetime
from enum import Enum
from typing import Optional, Dict, Any, List
from pydantic import BaseModel, Field


class ErrorKind(str, Enum):
    """Structured classification of backend failures."""
    AUTH = "auth"
    TIMEOUT = "timeout"
    QUOTA = "quota"
    MALFORMED = "malformed"
    NETWORK = "network"


class EdBoxError(Exception):
    """Base exception for EdBox generation."""

    def __init__(self, message: str, error_code: str = None, details: Dict[str, Any] = None):
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        super().__init__(self.message)


class ValidationError(EdBoxError):
    """Invalid inbound request."""

    def __init__(self, message: str, field: str = None, value: Any = None):
        self.field = field
        self.value = value
        super().__init__(message, "VALIDATION_ERROR", {"field": field, "value": value})


class ConfigurationError(EdBoxError):
    """Configuration error."""

    def __init__(self, message: str, config_key: str = None):
        self.config_key = config_key
        super().__init__(
            message,
            "CONFIGURATION_ERROR",
            {"config_key": config_key}
        )


class BackendError(EdBoxError):
    """
    A generative backend call failed.

    The kind is assigned by the generation client so callers never have
    to inspect message text to tell an expired key from a flaky network.
    """

    def __init__(
        self,
        message: str,
        kind: ErrorKind = ErrorKind.NETWORK,
        detail: Optional[str] = None,
        model: Optional[str] = None
    ):
        self.kind = ErrorKind(kind)
        self.detail = detail
        self.model = model
        super().__init__(
            message,
            f"BACKEND_{self.kind.value.upper()}",
            {"kind": self.kind.value, "detail": detail, "model": model}
        )

    @property
    def retryable(self) -> bool:
        """Only transport-level failures are worth another attempt."""
        return self.kind == ErrorKind.NETWORK

    @property
    def is_auth(self) -> bool:
        return self.kind == ErrorKind.AUTH


class AuthenticationError(BackendError):
    """The backend rejected the credentials."""

    def __init__(self, message: str, detail: Optional[str] = None, model: Optional[str] = None):
        super().__init__(message, ErrorKind.AUTH, detail=detail, model=model)


class StageTimeoutError(BackendError):
    """A stage's backend call exceeded its allotted time."""

    def __init__(self, stage: str, timeout: float, model: Optional[str] = None):
        self.stage = stage
        self.timeout = timeout
        super().__init__(
            f"{stage} timed out after {timeout:g}s",
            ErrorKind.TIMEOUT,
            detail=f"timeout={timeout}",
            model=model
        )


class MalformedOutputError(BackendError):
    """Backend output could not be parsed or validated, even after repair."""

    def __init__(
        self,
        message: str,
        raw_text: Optional[str] = None,
        repair_text: Optional[str] = None,
        field_path: Optional[str] = None,
        original_error: Optional[Exception] = None
    ):
        self.raw_text = raw_text
        self.repair_text = repair_text
        self.field_path = field_path
        self.original_error = original_error
        super().__init__(message, ErrorKind.MALFORMED, detail=field_path)


class PipelineFailed(EdBoxError):
    """A pipeline run halted at a stage."""

    def __init__(self, failed_stage: str, cause: Exception):
        self.failed_stage = failed_stage
        self.cause = cause
        super().__init__(
            f"{failed_stage} failed: {cause}",
            "PIPELINE_FAILED",
            {
                "failed_stage": failed_stage,
                "cause": type(cause).__name__,
                "kind": cause.kind.value if isinstance(cause, BackendError) else None
            }
        )


class TaskError(EdBoxError):
    """A background generation task failed."""

    def __init__(self, message: str, task_id: str = None):
        self.task_id = task_id
        super().__init__(message, "TASK_ERROR", {"task_id": task_id})


class ErrorResponse(BaseModel):
    """Error response model."""

    error: str = Field(..., description="Error type")
    message: str = Field(..., description="Error message")
    error_code: str = Field("UNKNOWN_ERROR", description="Error code")
    status: int = Field(..., description="HTTP status code")

    details: Optional[Dict[str, Any]] = Field(None, description="Error details")
    field: Optional[str] = Field(None, description="Field that caused error")

    request_id: Optional[str] = Field(None, description="Request ID")
    task_id: Optional[str] = Field(None, description="Task ID")

    timestamp: datetime = Field(default_factory=datetime.utcnow, description="Error timestamp")

    @classmethod
    def from_exception(cls, exc: EdBoxError, status: int = 500) -> 'ErrorResponse':
        """Create error response from exception."""
        return cls(
            error=exc.__class__.__name__,
            message=exc.message,
            error_code=exc.error_code or "UNKNOWN_ERROR",
            status=status,
            details=exc.details
        )


class ValidationErrorResponse(BaseModel):
    """Validation error response model."""

    error: str = Field(default="validation_error", description="Error type")
    message: str = Field(default="Validation failed", description="Error message")
    status: int = Field(default=400, description="HTTP status code")

    validation_errors: List[Dict[str, Any]] = Field(default_factory=list, description="Validation errors")

    request_id: Optional[str] = Field(None, description="Request ID")
    timestamp: datetime = Field(default_factory=datetime.utcnow, description="Error timestamp")

    def add_validation_error(self, field: str, message: str, value: Any = None):
        """Add a validation error."""
        error = {
            "field": field,
            "message": message
        }
        if value is not None:
            error["value"] = value

        self.validation_errors.append(error)

    def has_errors(self) -> bool:
        """Check if there are validation errors."""
        return len(self.validation_errors) > 0
