"""
Error handling middleware for the EdBox API.

This module provides centralized error handling and
response formatting for the API.
"""

import logging
from flask import jsonify, g
from pydantic import ValidationError as PydanticValidationError
from werkzeug.exceptions import HTTPException

from ...core.models.errors import (
    ErrorResponse,
    ValidationErrorResponse,
    ValidationError,
    BackendError,
    ErrorKind,
    PipelineFailed,
    TaskError,
    ConfigurationError
)
from ...core.schema import format_path


logger = logging.getLogger(__name__)

# HTTP status per backend failure kind; anything else is 503
BACKEND_STATUS = {
    ErrorKind.AUTH: 401,
    ErrorKind.QUOTA: 429,
    ErrorKind.TIMEOUT: 504,
}


def _respond(response, status: int):
    return jsonify(response.model_dump(mode='json')), status


def _slug(name: str) -> str:
    return (name or "http error").upper().replace(" ", "_")


class ErrorHandler:
    """Centralized error handling for the API."""

    @staticmethod
    def register_handlers(app):
        """Register error handlers with Flask app."""

        @app.errorhandler(ValidationError)
        def handle_validation_error(error):
            return ErrorHandler.handle_validation_error(error)

        @app.errorhandler(PydanticValidationError)
        def handle_request_validation_error(error):
            return ErrorHandler.handle_request_validation_error(error)

        @app.errorhandler(BackendError)
        def handle_backend_error(error):
            return ErrorHandler.handle_backend_error(error)

        @app.errorhandler(PipelineFailed)
        def handle_pipeline_failed(error):
            return ErrorHandler.handle_pipeline_failed(error)

        @app.errorhandler(TaskError)
        def handle_task_error(error):
            return ErrorHandler.handle_task_error(error)

        @app.errorhandler(ConfigurationError)
        def handle_configuration_error(error):
            return ErrorHandler.handle_configuration_error(error)

        @app.errorhandler(Exception)
        def handle_generic_error(error):
            return ErrorHandler.handle_generic_error(error)

    @staticmethod
    def handle_validation_error(error: ValidationError):
        """Handle validation errors."""
        logger.warning(f"Validation error: {error.message}")

        return _respond(ErrorResponse(
            error="validation_error",
            message=error.message,
            error_code=error.error_code,
            status=400,
            field=error.field,
            details={"value": error.value} if error.value is not None else None
        ), 400)

    @staticmethod
    def handle_request_validation_error(error: PydanticValidationError):
        """Handle request bodies rejected by the request models."""
        response = ValidationErrorResponse()
        for item in error.errors():
            response.add_validation_error(format_path(item.get("loc", ())), item.get("msg", "Invalid value"))

        logger.warning(f"Request validation failed: {len(response.validation_errors)} error(s)")
        return _respond(response, 400)

    @staticmethod
    def handle_backend_error(error: BackendError):
        """Handle generative backend errors."""
        status = BACKEND_STATUS.get(error.kind, 503)
        if error.is_auth:
            logger.warning(f"Backend rejected credentials: {error.message}")
        else:
            logger.error(f"Backend error ({error.kind.value}): {error.message}")

        return _respond(ErrorResponse(
            error="backend_error",
            message=error.message,
            error_code=error.error_code,
            status=status,
            details={
                "kind": error.kind.value,
                "model": error.model,
                "retryable": error.retryable
            }
        ), status)

    @staticmethod
    def handle_pipeline_failed(error: PipelineFailed):
        """Handle a pipeline halted at a stage."""
        logger.error(f"Pipeline failed: {error.message}")

        return _respond(ErrorResponse.from_exception(error, status=502), 502)

    @staticmethod
    def handle_task_error(error: TaskError):
        """Handle task errors."""
        logger.error(f"Task error: {error.message}")

        return _respond(ErrorResponse(
            error="task_error",
            message=error.message,
            error_code=error.error_code,
            status=500,
            task_id=error.task_id
        ), 500)

    @staticmethod
    def handle_configuration_error(error: ConfigurationError):
        """Handle configuration errors."""
        logger.error(f"Configuration error: {error.message}")

        return _respond(ErrorResponse(
            error="configuration_error",
            message=error.message,
            error_code=error.error_code,
            status=500,
            details={
                "config_key": error.config_key
            }
        ), 500)

    @staticmethod
    def handle_generic_error(error: Exception):
        """Handle generic errors."""
        request_id = getattr(g, 'request_id', 'unknown')

        # Routing errors and rate limiting keep their own status
        if isinstance(error, HTTPException):
            return _respond(ErrorResponse(
                error=_slug(error.name).lower(),
                message=error.description or error.name,
                error_code=_slug(error.name),
                status=error.code,
                request_id=request_id
            ), error.code)

        logger.error(
            f"Unhandled error in request {request_id}: {str(error)}",
            exc_info=True
        )

        return _respond(ErrorResponse(
            error="internal_server_error",
            message="An unexpected error occurred",
            error_code="INTERNAL_SERVER_ERROR",
            status=500,
            request_id=request_id,
            details={
                "error_type": type(error).__name__
            }
        ), 500)
