"""
Middleware components for the EdBox API.

This module contains middleware for logging, error handling
and other cross-cutting concerns.
"""

from .logging import LoggingMiddleware
from .error_handler import ErrorHandler

__all__ = [
    'LoggingMiddleware',
    'ErrorHandler'
]
