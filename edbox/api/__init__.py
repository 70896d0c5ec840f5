"""
HTTP API for the EdBox generation service.
"""

from .app import create_app

__all__ = ['create_app']
