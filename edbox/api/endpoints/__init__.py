"""
API endpoints for the EdBox generation service.

This module contains all the REST API endpoints for the system.
"""

from .courses import courses_bp
from .research import research_bp
from .tasks import tasks_bp
from .health import health_bp

__all__ = [
    'courses_bp',
    'research_bp',
    'tasks_bp',
    'health_bp'
]
