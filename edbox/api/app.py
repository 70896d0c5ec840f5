"""
Flask application factory for the EdBox generation service.

The HTTP layer only validates requests, enqueues pipeline runs and reports
their progress; generation itself happens in the Celery worker, except for
format recommendations which are short enough to answer inline.
"""

import logging
from datetime import datetime
from typing import Optional
from flask import Flask, jsonify
from flask_cors import CORS

from .context import EXTENSION_KEY
from .endpoints import courses_bp, research_bp, tasks_bp, health_bp
from .limiter import limiter
from .middleware.logging import LoggingMiddleware
from .middleware.error_handler import ErrorHandler
from ..integrations.llm.client import GenerationClient
from ..utils.config import Config, get_config, validate_config
from ..utils.logging import setup_logging

BLUEPRINTS = (courses_bp, research_bp, tasks_bp, health_bp)


def create_app(config_name: str = None, client: Optional[GenerationClient] = None) -> Flask:
    """
    Create and configure Flask application.

    Args:
        config_name: Configuration name (development, production, testing)
        client: Generation client for the inline endpoints; built from the
            configuration on first use when omitted

    Returns:
        Configured Flask application
    """
    config = get_config(config_name)

    app = Flask(__name__)
    app.config.from_object(config)
    app.config['RATELIMIT_STORAGE_URI'] = config.RATELIMIT_STORAGE_URL
    app.extensions[EXTENSION_KEY] = {'config': config, 'client': client}

    setup_logging(app.config)
    logger = logging.getLogger(__name__)
    for problem in validate_config(config):
        logger.warning(f"Configuration problem: {problem}")

    CORS(app, origins=config.CORS_ORIGINS)
    limiter.init_app(app)

    if config.LOG_REQUESTS:
        app.before_request(LoggingMiddleware.before_request)
        app.after_request(LoggingMiddleware.after_request)

    for blueprint in BLUEPRINTS:
        app.register_blueprint(blueprint)
    ErrorHandler.register_handlers(app)

    _register_index(app, config)

    logger.info(f"EdBox API created with config: {config_name or 'default'}")
    return app


def _register_index(app: Flask, config: Config):
    @app.route('/')
    def index():
        return jsonify({
            "service": "edbox-generation",
            "version": config.API_VERSION,
            "status": "running",
            "timestamp": datetime.utcnow().isoformat(),
            "endpoints": {
                "health": "/api/v1/health",
                "course_formats": "/api/v1/courses/formats",
                "courses": "/api/v1/courses",
                "research_packages": "/api/v1/research-packages",
                "tasks": "/api/v1/tasks/{task_id}"
            }
        })


def run_app(host: str = '0.0.0.0', port: int = 5001, debug: bool = False):
    """Run the development server."""
    app = create_app()
    logging.getLogger(__name__).info(f"Starting EdBox generation service on {host}:{port}")
    app.run(host=host, port=port, debug=debug)


if __name__ == '__main__':
    run_app()
