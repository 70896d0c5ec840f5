"""
Health check endpoints for the EdBox generation service.
"""

import logging
from datetime import datetime
from flask import Blueprint, jsonify, current_app


logger = logging.getLogger(__name__)

# Create blueprint
health_bp = Blueprint('health', __name__, url_prefix='/api/v1')


@health_bp.route('/health', methods=['GET'])
def health_check():
    """
    Basic health check endpoint.

    Returns:
        Service liveness status
    """
    return jsonify({
        "status": "healthy",
        "timestamp": datetime.utcnow().isoformat(),
        "version": current_app.config.get('API_VERSION', '1.0.0'),
        "service": "edbox-generation"
    }), 200
