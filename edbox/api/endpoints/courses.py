"""
Course API endpoints for the EdBox generation service.

This module provides the endpoints for recommending course formats
and enqueueing course generation.
"""

import asyncio
import logging
from typing import Any, Dict
from flask import Blueprint, request, jsonify, url_for

from ..context import generation_limit, get_app_config, get_generation_client
from ..limiter import limiter
from ...core.models.errors import ValidationError
from ...core.models.requests import CourseRequest, FormatRecommendationRequest
from ...pipeline.course import recommend_top_formats
from ...tasks.generation import generate_course_task


logger = logging.getLogger(__name__)

# Create blueprint
courses_bp = Blueprint('courses', __name__, url_prefix='/api/v1')


def json_body() -> Dict[str, Any]:
    """Return the JSON object body of the current request."""
    if not request.is_json:
        raise ValidationError("Content-Type must be application/json", field="body")
    data = request.get_json(silent=True)
    if not isinstance(data, dict) or not data:
        raise ValidationError("Request body must be a non-empty JSON object", field="body")
    return data


@courses_bp.route('/courses/formats', methods=['POST'])
@limiter.limit(generation_limit)
def recommend_formats():
    """
    Recommend up to four course formats for a topic.

    Expected JSON body:
    {
        "prompt": "What the learner wants to learn",
        "file_text": "Text of an attached document (optional)"
    }
    """
    format_request = FormatRecommendationRequest.model_validate(json_body())

    formats = asyncio.run(recommend_top_formats(get_generation_client(), format_request, get_app_config()))

    return jsonify({
        "recommendations": [fmt.model_dump(mode='json') for fmt in formats]
    }), 200


@courses_bp.route('/courses', methods=['POST'])
@limiter.limit(generation_limit)
def create_course():
    """
    Enqueue course generation.

    Expected JSON body:
    {
        "prompt": "What the learner wants to learn",
        "format": "Mastery Ladder",
        "mode": "Fun",
        "file": {"name": "notes.txt", "type": "text/plain", "content": "..."}
    }
    """
    course_request = CourseRequest.model_validate(json_body())

    task = generate_course_task.delay(course_request.model_dump(mode='json'))
    logger.info(f"Course task created: {task.id} for {request.remote_addr}")

    return jsonify({
        "task_id": task.id,
        "status": "PENDING",
        "status_url": url_for('tasks.get_task', task_id=task.id)
    }), 202
