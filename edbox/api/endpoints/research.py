"""
Research package API endpoints for the EdBox generation service.
"""

import logging
from flask import Blueprint, request, jsonify, url_for

from .courses import json_body
from ..context import generation_limit
from ..limiter import limiter
from ...core.models.requests import ResearchRequest
from ...tasks.generation import generate_research_package_task


logger = logging.getLogger(__name__)

# Create blueprint
research_bp = Blueprint('research', __name__, url_prefix='/api/v1')


@research_bp.route('/research-packages', methods=['POST'])
@limiter.limit(generation_limit)
def create_research_package():
    """
    Enqueue research package generation.

    Expected JSON body:
    {
        "goal": "What the package should help the audience understand",
        "audience": "Target audience",
        "citation_style": "APA",
        "sources": [{"id": "s1", "name": "Paper title", "type": "text", "content": "..."}]
    }
    """
    research_request = ResearchRequest.model_validate(json_body())

    task = generate_research_package_task.delay(research_request.model_dump(mode='json'))
    logger.info(f"Research package task created: {task.id} for {request.remote_addr}")

    return jsonify({
        "task_id": task.id,
        "status": "PENDING",
        "status_url": url_for('tasks.get_task', task_id=task.id)
    }), 202
