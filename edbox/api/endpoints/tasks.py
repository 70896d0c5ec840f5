"""
Task status endpoints for the EdBox generation service.
"""

import logging
from datetime import datetime
from flask import Blueprint, jsonify

from ...tasks.generation import get_task_status


logger = logging.getLogger(__name__)

# Create blueprint
tasks_bp = Blueprint('tasks', __name__, url_prefix='/api/v1')


@tasks_bp.route('/tasks/<task_id>', methods=['GET'])
def get_task(task_id):
    """
    Get the status of a generation task.

    Args:
        task_id: Task ID returned when the run was enqueued

    Returns:
        Stage snapshot while running, the result once finished, or the
        error of a failed run
    """
    task_status = get_task_status(task_id)
    task_status["timestamp"] = datetime.utcnow().isoformat()
    return jsonify(task_status), 200
