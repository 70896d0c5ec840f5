"""
Generation tasks for EdBox.

This module contains the Celery tasks that run the course and research
package pipelines in a worker, publishing the stage list as task progress.
"""

import asyncio
import logging
import time
from typing import Any, Callable, Dict, List, Optional

from .celery_app import celery_app
from ..core.models.errors import PipelineFailed, TaskError
from ..core.models.requests import CourseRequest, ResearchRequest
from ..core.models.stages import Stage, StageStatus
from ..integrations.llm.client import GenerationClient, LLMClient
from ..pipeline.course import CoursePipeline
from ..pipeline.orchestrator import ProgressCallback
from ..pipeline.research import ResearchPackagePipeline
from ..utils.config import Config, get_config
from ..utils.logging import TaskLogger

logger = logging.getLogger(__name__)
task_logger = TaskLogger()

# Task status constants
TASK_STATUS = {
    'PENDING': 'PENDING',
    'PROGRESS': 'PROGRESS',
    'SUCCESS': 'SUCCESS',
    'FAILURE': 'FAILURE'
}


def build_client(config: Config) -> GenerationClient:
    return LLMClient.from_config(config)


def progress_meta(stages: List[Stage]) -> Dict[str, Any]:
    """
    Summarize a stage snapshot as Celery task meta.

    The overall progress is the mean of the stage percentages; the current
    stage is the first one running, or the last one touched.
    """
    if not stages:
        return {'stages': [], 'current_stage': None, 'progress': 0, 'message': ''}

    current = next((stage for stage in stages if stage.status == StageStatus.RUNNING), None)
    if current is None:
        touched = [stage for stage in stages if stage.status != StageStatus.PENDING]
        current = touched[-1] if touched else stages[0]
    return {
        'stages': [stage.model_dump(mode='json') for stage in stages],
        'current_stage': current.name,
        'progress': round(sum(stage.percentage for stage in stages) / len(stages)),
        'message': current.message
    }


def run_course_generation(
    payload: Dict[str, Any],
    on_progress: Optional[ProgressCallback] = None,
    client: Optional[GenerationClient] = None,
    config: Optional[Config] = None,
    run_id: Optional[str] = None
) -> Dict[str, Any]:
    """
    Generate a course from a request payload.

    Args:
        payload: `CourseRequest` fields
        on_progress: Stage snapshot observer
        client: Generation client; built from the configuration when omitted
        config: Configuration
        run_id: Identifier used in logs

    Returns:
        The course as JSON-compatible data

    Raises:
        pydantic.ValidationError: The payload is not a valid request
        PipelineFailed: A stage failed
    """
    config = config or get_config()
    request = CourseRequest.model_validate(payload)
    pipeline = CoursePipeline(client or build_client(config), config)
    course = asyncio.run(pipeline.run(request, on_progress, run_id))
    return course.model_dump(mode='json')


def run_research_generation(
    payload: Dict[str, Any],
    on_progress: Optional[ProgressCallback] = None,
    client: Optional[GenerationClient] = None,
    config: Optional[Config] = None,
    run_id: Optional[str] = None
) -> Dict[str, Any]:
    """Generate a research package from a request payload."""
    config = config or get_config()
    request = ResearchRequest.model_validate(payload)
    pipeline = ResearchPackagePipeline(client or build_client(config), config)
    package = asyncio.run(pipeline.run(request, on_progress, run_id))
    return package.model_dump(mode='json')


def _run_task(task, task_name: str, runner: Callable[..., Dict[str, Any]], payload: Dict[str, Any]) -> Dict[str, Any]:
    task_id = task.request.id
    start_time = time.time()
    task_logger.log_task_start(task_id, task_name)

    def on_progress(stages: List[Stage]):
        task.update_state(state=TASK_STATUS['PROGRESS'], meta=progress_meta(stages))

    try:
        result = runner(payload, on_progress=on_progress, run_id=task_id)
    except PipelineFailed as e:
        error_msg = str(e)
        logger.error(f"{task_name} failed at {e.failed_stage}: {e.cause}")
        task_logger.log_task_error(task_id, task_name, error_msg, failed_stage=e.failed_stage)
        raise TaskError(message=error_msg, task_id=task_id) from e
    except Exception as e:
        error_msg = f"{task_name} failed: {str(e)}"
        logger.error(error_msg, exc_info=True)
        task_logger.log_task_error(task_id, task_name, error_msg)
        raise TaskError(message=error_msg, task_id=task_id) from e

    task_logger.log_task_complete(task_id, task_name, time.time() - start_time)
    return result


@celery_app.task(bind=True, name='edbox.tasks.generation.generate_course_task')
def generate_course_task(self, payload: Dict[str, Any]) -> Dict[str, Any]:
    """
    Generate a course.

    Args:
        payload: Course request data

    Returns:
        The generated course
    """
    return _run_task(self, 'generate_course_task', run_course_generation, payload)


@celery_app.task(bind=True, name='edbox.tasks.generation.generate_research_package_task')
def generate_research_package_task(self, payload: Dict[str, Any]) -> Dict[str, Any]:
    """
    Generate a research package.

    Args:
        payload: Research request data

    Returns:
        The generated research package
    """
    return _run_task(self, 'generate_research_package_task', run_research_generation, payload)


def get_task_status(task_id: str) -> Dict[str, Any]:
    """
    Get the status of a generation task.

    Args:
        task_id: Task ID to check

    Returns:
        Task status information; unknown ids report as pending
    """
    task_result = celery_app.AsyncResult(task_id)

    # Treat Celery's STARTED/RETRY as PROGRESS to avoid "unknown" in clients
    state = task_result.state or TASK_STATUS['PENDING']
    if state in ('STARTED', 'RETRY'):
        return {
            'task_id': task_id,
            'status': TASK_STATUS['PROGRESS'],
            'progress': 0,
            'current_stage': None,
            'stages': [],
            'message': 'Task has started'
        }

    if state == TASK_STATUS['PROGRESS']:
        meta = task_result.info if isinstance(task_result.info, dict) else {}
        return {
            'task_id': task_id,
            'status': TASK_STATUS['PROGRESS'],
            'progress': meta.get('progress', 0),
            'current_stage': meta.get('current_stage'),
            'stages': meta.get('stages', []),
            'message': meta.get('message', 'Processing...')
        }

    if state == TASK_STATUS['SUCCESS']:
        return {
            'task_id': task_id,
            'status': TASK_STATUS['SUCCESS'],
            'progress': 100,
            'result': task_result.result
        }

    if state == TASK_STATUS['FAILURE']:
        return {
            'task_id': task_id,
            'status': TASK_STATUS['FAILURE'],
            'progress': 0,
            'error': str(task_result.info) if task_result.info else 'Task failed'
        }

    return {
        'task_id': task_id,
        'status': TASK_STATUS['PENDING'],
        'progress': 0,
        'message': 'Task is waiting to be processed...'
    }
