"""
Celery application for EdBox.

Course and research package runs can take minutes, so they are executed by
a worker on the generation queue while the API only enqueues them.
"""

from celery import Celery

from ..utils.config import Config, get_config

GENERATION_QUEUE = 'generation'


def make_celery(config: Config) -> Celery:
    """Build the Celery app from an EdBox configuration."""
    app = Celery('edbox', include=['edbox.tasks.generation'])
    app.conf.update(
        broker_url=config.CELERY_BROKER_URL,
        result_backend=config.CELERY_RESULT_BACKEND,
        task_serializer='json',
        accept_content=['json'],
        result_serializer='json',
        timezone='UTC',
        enable_utc=True,
        # STARTED and PROGRESS states are reported by the status endpoint
        task_track_started=True,
        task_time_limit=config.CELERY_TASK_TIME_LIMIT,
        task_soft_time_limit=config.CELERY_TASK_SOFT_TIME_LIMIT,
        worker_prefetch_multiplier=config.CELERY_WORKER_PREFETCH_MULTIPLIER,
        worker_max_tasks_per_child=config.CELERY_WORKER_MAX_TASKS_PER_CHILD,
        worker_hijack_root_logger=False,
        task_default_queue=GENERATION_QUEUE,
        task_routes={
            'edbox.tasks.generation.*': {'queue': GENERATION_QUEUE},
        }
    )
    return app


celery_app = make_celery(get_config())
