#!/usr/bin/env python3
"""
Start a Celery worker for EdBox generation runs.
"""

import logging
import sys

from edbox.tasks.celery_app import GENERATION_QUEUE, celery_app
from edbox.tasks import generation  # noqa: F401  registers the tasks
from edbox.utils.config import get_config
from edbox.utils.logging import setup_logging

logger = logging.getLogger('edbox.worker')


def main():
    config = get_config()
    setup_logging(vars(config))

    logger.info(
        f"Starting EdBox worker on queue '{GENERATION_QUEUE}' "
        f"with concurrency {config.CELERY_WORKER_CONCURRENCY}"
    )
    worker = celery_app.Worker(
        queues=[GENERATION_QUEUE],
        concurrency=config.CELERY_WORKER_CONCURRENCY,
        loglevel=config.LOG_LEVEL,
        hostname='edbox-worker@%h'
    )

    try:
        worker.start()
    except KeyboardInterrupt:
        logger.info("Worker stopped by user")
        sys.exit(0)


if __name__ == '__main__':
    main()
