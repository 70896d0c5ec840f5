"""
Logging configuration for the EdBox generation service.

This module provides centralized logging setup plus structured loggers
for stage transitions and Celery tasks.
"""

import logging
import logging.handlers
import os
from datetime import datetime
from typing import Any, Mapping, Optional


# LogRecord attributes that `extra` may not overwrite
_RESERVED = frozenset(logging.LogRecord(None, 0, "", 0, "", (), None).__dict__) | {"message", "asctime"}


def setup_logging(config: Mapping[str, Any]):
    """
    Setup logging configuration.

    Args:
        config: Configuration mapping (Flask `app.config` or `vars(Config())`)
    """
    level = getattr(logging, str(config.get('LOG_LEVEL', 'INFO')).upper(), logging.INFO)

    log_file = config.get('LOG_FILE', 'logs/app.log')
    log_dir = os.path.dirname(log_file) if log_file else None
    if log_dir and not os.path.exists(log_dir):
        os.makedirs(log_dir, exist_ok=True)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()

    formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=config.get('LOG_MAX_BYTES', 10485760),  # 10MB
            backupCount=config.get('LOG_BACKUP_COUNT', 5)
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    configure_loggers()


def configure_loggers():
    """Quiet chatty third-party loggers."""
    logging.getLogger('werkzeug').setLevel(logging.WARNING)
    logging.getLogger('celery').setLevel(logging.INFO)
    logging.getLogger('litellm').setLevel(logging.WARNING)
    logging.getLogger('LiteLLM').setLevel(logging.WARNING)
    logging.getLogger('httpx').setLevel(logging.WARNING)
    logging.getLogger('urllib3').setLevel(logging.WARNING)


class StructuredLogger:
    """Structured logger passing keyword fields through `extra`."""

    def __init__(self, name: str):
        self.logger = logging.getLogger(name)

    def info(self, msg: str, /, **kwargs):
        self._log(logging.INFO, msg, **kwargs)

    def warning(self, msg: str, /, **kwargs):
        self._log(logging.WARNING, msg, **kwargs)

    def error(self, msg: str, /, **kwargs):
        self._log(logging.ERROR, msg, **kwargs)

    def debug(self, msg: str, /, **kwargs):
        self._log(logging.DEBUG, msg, **kwargs)

    def _log(self, level: int, msg: str, /, **kwargs):
        extra = {'timestamp': datetime.utcnow().isoformat()}
        for key, value in kwargs.items():
            extra[f"ctx_{key}" if key in _RESERVED else key] = value

        self.logger.log(level, msg, extra=extra)


def get_logger(name: str) -> StructuredLogger:
    """
    Get a structured logger.

    Args:
        name: Logger name

    Returns:
        Structured logger instance
    """
    return StructuredLogger(name)


class StageLogger:
    """Logger for pipeline stage transitions."""

    def __init__(self, run_id: str, pipeline: Optional[str] = None):
        self.run_id = run_id
        self.pipeline = pipeline or 'pipeline'
        self.logger = get_logger('edbox.stage')

    def log_stage_start(self, stage: str):
        self.logger.info(
            f"[{self.run_id}] {stage} started",
            run_id=self.run_id,
            pipeline=self.pipeline,
            stage=stage
        )

    def log_stage_progress(self, stage: str, percentage: int, detail: str):
        self.logger.debug(
            f"[{self.run_id}] {stage} {percentage}% - {detail}",
            run_id=self.run_id,
            pipeline=self.pipeline,
            stage=stage,
            percentage=percentage
        )

    def log_stage_complete(self, stage: str, duration: float):
        self.logger.info(
            f"[{self.run_id}] {stage} complete in {duration:.2f}s",
            run_id=self.run_id,
            pipeline=self.pipeline,
            stage=stage,
            duration=duration
        )

    def log_stage_error(self, stage: str, error: Exception):
        self.logger.error(
            f"[{self.run_id}] {stage} failed: {error}",
            run_id=self.run_id,
            pipeline=self.pipeline,
            stage=stage,
            error_type=type(error).__name__
        )


class TaskLogger:
    """Logger for Celery tasks."""

    def __init__(self):
        self.logger = get_logger('task')

    def log_task_start(self, task_id: str, task_name: str, **kwargs):
        self.logger.info(
            f"Task started: {task_name}",
            task_id=task_id,
            task_name=task_name,
            **kwargs
        )

    def log_task_complete(self, task_id: str, task_name: str, duration: float, **kwargs):
        self.logger.info(
            f"Task completed: {task_name} in {duration:.2f}s",
            task_id=task_id,
            task_name=task_name,
            duration=duration,
            **kwargs
        )

    def log_task_error(self, task_id: str, task_name: str, error: str, **kwargs):
        self.logger.error(
            f"Task error: {error}",
            task_id=task_id,
            task_name=task_name,
            error=error,
            **kwargs
        )
