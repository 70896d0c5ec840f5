"""
Configuration management for the EdBox generation service.

This module provides configuration loading and management
for the pipelines, the feed generator, the worker and the API.
"""

import os
from typing import Optional, List
from dataclasses import dataclass, field
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

DEFAULT_SECRET_KEY = 'dev-secret-key-change-in-production'


def _env_bool(name: str, default: str) -> bool:
    return os.environ.get(name, default).lower() == 'true'


@dataclass
class Config:
    """Base configuration class."""

    # Flask settings
    SECRET_KEY: str = os.environ.get('SECRET_KEY', DEFAULT_SECRET_KEY)
    DEBUG: bool = _env_bool('DEBUG', 'false')
    TESTING: bool = _env_bool('TESTING', 'false')

    # API settings
    API_TITLE: str = 'EdBox Generation Service'
    API_VERSION: str = '1.0.0'

    # Rate limiting
    RATELIMIT_ENABLED: bool = _env_bool('RATELIMIT_ENABLED', 'true')
    RATELIMIT_STORAGE_URL: str = os.environ.get('RATELIMIT_STORAGE_URL', 'memory://')
    RATELIMIT_GENERATION: str = os.environ.get('RATELIMIT_GENERATION', '10 per minute')

    # Logging
    LOG_LEVEL: str = os.environ.get('LOG_LEVEL', 'INFO')
    LOG_FILE: str = os.environ.get('LOG_FILE', 'logs/app.log')
    LOG_MAX_BYTES: int = int(os.environ.get('LOG_MAX_BYTES', 10485760))  # 10MB
    LOG_BACKUP_COUNT: int = int(os.environ.get('LOG_BACKUP_COUNT', 5))
    LOG_REQUESTS: bool = _env_bool('LOG_REQUESTS', 'true')

    # Generative backend
    LLM_API_KEY: Optional[str] = os.environ.get('LLM_API_KEY')
    LLM_API_BASE: Optional[str] = os.environ.get('LLM_API_BASE')
    TEXT_MODEL: str = os.environ.get('TEXT_MODEL', 'gemini/gemini-2.5-pro')
    FAST_TEXT_MODEL: str = os.environ.get('FAST_TEXT_MODEL', 'gemini/gemini-2.5-flash')
    IMAGE_MODEL: str = os.environ.get('IMAGE_MODEL', 'vertex_ai/imagen-4.0-generate-001')
    TTS_MODEL: str = os.environ.get('TTS_MODEL', 'gemini/gemini-2.5-flash-preview-tts')
    TTS_PRIMARY_VOICE: str = os.environ.get('TTS_PRIMARY_VOICE', 'Kore')
    TTS_SECONDARY_VOICE: str = os.environ.get('TTS_SECONDARY_VOICE', 'Puck')
    LLM_MAX_RETRIES: int = int(os.environ.get('LLM_MAX_RETRIES', '3'))
    LLM_RETRY_DELAY: float = float(os.environ.get('LLM_RETRY_DELAY', '1.0'))
    LLM_REQUEST_TIMEOUT: int = int(os.environ.get('LLM_REQUEST_TIMEOUT', '180'))

    # Timeouts in seconds; a stage timeout of 0 leaves stages uncapped
    STAGE_TIMEOUT: float = float(os.environ.get('STAGE_TIMEOUT', '120'))
    FEED_FETCH_TIMEOUT: float = float(os.environ.get('FEED_FETCH_TIMEOUT', '15'))
    ASSET_TIMEOUT: float = float(os.environ.get('ASSET_TIMEOUT', '60'))

    # Pipelines
    MODULE_DESIGN_CONCURRENCY: int = int(os.environ.get('MODULE_DESIGN_CONCURRENCY', '1'))
    DOCUMENT_CONTEXT_LIMIT: int = int(os.environ.get('DOCUMENT_CONTEXT_LIMIT', '4000'))

    # Feed
    FEED_TARGET_BUFFER_SIZE: int = int(os.environ.get('FEED_TARGET_BUFFER_SIZE', '8'))
    FEED_INITIAL_BATCH_SIZE: int = int(os.environ.get('FEED_INITIAL_BATCH_SIZE', '1'))
    FEED_BATCH_SIZE: int = int(os.environ.get('FEED_BATCH_SIZE', '3'))
    FEED_POLL_INTERVAL: float = float(os.environ.get('FEED_POLL_INTERVAL', '3'))
    ASSET_THROTTLE_INTERVAL: float = float(os.environ.get('ASSET_THROTTLE_INTERVAL', '1'))
    SIGNAL_WINDOW: int = int(os.environ.get('SIGNAL_WINDOW', '5'))
    PREFETCH_LOOKAHEAD: int = int(os.environ.get('PREFETCH_LOOKAHEAD', '3'))
    ERROR_DISPLAY_SECONDS: float = float(os.environ.get('ERROR_DISPLAY_SECONDS', '5'))
    FEED_WELCOME_CARD: bool = _env_bool('FEED_WELCOME_CARD', 'true')

    # Celery configuration
    CELERY_BROKER_URL: str = os.environ.get('CELERY_BROKER_URL', 'redis://localhost:6379/0')
    CELERY_RESULT_BACKEND: str = os.environ.get('CELERY_RESULT_BACKEND', 'redis://localhost:6379/0')
    CELERY_TASK_TIME_LIMIT: int = int(os.environ.get('CELERY_TASK_TIME_LIMIT', '1800'))  # 30 minutes
    CELERY_TASK_SOFT_TIME_LIMIT: int = int(os.environ.get('CELERY_TASK_SOFT_TIME_LIMIT', '1680'))  # 28 minutes
    CELERY_WORKER_PREFETCH_MULTIPLIER: int = int(os.environ.get('CELERY_WORKER_PREFETCH_MULTIPLIER', '1'))
    CELERY_WORKER_MAX_TASKS_PER_CHILD: int = int(os.environ.get('CELERY_WORKER_MAX_TASKS_PER_CHILD', '1000'))
    CELERY_WORKER_CONCURRENCY: int = int(os.environ.get('CELERY_WORKER_CONCURRENCY', '2'))

    # Request settings
    MAX_CONTENT_LENGTH: int = int(os.environ.get('MAX_CONTENT_LENGTH', 5242880))  # 5MB, attached documents

    # CORS settings
    CORS_ORIGINS: List[str] = field(default_factory=lambda: os.environ.get('CORS_ORIGINS', '*').split(','))

    @property
    def stage_timeout(self) -> Optional[float]:
        """Stage timeout for `asyncio.wait_for`, or None when uncapped."""
        return self.STAGE_TIMEOUT if self.STAGE_TIMEOUT > 0 else None


@dataclass
class DevelopmentConfig(Config):
    """Development configuration."""
    DEBUG: bool = True
    LOG_LEVEL: str = 'DEBUG'
    RATELIMIT_GENERATION: str = '100 per minute'


@dataclass
class ProductionConfig(Config):
    """Production configuration."""
    DEBUG: bool = False
    LOG_LEVEL: str = 'WARNING'


@dataclass
class TestingConfig(Config):
    """Testing configuration."""
    TESTING: bool = True
    DEBUG: bool = True
    LOG_LEVEL: str = 'CRITICAL'
    LOG_FILE: str = ''
    LOG_REQUESTS: bool = False
    RATELIMIT_ENABLED: bool = False
    LLM_API_KEY: Optional[str] = 'test-llm-key'
    LLM_MAX_RETRIES: int = 0
    FEED_POLL_INTERVAL: float = 0.01
    ASSET_THROTTLE_INTERVAL: float = 0.0
    ERROR_DISPLAY_SECONDS: float = 0.05


def get_config(config_name: str = None) -> Config:
    """
    Get configuration based on environment.

    Args:
        config_name: Configuration name (development, production, testing)

    Returns:
        Configuration object
    """
    if config_name is None:
        config_name = os.environ.get('FLASK_ENV', 'development').lower()

    config_map = {
        'development': DevelopmentConfig,
        'production': ProductionConfig,
        'testing': TestingConfig
    }

    config_class = config_map.get(config_name, DevelopmentConfig)
    return config_class()


def validate_config(config: Config) -> List[str]:
    """
    Validate configuration.

    Args:
        config: Configuration to validate

    Returns:
        List of validation errors
    """
    errors = []

    if not config.LLM_API_KEY:
        errors.append("LLM_API_KEY must be configured")

    if config.SECRET_KEY == DEFAULT_SECRET_KEY and config.DEBUG is False:
        errors.append("SECRET_KEY must be changed in production")

    for name in ('FEED_TARGET_BUFFER_SIZE', 'FEED_INITIAL_BATCH_SIZE', 'FEED_BATCH_SIZE',
                 'MODULE_DESIGN_CONCURRENCY'):
        if getattr(config, name) <= 0:
            errors.append(f"{name} must be positive")

    for name in ('STAGE_TIMEOUT', 'FEED_FETCH_TIMEOUT', 'ASSET_TIMEOUT'):
        if getattr(config, name) < 0:
            errors.append(f"{name} must not be negative")

    if config.LLM_MAX_RETRIES < 0:
        errors.append("LLM_MAX_RETRIES must not be negative")

    if not config.CELERY_BROKER_URL:
        errors.append("CELERY_BROKER_URL must be configured")

    if not config.CELERY_RESULT_BACKEND:
        errors.append("CELERY_RESULT_BACKEND must be configured")

    return errors
