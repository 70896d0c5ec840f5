"""
Tests for configuration loading and validation.
"""

import dataclasses

from edbox.utils.config import (
    DEFAULT_SECRET_KEY,
    DevelopmentConfig,
    ProductionConfig,
    TestingConfig,
    get_config,
    validate_config
)


def test_config_loading():
    config = get_config('testing')

    assert isinstance(config, TestingConfig)
    assert config.TESTING is True
    assert config.LOG_LEVEL == 'CRITICAL'
    assert config.LLM_MAX_RETRIES == 0


def test_unknown_name_falls_back_to_development():
    assert isinstance(get_config('staging'), DevelopmentConfig)


def test_environment_selects_config(monkeypatch):
    monkeypatch.setenv('FLASK_ENV', 'production')
    assert isinstance(get_config(), ProductionConfig)


def test_feed_defaults():
    config = get_config('development')
    assert config.FEED_TARGET_BUFFER_SIZE == 8
    assert config.FEED_INITIAL_BATCH_SIZE == 1
    assert config.FEED_BATCH_SIZE == 3
    assert config.SIGNAL_WINDOW == 5
    assert config.PREFETCH_LOOKAHEAD == 3


def test_stage_timeout_zero_means_uncapped():
    config = dataclasses.replace(get_config('testing'), STAGE_TIMEOUT=0)
    assert config.stage_timeout is None
    assert dataclasses.replace(config, STAGE_TIMEOUT=30).stage_timeout == 30


def test_testing_config_is_valid():
    assert validate_config(get_config('testing')) == []


def test_validate_reports_problems():
    config = dataclasses.replace(
        ProductionConfig(),
        LLM_API_KEY=None,
        SECRET_KEY=DEFAULT_SECRET_KEY,
        FEED_BATCH_SIZE=0,
        STAGE_TIMEOUT=-1
    )

    problems = validate_config(config)

    assert any('LLM_API_KEY' in p for p in problems)
    assert any('SECRET_KEY' in p for p in problems)
    assert any('FEED_BATCH_SIZE' in p for p in problems)
    assert any('STAGE_TIMEOUT' in p for p in problems)
