"""
Shared fixtures.
"""

import os
from typing import List

import pytest

# Use litellm's bundled model cost map; the remote fetch at import time
# deadlocks under pytest when there is no network access.
os.environ.setdefault('LITELLM_LOCAL_MODEL_COST_MAP', 'True')

from edbox.utils.config import get_config

from .fakes import FakeGenerationClient


@pytest.fixture
def config():
    return get_config('testing')


@pytest.fixture
def client():
    return FakeGenerationClient()


@pytest.fixture
def progress_log() -> List[list]:
    return []
