"""
Per-application state shared by the endpoints.
"""

from flask import current_app

from ..integrations.llm.client import GenerationClient
from ..tasks.generation import build_client
from ..utils.config import Config

EXTENSION_KEY = 'edbox'


def get_app_config() -> Config:
    return current_app.extensions[EXTENSION_KEY]['config']


def get_generation_client() -> GenerationClient:
    """Return the application's generation client, building it on first use."""
    state = current_app.extensions[EXTENSION_KEY]
    if state['client'] is None:
        state['client'] = build_client(state['config'])
    return state['client']


def generation_limit() -> str:
    return current_app.config.get('RATELIMIT_GENERATION', '10 per minute')
