"""
LLM integration module.

This module provides the generation client interface and its LiteLLM
implementation with retry handling.
"""

from .client import GenerationClient, LLMClient
from .litellm_client import LiteLLMClient, classify_exception
from .retry_handler import RetryHandler

__all__ = [
    'GenerationClient',
    'LLMClient',
    'LiteLLMClient',
    'classify_exception',
    'RetryHandler'
]
