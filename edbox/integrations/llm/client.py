"""
Generation client interface and the retrying client used by the pipelines.
"""

import logging
import time
from abc import ABC, abstractmethod
from typing import Optional

from ...core.models.llm import LLMRequest, LLMResponse
from .retry_handler import RetryHandler


logger = logging.getLogger(__name__)


class GenerationClient(ABC):
    """
    Inbound interface to a generative backend.

    Implementations return text or an inline base64 payload and raise
    `BackendError` with a kind assigned; callers never inspect message text.
    """

    @abstractmethod
    async def generate(self, request: LLMRequest) -> LLMResponse:
        """Perform one backend call."""


class LLMClient(GenerationClient):
    """
    Client injected into stages, pipelines and the feed generator.

    Wraps a transport with bounded retries for network-class failures and
    logs call timings.
    """

    def __init__(
        self,
        transport: Optional[GenerationClient] = None,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        max_retries: int = 3,
        retry_delay: float = 1.0,
        request_timeout: int = 120
    ):
        """
        Initialize LLM client.

        Args:
            transport: Underlying client; a `LiteLLMClient` is built when omitted
            api_key: API key for the provider
            base_url: Base URL for the provider API
            max_retries: Maximum number of retries for network errors
            retry_delay: Base backoff delay in seconds
            request_timeout: Transport-level timeout in seconds
        """
        if transport is None:
            from .litellm_client import LiteLLMClient
            transport = LiteLLMClient(api_key=api_key, base_url=base_url, timeout=request_timeout)

        self.transport = transport
        self.retry_handler = RetryHandler(max_retries=max_retries, base_delay=retry_delay)

        logger.info(f"LLMClient initialized with max_retries: {max_retries}")

    @classmethod
    def from_config(cls, config) -> 'LLMClient':
        return cls(
            api_key=config.LLM_API_KEY,
            base_url=config.LLM_API_BASE,
            max_retries=config.LLM_MAX_RETRIES,
            retry_delay=config.LLM_RETRY_DELAY,
            request_timeout=config.LLM_REQUEST_TIMEOUT
        )

    async def generate(self, request: LLMRequest) -> LLMResponse:
        start_time = time.time()
        response = await self.retry_handler.execute_with_retry(self.transport.generate, request)
        elapsed = time.time() - start_time
        logger.debug(f"{request.model} ({request.modality}) responded in {elapsed:.2f}s")
        return response
