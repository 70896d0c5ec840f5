"""
Single backend calls with a schema, a timeout and output repair.

A stage is a description of one call: which model, which prompt, which
output shape. It holds no state between invocations, so one instance can
serve every module of a course or every fetch of a feed.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, Generic, Optional, Type, TypeVar, Union

from pydantic import BaseModel

from ..core.models.errors import BackendError, ErrorKind, StageTimeoutError
from ..core.models.llm import LLMRequest, LLMResponse, Modality
from ..core.repair import ResponseRepairer
from ..core.schema import SchemaValidator
from ..integrations.llm.client import GenerationClient


logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)
T = TypeVar("T")

PromptBuilder = Union[str, Callable[[Any], str]]


def sanitize_for_prompt(text: Optional[str], limit: Optional[int] = None) -> str:
    """
    Escape user-supplied text for embedding inside a quoted prompt section.

    Args:
        text: Raw text, e.g. an uploaded document
        limit: Keep at most this many characters, applied before escaping

    Returns:
        Text with backslashes, double quotes and control whitespace escaped
    """
    if not text:
        return ""
    if limit is not None:
        text = text[:limit]
    return (
        text.replace("\\", "\\\\")
        .replace('"', '\\"')
        .replace("\n", "\\n")
        .replace("\r", "\\r")
        .replace("\t", "\\t")
    )


async def with_timeout(call: Awaitable[T], timeout: Optional[float], stage: str,
                       model: Optional[str] = None) -> T:
    """Await a backend call, raising StageTimeoutError past `timeout` seconds."""
    if timeout is None:
        return await call
    try:
        return await asyncio.wait_for(call, timeout)
    except asyncio.TimeoutError:
        logger.warning(f"{stage} exceeded {timeout}s")
        raise StageTimeoutError(stage, timeout, model) from None


def _build(prompt: PromptBuilder, context: Any) -> str:
    return prompt(context) if callable(prompt) else prompt


class GenerationStage(Generic[ModelT]):
    """
    A structured text call whose output must satisfy `output_model`.

    Args:
        name: Stage name, used in progress records and timeout errors
        client: Generation client
        output_model: Pydantic model describing the output
        prompt_builder: Prompt, or a callable building it from the context
        model: Model identifier
        system_prompt: Optional system instruction
        timeout: Seconds allowed for the call; None leaves it uncapped
        repair_model: Model for the repair round-trip, defaults to `model`
        temperature: Optional temperature override
    """

    def __init__(
        self,
        name: str,
        client: GenerationClient,
        output_model: Type[ModelT],
        prompt_builder: PromptBuilder,
        model: str,
        system_prompt: Optional[str] = None,
        timeout: Optional[float] = None,
        repair_model: Optional[str] = None,
        temperature: Optional[float] = None
    ):
        self.name = name
        self.client = client
        self.validator = SchemaValidator(output_model)
        self.prompt_builder = prompt_builder
        self.model = model
        self.system_prompt = system_prompt
        self.timeout = timeout
        self.temperature = temperature
        self.repairer = ResponseRepairer(client, repair_model or model)

    def build_request(self, context: Any) -> LLMRequest:
        return LLMRequest(
            model=self.model,
            prompt=_build(self.prompt_builder, context),
            system_prompt=self.system_prompt,
            response_schema=self.validator.json_schema,
            schema_name=self.validator.name,
            temperature=self.temperature
        )

    async def execute(self, context: Any = None) -> ModelT:
        """
        Run the call and return the validated output.

        The timeout covers the call and any repair round-trip together.

        Raises:
            StageTimeoutError: The call and repair exceeded the timeout
            MalformedOutputError: The output could not be parsed or validated
            BackendError: The backend call failed
        """
        request = self.build_request(context)
        return await with_timeout(self._generate_and_parse(request), self.timeout, self.name, self.model)

    async def _generate_and_parse(self, request: LLMRequest) -> ModelT:
        response = await self.client.generate(request)
        parsed = await self.repairer.repair(response.text or "")
        return self.validator.parse(parsed, raw_text=response.text)


class MediaStage:
    """An image or audio call returning a base64 payload."""

    def __init__(
        self,
        name: str,
        client: GenerationClient,
        modality: Modality,
        prompt_builder: PromptBuilder,
        model: str,
        timeout: Optional[float] = None
    ):
        self.name = name
        self.client = client
        self.modality = Modality(modality)
        self.prompt_builder = prompt_builder
        self.model = model
        self.timeout = timeout

    async def execute(self, context: Any = None, voices: Optional[Dict[str, str]] = None) -> str:
        """Run the call and return the inline base64 payload."""
        response = await self.fetch(context, voices)
        return response.inline_data

    async def fetch(self, context: Any = None, voices: Optional[Dict[str, str]] = None) -> LLMResponse:
        """
        Run the call and return the response carrying the payload and its MIME type.

        Raises:
            BackendError: kind `malformed` when the backend returned no payload
        """
        request = LLMRequest(
            model=self.model,
            prompt=_build(self.prompt_builder, context),
            modality=self.modality,
            voices=voices or {}
        )
        response = await with_timeout(self.client.generate(request), self.timeout, self.name, self.model)
        if not response.inline_data:
            raise BackendError(
                f"{self.name} returned no {self.modality.value} data",
                ErrorKind.MALFORMED,
                detail=(response.text or "")[:200] or None,
                model=self.model
            )
        return response
