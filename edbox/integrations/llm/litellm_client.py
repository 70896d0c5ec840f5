"""
LiteLLM client implementation.

This module provides the transport to generative backends through LiteLLM
and classifies every provider failure into a `BackendError` kind.
"""

import base64
import logging
import time
from typing import Any, Dict, List, Optional

import litellm
from litellm import acompletion, aimage_generation, aspeech
from litellm.exceptions import (
    APIConnectionError,
    APIError,
    AuthenticationError as LiteLLMAuthenticationError,
    BadRequestError,
    ContentPolicyViolationError,
    InternalServerError,
    NotFoundError,
    PermissionDeniedError,
    RateLimitError,
    ServiceUnavailableError,
    Timeout
)

from ...core.models.errors import AuthenticationError, BackendError, ConfigurationError, ErrorKind
from ...core.models.llm import LLMRequest, LLMResponse, Modality
from .client import GenerationClient


logger = logging.getLogger(__name__)

DEFAULT_VOICE = "Kore"

# Providers whose speech config accepts one prebuilt voice per speaker
MULTI_SPEAKER_PREFIXES = ("gemini/", "vertex_ai/")


def supports_multi_speaker(model: str) -> bool:
    return model.startswith(MULTI_SPEAKER_PREFIXES)


def speech_config(voices: Dict[str, str]) -> Dict[str, Any]:
    """
    Build a Gemini `speechConfig` for a speaker-to-voice map.

    Two or more speakers get a `multiSpeakerVoiceConfig`, keyed by the
    speaker prefixes used in the script; otherwise a single prebuilt voice.
    """
    if len(voices) > 1:
        return {
            "multiSpeakerVoiceConfig": {
                "speakerVoiceConfigs": [
                    {"speaker": speaker, "voiceConfig": {"prebuiltVoiceConfig": {"voiceName": voice}}}
                    for speaker, voice in voices.items()
                ]
            }
        }
    voice = next(iter(voices.values()), DEFAULT_VOICE)
    return {"voiceConfig": {"prebuiltVoiceConfig": {"voiceName": voice}}}


def classify_exception(error: Exception, model: Optional[str] = None) -> BackendError:
    """
    Map a LiteLLM exception to a `BackendError`.

    "Entity not found" responses are reported as authentication failures:
    the provider returns them for keys that lack access to the model.
    """
    if isinstance(error, BackendError):
        return error
    detail = str(error)
    if isinstance(error, (LiteLLMAuthenticationError, PermissionDeniedError, NotFoundError)):
        return AuthenticationError(f"Authentication failed: {detail}", detail=detail, model=model)
    if isinstance(error, RateLimitError):
        return BackendError(f"Rate limit exceeded: {detail}", ErrorKind.QUOTA, detail=detail, model=model)
    if isinstance(error, Timeout):
        return BackendError(f"Request timeout: {detail}", ErrorKind.TIMEOUT, detail=detail, model=model)
    if isinstance(error, (BadRequestError, ContentPolicyViolationError)):
        return BackendError(f"Request rejected: {detail}", ErrorKind.MALFORMED, detail=detail, model=model)
    if isinstance(error, (APIConnectionError, ServiceUnavailableError, InternalServerError, APIError)):
        return BackendError(f"Service unavailable: {detail}", ErrorKind.NETWORK, detail=detail, model=model)
    return BackendError(f"Unexpected error: {detail}", ErrorKind.NETWORK, detail=detail, model=model)


class LiteLLMClient(GenerationClient):
    """
    LiteLLM transport for text, image and speech generation.

    Structured text requests use a `json_schema` response format; images are
    requested as `b64_json`; speech bytes are base64 encoded.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: int = 120
    ):
        """
        Initialize LiteLLM client.

        Args:
            api_key: API key for the provider
            base_url: Base URL for the provider API
            timeout: Transport-level request timeout in seconds
        """
        self.api_key = api_key
        self.base_url = base_url
        self.timeout = timeout

        litellm.drop_params = True

        logger.info(f"LiteLLMClient initialized with timeout: {timeout}s")

    async def generate(self, request: LLMRequest) -> LLMResponse:
        if request.modality == Modality.AUDIO.value and len(request.voices) > 1 \
                and not supports_multi_speaker(request.model):
            raise ConfigurationError(
                f"{request.model} cannot voice {len(request.voices)} speakers; "
                "use a Gemini TTS model",
                config_key="TTS_MODEL"
            )

        start_time = time.time()
        try:
            if request.modality == Modality.IMAGE.value:
                response = await self._generate_image(request)
            elif request.modality == Modality.AUDIO.value:
                response = await self._generate_speech(request)
            else:
                response = await self._generate_text(request)
        except Exception as e:
            error = classify_exception(e, request.model)
            logger.error(f"{request.model} call failed ({error.kind.value}): {e}")
            raise error from e

        response.response_time = time.time() - start_time
        return response

    def _credentials(self) -> Dict[str, Any]:
        params: Dict[str, Any] = {"timeout": self.timeout}
        if self.api_key:
            params["api_key"] = self.api_key
        if self.base_url:
            params["api_base"] = self.base_url
        return params

    @staticmethod
    def _messages(request: LLMRequest) -> List[Dict[str, str]]:
        messages = []
        if request.system_prompt:
            messages.append({"role": "system", "content": request.system_prompt})
        messages.append({"role": "user", "content": request.prompt})
        return messages

    async def _generate_text(self, request: LLMRequest) -> LLMResponse:
        params = {
            "model": request.model,
            "messages": self._messages(request),
            **self._credentials()
        }
        if request.temperature is not None:
            params["temperature"] = request.temperature
        if request.response_schema:
            params["response_format"] = {
                "type": "json_schema",
                "json_schema": {
                    "name": request.schema_name or "response",
                    "schema": request.response_schema
                }
            }

        response = await acompletion(**params)

        choice = response.choices[0]
        usage = getattr(response, "usage", None)
        return LLMResponse(
            text=choice.message.content,
            model=request.model,
            finish_reason=choice.finish_reason,
            prompt_tokens=usage.prompt_tokens if usage else 0,
            completion_tokens=usage.completion_tokens if usage else 0
        )

    async def _generate_image(self, request: LLMRequest) -> LLMResponse:
        response = await aimage_generation(
            prompt=request.prompt,
            model=request.model,
            n=1,
            response_format="b64_json",
            **self._credentials()
        )
        data = response.data[0] if response.data else None
        return LLMResponse(
            inline_data=getattr(data, "b64_json", None) if data else None,
            mime_type="image/png",
            model=request.model
        )

    async def _generate_speech(self, request: LLMRequest) -> LLMResponse:
        params = {
            "model": request.model,
            "input": request.prompt,
            "voice": next(iter(request.voices.values()), DEFAULT_VOICE),
            **self._credentials()
        }
        if len(request.voices) > 1:
            params["extra_body"] = {
                "generationConfig": {
                    "responseModalities": ["AUDIO"],
                    "speechConfig": speech_config(request.voices)
                }
            }

        response = await aspeech(**params)
        audio = response.content
        return LLMResponse(
            inline_data=base64.b64encode(audio).decode("ascii") if audio else None,
            mime_type="audio/mpeg",
            model=request.model
        )
