"""
Tests for the backend client, exception classification and retries.
"""

from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest
from litellm import exceptions as litellm_exceptions

from edbox.core.models.errors import AuthenticationError, BackendError, ConfigurationError, ErrorKind
from edbox.core.models.llm import LLMRequest, LLMResponse, Modality
from edbox.integrations.llm import litellm_client
from edbox.integrations.llm.client import LLMClient
from edbox.integrations.llm.litellm_client import LiteLLMClient, classify_exception
from edbox.integrations.llm.retry_handler import RetryHandler

from .fakes import FakeGenerationClient


def _litellm_error(cls):
    return cls(message="provider said no", model="gemini/gemini-2.5-pro", llm_provider="gemini")


class TestClassifyException:
    @pytest.mark.parametrize("cls, kind", [
        (litellm_exceptions.AuthenticationError, ErrorKind.AUTH),
        (litellm_exceptions.NotFoundError, ErrorKind.AUTH),
        (litellm_exceptions.RateLimitError, ErrorKind.QUOTA),
        (litellm_exceptions.Timeout, ErrorKind.TIMEOUT),
        (litellm_exceptions.BadRequestError, ErrorKind.MALFORMED),
        (litellm_exceptions.ServiceUnavailableError, ErrorKind.NETWORK),
        (litellm_exceptions.APIConnectionError, ErrorKind.NETWORK),
    ])
    def test_litellm_exceptions(self, cls, kind):
        error = classify_exception(_litellm_error(cls), "gemini/gemini-2.5-pro")
        assert error.kind == kind
        assert error.model == "gemini/gemini-2.5-pro"

    def test_auth_maps_to_authentication_error(self):
        error = classify_exception(_litellm_error(litellm_exceptions.AuthenticationError))
        assert isinstance(error, AuthenticationError)

    def test_unknown_errors_are_network(self):
        assert classify_exception(ValueError("boom")).kind == ErrorKind.NETWORK

    def test_backend_errors_pass_through(self):
        original = BackendError("quota", ErrorKind.QUOTA)
        assert classify_exception(original) is original


@pytest.mark.asyncio
class TestLiteLLMClient:
    async def test_structured_text_request(self, monkeypatch):
        completion = AsyncMock(return_value=SimpleNamespace(
            choices=[SimpleNamespace(message=SimpleNamespace(content='{"a": 1}'), finish_reason="stop")],
            usage=SimpleNamespace(prompt_tokens=12, completion_tokens=3)
        ))
        monkeypatch.setattr(litellm_client, "acompletion", completion)

        client = LiteLLMClient(api_key="key", timeout=30)
        response = await client.generate(LLMRequest(
            model="gemini/gemini-2.5-pro",
            prompt="Plan it",
            system_prompt="You plan.",
            response_schema={"type": "object"},
            schema_name="CoursePlan"
        ))

        assert response.text == '{"a": 1}'
        assert response.prompt_tokens == 12
        kwargs = completion.call_args.kwargs
        assert kwargs["messages"][0] == {"role": "system", "content": "You plan."}
        assert kwargs["response_format"]["json_schema"]["name"] == "CoursePlan"
        assert kwargs["api_key"] == "key"
        assert kwargs["timeout"] == 30

    async def test_image_request(self, monkeypatch):
        generation = AsyncMock(return_value=SimpleNamespace(data=[SimpleNamespace(b64_json="aW1n")]))
        monkeypatch.setattr(litellm_client, "aimage_generation", generation)

        response = await LiteLLMClient().generate(LLMRequest(model="img", prompt="A cat", modality=Modality.IMAGE))

        assert response.inline_data == "aW1n"
        assert response.data_url == "data:image/png;base64,aW1n"
        assert generation.call_args.kwargs["response_format"] == "b64_json"

    async def test_speech_sends_every_speaker_voice(self, monkeypatch):
        speech = AsyncMock(return_value=SimpleNamespace(content=b"audio"))
        monkeypatch.setattr(litellm_client, "aspeech", speech)

        response = await LiteLLMClient().generate(LLMRequest(
            model="gemini/gemini-2.5-flash-preview-tts", prompt="Professor: hi\nStudent: hello",
            modality=Modality.AUDIO, voices={"Professor": "Kore", "Student": "Puck"}
        ))

        assert response.inline_data == "YXVkaW8="
        assert response.mime_type == "audio/mpeg"
        kwargs = speech.call_args.kwargs
        speakers = kwargs["extra_body"]["generationConfig"]["speechConfig"]["multiSpeakerVoiceConfig"]
        assert [
            (s["speaker"], s["voiceConfig"]["prebuiltVoiceConfig"]["voiceName"])
            for s in speakers["speakerVoiceConfigs"]
        ] == [("Professor", "Kore"), ("Student", "Puck")]

    async def test_single_speaker_uses_plain_voice(self, monkeypatch):
        speech = AsyncMock(return_value=SimpleNamespace(content=b"audio"))
        monkeypatch.setattr(litellm_client, "aspeech", speech)

        await LiteLLMClient().generate(LLMRequest(
            model="tts", prompt="Professor: hi", modality=Modality.AUDIO, voices={"Professor": "Charon"}
        ))

        assert speech.call_args.kwargs["voice"] == "Charon"
        assert "extra_body" not in speech.call_args.kwargs

    async def test_second_voice_on_single_voice_model_is_rejected(self, monkeypatch):
        speech = AsyncMock(return_value=SimpleNamespace(content=b"audio"))
        monkeypatch.setattr(litellm_client, "aspeech", speech)

        with pytest.raises(ConfigurationError) as exc_info:
            await LiteLLMClient().generate(LLMRequest(
                model="openai/tts-1", prompt="Professor: hi", modality=Modality.AUDIO,
                voices={"Professor": "alloy", "Student": "echo"}
            ))

        assert exc_info.value.config_key == "TTS_MODEL"
        speech.assert_not_called()

    async def test_failures_are_classified(self, monkeypatch):
        monkeypatch.setattr(litellm_client, "acompletion",
                            AsyncMock(side_effect=_litellm_error(litellm_exceptions.RateLimitError)))

        with pytest.raises(BackendError) as exc_info:
            await LiteLLMClient().generate(LLMRequest(model="m", prompt="p"))
        assert exc_info.value.kind == ErrorKind.QUOTA


@pytest.mark.asyncio
class TestRetries:
    async def test_network_errors_are_retried(self):
        transport = FakeGenerationClient(text=[
            BackendError("reset", ErrorKind.NETWORK),
            BackendError("reset", ErrorKind.NETWORK),
            "ok",
        ])
        client = LLMClient(transport=transport, max_retries=3, retry_delay=0.0)

        response = await client.generate(LLMRequest(model="m", prompt="p"))

        assert response.text == "ok"
        assert len(transport.requests) == 3

    @pytest.mark.parametrize("kind", [ErrorKind.AUTH, ErrorKind.QUOTA, ErrorKind.TIMEOUT, ErrorKind.MALFORMED])
    async def test_other_kinds_are_not_retried(self, kind):
        transport = FakeGenerationClient(text=[BackendError("nope", kind)])
        client = LLMClient(transport=transport, max_retries=3, retry_delay=0.0)

        with pytest.raises(BackendError):
            await client.generate(LLMRequest(model="m", prompt="p"))
        assert len(transport.requests) == 1

    async def test_retries_are_bounded(self):
        transport = FakeGenerationClient(text=[BackendError("reset", ErrorKind.NETWORK)] * 5)
        client = LLMClient(transport=transport, max_retries=2, retry_delay=0.0)

        with pytest.raises(BackendError):
            await client.generate(LLMRequest(model="m", prompt="p"))
        assert len(transport.requests) == 3

    async def test_from_config(self, config):
        client = LLMClient.from_config(config)
        assert isinstance(client.transport, LiteLLMClient)
        assert client.transport.api_key == "test-llm-key"
        assert client.retry_handler.max_retries == 0


class TestRetryHandler:
    def test_delay_grows_and_caps(self):
        handler = RetryHandler(base_delay=1.0, max_delay=5.0, jitter=False)
        assert [handler.calculate_delay(a) for a in range(4)] == [1.0, 2.0, 4.0, 5.0]

    def test_jitter_stays_within_ten_percent(self):
        handler = RetryHandler(base_delay=2.0, jitter=True)
        for _ in range(20):
            assert 1.8 <= handler.calculate_delay(0) <= 2.2

