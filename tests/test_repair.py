"""
Tests for malformed JSON recovery.
"""

import pytest

from edbox.core.models.errors import AuthenticationError, BackendError, ErrorKind, MalformedOutputError
from edbox.core.repair import ResponseRepairer, strip_code_fences

from .fakes import FakeGenerationClient

# Unescaped quotes inside a string value
RING_OF_FIRE = '{"feed_items": [{"id": "card-12", "title": "The "Ring of Fire" Explained"}]}'
RING_OF_FIRE_FIXED = '{"feed_items": [{"id": "card-12", "title": "The \\"Ring of Fire\\" Explained"}]}'


class TestStripCodeFences:
    def test_strips_json_fence(self):
        assert strip_code_fences('```json\n{"a": 1}\n```') == '{"a": 1}'

    def test_strips_bare_fence(self):
        assert strip_code_fences('```\n[1, 2]\n```') == '[1, 2]'

    def test_leaves_plain_text(self):
        assert strip_code_fences('  {"a": 1} ') == '{"a": 1}'

    def test_empty(self):
        assert strip_code_fences(None) == ""


@pytest.mark.asyncio
class TestResponseRepairer:
    async def test_well_formed_text_makes_no_call(self):
        client = FakeGenerationClient()
        repairer = ResponseRepairer(client, "fast-model")

        assert await repairer.repair('```json\n{"a": 1}\n```') == {"a": 1}
        assert client.requests == []

    async def test_unescaped_quotes_repaired_with_one_call(self):
        client = FakeGenerationClient(text=[RING_OF_FIRE_FIXED])
        repairer = ResponseRepairer(client, "fast-model")

        parsed = await repairer.repair(RING_OF_FIRE)

        assert parsed["feed_items"][0]["title"] == 'The "Ring of Fire" Explained'
        assert len(client.requests) == 1
        assert client.requests[0].model == "fast-model"
        assert RING_OF_FIRE in client.requests[0].prompt

    async def test_repair_reply_in_fences(self):
        client = FakeGenerationClient(text=['```json\n{"a": 1}\n```'])
        assert await ResponseRepairer(client, "m").repair('{"a": 1,}') == {"a": 1}

    async def test_unrepairable_text_raises_malformed(self):
        client = FakeGenerationClient(text=["still not json"])
        repairer = ResponseRepairer(client, "m")

        with pytest.raises(MalformedOutputError) as exc_info:
            await repairer.repair("{broken")

        error = exc_info.value
        assert error.raw_text == "{broken"
        assert error.repair_text == "still not json"
        assert error.original_error is not None
        assert len(client.requests) == 1

    async def test_empty_repair_reply_raises_malformed(self):
        client = FakeGenerationClient(text=[""])
        with pytest.raises(MalformedOutputError):
            await ResponseRepairer(client, "m").repair("{broken")

    async def test_auth_failure_during_repair_propagates(self):
        client = FakeGenerationClient(text=[AuthenticationError("key rejected")])
        with pytest.raises(AuthenticationError):
            await ResponseRepairer(client, "m").repair("{broken")

    async def test_other_backend_failure_becomes_malformed(self):
        client = FakeGenerationClient(text=[BackendError("down", ErrorKind.NETWORK)])
        with pytest.raises(MalformedOutputError):
            await ResponseRepairer(client, "m").repair("{broken")
