"""
Recovery of malformed JSON from generative backends.

Backends occasionally wrap structured output in markdown fences or emit
near-JSON with an unescaped quote or a trailing comma. The repairer strips
the wrapping, tries to parse, and on failure asks the backend once to fix
the syntax.
"""

import json
import logging
import re
from typing import Any, Optional, TYPE_CHECKING

from .models.errors import BackendError, MalformedOutputError
from .models.llm import LLMRequest

if TYPE_CHECKING:
    from ..integrations.llm.client import GenerationClient


logger = logging.getLogger(__name__)

_LEADING_FENCE = re.compile(r"^```(?:json|JSON)?\s*")
_TRAILING_FENCE = re.compile(r"\s*```$")

REPAIR_PROMPT = (
    "The following text is a malformed JSON string. Correct any syntax errors "
    "(e.g., missing commas, unescaped double quotes, trailing commas) without "
    "changing its meaning, and return ONLY the raw, valid JSON object. Do not add "
    "any explanatory text, markdown fences, or other wrappers.\n\n"
    "Malformed string:\n{text}"
)


def strip_code_fences(text: Optional[str]) -> str:
    """Remove a surrounding ```json ... ``` block and whitespace."""
    if not text:
        return ""
    cleaned = text.strip()
    cleaned = _LEADING_FENCE.sub("", cleaned)
    cleaned = _TRAILING_FENCE.sub("", cleaned)
    return cleaned.strip()


class ResponseRepairer:
    """
    Parses backend text into JSON, with one repair round-trip on failure.

    Args:
        client: Generation client used for the repair call
        model: Model for the repair call, normally the fast text model
    """

    def __init__(self, client: 'GenerationClient', model: str):
        self.client = client
        self.model = model

    async def repair(self, raw_text: str) -> Any:
        """
        Parse raw backend text.

        Returns:
            The parsed JSON value

        Raises:
            AuthenticationError: The repair call was rejected for credentials
            MalformedOutputError: Neither the text nor its repair parses
        """
        cleaned = strip_code_fences(raw_text)
        try:
            return json.loads(cleaned)
        except json.JSONDecodeError as parse_error:
            logger.warning(f"Initial JSON parse failed ({parse_error}); attempting repair")
            original_error = parse_error

        repair_text = None
        try:
            response = await self.client.generate(LLMRequest(
                model=self.model,
                prompt=REPAIR_PROMPT.format(text=cleaned)
            ))
            repair_text = strip_code_fences(response.text)
            if not repair_text:
                raise ValueError("repair call returned no text")
            return json.loads(repair_text)
        except BackendError as e:
            if e.is_auth:
                raise
            logger.error(f"JSON repair failed: {e}")
            raise MalformedOutputError(
                f"Could not repair malformed JSON: {e.message}",
                raw_text=raw_text,
                repair_text=repair_text,
                original_error=original_error
            ) from e
        except Exception as e:
            logger.error(f"JSON repair failed: {e}")
            raise MalformedOutputError(
                f"Could not repair malformed JSON: {e}",
                raw_text=raw_text,
                repair_text=repair_text,
                original_error=original_error
            ) from e
