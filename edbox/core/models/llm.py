"""
LLM-related data models.

This module defines the request and response shapes exchanged with the
generative backend, independent of which provider serves them.
"""

from datetime import datetime
from enum import Enum
from typing import Optional, Dict, Any
from pydantic import BaseModel, ConfigDict, Field


class Modality(str, Enum):
    """Response modality requested from the backend."""
    TEXT = "text"
    IMAGE = "image"
    AUDIO = "audio"


class LLMRequest(BaseModel):
    """A single backend call."""

    model_config = ConfigDict(use_enum_values=True, protected_namespaces=())

    model: str = Field(..., description="Model identifier")
    prompt: str = Field(..., description="User prompt")
    system_prompt: Optional[str] = Field(None, description="System instruction")

    # Structured output
    response_schema: Optional[Dict[str, Any]] = Field(None, description="JSON schema the output must satisfy")
    schema_name: Optional[str] = Field(None, description="Name attached to the response schema")

    modality: Modality = Field(default=Modality.TEXT, description="Requested response modality")
    voices: Dict[str, str] = Field(default_factory=dict, description="Speaker name to voice name, audio only")

    temperature: Optional[float] = Field(None, ge=0.0, le=2.0, description="Override temperature")
    request_id: Optional[str] = Field(None, description="Request ID for tracking")


class LLMResponse(BaseModel):
    """Backend response: plain text or an inline base64 payload."""

    model_config = ConfigDict(protected_namespaces=())

    text: Optional[str] = Field(None, description="Generated text")
    inline_data: Optional[str] = Field(None, description="Base64 encoded binary payload")
    mime_type: Optional[str] = Field(None, description="MIME type of the inline payload")

    model: Optional[str] = Field(None, description="Model used")
    finish_reason: Optional[str] = Field(None, description="Reason for completion")
    prompt_tokens: int = Field(0, ge=0, description="Prompt tokens used")
    completion_tokens: int = Field(0, ge=0, description="Completion tokens used")
    response_time: float = Field(0.0, ge=0.0, description="Response time in seconds")

    created_at: datetime = Field(default_factory=datetime.utcnow, description="Response timestamp")

    @property
    def data_url(self) -> Optional[str]:
        """Inline payload rendered as a data URL."""
        if not self.inline_data:
            return None
        return f"data:{self.mime_type or 'application/octet-stream'};base64,{self.inline_data}"
