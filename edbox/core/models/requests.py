"""
Pipeline input models.

A request is immutable once a run starts; every model here is frozen.
"""

from enum import Enum
from typing import Optional, List
from pydantic import BaseModel, ConfigDict, Field

from .course import CourseFormat, LearningMode


class CitationStyle(str, Enum):
    """Citation styles supported by research packages."""
    APA = "APA"
    MLA = "MLA"
    CHICAGO = "Chicago"


class SourceType(str, Enum):
    TEXT = "text"
    FILE = "file"
    URL = "url"


class GenerationRequest(BaseModel):
    """Base class for pipeline inputs."""

    model_config = ConfigDict(frozen=True)


class SourceFile(BaseModel):
    """Document attached to a course request."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1, description="File name")
    type: str = Field("text/plain", description="MIME type")
    content: str = Field(..., description="Extracted text content")


class Source(BaseModel):
    """Source document for a research package."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1, description="Unique identifier for the source")
    name: str = Field(..., min_length=1, description="Display name, used as the citation source id")
    type: SourceType = Field(default=SourceType.TEXT, description="Source type")
    content: str = Field(..., description="Text content or URL")


class CourseRequest(GenerationRequest):
    """Request model for course generation."""

    prompt: str = Field(..., min_length=3, max_length=4000, description="What the learner wants to learn")
    format: CourseFormat = Field(..., description="Course format")
    mode: LearningMode = Field(..., description="Learning mode")
    file: Optional[SourceFile] = Field(None, description="Optional attached document")


class FormatRecommendationRequest(GenerationRequest):
    """Request model for course format recommendations."""

    prompt: str = Field(..., min_length=3, max_length=4000)
    file_text: Optional[str] = Field(None, description="Text of an attached document")


class ResearchRequest(GenerationRequest):
    """Request model for research package generation."""

    goal: str = Field(..., min_length=3, max_length=2000, description="Research goal")
    audience: str = Field(..., min_length=1, max_length=200, description="Target audience")
    citation_style: CitationStyle = Field(default=CitationStyle.APA, description="Citation style")
    sources: List[Source] = Field(..., min_length=1, description="Source documents")
