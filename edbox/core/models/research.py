"""
Research package data models.

The Content Synthesizer stage fills the text fields; the diagram and audio
stages attach their base64 payloads afterwards.
"""

from typing import List, Optional
from pydantic import BaseModel, Field

from .requests import CitationStyle, Source


class Citation(BaseModel):
    source_id: str = Field(..., description="ID of the source document, which is its filename or given name.")
    quote: str = Field(..., description="The exact text quote from the source that supports the claim.")


class TieredSummary(BaseModel):
    one_sentence: str
    one_paragraph: str
    one_page: str = Field(..., description="A detailed, one-page summary. Use markdown for formatting.")


class Flashcard(BaseModel):
    question: str
    answer: str
    citations: List[Citation] = Field(
        default_factory=list,
        description="Citations MUST be provided if the answer is directly from a source."
    )


class QuizItem(BaseModel):
    question: str
    answer: str
    citations: List[Citation] = Field(
        default_factory=list,
        description="Citations MUST be provided if the answer is directly from a source."
    )


class DialogueScript(BaseModel):
    title: str = Field(..., description="A short title for the audio dialogue.")
    script: str = Field(
        ...,
        description="A conversational script between two speakers (Professor and Student) explaining the topic."
    )


class ResearchContent(BaseModel):
    """Output of the Content Synthesizer stage."""

    title: str = Field(..., description="A concise, engaging title for the entire research package.")
    summary: TieredSummary
    flashcards: List[Flashcard]
    quiz: List[QuizItem]
    audio_dialogue: DialogueScript


class GeneratedImage(BaseModel):
    title: str
    prompt: str
    image_base64: Optional[str] = None


class GeneratedAudio(DialogueScript):
    audio_base64: Optional[str] = None


class ResearchPackage(BaseModel):
    """A complete research package."""

    title: str
    goal: str
    audience: str
    citation_style: CitationStyle
    sources: List[Source]
    summary: TieredSummary
    flashcards: List[Flashcard]
    quiz: List[QuizItem]
    image: GeneratedImage
    audio_dialogue: GeneratedAudio
