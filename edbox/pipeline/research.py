"""
Research package pipeline.

The Content Synthesizer writes every text component from the sources,
the Diagram Designer draws a concept map from the one-paragraph summary,
and the Audio Producer voices the dialogue script.
"""

import logging
from typing import Any, Dict, Optional

from ..core.models.llm import Modality
from ..core.models.requests import ResearchRequest
from ..core.models.research import (
    GeneratedAudio,
    GeneratedImage,
    ResearchContent,
    ResearchPackage
)
from ..core.models.stages import PartialResult
from ..integrations.llm.client import GenerationClient
from ..utils.config import Config, get_config
from . import prompts
from .orchestrator import PipelineStep, ProgressCallback, Reporter, StageOrchestrator
from .stage import GenerationStage, MediaStage


logger = logging.getLogger(__name__)

CONTENT_SYNTHESIZER = "Content Synthesizer"
DIAGRAM_DESIGNER = "Diagram Designer"
AUDIO_PRODUCER = "Audio Producer"

RESEARCH_STAGES = [CONTENT_SYNTHESIZER, DIAGRAM_DESIGNER, AUDIO_PRODUCER]

PRIMARY_SPEAKER = "Professor"
SECONDARY_SPEAKER = "Student"


def has_two_speakers(script: str) -> bool:
    return f"{PRIMARY_SPEAKER}:" in script and f"{SECONDARY_SPEAKER}:" in script


class ResearchPackagePipeline:
    """
    Generates a research package from user-supplied sources.

    Args:
        client: Generation client shared by every stage
        config: Models, voices and timeouts
    """

    def __init__(self, client: GenerationClient, config: Optional[Config] = None):
        self.client = client
        self.config = config or get_config()
        timeout = self.config.stage_timeout

        self.diagram_designer = MediaStage(
            DIAGRAM_DESIGNER, client, Modality.IMAGE,
            lambda ctx: prompts.diagram_prompt(ctx["one_paragraph"], ctx["audience"]),
            model=self.config.IMAGE_MODEL,
            timeout=timeout
        )
        self.audio_producer = MediaStage(
            AUDIO_PRODUCER, client, Modality.AUDIO,
            prompts.dialogue_tts_prompt,
            model=self.config.TTS_MODEL,
            timeout=timeout
        )

    def content_stage(self, request: ResearchRequest) -> GenerationStage[ResearchContent]:
        return GenerationStage(
            CONTENT_SYNTHESIZER, self.client, ResearchContent,
            prompts.research_content_prompt(request.goal, request.audience, request.citation_style, request.sources),
            model=self.config.TEXT_MODEL,
            system_prompt=prompts.research_system_prompt(request.citation_style),
            timeout=self.config.stage_timeout,
            repair_model=self.config.FAST_TEXT_MODEL
        )

    def voices_for(self, script: str) -> Dict[str, str]:
        if has_two_speakers(script):
            return {
                PRIMARY_SPEAKER: self.config.TTS_PRIMARY_VOICE,
                SECONDARY_SPEAKER: self.config.TTS_SECONDARY_VOICE,
            }
        return {PRIMARY_SPEAKER: self.config.TTS_PRIMARY_VOICE}

    async def run(
        self,
        request: ResearchRequest,
        on_progress: Optional[ProgressCallback] = None,
        run_id: Optional[str] = None
    ) -> ResearchPackage:
        """
        Run the three stages and assemble the package.

        Raises:
            PipelineFailed: A stage failed; the partial package is discarded
        """
        orchestrator = StageOrchestrator(RESEARCH_STAGES, on_progress, run_id, pipeline="research")
        content_stage = self.content_stage(request)

        async def synthesize(partial: PartialResult, report: Reporter) -> Dict[str, Any]:
            output = await content_stage.execute()
            return output.model_dump(mode="json")

        async def draw_diagram(partial: PartialResult, report: Reporter) -> Dict[str, Any]:
            context = {"one_paragraph": partial["summary"]["one_paragraph"], "audience": request.audience}
            image = await self.diagram_designer.execute(context)
            generated = GeneratedImage(
                title="Concept Map",
                prompt=prompts.diagram_prompt(context["one_paragraph"], request.audience),
                image_base64=image
            )
            return {"image": generated.model_dump(mode="json")}

        async def produce_audio(partial: PartialResult, report: Reporter) -> Dict[str, Any]:
            dialogue = partial["audio_dialogue"]
            audio = await self.audio_producer.execute(dialogue["script"], voices=self.voices_for(dialogue["script"]))
            generated = GeneratedAudio(**dialogue, audio_base64=audio)
            return {"audio_dialogue": generated.model_dump(mode="json")}

        steps = [
            PipelineStep(CONTENT_SYNTHESIZER,
                         "Synthesizing text-based content (summary, quiz, flashcards, script)...",
                         lambda p: f"Drafted \"{p['title']}\".", synthesize),
            PipelineStep(DIAGRAM_DESIGNER, "Generating visual diagram...", "Concept map ready.", draw_diagram),
            PipelineStep(AUDIO_PRODUCER, "Creating audio companion...", "Audio companion ready.", produce_audio),
        ]

        partial = await orchestrator.run(steps)
        return self.assemble(request, partial)

    @staticmethod
    def assemble(request: ResearchRequest, partial: PartialResult) -> ResearchPackage:
        fields = partial.fields
        return ResearchPackage(
            title=fields["title"],
            goal=request.goal,
            audience=request.audience,
            citation_style=request.citation_style,
            sources=list(request.sources),
            summary=fields["summary"],
            flashcards=fields["flashcards"],
            quiz=fields["quiz"],
            image=fields["image"],
            audio_dialogue=fields["audio_dialogue"]
        )
