"""
Course generation pipeline.

Four stages: the Initial Course Planner defines the subject, the Roadmap
Designer lays out four levels of module titles, the Module Designer
details every module, and the Cover Image Designer draws a cover.
"""

import asyncio
import logging
import time
from typing import Any, Dict, List, Optional

from ..core.models.course import (
    Course,
    CourseFormat,
    CoursePlan,
    FormatRecommendations,
    Module,
    ModuleDesign,
    RecommendedFormat,
    RoadmapNode,
    RoadmapOutline
)
from ..core.models.errors import BackendError
from ..core.models.llm import Modality
from ..core.models.requests import CourseRequest, FormatRecommendationRequest
from ..core.models.stages import PartialResult
from ..integrations.llm.client import GenerationClient
from ..utils.config import Config, get_config
from . import prompts
from .orchestrator import PipelineStep, ProgressCallback, Reporter, StageOrchestrator
from .stage import GenerationStage, MediaStage, sanitize_for_prompt


logger = logging.getLogger(__name__)

COURSE_PLANNER = "Initial Course Planner"
ROADMAP_DESIGNER = "Roadmap Designer"
MODULE_DESIGNER = "Module Designer"
COVER_IMAGE_DESIGNER = "Cover Image Designer"

COURSE_STAGES = [COURSE_PLANNER, ROADMAP_DESIGNER, MODULE_DESIGNER, COVER_IMAGE_DESIGNER]

FORMAT_RECOMMENDER = "Format Recommender"
MAX_RECOMMENDATIONS = 4


def fallback_formats() -> List[RecommendedFormat]:
    return [RecommendedFormat(format=fmt, description=text) for fmt, text in prompts.FALLBACK_FORMATS]


async def recommend_top_formats(
    client: GenerationClient,
    request: FormatRecommendationRequest,
    config: Optional[Config] = None
) -> List[RecommendedFormat]:
    """
    Recommend up to four course formats for a topic.

    Any failure other than an authentication error yields the fixed
    fallback list.
    """
    config = config or get_config()
    document = sanitize_for_prompt(request.file_text, limit=2000) if request.file_text else None
    stage = GenerationStage(
        FORMAT_RECOMMENDER,
        client,
        FormatRecommendations,
        prompts.format_recommendation_prompt(request.prompt, document),
        model=config.TEXT_MODEL,
        system_prompt=prompts.FORMAT_RECOMMENDER_SYSTEM,
        timeout=config.stage_timeout,
        repair_model=config.FAST_TEXT_MODEL
    )

    known = {fmt.value for fmt in CourseFormat}
    try:
        output = await stage.execute()
    except BackendError as e:
        if e.is_auth:
            raise
        logger.warning(f"Format recommendation failed, using fallback list: {e}")
        return fallback_formats()

    recommendations = [
        RecommendedFormat(format=CourseFormat(item.format), description=item.description)
        for item in output.recommendations[:MAX_RECOMMENDATIONS]
        if item.format in known
    ]
    if not recommendations:
        logger.warning("No usable format recommendations received, using fallback list")
        return fallback_formats()
    return recommendations


class CoursePipeline:
    """
    Generates a complete course from a learner's request.

    Args:
        client: Generation client shared by every stage
        config: Models, timeouts and module design concurrency
    """

    def __init__(self, client: GenerationClient, config: Optional[Config] = None):
        self.client = client
        self.config = config or get_config()
        timeout = self.config.stage_timeout
        text_model = self.config.TEXT_MODEL
        repair_model = self.config.FAST_TEXT_MODEL

        self.planner = GenerationStage(
            COURSE_PLANNER, client, CoursePlan,
            lambda ctx: prompts.course_planner_prompt(ctx["prompt"], ctx["document"]),
            model=text_model,
            system_prompt=prompts.COURSE_PLANNER_SYSTEM,
            timeout=timeout,
            repair_model=repair_model
        )
        self.roadmap_designer = GenerationStage(
            ROADMAP_DESIGNER, client, RoadmapOutline,
            lambda f: prompts.roadmap_designer_prompt(f["level"], f["title"], f["subject"], f["format"], f["mode"]),
            model=text_model,
            system_prompt=prompts.ROADMAP_DESIGNER_SYSTEM,
            timeout=timeout,
            repair_model=repair_model
        )
        self.module_designer = GenerationStage(
            MODULE_DESIGNER, client, ModuleDesign,
            lambda ctx: prompts.module_designer_prompt(**ctx),
            model=text_model,
            system_prompt=prompts.MODULE_DESIGNER_SYSTEM,
            timeout=timeout,
            repair_model=repair_model
        )
        self.cover_designer = MediaStage(
            COVER_IMAGE_DESIGNER, client, Modality.IMAGE,
            prompts.cover_image_prompt,
            model=self.config.IMAGE_MODEL,
            timeout=timeout
        )

    async def recommend_formats(self, request: FormatRecommendationRequest) -> List[RecommendedFormat]:
        return await recommend_top_formats(self.client, request, self.config)

    async def run(
        self,
        request: CourseRequest,
        on_progress: Optional[ProgressCallback] = None,
        run_id: Optional[str] = None
    ) -> Course:
        """
        Run all four stages and assemble the course.

        Raises:
            PipelineFailed: A stage failed; the partial course is discarded
        """
        orchestrator = StageOrchestrator(COURSE_STAGES, on_progress, run_id, pipeline="course")

        async def plan(partial: PartialResult, report: Reporter) -> Dict[str, Any]:
            document = None
            if request.file:
                document = sanitize_for_prompt(request.file.content, limit=self.config.DOCUMENT_CONTEXT_LIMIT)
            output = await self.planner.execute({"prompt": request.prompt, "document": document})
            return output.model_dump(mode="json")

        async def design_roadmap(partial: PartialResult, report: Reporter) -> Dict[str, Any]:
            output = await self.roadmap_designer.execute(partial.fields)
            return output.model_dump(mode="json")

        async def design_modules(partial: PartialResult, report: Reporter) -> Dict[str, Any]:
            roadmap = await self._design_modules(partial, report)
            return {"roadmap": roadmap}

        async def design_cover(partial: PartialResult, report: Reporter) -> Dict[str, Any]:
            return {"cover_image_url": await self._cover_image(partial["title"])}

        steps = [
            PipelineStep(
                COURSE_PLANNER, "Designing course foundation...",
                lambda p: f"Foundation set for: {p['subject']}",
                plan
            ),
            PipelineStep(ROADMAP_DESIGNER, "Structuring the learning journey...", "Learning roadmap created.",
                         design_roadmap),
            PipelineStep(MODULE_DESIGNER, "Preparing module designs...", "All modules have been designed.",
                         design_modules, running_percentage=0),
            PipelineStep(COVER_IMAGE_DESIGNER, "Creating a unique cover image...", "Cover image generated.",
                         design_cover, running_percentage=50),
        ]

        seed = PartialResult(fields={"format": request.format.value, "mode": request.mode.value})
        partial = await orchestrator.run(steps, seed)
        return self.assemble(request, partial)

    async def _design_modules(self, partial: PartialResult, report: Reporter) -> List[Dict[str, Any]]:
        """Design every roadmap module, keeping roadmap order."""
        roadmap = partial["roadmap"]
        outlines = [module for stage in roadmap for module in stage["modules"]]
        total = len(outlines)
        report(f"Found {total} modules to design...", 0)

        designed = 0

        async def design(outline: Dict[str, Any]) -> Dict[str, Any]:
            nonlocal designed
            output = await self.module_designer.execute({
                "title": partial["title"],
                "subject": partial["subject"],
                "engine": partial["engine"],
                "course_format": partial["format"],
                "mode": partial["mode"],
                "module_id": outline["id"],
                "module_title": outline["title"],
            })
            module = Module(**output.model_dump(exclude={"id"}), id=outline["id"])
            designed += 1
            report(f"Designing module {designed}/{total}: {outline['title']}", round(designed / total * 100))
            return module.model_dump(mode="json")

        concurrency = max(1, self.config.MODULE_DESIGN_CONCURRENCY)
        if concurrency == 1:
            modules = [await design(outline) for outline in outlines]
        else:
            semaphore = asyncio.Semaphore(concurrency)

            async def bounded(outline):
                async with semaphore:
                    return await design(outline)

            tasks = [asyncio.ensure_future(bounded(outline)) for outline in outlines]
            try:
                modules = await asyncio.gather(*tasks)
            except BaseException:
                for task in tasks:
                    task.cancel()
                await asyncio.gather(*tasks, return_exceptions=True)
                raise

        ordered = iter(modules)
        return [
            {**stage, "modules": [next(ordered) for _ in stage["modules"]]}
            for stage in roadmap
        ]

    async def _cover_image(self, title: str) -> str:
        try:
            image = await self.cover_designer.fetch(title)
        except BackendError as e:
            if e.is_auth:
                raise
            logger.warning(f"Cover image generation failed, using placeholder: {e}")
            return prompts.placeholder_cover_url(title)
        return image.data_url

    @staticmethod
    def assemble(request: CourseRequest, partial: PartialResult) -> Course:
        fields = partial.fields
        return Course(
            id=str(int(time.time() * 1000)),
            title=fields["title"],
            description=fields["description"],
            subject=fields["subject"],
            category=fields["category"],
            engine=fields["engine"],
            level=fields["level"],
            roadmap=[RoadmapNode.model_validate(stage) for stage in fields["roadmap"]],
            cover_image_url=fields["cover_image_url"],
            course_archetype=fields["course_archetype"],
            format=request.format,
            mode=request.mode
        )
