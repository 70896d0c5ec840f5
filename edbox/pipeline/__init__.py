"""
Generation pipelines: course, research package and personalized feed.
"""

from .course import CoursePipeline, recommend_top_formats
from .feed import IncrementalFeedGenerator
from .orchestrator import PipelineStep, StageOrchestrator
from .research import ResearchPackagePipeline
from .stage import GenerationStage, MediaStage, sanitize_for_prompt

__all__ = [
    "CoursePipeline",
    "recommend_top_formats",
    "IncrementalFeedGenerator",
    "PipelineStep",
    "StageOrchestrator",
    "ResearchPackagePipeline",
    "GenerationStage",
    "MediaStage",
    "sanitize_for_prompt",
]
