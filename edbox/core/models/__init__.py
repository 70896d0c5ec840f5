"""
Data models and schemas for EdBox generation.

This module contains the data models, validation schemas, and type
definitions used throughout the pipelines.
"""

from .course import (
    Course,
    CourseCategory,
    CourseFormat,
    CoursePlan,
    EngineType,
    LearningMode,
    Module,
    ModuleDesign,
    RecommendedFormat,
    RoadmapNode,
    RoadmapOutline
)

from .research import (
    ResearchContent,
    ResearchPackage,
    GeneratedImage,
    GeneratedAudio
)

from .requests import (
    GenerationRequest,
    CourseRequest,
    FormatRecommendationRequest,
    ResearchRequest,
    CitationStyle,
    Source,
    SourceFile
)

from .feed import (
    AssetState,
    CardType,
    ContentItem,
    FeedBatch,
    FeedSnapshot,
    Feedback,
    RemovalReason,
    TopicSignals
)

from .stages import (
    PartialResult,
    Stage,
    StageStatus
)

from .llm import (
    LLMRequest,
    LLMResponse,
    Modality
)

from .errors import (
    EdBoxError,
    ErrorKind,
    BackendError,
    AuthenticationError,
    StageTimeoutError,
    MalformedOutputError,
    PipelineFailed,
    TaskError,
    ValidationError,
    ConfigurationError
)

__all__ = [
    # Course models
    'Course',
    'CourseCategory',
    'CourseFormat',
    'CoursePlan',
    'EngineType',
    'LearningMode',
    'Module',
    'ModuleDesign',
    'RecommendedFormat',
    'RoadmapNode',
    'RoadmapOutline',

    # Research models
    'ResearchContent',
    'ResearchPackage',
    'GeneratedImage',
    'GeneratedAudio',

    # Requests
    'GenerationRequest',
    'CourseRequest',
    'FormatRecommendationRequest',
    'ResearchRequest',
    'CitationStyle',
    'Source',
    'SourceFile',

    # Feed models
    'AssetState',
    'CardType',
    'ContentItem',
    'FeedBatch',
    'FeedSnapshot',
    'Feedback',
    'RemovalReason',
    'TopicSignals',

    # Stage models
    'PartialResult',
    'Stage',
    'StageStatus',

    # LLM models
    'LLMRequest',
    'LLMResponse',
    'Modality',

    # Error models
    'EdBoxError',
    'ErrorKind',
    'BackendError',
    'AuthenticationError',
    'StageTimeoutError',
    'MalformedOutputError',
    'PipelineFailed',
    'TaskError',
    'ValidationError',
    'ConfigurationError'
]
