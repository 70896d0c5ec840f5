"""
Course-related data models.

This module defines the structures produced by each course generation
stage and the assembled course.
"""

from enum import Enum
from typing import List
from pydantic import BaseModel, Field


class CourseCategory(str, Enum):
    PROGRAMMING = "Programming"
    MATH = "Math"
    HISTORY = "History"
    PHYSICS = "Physics"
    CHEMISTRY = "Chemistry"
    BIOLOGY = "Biology"
    ART = "Art"
    LANGUAGES = "Languages"
    FINANCE = "Finance"
    OTHER = "Other"


class EngineType(str, Enum):
    """Interactive engine that powers hands-on simulations."""
    PHYSICS = "Physics"
    CHEMISTRY = "Chemistry"
    BIOLOGY = "Biology"
    CODING = "Coding"
    ART = "Art"
    LANGUAGE = "Language"
    HISTORY = "History"
    FINANCE = "Finance"
    MATH = "Math"
    DEFAULT = "Default"


class CourseFormat(str, Enum):
    MASTERY_LADDER = "Mastery Ladder"
    SYSTEMS_LAB = "Systems Lab"
    APPRENTICE_GARAGE = "Apprentice Garage"
    SOCRATIC_TUTOR = "Socratic Tutor"
    SCENARIO_SIMULATOR = "Scenario Simulator"
    OPEN_WORLD_SANDBOX = "Open-World Sandbox"
    CRISIS_DRILL = "Crisis Drill"
    APPRENTICESHIP_TRACK = "Apprenticeship Track"
    SOCRATIC_DIALOGUE = "Socratic Dialogue"
    CAPSTONE_BUILDER = "Capstone Builder"
    DESIGN_STUDIO = "Design Studio"
    MAKER_SPRINT = "Maker Sprint"
    TIME_TRAVEL_TOUR = "Time-Travel Tour"
    MYSTERY_INVESTIGATION = "Mystery Investigation"
    CROSSFIRE_DEBATE = "Crossfire Debate"
    NEGOTIATION_TABLE = "Negotiation Table"
    DELIBERATE_PRACTICE_LOOP = "Deliberate Practice Loop"


class LearningMode(str, Enum):
    FUN = "Fun"
    SKILL_FOCUSED = "Skill-focused"
    EXAM_PREP = "Exam Prep"
    CREATIVE_EXPLORATION = "Creative Exploration"


class CourseArchetype(str, Enum):
    ACADEMIC = "Academic"
    VOCATIONAL = "Vocational"
    CREATIVE = "Creative"
    PERSONAL_DEVELOPMENT = "Personal Development"


class CourseLevel(str, Enum):
    BEGINNER = "Beginner"
    INTERMEDIATE = "Intermediate"
    ADVANCED = "Advanced"


class RoadmapLevel(str, Enum):
    FOUNDATIONS = "Foundations"
    CORE = "Core"
    ADVANCED = "Advanced"
    CAPSTONE = "Capstone"


class InteractionType(str, Enum):
    PRE_ASSESSMENT = "PreAssessment"
    INFO = "Info"
    FACT = "Fact"
    CODING_STUDIO = "CodingStudio"
    CHEMISTRY_LAB = "ChemistryLab"
    PHYSICS_SIM = "PhysicsSim"
    BIOLOGY_SIM = "BiologySim"
    QUIZ = "Quiz"
    DRAG_DROP = "drag_drop"
    IMAGE = "image"
    FLASHCARD = "flashcard"
    FILL_IN_THE_BLANK = "fill_in_the_blank"
    MATCHING_PAIRS = "matching_pairs"
    SEQUENCING_ACTIVITY = "sequencing_activity"
    SOCRATIC_CHAT = "socratic_chat"
    ART_STUDIO = "art_studio"
    LANGUAGE_DIALOGUE = "language_dialogue"
    HISTORY_TIMELINE = "history_timeline"
    FINANCIAL_SANDBOX = "financial_sandbox"
    MATH_EXPLORER = "math_explorer"


# Stage outputs

class CoursePlan(BaseModel):
    """Output of the Initial Course Planner stage."""

    category: CourseCategory
    subject: str = Field(..., min_length=1)
    title: str = Field(..., min_length=1)
    description: str
    level: CourseLevel
    engine: EngineType
    course_archetype: CourseArchetype


class ModuleOutline(BaseModel):
    id: str
    title: str = Field(..., min_length=1)


class RoadmapStageOutline(BaseModel):
    id: str
    title: str
    level: RoadmapLevel
    modules: List[ModuleOutline] = Field(..., min_length=1)


class RoadmapOutline(BaseModel):
    """Output of the Roadmap Designer stage."""

    roadmap: List[RoadmapStageOutline] = Field(..., min_length=1)


class Interaction(BaseModel):
    id: str
    type: InteractionType
    title: str
    content: str


class ModuleDesign(BaseModel):
    """Output of one Module Designer call."""

    id: str
    title: str
    estimated_time: str = Field(..., description="Realistic completion time, e.g. '15 mins'")
    content: str = Field(..., description="2-3 sentence overview")
    interactions: List[Interaction] = Field(..., min_length=1)


class RecommendedFormat(BaseModel):
    format: CourseFormat
    description: str


class FormatSuggestion(BaseModel):
    """A recommendation as returned by the backend, before format checking."""

    format: str = Field(..., description="One of the known course format names")
    description: str


class FormatRecommendations(BaseModel):
    recommendations: List[FormatSuggestion]


# Assembled course

class Module(ModuleDesign):
    is_completed: bool = False
    completed_interaction_ids: List[str] = Field(default_factory=list)


class RoadmapNode(BaseModel):
    id: str
    title: str
    level: RoadmapLevel
    modules: List[Module] = Field(default_factory=list)


class Gamification(BaseModel):
    xp: int = 0
    streak: int = 0
    ed_coins: int = 100
    badges: List[str] = Field(default_factory=list)


class Course(BaseModel):
    """A fully generated course."""

    id: str
    title: str
    description: str
    subject: str
    category: CourseCategory
    engine: EngineType
    level: CourseLevel
    progress: int = Field(default=0, ge=0, le=100)
    roadmap: List[RoadmapNode]
    gamification: Gamification = Field(default_factory=Gamification)
    last_activity: str = "Not Started"
    cover_image_url: str
    course_archetype: CourseArchetype
    format: CourseFormat
    mode: LearningMode
