"""
Prompt templates for the generation stages.

System instructions are constants; user prompts are built from the run's
request and the fields earlier stages have merged.
"""

from typing import Iterable, List, Optional
from urllib.parse import quote

from ..core.models.course import (
    CourseArchetype,
    CourseCategory,
    CourseFormat,
    EngineType,
    InteractionType
)
from ..core.models.feed import CardType, ContentItem
from ..core.models.requests import CitationStyle, Source
from .stage import sanitize_for_prompt


def _values(enum_cls) -> str:
    return ", ".join(member.value for member in enum_cls)


# Course formats

FORMAT_RECOMMENDER_SYSTEM = (
    "You are an expert instructional designer. Your task is to recommend the top 4 most "
    "effective and engaging course formats for a given topic. For each format, provide a "
    "concise, one-sentence description explaining why it's a good fit. Respond ONLY with a "
    "valid JSON object containing a key \"recommendations\", which is an array of 4 objects. "
    f"Each object must have \"format\" (one of \"{_values(CourseFormat)}\") and \"description\" keys."
)

FALLBACK_FORMATS = [
    (CourseFormat.MASTERY_LADDER, "A structured, sequential path to build skills step-by-step."),
    (CourseFormat.SCENARIO_SIMULATOR, "Practice decision-making in realistic, simulated environments."),
    (CourseFormat.CAPSTONE_BUILDER, "Apply your knowledge by building a significant, real-world project."),
    (CourseFormat.SOCRATIC_DIALOGUE, "Deepen your understanding through guided, thought-provoking conversations."),
]


def format_recommendation_prompt(prompt: str, document: Optional[str]) -> str:
    """`document` must already be sanitized."""
    context = f' The user has also provided a document with this content: "{document}"' if document else ""
    return f'User request: "{sanitize_for_prompt(prompt)}".{context}'


# Course stages

COURSE_PLANNER_SYSTEM = f"""Agent: Initial Course Planner.
You have three jobs:
1. **Subject Determination**: Analyze the user's request and any provided document content to define the course's core attributes. If the request is generic, derive 'subject' and 'title' from the document content. Define 'category', 'subject', 'title', 'description', and 'level'.
2. **Engine Selection**: Based on the determined subject and category, select the most appropriate interactive 'engine'. The engine determines the types of hands-on simulations available.
3. **Strategy Definition**: Analyze the title and description to determine the fundamental 'course_archetype', which influences the educational approach.

Respond with a single JSON object containing: 'category', 'subject', 'title', 'description', 'level', 'engine', and 'course_archetype'.
- 'category' must be one of: {_values(CourseCategory)}.
- 'level' must be one of: Beginner, Intermediate, Advanced.
- 'engine' must be one of: {_values(EngineType)}.
- 'course_archetype' must be one of: {_values(CourseArchetype)}."""

ROADMAP_DESIGNER_SYSTEM = """Agent: Roadmap Designer.
Create a structured learning roadmap with 4 stages: Foundations, Core, Advanced, and Capstone.
For each stage, define 1-3 relevant module titles.
Respond with a JSON object containing a 'roadmap' key. 'roadmap' is an array of objects, each with 'id', 'title', 'level', and a 'modules' array.
The 'modules' array should contain objects, each with a unique 'id' and a 'title'."""

MODULE_DESIGNER_SYSTEM = f"""Agent: Interactive Experience Designer.
Your task is to design a single, engaging learning module based on the provided title and course context.
- Create a concise 'content' overview for the module (2-3 sentences).
- Design 2-4 diverse, interactive learning 'interactions' that are highly relevant to the module title and the overall course engine.
- For each interaction, select the most appropriate 'type' from this list: [{_values(InteractionType)}].
- Prioritize engine-specific interactions (e.g., 'PhysicsSim' for a Physics course, 'CodingStudio' for Programming) but also include general types like 'Quiz' or 'Info'.
- Provide a realistic 'estimated_time' for completing the module (e.g., "15 mins")."""


def course_planner_prompt(prompt: str, document: Optional[str]) -> str:
    context = f'\n\nDocument Content: """{document}"""' if document else ""
    return f'User Request: "{sanitize_for_prompt(prompt)}"{context}'


def roadmap_designer_prompt(level: str, title: str, subject: str, course_format: str, mode: str) -> str:
    return (
        f'Design a roadmap for a {level} level course titled "{title}" on the subject of {subject}. '
        f'The course format is "{course_format}" and the learning mode is "{mode}".'
    )


def module_designer_prompt(title: str, subject: str, engine: str, course_format: str,
                           mode: str, module_id: str, module_title: str) -> str:
    return (
        f'Course Title: "{title}"\n'
        f'Course Subject: "{subject}"\n'
        f'Course Engine: "{engine}"\n'
        f'Course Format: "{course_format}"\n'
        f'Learning Mode: "{mode}"\n'
        f'Module to Design: "{module_title}" (id: "{module_id}")'
    )


def cover_image_prompt(title: str) -> str:
    return (
        f'A vibrant, abstract, educational-themed cover image for a course titled "{title}". '
        "The image should be minimalist yet inspiring, using a color palette based on teal and "
        "indigo. Style: digital art, vector illustration."
    )


def placeholder_cover_url(title: Optional[str]) -> str:
    return f"https://placehold.co/600x400/1e1b4b/2dd4bf?text={quote(title or 'Course', safe='')}"


# Research packages

def research_system_prompt(citation_style: CitationStyle) -> str:
    return (
        "You are an expert AI research, learning, and creation assistant. Your mission is to use "
        "user-provided sources as a springboard to produce expert-level, insightful, and comprehensive "
        "learning packages. You must generate ALL components of the learning package: a summary, "
        "flashcards, a quiz, and a script for an audio dialogue.\n"
        "- **Expert Synthesis:** Use the core ideas from the provided sources as a starting point, then "
        "enrich them with deep context, comparisons, historical background and cross-disciplinary "
        "insights. Do not merely summarize or rephrase the sources.\n"
        "- **Grounded but Expansive:** Your analysis must be rooted in the topics presented in the "
        "sources, and you are expected to build upon them.\n"
        "- **Cite Direct Claims:** When you make a specific claim or use a direct quote that can be "
        "attributed to a source document, you MUST provide a citation. For broader expert knowledge, "
        "you can provide an empty citations array.\n"
        f"- **Citation Style:** All citations (the quote and source_id) must be formatted according to "
        f"the {citation_style.value} style guidelines.\n"
        "- **JSON Output:** You MUST respond with a single, valid JSON object that strictly adheres to "
        "the provided schema. Do not include any markdown formatting like ```json.\n"
        "- **Audience Adaptation:** Tailor the complexity and tone of the content to the specified audience.\n"
        "- **For Audio Scripts:** Write a natural, engaging dialogue between two distinct personas. You "
        "MUST use the speaker prefixes 'Professor:' and 'Student:'.\n"
    )


def render_sources(sources: Iterable[Source]) -> str:
    return "\n\n---\n\n".join(f"Source ID: {source.name}\n\n{source.content}" for source in sources)


def research_content_prompt(goal: str, audience: str, citation_style: CitationStyle,
                            sources: Iterable[Source]) -> str:
    return (
        "Based on the following source documents, please generate a complete research package "
        "containing a tiered summary, flashcards, a quiz, and an audio dialogue script.\n\n"
        f'**Goal:** "{sanitize_for_prompt(goal)}"\n'
        f'**Audience:** "{sanitize_for_prompt(audience)}"\n'
        f"**Citation Style:** {citation_style.value}\n\n"
        f"**Source Documents:**\n---\n{render_sources(sources)}\n---\n\n"
        "Generate all text-based components of the research package in the required JSON format now."
    )


def diagram_prompt(one_paragraph: str, audience: str) -> str:
    return (
        "Create a clear and informative concept map or diagram summarizing the key concepts from "
        f'this text: "{sanitize_for_prompt(one_paragraph)}". The diagram should be visually '
        f"appealing and easy to understand for a {sanitize_for_prompt(audience)}."
    )


def dialogue_tts_prompt(script: str) -> str:
    return f"TTS the following conversation:\n{script}"


# Feed

FEED_SYSTEM = (
    "You are an expert content creator for a mobile learning application. Your responses must be "
    "structured, adhere strictly to the provided JSON schema, and be highly engaging for users."
)


def feed_prompt(count: int, interests: List[str], positive: List[str], negative: List[str],
                existing_ids: List[str], existing_titles: List[str]) -> str:
    if positive:
        positive_signals = (
            f'The user seems to be enjoying topics related to "{"; ".join(positive)}". '
            "You should generate content related to these topics."
        )
    else:
        positive_signals = "None yet. Focus on their core interests."

    if negative:
        negative_signals = (
            f'They have been skipping or disliking content about "{"; ".join(negative)}". '
            "You must avoid these topics."
        )
    else:
        negative_signals = "None yet."

    interest_list = ", ".join(sanitize_for_prompt(interest) for interest in interests)
    title_list = "; ".join(existing_titles)
    id_list = ", ".join(existing_ids)

    return f"""Generate an array of {count} unique and engaging educational feed item objects for a learning app called EdBox.

**User Profile & Context:**
- Core Interests: "{interest_list}".
- Recent Positive Signals: {positive_signals}
- Recent Negative Signals: {negative_signals}
- Existing Content Titles: "{title_list}". Generate new, different topics.
- Existing IDs: {id_list}. Generate new unique IDs.

**Strategy:**
- The {count} items should cover different topics based on the user's interests and signals.
- If there are positive signals, HEAVILY FAVOR topics related to them.
- STRICTLY AVOID topics related to negative signals.
- Ensure a good mix of 'quiz', 'video', 'article', 'challenge', 'fact', and 'story' types. Do NOT return only one type.

**Content Rules & Style Guide:**
- Each item must have a unique ID (e.g., 'card-' followed by a number).
- 'fact' cards MUST have a detailed, visually rich 'image_prompt' and an 'explanation'.
- 'video' cards MUST have a 'prompt' for video generation and a separate, detailed 'placeholder_image_prompt'.
- 'article' cards need a 'summary'; their 'full_article_content' MUST embed `{{Term|Definition}}` and `[QUIZ:Question|Opt1,Opt2,Opt3|Correct Answer]`.
- 'quiz' cards need 'options' and an 'answer'; 'challenge' cards need a 'question' and an 'answer'. Both MAY have an 'image_prompt'.
- 'story' cards need a 'slides' array (5-10 slides), each with 'text' and an artistic, symbolic 'image_prompt' that instructs the image model to render the slide's 'text' onto the image.

**CRITICAL JSON FORMATTING RULES:**
1. Output MUST be a single, valid JSON object with a single key "feed_items" containing an array of {count} item objects. Do not wrap it in markdown fences or add any explanatory text.
2. ESCAPE ALL DOUBLE QUOTES inside string values.
   - CORRECT: "title": "Exploring the \\"Ring of Fire\\""
   - INCORRECT: "title": "Exploring the "Ring of Fire""
"""


def summary_audio_prompt(title: str, summary: Optional[str]) -> str:
    return f"A brief summary of the article titled: {title}. {summary or ''}".strip()


GENIE_PREAMBLE = (
    "You are Genie, a friendly and knowledgeable AI learning companion in the EdBox app. A user has "
    "asked for more information about the content they are viewing. Provide a concise, helpful, and "
    "engaging response."
)


def genie_context(item: ContentItem) -> str:
    """Per-card-type context for a Genie explanation."""
    if item.type == CardType.QUIZ:
        options = ", ".join(item.options or [])
        return (
            f'The user is on a quiz card. The question is: "{item.title}". The options are: {options}. '
            f'The correct answer is "{item.answer}". Please explain why "{item.answer}" is the correct '
            "answer in an encouraging and easy-to-understand way."
        )
    if item.type == CardType.ARTICLE:
        text = item.full_article_content or item.summary
        return (
            f'The user is on an article card titled "{item.title}". Here is the content: "{text}". '
            "Please summarize the 3 most important key points from this article for easy digestion. "
            "Use bullet points."
        )
    if item.type == CardType.VIDEO:
        return (
            f'The user is on a video card titled "{item.title}". The video is described as: '
            f'"{item.prompt}". Please provide a short, engaging textual summary of what this video '
            "likely contains, as if you've watched it."
        )
    if item.type == CardType.FACT:
        return (
            f'The user is on a fact card. The fact is: "{item.title}". The current explanation is: '
            f'"{item.explanation}". Please elaborate on this fact, providing some extra interesting '
            "details, context, or related fun facts."
        )
    if item.type == CardType.CHALLENGE:
        return (
            f'The user is on a challenge card. The riddle is: "{item.question}". The answer is '
            f'"{item.answer}". Please explain the answer to this riddle in a fun and clever way.'
        )
    story = " ".join(slide.text for slide in item.slides or [])
    return (
        f'The user is on a story card titled "{item.title}". The story is about: "{story}". '
        "Provide some extra interesting context or a related fact about the main subject of the story."
    )


def genie_prompt(item: ContentItem) -> str:
    return f"{GENIE_PREAMBLE}\n\nHere is the context:\n{genie_context(item)}"
