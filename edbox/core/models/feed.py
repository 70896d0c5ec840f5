"""
Feed data models.

A feed item arrives from the backend as a `GeneratedItem`; once accepted
into a feed it becomes a `ContentItem` with feedback and asset state.
"""

from enum import Enum
from typing import List, Optional
from pydantic import BaseModel, Field


class CardType(str, Enum):
    QUIZ = "quiz"
    VIDEO = "video"
    ARTICLE = "article"
    CHALLENGE = "challenge"
    FACT = "fact"
    STORY = "story"


class GenieReaction(str, Enum):
    CHEER = "cheer"
    WINK = "wink"
    HINT = "hint"
    HYPE = "hype"
    DEFAULT = "default"
    SAD = "sad"


class Theme(str, Enum):
    PURPLE = "purple-gradient"
    BLUE = "blue-gradient"
    GREEN = "green-gradient"
    ORANGE = "orange-gradient"
    RED = "red-gradient"


class Feedback(str, Enum):
    LIKE = "like"
    DISLIKE = "dislike"


class RemovalReason(str, Enum):
    SKIP = "skip"
    GOT_IT = "got_it"
    ANSWERED = "answered"


class AssetState(str, Enum):
    PENDING = "pending"
    GENERATING = "generating"
    READY = "ready"
    ERROR = "error"


class Asset(BaseModel):
    """Generated media attached to an item or a story slide."""

    state: AssetState = AssetState.PENDING
    url: Optional[str] = None
    error: Optional[str] = None


class GeneratedSlide(BaseModel):
    text: str = Field(..., description="A short paragraph of the story for this slide.")
    image_prompt: str = Field(
        ...,
        description="A detailed, visually rich prompt for an image that illustrates the text. "
                    "The prompt MUST instruct the model to render the 'text' value clearly onto the image."
    )


class GeneratedItem(BaseModel):
    """Feed item as produced by the backend."""

    id: str = Field(..., min_length=1, description="A unique identifier string, e.g., 'card-11'.")
    type: CardType
    xp_reward: int = Field(..., ge=0)
    genie_reaction: GenieReaction
    theme: Theme
    title: str

    # story
    slides: Optional[List[GeneratedSlide]] = Field(None, description="Required for 'story' type. 5-10 slides.")
    # quiz
    options: Optional[List[str]] = None
    answer: Optional[str] = None
    streak_bonus: Optional[bool] = None
    # video
    prompt: Optional[str] = Field(None, description="Required for 'video' type. A prompt for video generation.")
    placeholder_image_prompt: Optional[str] = Field(
        None, description="Required for 'video' type. A visually descriptive prompt for a placeholder image."
    )
    # quiz, article, challenge, fact
    image_prompt: Optional[str] = Field(
        None, description="Optional for quiz/article/challenge, required for fact."
    )
    # article
    summary: Optional[str] = None
    full_article_content: Optional[str] = Field(
        None,
        description="2-3 paragraphs embedding `{Term|Definition}` and "
                    "`[QUIZ:Question|Opt1,Opt2,Opt3|Correct Answer]` elements."
    )
    # challenge
    question: Optional[str] = None
    time_limit: Optional[int] = None
    # fact
    explanation: Optional[str] = Field(None, description="Required for 'fact' type.")


class FeedBatch(BaseModel):
    """Structured output of one feed fetch."""

    feed_items: List[GeneratedItem] = Field(..., description="An array of unique feed item objects.")


# Fields each card type needs before it can be shown.
REQUIRED_PAYLOAD = {
    CardType.QUIZ: ("options", "answer"),
    CardType.CHALLENGE: ("question", "answer"),
    CardType.VIDEO: ("prompt", "placeholder_image_prompt"),
    CardType.ARTICLE: ("summary", "full_article_content"),
    CardType.FACT: ("explanation", "image_prompt"),
    CardType.STORY: ("slides",),
}


def missing_payload(item: GeneratedItem) -> List[str]:
    """Return the per-type fields an item lacks."""
    return [name for name in REQUIRED_PAYLOAD[item.type] if not getattr(item, name)]


class StorySlide(GeneratedSlide):
    image: Asset = Field(default_factory=Asset)


class ContentItem(GeneratedItem):
    """An item accepted into a feed."""

    slides: Optional[List[StorySlide]] = None
    feedback: Optional[Feedback] = None

    image: Optional[Asset] = None
    placeholder: Optional[Asset] = None
    summary_audio: Optional[Asset] = None

    @classmethod
    def from_generated(cls, item: GeneratedItem) -> 'ContentItem':
        """Accept a generated item, attaching pending asset state."""
        content = cls.model_validate(item.model_dump())
        # story slides carry their own pending image
        if content.type == CardType.VIDEO:
            content.placeholder = Asset()
        elif content.type != CardType.STORY and content.image_prompt:
            content.image = Asset()
        return content


class TopicSignals(BaseModel):
    """Append-only interaction history; only a recent window steers generation."""

    positive: List[str] = Field(default_factory=list)
    negative: List[str] = Field(default_factory=list)

    def recent_positive(self, window: int = 5) -> List[str]:
        return self.positive[-window:] if window > 0 else []

    def recent_negative(self, window: int = 5) -> List[str]:
        return self.negative[-window:] if window > 0 else []


class FeedSnapshot(BaseModel):
    """Consumer-facing view of a feed."""

    items: List[ContentItem]
    is_fetching: bool = False
    error_message: Optional[str] = None


WELCOME_CARD = ContentItem(
    id="welcome-card",
    type=CardType.ARTICLE,
    xp_reward=10,
    genie_reaction=GenieReaction.WINK,
    theme=Theme.PURPLE,
    title="Welcome to your EdBox FYP!",
    summary="Your personalized learning journey starts now. Swipe up to explore, "
            "swipe left to skip, and ask Genie for help anytime!",
    full_article_content=(
        "Welcome to EdBox! Here's a quick guide to get you started:\n\n"
        "- **Explore Your Feed:** Swipe up to move to the next card. Each card is a "
        "bite-sized piece of knowledge tailored to your interests.\n\n"
        "- **Interact & Earn:** Swipe right (or tap 'Got it!') when you understand a "
        "concept, swipe left to skip. Quizzes and challenges build your daily streak.\n\n"
        "- **Go Deeper:** Tap 'Read More' on article cards for interactive terms and "
        "mini-quizzes, or listen to the summary.\n\n"
        "- **Ask Genie:** Tap the purple magic icon anytime you're curious.\n\n"
        "Your feed adapts to your interactions. Happy learning!"
    ),
    image=Asset(state=AssetState.READY),
)
