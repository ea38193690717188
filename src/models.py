from dataclasses import dataclass
from enum import Enum
from typing import Generic, Literal, Optional, TypedDict, TypeVar

from pydantic import BaseModel, Field, field_validator


SOURCES = ["support", "discord", "github", "twitter", "manual"]
TIERS = ["free", "pro", "enterprise"]
SENTIMENTS = ["positive", "negative", "neutral"]
URGENCIES = ["critical", "high", "medium", "low"]


class Step(str, Enum):
    """Workflow steps in execution order. Values double as graph node names."""
    ANALYZE_SENTIMENT = "analyze_sentiment"
    EXTRACT_THEMES = "extract_themes"
    CLASSIFY_URGENCY = "classify_urgency"
    GENERATE_SUMMARY = "generate_summary"
    CALCULATE_PRIORITY = "calculate_priority"
    STORE_RESULTS = "store_results"


# Run status after each step completes: created -> ... -> stored -> complete
STEP_STATUS = {
    Step.ANALYZE_SENTIMENT: "sentiment_analyzed",
    Step.EXTRACT_THEMES: "themes_extracted",
    Step.CLASSIFY_URGENCY: "urgency_classified",
    Step.GENERATE_SUMMARY: "summary_generated",
    Step.CALCULATE_PRIORITY: "priority_calculated",
    Step.STORE_RESULTS: "stored",
}
STATUS_CREATED = "created"
STATUS_COMPLETE = "complete"
STATUS_UNKNOWN = "unknown"


class FeedbackPayload(TypedDict):
    id: str
    source: str
    content: str
    customer_tier: str
    created_at: str                        # ISO-8601


class EnrichmentState(TypedDict):
    # Input
    feedback: FeedbackPayload

    # From analyze_sentiment
    sentiment: Optional[str]               # "positive" | "negative" | "neutral"
    sentiment_score: Optional[float]       # [-1, 1], 2dp

    # From extract_themes
    themes: Optional[list[str]]

    # From classify_urgency
    urgency: Optional[str]                 # "critical" | "high" | "medium" | "low"

    # From generate_summary
    summary: Optional[str]

    # From calculate_priority
    priority_score: Optional[float]

    # From store_results
    processed_at: Optional[str]

    # Steps that fell back to a default value
    fallbacks: list[str]

    # Workflow status
    status: str


def initial_state(payload: FeedbackPayload) -> EnrichmentState:
    return {
        "feedback": payload,
        "sentiment": None,
        "sentiment_score": None,
        "themes": None,
        "urgency": None,
        "summary": None,
        "priority_score": None,
        "processed_at": None,
        "fallbacks": [],
        "status": STATUS_CREATED,
    }


T = TypeVar("T")


@dataclass(frozen=True)
class Outcome(Generic[T]):
    """Classifier result: either the parsed value or a documented default."""
    value: T
    fallback: bool = False
    error: Optional[str] = None

    @classmethod
    def ok(cls, value: T) -> "Outcome[T]":
        return cls(value=value)

    @classmethod
    def default(cls, value: T, error: Optional[str] = None) -> "Outcome[T]":
        return cls(value=value, fallback=True, error=error)


@dataclass(frozen=True)
class Sentiment:
    label: str
    score: float


class SentimentAssessment(BaseModel):
    """Structured output schema for the sentiment step."""
    sentiment: Literal["positive", "negative", "neutral"] = Field(
        description="Overall sentiment of the feedback"
    )
    score: float = Field(
        description="Sentiment score from -1.0 (very negative) to 1.0 (very positive), 0 for neutral"
    )


class FeedbackSubmission(BaseModel):
    """Body of POST /api/feedback."""
    source: Literal["support", "discord", "github", "twitter", "manual"] = "manual"
    content: str = Field(min_length=1)
    author: Optional[str] = None
    customer_tier: str = "free"

    @field_validator("content")
    @classmethod
    def content_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("content must not be blank")
        return value

    @field_validator("customer_tier")
    @classmethod
    def normalize_tier(cls, value: str) -> str:
        return (value or "free").strip().lower() or "free"
