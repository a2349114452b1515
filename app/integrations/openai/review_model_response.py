"""
Schemas for the two JSON payloads the model returns.

Theme clustering is strict: a payload without a ``clusters`` list, or with
entries of the wrong JSON type, fails validation. The competitive payload is
tolerant: every field is coerced to a safe value so a sloppy reply can still
be used.
"""

import math
from typing import Any, List, Optional, Type
from enum import Enum
from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.schemas.analysis import InsightType, Level, RelativePosition, Sentiment

MAX_INSIGHTS = 8
MAX_RECOMMENDATIONS = 7
MAX_EVIDENCE = 6
MAX_BASED_ON = 6
MAX_POSITION_THEMES = 5
INSIGHT_DESCRIPTION_LIMIT = 200
RECOMMENDATION_TITLE_LIMIT = 70
RECOMMENDATION_DESCRIPTION_LIMIT = 220


def _is_number(value: Any) -> bool:
    """Finite int or float; NaN and Infinity (accepted by json.loads) are not numbers here."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)


def enum_or_default(value: Any, enum_cls: Type[Enum], default: Optional[Enum]):
    """Return the matching enum member, or ``default`` for anything unrecognized."""
    if isinstance(value, str):
        try:
            return enum_cls(value.strip().lower())
        except ValueError:
            return default
    return default


def number_or_none(value: Any) -> Optional[float]:
    return float(value) if _is_number(value) else None


def count_or_none(value: Any) -> Optional[int]:
    if not _is_number(value) or value < 0:
        return None
    return int(round(value))


def text_or_none(value: Any, limit: Optional[int] = None) -> Optional[str]:
    if not isinstance(value, str) or not value.strip():
        return None
    value = value.strip()
    return value[:limit] if limit else value


def string_list(value: Any, cap: int) -> Optional[List[str]]:
    """Keep scalar items of a list as strings, capped; None if not a list."""
    if not isinstance(value, list):
        return None
    items = [
        str(item).strip()
        for item in value
        if isinstance(item, str) or _is_number(item)
    ]
    return [item for item in items if item][:cap]


# ---------------------------------------------------------------------------
# Theme clustering payload
# ---------------------------------------------------------------------------


class ClusterEntry(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    theme: Optional[str] = None
    summary: Optional[str] = None
    review_numbers: List[Any] = Field(default_factory=list, alias="reviewNumbers")
    sentiment: Optional[Sentiment] = None
    avg_rating: Optional[float] = Field(None, alias="avgRating")

    @field_validator("review_numbers", mode="before")
    @classmethod
    def null_numbers(cls, v):
        return [] if v is None else v

    @field_validator("avg_rating")
    @classmethod
    def finite_rating(cls, v):
        return v if v is not None and math.isfinite(v) else None

    @field_validator("sentiment", mode="before")
    @classmethod
    def coerce_sentiment(cls, v):
        return enum_or_default(v, Sentiment, None)

    def matched_numbers(self, review_total: int) -> List[int]:
        """Valid 1-indexed review numbers in model order, duplicates removed."""
        seen = []
        for number in self.review_numbers:
            if isinstance(number, bool):
                continue
            if isinstance(number, float) and number.is_integer():
                number = int(number)
            if not isinstance(number, int) or not 1 <= number <= review_total:
                continue
            if number not in seen:
                seen.append(number)
        return seen


class ClusterModelResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")

    clusters: List[ClusterEntry]


# ---------------------------------------------------------------------------
# Competitive synthesis payload
# ---------------------------------------------------------------------------


class RawInsight(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    type: InsightType = InsightType.OPPORTUNITY
    category: str = "general"
    description: str = "Insight unavailable"
    evidence: List[str] = Field(default_factory=list)
    priority: Level = Level.MEDIUM
    theme: Optional[str] = None
    your_rating: Optional[float] = Field(None, alias="yourRating")
    competitor_rating: Optional[float] = Field(None, alias="competitorRating")
    rating_delta: Optional[float] = Field(None, alias="ratingDelta")
    your_count: Optional[int] = Field(None, alias="yourCount")
    competitor_count: Optional[int] = Field(None, alias="competitorCount")
    sentiment: Optional[Sentiment] = None
    confidence: Optional[float] = None

    @field_validator("type", mode="before")
    @classmethod
    def coerce_type(cls, v):
        return enum_or_default(v, InsightType, InsightType.OPPORTUNITY)

    @field_validator("priority", mode="before")
    @classmethod
    def coerce_priority(cls, v):
        return enum_or_default(v, Level, Level.MEDIUM)

    @field_validator("category", mode="before")
    @classmethod
    def coerce_category(cls, v):
        return text_or_none(v) or "general"

    @field_validator("description", mode="before")
    @classmethod
    def coerce_description(cls, v):
        return text_or_none(v, INSIGHT_DESCRIPTION_LIMIT) or "Insight unavailable"

    @field_validator("evidence", mode="before")
    @classmethod
    def coerce_evidence(cls, v):
        return string_list(v, MAX_EVIDENCE) or []

    @field_validator("theme", mode="before")
    @classmethod
    def coerce_theme(cls, v):
        return v if isinstance(v, str) and v else None

    @field_validator("your_rating", "competitor_rating", "rating_delta", mode="before")
    @classmethod
    def coerce_numbers(cls, v):
        return number_or_none(v)

    @field_validator("your_count", "competitor_count", mode="before")
    @classmethod
    def coerce_counts(cls, v):
        return count_or_none(v)

    @field_validator("sentiment", mode="before")
    @classmethod
    def coerce_sentiment(cls, v):
        return enum_or_default(v, Sentiment, None)

    @field_validator("confidence", mode="before")
    @classmethod
    def clamp_confidence(cls, v):
        if not _is_number(v):
            return None
        return max(0.0, min(1.0, float(v)))


class RawRecommendation(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    title: str = "Improve User Experience"
    description: str = "Refine onboarding and address key pain themes."
    impact: Level = Level.MEDIUM
    effort: Level = Level.MEDIUM
    category: str = "feature"
    based_on: List[str] = Field(default_factory=list, alias="basedOn")
    metric: Optional[str] = None
    expected_impact: Optional[str] = Field(None, alias="expectedImpact")
    target_delta: Optional[str] = Field(None, alias="targetDelta")
    timeframe: Optional[str] = None
    based_on_themes: Optional[List[str]] = Field(None, alias="basedOnThemes")

    @field_validator("title", mode="before")
    @classmethod
    def coerce_title(cls, v):
        return text_or_none(v, RECOMMENDATION_TITLE_LIMIT) or "Improve User Experience"

    @field_validator("description", mode="before")
    @classmethod
    def coerce_description(cls, v):
        return (
            text_or_none(v, RECOMMENDATION_DESCRIPTION_LIMIT)
            or "Refine onboarding and address key pain themes."
        )

    @field_validator("impact", "effort", mode="before")
    @classmethod
    def coerce_level(cls, v):
        return enum_or_default(v, Level, Level.MEDIUM)

    @field_validator("category", mode="before")
    @classmethod
    def coerce_category(cls, v):
        return text_or_none(v) or "feature"

    @field_validator("based_on", mode="before")
    @classmethod
    def coerce_based_on(cls, v):
        return string_list(v, MAX_BASED_ON) or []

    @field_validator("based_on_themes", mode="before")
    @classmethod
    def coerce_based_on_themes(cls, v):
        return string_list(v, MAX_BASED_ON)

    @field_validator("metric", "expected_impact", "target_delta", "timeframe", mode="before")
    @classmethod
    def coerce_optional_text(cls, v):
        return text_or_none(v)


class RawMarketPosition(BaseModel):
    """Every field is None when the model left it out or got it wrong."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    rank: Optional[int] = None
    rating_comparison: Optional[RelativePosition] = Field(None, alias="ratingComparison")
    volume_comparison: Optional[RelativePosition] = Field(None, alias="volumeComparison")
    unique_strengths: Optional[List[str]] = Field(None, alias="uniqueStrengths")
    competitive_gaps: Optional[List[str]] = Field(None, alias="competitiveGaps")

    @field_validator("rank", mode="before")
    @classmethod
    def coerce_rank(cls, v):
        return int(v) if _is_number(v) and v in (1, 2) else None

    @field_validator("rating_comparison", "volume_comparison", mode="before")
    @classmethod
    def coerce_position(cls, v):
        return enum_or_default(v, RelativePosition, None)

    @field_validator("unique_strengths", "competitive_gaps", mode="before")
    @classmethod
    def coerce_themes(cls, v):
        return string_list(v, MAX_POSITION_THEMES)


class CompetitiveModelResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    insights: List[RawInsight] = Field(default_factory=list)
    recommendations: List[RawRecommendation] = Field(default_factory=list)
    market_position: RawMarketPosition = Field(
        default_factory=RawMarketPosition, alias="marketPosition"
    )

    @field_validator("insights", mode="before")
    @classmethod
    def cap_insights(cls, v):
        if not isinstance(v, list):
            return []
        return [item for item in v if isinstance(item, dict)][:MAX_INSIGHTS]

    @field_validator("recommendations", mode="before")
    @classmethod
    def cap_recommendations(cls, v):
        if not isinstance(v, list):
            return []
        return [item for item in v if isinstance(item, dict)][:MAX_RECOMMENDATIONS]

    @field_validator("market_position", mode="before")
    @classmethod
    def object_or_empty(cls, v):
        return v if isinstance(v, dict) else {}
