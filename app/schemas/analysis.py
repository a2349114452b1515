from enum import Enum
from typing import Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator


class ReviewSource(str, Enum):
    GOOGLE_PLAY = "google-play"
    APP_STORE = "app-store"


class InsightType(str, Enum):
    STRENGTH = "strength"
    WEAKNESS = "weakness"
    OPPORTUNITY = "opportunity"
    THREAT = "threat"


class Level(str, Enum):
    """Shared scale for priority, impact and effort."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class Sentiment(str, Enum):
    POSITIVE = "positive"
    NEUTRAL = "neutral"
    NEGATIVE = "negative"


class Classification(str, Enum):
    ADVANTAGE = "advantage"
    PARITY = "parity"
    GAP = "gap"


class RelativePosition(str, Enum):
    ABOVE = "above"
    BELOW = "below"
    AVERAGE = "average"


class Review(BaseModel):
    """One user review normalized from either store"""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: str = Field(..., description="Unique per source, app and position")
    author: str = Field("Anonymous", description="Review author display name")
    rating: float = Field(..., description="Source-native rating, expected 1-5")
    date: str = Field(..., description="ISO-8601 review date")
    text: str = Field("", description="Review body")
    source: ReviewSource
    app_id: str = Field(..., alias="appId")
    app_name: str = Field("", alias="appName")


class AppMetadata(BaseModel):
    title: str = "Unknown App"
    icon: str = ""
    developer: str = "Unknown Developer"


class ReviewCluster(BaseModel):
    """A thematic group of reviews for one app"""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: str
    theme: str
    summary: str
    reviews: List[Review] = Field(default_factory=list, max_length=5)
    average_rating: float = Field(..., alias="averageRating")
    count: int = Field(..., ge=0, description="Number of retained sample reviews")


class AppAnalysis(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    app_id: str = Field(..., alias="appId")
    app_name: str = Field(..., alias="appName")
    total_reviews: int = Field(..., alias="totalReviews", ge=0)
    average_rating: float = Field(..., alias="averageRating")
    rating_distribution: Dict[int, int] = Field(..., alias="ratingDistribution")
    clusters: List[ReviewCluster] = Field(default_factory=list, max_length=5)
    last_updated: str = Field(..., alias="lastUpdated")

    @field_validator("rating_distribution")
    @classmethod
    def validate_buckets(cls, v: Dict[int, int]) -> Dict[int, int]:
        """Star buckets must be exactly 1..5"""
        if set(v) != {1, 2, 3, 4, 5}:
            raise ValueError("ratingDistribution must have buckets 1..5")
        return v


class ThemeComparison(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    theme: str
    your_rating: float = Field(..., alias="yourRating")
    competitor_rating: float = Field(..., alias="competitorRating")
    delta: float
    your_count: int = Field(..., alias="yourCount")
    competitor_count: int = Field(..., alias="competitorCount")
    classification: Classification


class CompetitiveInsight(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    type: InsightType
    category: str
    description: str = Field(..., max_length=200)
    evidence: List[str] = Field(default_factory=list, max_length=6)
    priority: Level
    theme: Optional[str] = None
    your_rating: Optional[float] = Field(None, alias="yourRating")
    competitor_rating: Optional[float] = Field(None, alias="competitorRating")
    rating_delta: Optional[float] = Field(None, alias="ratingDelta")
    your_count: Optional[int] = Field(None, alias="yourCount")
    competitor_count: Optional[int] = Field(None, alias="competitorCount")
    sentiment: Optional[Sentiment] = None
    confidence: Optional[float] = Field(None, ge=0.0, le=1.0)


class Recommendation(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    title: str = Field(..., max_length=70)
    description: str = Field(..., max_length=220)
    impact: Level
    effort: Level
    category: str
    based_on: List[str] = Field(default_factory=list, alias="basedOn", max_length=6)
    metric: Optional[str] = None
    expected_impact: Optional[str] = Field(None, alias="expectedImpact")
    target_delta: Optional[str] = Field(None, alias="targetDelta")
    timeframe: Optional[str] = None
    based_on_themes: Optional[List[str]] = Field(
        None, alias="basedOnThemes", max_length=6
    )


class MarketPosition(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    rank: int = Field(..., ge=1, le=2)
    total_apps: int = Field(2, alias="totalApps")
    rating_comparison: RelativePosition = Field(..., alias="ratingComparison")
    volume_comparison: RelativePosition = Field(..., alias="volumeComparison")
    unique_strengths: List[str] = Field(
        default_factory=list, alias="uniqueStrengths", max_length=5
    )
    competitive_gaps: List[str] = Field(
        default_factory=list, alias="competitiveGaps", max_length=5
    )


class ComparisonSummary(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    rating_delta: float = Field(..., alias="ratingDelta")
    volume_delta: int = Field(..., alias="volumeDelta")
    advantages: int = Field(..., ge=0)
    gaps: int = Field(..., ge=0)


class ThemeReconciliation(BaseModel):
    """Locally derived shared-theme table and the lists built from it"""

    model_config = ConfigDict(populate_by_name=True)

    theme_comparisons: List[ThemeComparison] = Field(
        default_factory=list, alias="themeComparisons"
    )
    unique_strengths: List[str] = Field(default_factory=list, alias="uniqueStrengths")
    competitive_gaps: List[str] = Field(default_factory=list, alias="competitiveGaps")
    summary: ComparisonSummary


class SynthesisResult(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    insights: List[CompetitiveInsight] = Field(default_factory=list)
    recommendations: List[Recommendation] = Field(default_factory=list)
    market_position: MarketPosition = Field(..., alias="marketPosition")
    theme_comparisons: List[ThemeComparison] = Field(
        default_factory=list, alias="themeComparisons"
    )
    summary: ComparisonSummary


class CompetitiveAnalysis(BaseModel):
    """Root result of one comparison request"""

    model_config = ConfigDict(populate_by_name=True)

    your_app: AppAnalysis = Field(..., alias="yourApp")
    competitor: AppAnalysis
    insights: List[CompetitiveInsight] = Field(default_factory=list)
    recommendations: List[Recommendation] = Field(default_factory=list)
    market_position: MarketPosition = Field(..., alias="marketPosition")
    theme_comparisons: List[ThemeComparison] = Field(
        default_factory=list, alias="themeComparisons"
    )
    summary: ComparisonSummary
    last_updated: str = Field(..., alias="lastUpdated")


class AnalyzeRequest(BaseModel):
    """Request body for POST /analyze"""

    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "yourAppId": "com.spotify.music",
                "competitorId": "com.soundcloud.android",
                "source": "google-play",
            }
        },
    )

    your_app_id: str = Field(..., alias="yourAppId", min_length=1)
    competitor_id: str = Field(..., alias="competitorId", min_length=1)
    source: ReviewSource = Field(ReviewSource.GOOGLE_PLAY)

    @field_validator("source", mode="before")
    @classmethod
    def default_source(cls, v):
        """A null or empty source means Google Play"""
        return ReviewSource.GOOGLE_PLAY if v in (None, "") else v

    @field_validator("your_app_id", "competitor_id")
    @classmethod
    def strip_ids(cls, v: str) -> str:
        """App IDs are trimmed and must not be blank"""
        v = v.strip()
        if not v:
            raise ValueError("must not be blank")
        return v


class ErrorResponse(BaseModel):
    error: str
    details: str
    suggestion: Optional[str] = None
