"""
Shared-theme comparison between two analyzed apps.

Everything here is a pure function of the two AppAnalysis values: no model
call, no shared state, same output for the same input.
"""

from typing import Dict, List

from app.schemas.analysis import (
    AppAnalysis,
    Classification,
    ComparisonSummary,
    ThemeComparison,
    ThemeReconciliation,
)

CLASSIFICATION_THRESHOLD = 0.4
MAX_THEME_LIST = 5

# Absorbs float noise so that, e.g., 4.4 - 4.0 lands on the 0.4 boundary.
_EPSILON = 1e-9


def classify_delta(delta: float) -> Classification:
    """Inclusive +/-0.4 rating-point thresholds on the 1-5 scale."""
    if delta >= CLASSIFICATION_THRESHOLD - _EPSILON:
        return Classification.ADVANTAGE
    if delta <= -CLASSIFICATION_THRESHOLD + _EPSILON:
        return Classification.GAP
    return Classification.PARITY


def compare_shared_themes(your: AppAnalysis, competitor: AppAnalysis) -> List[ThemeComparison]:
    """Join clusters on exact theme label, in your app's cluster order."""
    competitor_by_theme = {}
    for cluster in competitor.clusters:
        competitor_by_theme.setdefault(cluster.theme, cluster)

    rows = []
    seen = set()
    for cluster in your.clusters:
        other = competitor_by_theme.get(cluster.theme)
        if other is None or cluster.theme in seen:
            continue
        seen.add(cluster.theme)
        delta = cluster.average_rating - other.average_rating
        rows.append(
            ThemeComparison(
                theme=cluster.theme,
                your_rating=cluster.average_rating,
                competitor_rating=other.average_rating,
                delta=delta,
                your_count=cluster.count,
                competitor_count=other.count,
                classification=classify_delta(delta),
            )
        )
    return rows


def unique_strengths(your: AppAnalysis, competitor: AppAnalysis) -> List[str]:
    """Your themes that beat the competitor's same-named theme by at least 0.4."""
    competitor_ratings: Dict[str, float] = {}
    for cluster in competitor.clusters:
        competitor_ratings.setdefault(cluster.theme, cluster.average_rating)

    themes = [
        cluster.theme
        for cluster in your.clusters
        if cluster.theme in competitor_ratings
        and classify_delta(cluster.average_rating - competitor_ratings[cluster.theme])
        == Classification.ADVANTAGE
    ]
    return themes[:MAX_THEME_LIST]


def competitive_gaps(your: AppAnalysis, competitor: AppAnalysis) -> List[str]:
    """Competitor themes where your same-named theme trails by at least 0.4."""
    your_ratings: Dict[str, float] = {}
    for cluster in your.clusters:
        your_ratings.setdefault(cluster.theme, cluster.average_rating)

    themes = [
        cluster.theme
        for cluster in competitor.clusters
        if cluster.theme in your_ratings
        and classify_delta(your_ratings[cluster.theme] - cluster.average_rating)
        == Classification.GAP
    ]
    return themes[:MAX_THEME_LIST]


def summarize(
    your: AppAnalysis, competitor: AppAnalysis, rows: List[ThemeComparison]
) -> ComparisonSummary:
    return ComparisonSummary(
        rating_delta=your.average_rating - competitor.average_rating,
        volume_delta=your.total_reviews - competitor.total_reviews,
        advantages=sum(1 for row in rows if row.classification == Classification.ADVANTAGE),
        gaps=sum(1 for row in rows if row.classification == Classification.GAP),
    )


def reconcile_themes(your: AppAnalysis, competitor: AppAnalysis) -> ThemeReconciliation:
    rows = compare_shared_themes(your, competitor)
    return ThemeReconciliation(
        theme_comparisons=rows,
        unique_strengths=unique_strengths(your, competitor),
        competitive_gaps=competitive_gaps(your, competitor),
        summary=summarize(your, competitor, rows),
    )
