from __future__ import annotations
import math
from itertools import combinations
from typing import Dict, List, Sequence
from ..errors import EmptyInputError
from ..models.schemas import QualityAssessment, Theme

PASS_THRESHOLD = 0.7
MIN_THEMES = 3
MAX_THEMES = 8
MIN_SATURATION_QUOTES = 3


def average_shared_codes(themes: Sequence[Theme]) -> float:
    """Mean count of related codes shared by each unordered pair of themes."""
    pairs = list(combinations(themes, 2))
    if not pairs:
        return 0.0
    total = sum(len(set(a.related_codes) & set(b.related_codes)) for a, b in pairs)
    return total / len(pairs)


def required_participants(theme: Theme) -> int:
    return min(3, math.floor(theme.prevalence.total_participants * 0.3))


def theme_is_saturated(theme: Theme) -> bool:
    return (
        len(theme.supporting_quotes) >= MIN_SATURATION_QUOTES
        and theme.prevalence.participants >= required_participants(theme)
    )


def is_saturated(themes: Sequence[Theme]) -> bool:
    return len(themes) >= MIN_THEMES and all(theme_is_saturated(t) for t in themes)


def score_themes(themes: Sequence[Theme], total_data_points: int) -> Dict[str, float]:
    if not themes:
        raise EmptyInputError("Theme validation needs at least one theme")
    if total_data_points <= 0:
        raise EmptyInputError("Expected data-point count must be positive")
    n = len(themes)
    avg_quotes = sum(len(t.supporting_quotes) for t in themes) / n
    covered = sum(t.prevalence.data_points for t in themes)
    return {
        "coherence": sum(1 for t in themes if len(t.central_concept or "") > 10) / n,
        "distinctiveness": max(0.0, 1 - average_shared_codes(themes) / 3),
        "dataSupport": min(1.0, avg_quotes / 5),
        "relevance": sum(1 for t in themes if len(t.significance or "") > 10) / n,
        "prevalence": sum(t.prevalence.fraction for t in themes) / n,
        "coverage": min(1.0, covered / total_data_points),
    }


def validate_themes(themes: Sequence[Theme], total_data_points: int) -> QualityAssessment:
    scores = score_themes(themes, total_data_points)
    overall = sum(scores.values()) / len(scores)

    strengths: List[str] = []
    weaknesses: List[str] = []
    recommendations: List[str] = []

    if scores["coherence"] >= 0.9:
        strengths.append("Themes have clear central organizing concepts")
    else:
        weaknesses.append("Some themes lack clear central concepts")
        recommendations.append("Define the central organizing concept for each theme")

    if scores["distinctiveness"] >= 0.8:
        strengths.append("Themes are clearly distinct from each other")
    else:
        weaknesses.append("Themes may have too much overlap")
        recommendations.append("Review themes for overlap and ensure each captures a distinct pattern")

    if scores["dataSupport"] >= 0.8:
        strengths.append("Themes well-supported with data extracts")
    else:
        weaknesses.append("Themes need more supporting quotes")
        recommendations.append("Add more supporting quotes for each theme (aim for 5+ per theme)")

    if scores["relevance"] < 0.7:
        weaknesses.append("Some themes lack a significance statement")
        recommendations.append("State why each theme matters for the research question")

    if scores["prevalence"] >= 0.5:
        strengths.append("Themes appear across multiple participants")
    else:
        weaknesses.append("Some themes may be too narrow, appearing in few participants")
        recommendations.append("Consider if narrow themes should be combined or presented as subthemes")

    if len(themes) < MIN_THEMES:
        weaknesses.append("Very few themes - may be missing patterns")
        recommendations.append("Consider if data has been analyzed in sufficient depth")
    elif len(themes) > MAX_THEMES:
        weaknesses.append("Many themes - may lack coherence")
        recommendations.append("Consider grouping themes or creating theme hierarchies")
    else:
        strengths.append(f"Appropriate number of themes ({len(themes)})")

    return QualityAssessment(
        overall_quality=overall,
        criteria_scores=scores,
        strengths=strengths,
        weaknesses=weaknesses,
        recommendations=recommendations,
        passes_quality_threshold=overall >= PASS_THRESHOLD,
    )
