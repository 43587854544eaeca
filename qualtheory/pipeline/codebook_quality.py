from __future__ import annotations
from typing import Dict, List
from ..errors import EmptyInputError
from ..models.schemas import Codebook, QualityAssessment
from .hierarchy import hierarchy_depth

PASS_THRESHOLD = 0.7

# (upper bound inclusive, score); counts above the last bound score 0.5
_COMPLETENESS_STEPS = [(4, 0.3), (9, 0.6), (50, 1.0), (100, 0.8)]
_COMPLETENESS_OVERFLOW = 0.5


def completeness_score(code_count: int) -> float:
    for upper, score in _COMPLETENESS_STEPS:
        if code_count <= upper:
            return score
    return _COMPLETENESS_OVERFLOW


def hierarchy_score(depth: int) -> float:
    if depth == 0:
        return 0.5  # flat codebooks are acceptable
    if depth <= 3:
        return 1.0
    return 0.6


def score_codebook(codebook: Codebook) -> Dict[str, float]:
    codes = codebook.codes
    if not codes:
        raise EmptyInputError("Codebook must contain at least one code")
    total = len(codes)
    depth = hierarchy_depth(codebook.code_hierarchy)
    return {
        "clarity": sum(1 for c in codes if len(c.definition or "") > 10) / total,
        "distinctiveness": len({c.label.lower() for c in codes}) / total,
        "completeness": completeness_score(total),
        "hierarchy": hierarchy_score(depth),
        "examples": sum(1 for c in codes if c.examples) / total,
    }


def validate_codebook(codebook: Codebook) -> QualityAssessment:
    scores = score_codebook(codebook)
    overall = sum(scores.values()) / len(scores)

    strengths: List[str] = []
    weaknesses: List[str] = []
    recommendations: List[str] = []

    if scores["clarity"] >= 0.9:
        strengths.append("Codes are clearly defined")
    elif scores["clarity"] < 0.7:
        weaknesses.append("Some codes lack clear definitions")
        recommendations.append(
            "Add clear definitions for all codes, including when to use and when not to use"
        )

    if scores["distinctiveness"] >= 0.95:
        strengths.append("Codes are distinctive and non-overlapping")
    elif scores["distinctiveness"] < 0.9:
        weaknesses.append("Some code labels may be duplicates or very similar")
        recommendations.append("Review codes for duplicates and merge similar codes")

    if scores["completeness"] >= 0.9:
        strengths.append("Appropriate number of codes for analysis")
    elif scores["completeness"] < 0.7:
        if len(codebook.codes) < 10:
            recommendations.append("Consider if you need more codes to capture data richness")
        else:
            recommendations.append("Consider consolidating codes - codebook may be too large")

    if scores["hierarchy"] < 1.0:
        if scores["hierarchy"] == 0.5:
            recommendations.append("Consider organising codes into parent and child codes")
        else:
            weaknesses.append("Code hierarchy is deeper than three levels")
            recommendations.append("Flatten the hierarchy to at most three levels")

    if scores["examples"] >= 0.8:
        strengths.append("Codes well-supported with examples")
    else:
        weaknesses.append("Many codes lack supporting examples")
        recommendations.append("Add data examples for each code to ground them in evidence")

    return QualityAssessment(
        overall_quality=overall,
        criteria_scores=scores,
        strengths=strengths,
        weaknesses=weaknesses,
        recommendations=recommendations,
        passes_quality_threshold=overall >= PASS_THRESHOLD,
    )
