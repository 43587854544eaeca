from __future__ import annotations
from typing import Dict, List
from ..models.schemas import GroundedTheory, QualityAssessment

# theory assessment is more subjective than codebook/theme assessment
PASS_THRESHOLD = 0.65


def score_theory(theory: GroundedTheory) -> Dict[str, float]:
    model = theory.paradigm_model
    integration = theory.theoretical_integration
    relationships = theory.category_relationships

    credibility = 0.0
    if model.causal_conditions:
        credibility += 0.2
    if model.strategies:
        credibility += 0.2
    if len(relationships) >= 3:
        credibility += 0.3
    if theory.saturation_evidence.categories_saturated:
        credibility += 0.3

    originality = 0.0
    if len(integration.novelty or "") > 20:
        originality += 0.5
    if len(theory.theoretical_propositions) >= 3:
        originality += 0.5

    resonance = 0.0
    if len(theory.storyline or "") > 100:
        resonance += 0.3
    if model.context:
        resonance += 0.2
    if model.intervening_conditions:
        resonance += 0.2
    if any(r.strength == "strong" for r in relationships):
        resonance += 0.3

    usefulness = 0.0
    if len(integration.contribution or "") > 20:
        usefulness += 0.4
    if integration.practical_implications:
        usefulness += 0.3
    if integration.future_research:
        usefulness += 0.3

    # strip float noise so a full rubric scores exactly 1.0
    return {
        "credibility": round(credibility, 10),
        "originality": round(originality, 10),
        "resonance": round(resonance, 10),
        "usefulness": round(usefulness, 10),
    }


def validate_grounded_theory(theory: GroundedTheory) -> QualityAssessment:
    scores = score_theory(theory)
    overall = sum(scores.values()) / len(scores)

    strengths: List[str] = []
    weaknesses: List[str] = []
    recommendations: List[str] = []

    if scores["credibility"] >= 0.8:
        strengths.append("Strong evidence of systematic analysis")
    else:
        weaknesses.append("Theory needs more systematic development")
        recommendations.append(
            "Ensure all paradigm model elements are developed and relationships are specified"
        )

    if scores["originality"] >= 0.7:
        strengths.append("Theory offers fresh insights")
    else:
        weaknesses.append("Theory may lack originality")
        recommendations.append(
            "Develop more theoretical propositions and clarify what is novel about this theory"
        )

    if scores["resonance"] >= 0.7:
        strengths.append("Theory captures richness of experience")
    else:
        weaknesses.append("Theory may not fully capture participant experiences")
        recommendations.append("Develop more contextual and conditional factors; strengthen the storyline")

    if scores["usefulness"] >= 0.7:
        strengths.append("Theory has clear practical value")
    else:
        weaknesses.append("Practical implications need development")
        recommendations.append("Articulate practical implications and future research directions")

    if not theory.saturation_evidence.categories_saturated:
        weaknesses.append("Theoretical saturation not achieved")
        recommendations.append("Continue analysis or acknowledge saturation limitations")

    return QualityAssessment(
        overall_quality=overall,
        criteria_scores=scores,
        strengths=strengths,
        weaknesses=weaknesses,
        recommendations=recommendations,
        passes_quality_threshold=overall >= PASS_THRESHOLD,
    )
