from __future__ import annotations
from typing import List, Optional, Sequence
from ..logging import get_logger
from ..models.schemas import GroundedTheory, SaturationEvidence, Theme
from .narrative import build_propositions, build_storyline
from .paradigm import ThemeClassifier, build_paradigm_model, most_prevalent
from .relationships import DEFAULT_RULES, RelationshipRule, map_relationships
from .theme_quality import is_saturated, theme_is_saturated
from .theory_quality import validate_grounded_theory

log = get_logger(__name__)


def saturation_evidence(themes: Sequence[Theme], categories: int = 0) -> SaturationEvidence:
    saturated: List[str] = []
    unsaturated: List[str] = []
    for theme in themes:
        (saturated if theme_is_saturated(theme) else unsaturated).append(theme.name)
    support = f"Theory integrates {len(themes)} themes"
    if categories:
        support += f" and {categories} categories"
    return SaturationEvidence(
        categories_saturated=is_saturated(themes),
        data_support=support,
        saturated_categories=saturated,
        unsaturated_categories=unsaturated,
    )


def build_grounded_theory(
    themes: Sequence[Theme],
    research_question: str = "",
    paradigm: str = "constructivist",
    project_name: str = "",
    classifier: Optional[ThemeClassifier] = None,
    relationship_rules: Sequence[RelationshipRule] = DEFAULT_RULES,
) -> GroundedTheory:
    """Assemble a theory from an accepted theme set without calling the generative service."""
    core = most_prevalent(themes)
    model = build_paradigm_model(themes, classifier)
    relationships = map_relationships(themes, relationship_rules)
    theory = GroundedTheory(
        title=f"Theory of {core.name}",
        core_category=core.name,
        paradigm=paradigm,
        paradigm_model=model,
        storyline=build_storyline(core, model, themes),
        theoretical_propositions=build_propositions(themes, relationships),
        category_relationships=relationships,
        saturation_evidence=saturation_evidence(themes),
        project_name=project_name,
        research_question=research_question,
    )
    theory.quality = validate_grounded_theory(theory)
    log.info(
        "Built theory %r from %d themes (%d relationships, quality %.0f%%)",
        theory.title, len(themes), len(relationships), theory.quality.overall_quality * 100,
    )
    return theory
