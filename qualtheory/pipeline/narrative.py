from __future__ import annotations
from typing import List, Optional, Sequence
from ..models.schemas import ParadigmModel, Theme, ThemeRelationship

MAX_RELATIONSHIP_PROPOSITIONS = 5
MAX_PREVALENCE_PROPOSITIONS = 3

_PROPOSITION_TEMPLATES = {
    "causes": "{source} directly causes {target}",
    "triggers": "{source} triggers the initiation of {target}",
    "influences": "{source} significantly influences {target}",
    "enables": "{source} enables or facilitates {target}",
    "constrains": "{source} constrains or limits {target}",
    "precedes": "{source} temporally precedes {target}",
}

FALLBACK_PROPOSITIONS = (
    "The identified themes represent interconnected processes in participants' experiences",
    "Context and individual factors mediate how these processes manifest",
    "The overall process is dynamic and evolves over time",
)


def format_list(items: Sequence[str]) -> str:
    items = [i.lower() for i in items]
    if not items:
        return ""
    if len(items) == 1:
        return items[0]
    if len(items) == 2:
        return f"{items[0]} and {items[1]}"
    return ", ".join(items[:-1]) + f", and {items[-1]}"


def build_storyline(core: Optional[Theme], model: ParadigmModel, themes: Sequence[Theme]) -> str:
    core_name = (core.name if core is not None else model.phenomenon or "").lower()
    parts: List[str] = []
    if core_name:
        parts.append(f"This grounded theory explains the process of {core_name}. ")
    if model.causal_conditions:
        parts.append(f"This process is initiated by {format_list(model.causal_conditions)}. ")
    if model.context:
        parts.append(f"It occurs within the context of {format_list(model.context)}. ")
    if model.strategies:
        parts.append(
            f"Participants engage in {format_list(model.strategies)} as responses to the phenomenon. "
        )
    if model.intervening_conditions:
        parts.append(f"These responses are shaped by {format_list(model.intervening_conditions)}. ")
    if model.consequences:
        parts.append(f"This ultimately results in {format_list(model.consequences)}. ")
    parts.append(
        f"\n\nThe data reveals {len(themes)} interconnected themes that together explain how "
        f"participants navigate {core_name}. "
        "This theory demonstrates that the process is not linear but involves continuous interaction "
        "between individual actions, contextual factors, and evolving outcomes."
    )
    return "".join(parts)


def build_propositions(
    themes: Sequence[Theme], relationships: Sequence[ThemeRelationship]
) -> List[str]:
    propositions: List[str] = []
    strong = [r for r in relationships if r.strength == "strong"]
    for rel in strong[:MAX_RELATIONSHIP_PROPOSITIONS]:
        template = _PROPOSITION_TEMPLATES.get(rel.type)
        if template:
            propositions.append(template.format(source=rel.source, target=rel.target))

    prevalent = [t for t in themes if t.prevalence.fraction > 0.5]
    for theme in prevalent[:MAX_PREVALENCE_PROPOSITIONS]:
        propositions.append(
            f"{theme.name} is a central process that appears across most participant experiences"
        )

    if not propositions:
        propositions.extend(FALLBACK_PROPOSITIONS)
    return propositions
