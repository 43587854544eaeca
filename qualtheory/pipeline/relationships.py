from __future__ import annotations
from typing import Callable, List, NamedTuple, Optional, Sequence, Tuple
from ..models.schemas import Theme, ThemeRelationship

# (source, target) -> (relationship type, explanation), or None to fall through
RelationshipRule = Callable[[Theme, Theme], Optional[Tuple[str, str]]]


class NameRule(NamedTuple):
    source_keywords: Tuple[str, ...]
    target_keywords: Tuple[str, ...]
    type: str
    explanation: str

    def __call__(self, source: Theme, target: Theme) -> Optional[Tuple[str, str]]:
        a, b = source.name.lower(), target.name.lower()
        if not any(k in a for k in self.source_keywords):
            return None
        if self.target_keywords and not any(k in b for k in self.target_keywords):
            return None
        return self.type, self.explanation


DEFAULT_RULES: Tuple[RelationshipRule, ...] = (
    NameRule(("challeng",), ("strateg",), "triggers", "Challenges trigger the use of strategies"),
    NameRule(("strateg",), ("outcome",), "causes", "Strategies lead to outcomes"),
    NameRule(("context", "factor"), (), "influences", "Contextual factors influence other processes"),
)


def shared_codes(a: Theme, b: Theme) -> List[str]:
    other = set(b.related_codes)
    seen = set()
    out = []
    for code in a.related_codes:
        if code in other and code not in seen:
            seen.add(code)
            out.append(code)
    return out


def strength_for(count: int) -> str:
    if count > 2:
        return "strong"
    if count == 2:
        return "moderate"
    return "weak"


def infer_relationship(
    source: Theme, target: Theme, rules: Sequence[RelationshipRule] = DEFAULT_RULES
) -> Optional[ThemeRelationship]:
    shared = shared_codes(source, target)
    if not shared:
        return None
    for rule in rules:
        found = rule(source, target)
        if found is not None:
            rel_type, explanation = found
            break
    else:
        rel_type = "influences"
        explanation = f'"{source.name}" influences "{target.name}" through shared underlying processes'
    return ThemeRelationship(
        source=source.name,
        target=target.name,
        type=rel_type,
        explanation=explanation,
        strength=strength_for(len(shared)),
        evidence=shared,
    )


def map_relationships(
    themes: Sequence[Theme], rules: Sequence[RelationshipRule] = DEFAULT_RULES
) -> List[ThemeRelationship]:
    """Evaluate every ordered pair; (A, B) and (B, A) are independent and may disagree."""
    relationships: List[ThemeRelationship] = []
    for i, source in enumerate(themes):
        for j, target in enumerate(themes):
            if i == j:
                continue
            rel = infer_relationship(source, target, rules)
            if rel is not None:
                relationships.append(rel)
    return relationships
