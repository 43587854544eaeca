from __future__ import annotations
import re
from typing import Callable, Dict, List, NamedTuple, Optional, Sequence, Tuple
from ..errors import EmptyInputError
from ..logging import get_logger
from ..models.schemas import ParadigmModel, Theme

log = get_logger(__name__)

SLOTS = ("causal_conditions", "context", "strategies", "consequences", "intervening_conditions")

# Any callable from a theme to one of SLOTS can stand in for the keyword table.
ThemeClassifier = Callable[[Theme], str]

_GERUND = re.compile(r"\b\w+ing\b", re.IGNORECASE)


class KeywordRule(NamedTuple):
    slot: str
    keywords: Tuple[str, ...]
    gerund_codes: bool = False


DEFAULT_RULES: Tuple[KeywordRule, ...] = (
    KeywordRule("causal_conditions", ("trigger", "cause", "lead to", "result from")),
    KeywordRule("context", ("context", "environment", "setting", "background")),
    KeywordRule("strategies", ("strateg", "action", "approach", "managing", "coping"), gerund_codes=True),
    KeywordRule("consequences", ("outcome", "result", "consequence", "impact", "effect")),
    KeywordRule("intervening_conditions", ("factor", "influence", "constraint", "resource")),
)


def has_gerund(labels: Sequence[str]) -> bool:
    return any(_GERUND.search(label or "") for label in labels)


class KeywordParadigmClassifier:
    """Assign a theme to the first rule whose keywords occur in its lower-cased name.

    Unmatched themes go to strategies when their prevalence fraction exceeds
    `fallback_threshold`, otherwise to context.
    """

    def __init__(self, rules: Sequence[KeywordRule] = DEFAULT_RULES, fallback_threshold: float = 0.3):
        for rule in rules:
            if rule.slot not in SLOTS:
                raise ValueError(f"Unknown paradigm slot: {rule.slot}")
        self.rules = tuple(rules)
        self.fallback_threshold = fallback_threshold

    def match(self, theme: Theme) -> Optional[str]:
        name = theme.name.lower()
        for rule in self.rules:
            if any(k in name for k in rule.keywords):
                return rule.slot
            if rule.gerund_codes and has_gerund(theme.related_codes):
                return rule.slot
        return None

    def __call__(self, theme: Theme) -> str:
        slot = self.match(theme)
        if slot is not None:
            return slot
        slot = "strategies" if theme.prevalence.fraction > self.fallback_threshold else "context"
        log.debug("No keyword rule matched %r, prevalence fallback -> %s", theme.name, slot)
        return slot


def most_prevalent(themes: Sequence[Theme]) -> Theme:
    if not themes:
        raise EmptyInputError("Cannot pick a core category from zero themes")
    best = themes[0]
    for theme in themes[1:]:
        if theme.prevalence.fraction > best.prevalence.fraction:
            best = theme
    return best


def build_paradigm_model(
    themes: Sequence[Theme], classifier: Optional[ThemeClassifier] = None
) -> ParadigmModel:
    if not themes:
        raise EmptyInputError("Paradigm classification needs at least one theme")
    classify = classifier or KeywordParadigmClassifier()
    buckets: Dict[str, List[str]] = {slot: [] for slot in SLOTS}
    for theme in themes:
        slot = classify(theme)
        if slot not in buckets:
            raise ValueError(f"Classifier returned unknown paradigm slot {slot!r} for {theme.name!r}")
        buckets[slot].append(theme.name)
    # the phenomenon theme keeps its list placement as well
    return ParadigmModel(phenomenon=most_prevalent(themes).name, **buckets)
