"""Tests for relationship inference between theme pairs."""

from __future__ import annotations

import pytest

from conftest import make_theme
from qualtheory.pipeline.relationships import (
    NameRule,
    infer_relationship,
    map_relationships,
    shared_codes,
    strength_for,
)


class TestInferRelationship:

    def test_no_shared_codes_no_relationship(self):
        a = make_theme("Workplace challenges", ["deadlines"])
        b = make_theme("Coping strategies", ["self care"])
        assert infer_relationship(a, b) is None

    def test_challenge_triggers_strategy(self):
        a = make_theme("Workplace challenges", ["x"])
        b = make_theme("Coping strategies", ["x"])
        rel = infer_relationship(a, b)
        assert rel.type == "triggers"
        assert rel.explanation == "Challenges trigger the use of strategies"

    def test_strategy_causes_outcome(self):
        rel = infer_relationship(make_theme("Coping strategies", ["x"]), make_theme("Wellbeing outcomes", ["x"]))
        assert rel.type == "causes"

    def test_context_source_influences(self):
        rel = infer_relationship(make_theme("Risk factors", ["x"]), make_theme("Anything", ["x"]))
        assert rel.type == "influences"
        assert rel.explanation == "Contextual factors influence other processes"

    def test_generic_fallback_names_both_themes(self):
        rel = infer_relationship(make_theme("Alpha", ["x"]), make_theme("Beta", ["x"]))
        assert rel.type == "influences"
        assert '"Alpha"' in rel.explanation and '"Beta"' in rel.explanation

    def test_evidence_is_shared_codes_in_source_order(self):
        rel = infer_relationship(make_theme("A", ["c3", "c1", "c2"]), make_theme("B", ["c1", "c2", "c3"]))
        assert rel.evidence == ["c3", "c1", "c2"]
        assert rel.strength == "strong"

    def test_custom_rules(self):
        rules = [NameRule(("alpha",), (), "enables", "Alpha enables")]
        rel = infer_relationship(make_theme("Alpha", ["x"]), make_theme("Beta", ["x"]), rules)
        assert (rel.type, rel.explanation) == ("enables", "Alpha enables")


class TestStrength:

    @pytest.mark.parametrize("count,strength", [(1, "weak"), (2, "moderate"), (3, "strong"), (7, "strong")])
    def test_strength_buckets(self, count, strength):
        assert strength_for(count) == strength


class TestMapRelationships:

    @pytest.mark.parametrize("themes", [[], [make_theme("Solo", ["x"])]])
    def test_fewer_than_two_themes(self, themes):
        assert map_relationships(themes) == []

    def test_ordered_pairs_are_independent(self, process_themes):
        rels = {(r.source, r.target): r for r in map_relationships(process_themes)}
        forward = rels[("Coping strategies", "Workplace challenges")]
        backward = rels[("Workplace challenges", "Coping strategies")]
        # the same pair reads differently in each direction
        assert forward.type == "influences"
        assert backward.type == "triggers"

    def test_discovery_order_and_count(self, process_themes):
        rels = map_relationships(process_themes)
        assert [(r.source, r.target) for r in rels] == [
            ("Coping strategies", "Workplace challenges"),
            ("Coping strategies", "Wellbeing outcomes"),
            ("Workplace challenges", "Coping strategies"),
            ("Workplace challenges", "Organisational context"),
            ("Workplace challenges", "Wellbeing outcomes"),
            ("Organisational context", "Workplace challenges"),
            ("Wellbeing outcomes", "Coping strategies"),
            ("Wellbeing outcomes", "Workplace challenges"),
        ]

    def test_serialises_with_from_and_to(self, process_themes):
        dumped = map_relationships(process_themes)[0].model_dump(by_alias=True)
        assert dumped["from"] == "Coping strategies"
        assert dumped["to"] == "Workplace challenges"

    def test_shared_codes_deduplicated(self):
        assert shared_codes(make_theme("A", ["x", "x", "y"]), make_theme("B", ["x"])) == ["x"]
