"""Tests for narrative assembly, the deterministic theory builder and the theory rubric."""

from __future__ import annotations

import pytest

from conftest import make_theme
from qualtheory.errors import EmptyInputError
from qualtheory.models.schemas import (
    GroundedTheory,
    ParadigmModel,
    SaturationEvidence,
    TheoreticalIntegration,
    ThemeRelationship,
)
from qualtheory.pipeline.narrative import (
    FALLBACK_PROPOSITIONS,
    build_propositions,
    build_storyline,
    format_list,
)
from qualtheory.pipeline.theory_builder import build_grounded_theory, saturation_evidence
from qualtheory.pipeline.theory_quality import score_theory, validate_grounded_theory


def _rel(source, target, type="influences", strength="strong"):
    return ThemeRelationship(source=source, target=target, type=type, strength=strength)


class TestFormatList:

    @pytest.mark.parametrize("items,expected", [
        ([], ""),
        (["x"], "x"),
        (["x", "y"], "x and y"),
        (["x", "y", "z"], "x, y, and z"),
        (["Peer Support"], "peer support"),
    ])
    def test_prose_lists(self, items, expected):
        assert format_list(items) == expected


class TestStoryline:

    def test_only_present_slots_are_narrated(self):
        model = ParadigmModel(phenomenon="Coping", strategies=["Reframing"], consequences=["Relief"])
        text = build_storyline(make_theme("Coping"), model, [make_theme("Coping")])
        assert text.startswith("This grounded theory explains the process of coping. ")
        assert "Participants engage in reframing as responses to the phenomenon." in text
        assert "This ultimately results in relief." in text
        assert "initiated by" not in text
        assert "context of" not in text
        assert "The data reveals 1 interconnected themes" in text

    def test_slot_order_is_fixed(self):
        model = ParadigmModel(
            phenomenon="P", causal_conditions=["C"], context=["X"], strategies=["S"],
            intervening_conditions=["I"], consequences=["O"],
        )
        text = build_storyline(None, model, [])
        order = ["initiated by", "context of", "engage in", "shaped by", "results in", "The data reveals"]
        positions = [text.index(p) for p in order]
        assert positions == sorted(positions)

    def test_empty_model_never_raises(self):
        text = build_storyline(None, ParadigmModel(), [])
        assert "The data reveals 0 interconnected themes" in text


class TestPropositions:

    def test_strong_relationships_only(self):
        rels = [_rel("A", "B", "causes"), _rel("B", "C", "triggers", strength="moderate")]
        props = build_propositions([make_theme("A", participants=1)], rels)
        assert props == ["A directly causes B"]

    def test_capped_at_five_relationship_sentences(self):
        rels = [_rel(f"S{i}", f"T{i}", "precedes") for i in range(8)]
        props = build_propositions([], rels)
        assert len(props) == 5
        assert props[0] == "S0 temporally precedes T0"

    def test_prevalent_themes_capped_at_three(self):
        themes = [make_theme(f"T{i}", participants=6) for i in range(5)]
        props = build_propositions(themes, [])
        assert len(props) == 3
        assert props[0] == "T0 is a central process that appears across most participant experiences"

    def test_fallback_when_nothing_qualifies(self):
        assert build_propositions([make_theme("A", participants=5)], []) == list(FALLBACK_PROPOSITIONS)


class TestScoreTheory:

    def _theory(self, **kw):
        return GroundedTheory(title="T", core_category="C", **kw)

    def test_credibility_zero_without_causes_strategies_or_saturation(self):
        theory = self._theory(category_relationships=[_rel("A", "B")])
        assert score_theory(theory)["credibility"] == 0.0

    def test_full_rubric_scores_one(self):
        theory = self._theory(
            paradigm_model=ParadigmModel(
                phenomenon="P", causal_conditions=["C"], context=["X"], strategies=["S"],
                intervening_conditions=["I"], consequences=["O"],
            ),
            storyline="x" * 120,
            theoretical_propositions=["p1", "p2", "p3"],
            category_relationships=[_rel("A", "B"), _rel("B", "C"), _rel("C", "A")],
            theoretical_integration=TheoreticalIntegration(
                novelty="A genuinely novel reading of the data",
                contribution="Extends stress appraisal theory to shift work",
                practical_implications=["Rota design"],
                future_research=["Longitudinal follow-up"],
            ),
            saturation_evidence=SaturationEvidence(categories_saturated=True),
        )
        qa = validate_grounded_theory(theory)
        assert qa.criteria_scores == {"credibility": 1.0, "originality": 1.0, "resonance": 1.0, "usefulness": 1.0}
        assert qa.overall_quality == 1.0
        assert qa.passes_quality_threshold
        assert not qa.weaknesses

    def test_unsaturated_theory_flags_weakness(self):
        qa = validate_grounded_theory(self._theory())
        assert "Theoretical saturation not achieved" in qa.weaknesses
        assert qa.overall_quality == 0.0
        assert not qa.passes_quality_threshold


class TestBuildGroundedTheory:

    def test_empty_themes_rejected(self):
        with pytest.raises(EmptyInputError):
            build_grounded_theory([])

    def test_end_to_end(self, process_themes):
        theory = build_grounded_theory(process_themes, "How do nurses cope?", project_name="ward")
        assert theory.title == "Theory of Coping strategies"
        assert theory.core_category == "Coping strategies"
        assert theory.paradigm_model.phenomenon == "Coping strategies"
        assert len(theory.category_relationships) == 8
        assert theory.theoretical_propositions[:4] == [
            "Coping strategies significantly influences Workplace challenges",
            "Coping strategies directly causes Wellbeing outcomes",
            "Workplace challenges triggers the initiation of Coping strategies",
            "Wellbeing outcomes significantly influences Coping strategies",
        ]
        assert len(theory.theoretical_propositions) == 6
        assert theory.storyline.startswith("This grounded theory explains the process of coping strategies.")
        assert theory.research_question == "How do nurses cope?"
        assert theory.theoretical_integration == TheoreticalIntegration()

    def test_quality_attached(self, process_themes):
        theory = build_grounded_theory(process_themes)
        assert theory.quality.criteria_scores == {
            "credibility": 0.5, "originality": 0.5, "resonance": 0.8, "usefulness": 0.0,
        }
        assert theory.quality.overall_quality == pytest.approx(0.45)
        assert not theory.quality.passes_quality_threshold

    def test_saturation_partition(self, process_themes):
        evidence = saturation_evidence(process_themes)
        assert not evidence.categories_saturated
        assert evidence.unsaturated_categories == ["Wellbeing outcomes"]
        assert len(evidence.saturated_categories) == 3
        assert evidence.data_support == "Theory integrates 4 themes"

    def test_single_theme_theory(self):
        theory = build_grounded_theory([make_theme("Coping", participants=2)])
        assert theory.category_relationships == []
        assert theory.theoretical_propositions == list(FALLBACK_PROPOSITIONS)
