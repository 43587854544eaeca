"""Tests for paradigm-model classification and the core category pick."""

from __future__ import annotations

import pytest

from conftest import make_theme
from qualtheory.errors import EmptyInputError
from qualtheory.pipeline.paradigm import (
    KeywordParadigmClassifier,
    KeywordRule,
    build_paradigm_model,
    has_gerund,
    most_prevalent,
)


class TestKeywordClassifier:

    classify = KeywordParadigmClassifier()

    @pytest.mark.parametrize("name,slot", [
        ("Coping with uncertainty", "strategies"),
        ("What triggers withdrawal", "causal_conditions"),
        ("Events that lead to burnout", "causal_conditions"),
        ("Family background", "context"),
        ("Long-term impact", "consequences"),
        ("Available resources", "intervening_conditions"),
    ])
    def test_name_keywords(self, name, slot):
        assert self.classify(make_theme(name)) == slot

    def test_rule_order_wins_over_later_matches(self):
        # "cause" (causal) beats "outcome" (consequences)
        assert self.classify(make_theme("Outcomes that cause distress")) == "causal_conditions"

    def test_gerund_code_label_means_strategies(self):
        theme = make_theme("Long-term impact", codes=["Seeking reassurance"])
        assert self.classify(theme) == "strategies"

    def test_gerund_does_not_override_earlier_rule(self):
        theme = make_theme("Work environment", codes=["juggling shifts"])
        assert self.classify(theme) == "context"

    @pytest.mark.parametrize("participants,slot", [(4, "strategies"), (3, "context")])
    def test_unmatched_falls_back_on_prevalence(self, participants, slot):
        assert self.classify(make_theme("Silence", participants=participants, total=10)) == slot

    def test_custom_rules_replace_table(self):
        classify = KeywordParadigmClassifier(rules=[KeywordRule("consequences", ("silence",))])
        assert classify(make_theme("Silence")) == "consequences"

    def test_unknown_slot_in_rules_rejected(self):
        with pytest.raises(ValueError):
            KeywordParadigmClassifier(rules=[KeywordRule("phenomenon", ("x",))])


class TestGerund:

    @pytest.mark.parametrize("labels,expected", [
        (["coping"], True),
        (["Seeking Help"], True),
        (["burnout", "self care"], False),
        ([], False),
        (["ing"], False),
    ])
    def test_has_gerund(self, labels, expected):
        assert has_gerund(labels) is expected


class TestBuildParadigmModel:

    def test_empty_rejected(self):
        with pytest.raises(EmptyInputError):
            build_paradigm_model([])

    def test_phenomenon_also_keeps_its_slot(self, process_themes):
        model = build_paradigm_model(process_themes)
        assert model.phenomenon == "Coping strategies"
        assert model.strategies == ["Coping strategies", "Workplace challenges"]
        assert model.context == ["Organisational context"]
        assert model.consequences == ["Wellbeing outcomes"]
        assert model.causal_conditions == []
        assert model.all_assigned()["Coping strategies"] == "strategies"

    def test_each_theme_placed_once(self, process_themes):
        model = build_paradigm_model(process_themes)
        assert sorted(model.all_assigned()) == sorted(t.name for t in process_themes)

    def test_pluggable_classifier(self, process_themes):
        model = build_paradigm_model(process_themes, classifier=lambda t: "consequences")
        assert len(model.consequences) == 4

    def test_classifier_returning_unknown_slot(self, process_themes):
        with pytest.raises(ValueError):
            build_paradigm_model(process_themes, classifier=lambda t: "nowhere")


class TestMostPrevalent:

    def test_first_wins_ties(self):
        themes = [make_theme("A", participants=5), make_theme("B", participants=5)]
        assert most_prevalent(themes).name == "A"

    def test_picks_highest_fraction(self):
        themes = [make_theme("A", participants=5, total=20), make_theme("B", participants=3, total=4)]
        assert most_prevalent(themes).name == "B"
