from __future__ import annotations

import json
from typing import List

import streamlit as st
from pydantic import TypeAdapter, ValidationError

from qualtheory.errors import QualtheoryError
from qualtheory.models.schemas import Codebook, QualityAssessment, Theme
from qualtheory.pipeline.codebook_quality import validate_codebook
from qualtheory.pipeline.diagrams import category_map, paradigm_diagram
from qualtheory.pipeline.report_html import render_html
from qualtheory.pipeline.theme_extractor import DATA_POINTS_PER_SOURCE
from qualtheory.pipeline.theme_quality import is_saturated, validate_themes
from qualtheory.pipeline.theory_builder import build_grounded_theory


def _assessment_box(title: str, qa: QualityAssessment) -> None:
    st.subheader(f"{title} quality")
    cols = st.columns(len(qa.criteria_scores) + 1)
    cols[0].metric("overall", f"{qa.overall_quality * 100:.0f}%")
    for col, (k, v) in zip(cols[1:], qa.criteria_scores.items()):
        col.metric(k, f"{v:.2f}")
    if qa.passes_quality_threshold:
        st.success(f"{title} passes the quality threshold")
    else:
        st.warning(f"{title} is below the quality threshold")
    for s in qa.strengths:
        st.markdown(f"- :green[{s}]")
    for w in qa.weaknesses:
        st.markdown(f"- :orange[{w}]")
    for r in qa.recommendations:
        st.markdown(f"- {r}")


def _load_upload(uploaded):
    return json.loads(uploaded.read().decode("utf-8", errors="ignore"))


def main():
    st.set_page_config(page_title="qualtheory", layout="wide")
    st.title("qualtheory Dashboard")

    with st.sidebar:
        st.header("Theory Parameters")
        research_question = st.text_input("Research question", value="")
        paradigm = st.selectbox("Paradigm", ["constructivist", "objectivist", "critical"])
        project_name = st.text_input("Project name", value="")

    st.header("Inputs")
    cb_file = st.file_uploader("Codebook JSON", type=["json"])
    themes_file = st.file_uploader("Themes JSON", type=["json"])

    codebook = None
    themes: List[Theme] = []
    try:
        if cb_file:
            codebook = Codebook.model_validate(_load_upload(cb_file))
        if themes_file:
            themes = TypeAdapter(List[Theme]).validate_python(_load_upload(themes_file))
    except (ValueError, ValidationError) as exc:
        st.error(f"Could not read upload: {exc}")
        return

    if codebook is not None:
        st.markdown(f"**Codes**: {len(codebook.codes)}, **hierarchy depth**: {codebook.quality_metrics.hierarchy_depth}")
        try:
            _assessment_box("Codebook", validate_codebook(codebook))
        except QualtheoryError as exc:
            st.error(str(exc))

    if themes:
        st.dataframe(
            [
                {
                    "theme": t.name,
                    "codes": len(t.related_codes),
                    "quotes": len(t.supporting_quotes),
                    "prevalence": round(t.prevalence.fraction, 2),
                }
                for t in themes
            ]
        )
        expected = max(t.prevalence.total_participants for t in themes) * DATA_POINTS_PER_SOURCE
        data_points = st.number_input("Expected data points", min_value=1, value=max(1, expected), step=1)
        try:
            _assessment_box("Themes", validate_themes(themes, int(data_points)))
        except QualtheoryError as exc:
            st.error(str(exc))
        st.markdown(f"**Saturation**: {'yes' if is_saturated(themes) else 'no'}")

    run_btn = st.button("Build theory", type="primary", disabled=not themes)
    if not run_btn:
        return

    try:
        theory = build_grounded_theory(themes, research_question, paradigm, project_name)
    except QualtheoryError as exc:
        st.error(str(exc))
        return

    st.success(theory.title)
    st.markdown(f"**Core category**: {theory.core_category}")
    st.code(paradigm_diagram(theory.paradigm_model), language=None)
    st.subheader("Storyline")
    st.markdown(theory.storyline)
    st.subheader("Propositions")
    st.markdown("\n".join(f"{i}. {p}" for i, p in enumerate(theory.theoretical_propositions, start=1)))
    st.subheader("Category relationships")
    st.code(category_map(theory.category_relationships), language=None)
    _assessment_box("Theory", theory.quality)

    st.download_button(
        "Download theory JSON",
        data=json.dumps(theory.model_dump(mode="json"), ensure_ascii=False, indent=2),
        file_name="theory.json",
        use_container_width=True,
    )
    st.download_button(
        "Download HTML report",
        data=render_html({"themes": len(themes)}, theory, {"Theory": theory.quality}),
        file_name="report.html",
        use_container_width=True,
    )


if __name__ == "__main__":
    main()
