"""Tests for text diagrams and the Markdown / HTML reports."""

from __future__ import annotations

from conftest import make_code, make_theme
from qualtheory.models.schemas import ParadigmModel
from qualtheory.pipeline.diagrams import concept_map, paradigm_diagram, paradigm_mermaid, process_model
from qualtheory.pipeline.report import emit_markdown, render_markdown
from qualtheory.pipeline.report_html import emit_html, render_html
from qualtheory.pipeline.theory_builder import build_grounded_theory


class TestDiagrams:

    def test_paradigm_diagram_lists_slots(self):
        model = ParadigmModel(phenomenon="Coping", strategies=["Reframing"], consequences=["Relief"])
        text = paradigm_diagram(model)
        assert text.startswith("PARADIGM MODEL")
        assert "- Reframing" in text
        assert "Coping" in text

    def test_process_model_absent(self):
        assert process_model(None) == "No process model specified"
        assert process_model({"stages": []}) == "No process model specified"

    def test_concept_map_links_themes_to_known_codes(self):
        codes = [make_code("self care", frequency=3), make_code("burnout")]
        themes = [make_theme("Coping", ["self care", "unknown"]), make_theme("Outcomes", ["self care", "burnout"])]
        cmap = concept_map(codes, themes)
        assert [n["id"] for n in cmap["nodes"]] == ["Coping", "self care", "Outcomes", "burnout"]
        assert {"from": "Outcomes", "to": "self care", "type": "includes"} in cmap["edges"]
        assert len(cmap["edges"]) == 3
        assert cmap["nodes"][1]["size"] == 30

    def test_mermaid_strips_brackets(self):
        text = paradigm_mermaid(ParadigmModel(phenomenon='Being "on" [call]', strategies=["S"], consequences=["Q"]))
        assert 'P["Being on call"]' in text
        assert "S1 --> Q1" in text


class TestReports:

    def test_markdown_sections(self, process_themes):
        theory = build_grounded_theory(process_themes)
        md = render_markdown({"themes": 4}, theory, {"Theory": theory.quality})
        assert md.startswith("# Qualitative Analysis Report")
        assert "### Theory: 45% (below threshold)" in md
        assert "## Theory of Coping strategies" in md
        assert "| Coping strategies | Workplace challenges | influences | strong |" in md

    def test_markdown_stats_only(self):
        md = render_markdown({"codes": 0})
        assert "- **codes**: 0" in md
        assert "Storyline" not in md

    def test_html_escapes_and_embeds_mermaid(self, process_themes, tmp_path):
        themes = process_themes + [make_theme("<script>x</script>")]
        theory = build_grounded_theory(themes)
        html = render_html({"themes": len(themes)}, theory, {"Theory": theory.quality})
        assert "<script>x</script>" not in html
        assert "&lt;script&gt;" in html
        assert 'class="mermaid"' in html

    def test_emitters_write_files(self, process_themes, tmp_path):
        theory = build_grounded_theory(process_themes)
        md = emit_markdown(str(tmp_path / "r.md"), {"themes": 4}, theory)
        html = emit_html(str(tmp_path / "r.html"), {"themes": 4}, theory)
        assert (tmp_path / "r.md").read_text(encoding="utf-8").startswith("# Qualitative")
        assert "Theory of Coping strategies" in (tmp_path / "r.html").read_text(encoding="utf-8")
        assert md.endswith("r.md") and html.endswith("r.html")

    def test_concept_map_section(self, process_themes):
        cmap = concept_map([make_code("self care"), make_code("culture")], process_themes)
        md = render_markdown({"themes": 4}, concept=cmap)
        assert "## Concept Map" in md
        assert "| Organisational context | culture | includes |" in md
        html = render_html({"themes": 4}, concept=cmap)
        assert "<td>Organisational context</td><td>culture</td><td>includes</td>" in html

    def test_concept_map_without_edges_is_omitted(self, process_themes):
        cmap = concept_map([], process_themes)
        assert "Concept Map" not in render_markdown({"themes": 4}, concept=cmap)
        assert "Concept Map" not in render_html({"themes": 4}, concept=cmap)
