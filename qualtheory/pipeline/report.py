from __future__ import annotations
from typing import Any, Dict, List, Optional
from ..models.schemas import GroundedTheory, QualityAssessment

def _table(rows: List[Dict[str, Any]]) -> List[str]:
    if not rows:
        return ["_Empty_"]
    headers = list(rows[0].keys())
    lines = ["| " + " | ".join(headers) + " |", "|" + "|".join(["---"] * len(headers)) + "|"]
    for r in rows:
        lines.append("| " + " | ".join(str(r.get(h, "")) for h in headers) + " |")
    return lines

def _assessment(title: str, qa: QualityAssessment) -> List[str]:
    verdict = "passes" if qa.passes_quality_threshold else "below threshold"
    lines = [f"### {title}: {qa.overall_quality * 100:.0f}% ({verdict})", ""]
    lines += _table([{"criterion": k, "score": f"{v:.2f}"} for k, v in qa.criteria_scores.items()])
    for label, items in (("Strengths", qa.strengths), ("Weaknesses", qa.weaknesses), ("Recommendations", qa.recommendations)):
        if items:
            lines += ["", f"**{label}**", ""] + [f"- {i}" for i in items]
    lines.append("")
    return lines

def render_markdown(
    stats: Dict[str, Any],
    theory: Optional[GroundedTheory] = None,
    assessments: Optional[Dict[str, QualityAssessment]] = None,
    concept: Optional[Dict[str, List[Dict[str, Any]]]] = None,
) -> str:
    lines = ["# Qualitative Analysis Report", "", "## Stats"]
    for k, v in stats.items():
        lines.append(f"- **{k}**: {v}")
    lines.append("")
    if assessments:
        lines += ["## Quality Assessments", ""]
        for name, qa in assessments.items():
            lines += _assessment(name, qa)
    if concept and concept.get("edges"):
        lines += ["## Concept Map", ""]
        lines += _table([{"theme": e["from"], "code": e["to"], "link": e["type"]} for e in concept["edges"]])
        lines.append("")
    if theory is not None:
        pm = theory.paradigm_model
        lines += [f"## {theory.title}", "", f"**Core category**: {theory.core_category}", "", "### Paradigm Model", ""]
        lines += _table([
            {"slot": "phenomenon", "themes": pm.phenomenon},
            {"slot": "causal conditions", "themes": ", ".join(pm.causal_conditions)},
            {"slot": "context", "themes": ", ".join(pm.context)},
            {"slot": "strategies", "themes": ", ".join(pm.strategies)},
            {"slot": "intervening conditions", "themes": ", ".join(pm.intervening_conditions)},
            {"slot": "consequences", "themes": ", ".join(pm.consequences)},
        ])
        lines += ["", "### Storyline", "", theory.storyline, "", "### Propositions", ""]
        lines += [f"{i}. {p}" for i, p in enumerate(theory.theoretical_propositions, start=1)]
        lines += ["", "### Category Relationships", ""]
        lines += _table([
            {"from": r.source, "to": r.target, "type": r.type, "strength": r.strength, "shared codes": ", ".join(r.evidence)}
            for r in theory.category_relationships
        ])
        lines.append("")
    return "\n".join(lines)

def emit_markdown(out_path: str, stats: Dict[str, Any], theory: Optional[GroundedTheory] = None,
                  assessments: Optional[Dict[str, QualityAssessment]] = None,
                  concept: Optional[Dict[str, List[Dict[str, Any]]]] = None) -> str:
    with open(out_path, "w", encoding="utf-8") as f:
        f.write(render_markdown(stats, theory, assessments, concept))
    return out_path
