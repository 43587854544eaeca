from __future__ import annotations

import json
from typing import Any, Dict, List, Optional, Sequence

from pydantic import ValidationError

from ..errors import MalformedUpstreamOutputError
from ..logging import get_logger
from ..methodology import Methodology, get_stage_guidance
from ..models.schemas import (
    GroundedTheory,
    GroundedTheoryRequest,
    GroundedTheoryResponse,
    Memo,
    ParadigmModel,
    TheoreticalIntegration,
    Theme,
    ThemeRelationship,
    TheoryVisualizations,
)
from ..providers.base import LLMProvider
from ..utils.json_utils import ensure_list, ensure_str
from .diagrams import category_map, paradigm_diagram, process_model
from .theory_builder import saturation_evidence
from .theory_quality import validate_grounded_theory

log = get_logger(__name__)

TEMPERATURE = 0.5
MAX_TOKENS = 16000
_MEMO_LIMIT = 10

_PARADIGM_GUIDANCE = {
    "constructivist": "Emphasize the co-construction of meaning. Consider multiple realities and interpretations. Focus on process and context.",
    "objectivist": "Aim for systematic, rigorous analysis. Seek to identify generalizable patterns and relationships.",
    "critical": "Examine power relations, social justice issues, and structural constraints. Question taken-for-granted assumptions.",
}

_OUTPUT_CONTRACT = """OUTPUT FORMAT:
Return a JSON object with:
{
  "title": "Theory title",
  "coreCategory": "core category name",
  "paradigmModel": {
    "phenomenon": "...", "causalConditions": ["..."], "context": ["..."],
    "strategies": ["..."], "consequences": ["..."], "interveningConditions": ["..."]
  },
  "storyline": "integrated narrative",
  "theoreticalPropositions": ["..."],
  "categoryRelationships": [
    {"from": "A", "to": "B", "type": "causes|influences|triggers|precedes|enables|constrains",
     "explanation": "...", "evidence": ["..."], "strength": "strong|moderate|weak"}
  ],
  "theoreticalIntegration": {
    "linkedTheories": ["..."], "contribution": "...", "novelty": "...",
    "practicalImplications": ["..."], "futureResearch": ["..."]
  },
  "processModel": {"stages": [{"stage": "...", "description": "...", "transitions": ["..."]}]}
}"""


def build_prompt(
    request: GroundedTheoryRequest,
    themes: Sequence[Theme],
    memos: Sequence[Memo] = (),
    categories: Sequence[Dict[str, Any]] = (),
    methodology: Optional[Methodology] = None,
) -> List[Dict[str, str]]:
    merged_categories = list(categories) + [
        {
            "name": t.name,
            "definition": t.definition,
            "properties": [st.name for st in t.subthemes or []],
            "relatedCodes": t.related_codes,
            "prevalence": t.prevalence.model_dump(),
        }
        for t in themes
    ]
    user = (
        f"RESEARCH QUESTION: {request.research_question}\n\n"
        f"PARADIGM: {request.paradigm.upper()}\n{_PARADIGM_GUIDANCE[request.paradigm]}\n\n"
        f"THEMES AND CATEGORIES:\n{json.dumps(merged_categories, indent=2, ensure_ascii=False)}\n\n"
        "Construct a GROUNDED THEORY by identifying the core category, developing the paradigm model "
        "(phenomenon, causal conditions, context, strategies, consequences, intervening conditions), "
        "specifying relationships between categories, writing an integrated storyline and relating "
        "the theory to existing literature.\n\n" + _OUTPUT_CONTRACT
    )
    stage = get_stage_guidance(methodology, "theoretical-coding") if methodology else None
    if stage is not None:
        user += f"\n\n--- METHODOLOGY GUIDANCE ({methodology.name}) ---\n{stage.description}"
    if request.theoretical_sensitivity:
        user += (
            "\n\n--- THEORETICAL SENSITIVITY ---\nConsider these existing theoretical concepts:\n"
            + "\n".join(f"- {ts}" for ts in request.theoretical_sensitivity)
            + "\n\nBut ensure your theory remains GROUNDED in the data, not imposed from these concepts."
        )
    if memos:
        user += (
            "\n\n--- ANALYTICAL MEMOS ---\nConsider these analytical memos from the research process:\n"
            + "\n\n".join(f"{m.type}: {m.content}" for m in memos[:_MEMO_LIMIT])
        )
    if request.focus_on_process:
        user += (
            "\n\n--- PROCESS FOCUS ---\n"
            "Pay special attention to PROCESSES and ACTIONS. Use gerunds (-ing words) to capture process."
        )
    return [
        {
            "role": "system",
            "content": (
                "You are an expert in Constructivist Grounded Theory (Charmaz) building a substantive "
                "theory from data. Return JSON only."
            ),
        },
        {"role": "user", "content": user},
    ]


def _relationships(raw: Any) -> List[ThemeRelationship]:
    out: List[ThemeRelationship] = []
    for cr in raw if isinstance(raw, list) else []:
        if not isinstance(cr, dict):
            continue
        out.append(
            ThemeRelationship(
                source=ensure_str(cr.get("from")),
                target=ensure_str(cr.get("to")),
                type=cr.get("type"),
                explanation=ensure_str(cr.get("explanation")),
                evidence=ensure_list(cr.get("evidence")),
                strength=cr.get("strength") or "moderate",
            )
        )
    return out


def assemble_theory(
    payload: Any,
    request: GroundedTheoryRequest,
    themes: Sequence[Theme],
    categories: int = 0,
) -> GroundedTheory:
    if not isinstance(payload, dict):
        raise MalformedUpstreamOutputError("Grounded theory output is not a JSON object")
    pm = payload.get("paradigmModel") if isinstance(payload.get("paradigmModel"), dict) else {}
    ti = payload.get("theoreticalIntegration") if isinstance(payload.get("theoreticalIntegration"), dict) else {}
    core = ensure_str(payload.get("coreCategory"))
    try:
        return GroundedTheory(
            title=ensure_str(payload.get("title")) or f"Theory of {core}",
            core_category=core,
            paradigm=request.paradigm,
            paradigm_model=ParadigmModel(
                phenomenon=ensure_str(pm.get("phenomenon") or payload.get("phenomenon")),
                causal_conditions=ensure_list(pm.get("causalConditions")),
                context=ensure_list(pm.get("context")),
                strategies=ensure_list(pm.get("strategies")),
                consequences=ensure_list(pm.get("consequences")),
                intervening_conditions=ensure_list(pm.get("interveningConditions")),
            ),
            storyline=ensure_str(payload.get("storyline")),
            theoretical_propositions=ensure_list(payload.get("theoreticalPropositions")),
            category_relationships=_relationships(payload.get("categoryRelationships")),
            theoretical_integration=TheoreticalIntegration(
                linked_theories=ensure_list(ti.get("linkedTheories")),
                contribution=ensure_str(ti.get("contribution")),
                novelty=ensure_str(ti.get("novelty")),
                practical_implications=ensure_list(ti.get("practicalImplications")),
                future_research=ensure_list(ti.get("futureResearch")),
            ),
            saturation_evidence=saturation_evidence(themes, categories),
            project_name=request.project_name,
            research_question=request.research_question,
        )
    except ValidationError as exc:
        raise MalformedUpstreamOutputError(f"Grounded theory output has an unexpected shape: {exc}")


def next_steps(theory: GroundedTheory) -> List[str]:
    steps: List[str] = []
    evidence = theory.saturation_evidence
    if not evidence.categories_saturated:
        steps.append("Continue data collection to achieve theoretical saturation")
    if evidence.unsaturated_categories:
        steps.append(f"Further develop these categories: {', '.join(evidence.unsaturated_categories)}")
    if not theory.theoretical_integration.linked_theories:
        steps.append("Connect theory to existing theoretical literature")
    if len(theory.category_relationships) < 3:
        steps.append("Specify more relationships between categories")
    steps.append("Validate theory with participants (member checking)")
    steps.append("Test theory with new data or different contexts")
    steps.append("Write up theory for publication")
    return steps


def build_grounded_theory_llm(
    provider: LLMProvider,
    request: GroundedTheoryRequest,
    themes: Sequence[Theme],
    memos: Sequence[Memo] = (),
    categories: Sequence[Dict[str, Any]] = (),
    methodology: Optional[Methodology] = None,
) -> GroundedTheoryResponse:
    log.info(
        "Building grounded theory for %s (paradigm=%s): %d themes, %d categories",
        request.project_name, request.paradigm, len(themes), len(categories),
    )
    messages = build_prompt(request, themes, memos, categories, methodology)
    payload = provider.generate_json(messages, temperature=TEMPERATURE, max_tokens=MAX_TOKENS)
    theory = assemble_theory(payload, request, themes, len(categories))
    assessment = validate_grounded_theory(theory)
    theory.quality = assessment

    warnings: List[str] = []
    if not assessment.passes_quality_threshold:
        warnings.append(
            f"Theory quality score ({assessment.overall_quality * 100:.0f}%) is below threshold"
        )
    log.info(
        "Grounded theory built: %s (core: %s), quality %.0f%%, saturation %s",
        theory.title, theory.core_category, assessment.overall_quality * 100,
        "yes" if theory.saturation_evidence.categories_saturated else "no",
    )
    return GroundedTheoryResponse(
        grounded_theory=theory,
        visualizations=TheoryVisualizations(
            paradigm_diagram=paradigm_diagram(theory.paradigm_model),
            process_model=process_model(payload.get("processModel") if isinstance(payload.get("processModel"), dict) else None),
            category_map=category_map(theory.category_relationships),
        ),
        assessment=assessment,
        recommendations=list(assessment.recommendations),
        next_steps=next_steps(theory),
        warnings=warnings,
    )
