from __future__ import annotations

import json
from typing import Any, Dict, List, Optional, Sequence

from pydantic import ValidationError

from ..errors import MalformedUpstreamOutputError
from ..logging import get_logger
from ..methodology import Methodology, first_stage_guidance
from ..models.schemas import (
    Codebook,
    Prevalence,
    Quote,
    Subtheme,
    Theme,
    ThemeExtractionRequest,
    ThemeExtractionResponse,
    ThemeLink,
    ThemeMap,
    ThemeQualityMetrics,
)
from ..providers.base import LLMProvider
from ..utils.json_utils import ensure_list, ensure_str
from .theme_quality import is_saturated, validate_themes

log = get_logger(__name__)

TEMPERATURE = 0.4
MAX_TOKENS = 16000
DATA_POINTS_PER_SOURCE = 10  # rough estimate of codable data points per raw document
_PROMPT_CODE_LIMIT = 30

_DEPTH_INSTRUCTIONS = {
    "surface": "Focus on explicit, semantic themes - what participants explicitly say.",
    "deep": "Go beyond surface to identify underlying patterns and meanings.",
    "latent": "Identify latent themes - underlying ideas, assumptions, and ideologies that shape the data.",
}

_OUTPUT_CONTRACT = """OUTPUT FORMAT:
Return a JSON object with:
{
  "themes": [
    {
      "name": "Theme Name (active, engaging)",
      "centralConcept": "The core idea that unifies this theme",
      "definition": "What this theme is about (2-3 sentences)",
      "relatedCodes": ["code labels that comprise this theme"],
      "supportingQuotes": [{"text": "participant quote", "source": "interview/document ID", "participant": "P1", "context": "why this supports the theme"}],
      "prevalence": {"participantCount": 0, "dataPointCount": 0},
      "significance": "Why this theme matters for the RQ",
      "subthemes": [{"name": "Subtheme name", "definition": "What this subtheme is about"}]
    }
  ],
  "themeRelationships": [
    {"from": "Theme A", "to": "Theme B", "type": "encompasses|precedes|influences|contrasts|complements", "description": "how they relate"}
  ],
  "overarchingNarrative": "How all themes work together to answer the RQ",
  "uncategorizedCodes": ["codes that don't fit into themes yet"]
}"""


def _mode_guidance(request: ThemeExtractionRequest) -> str:
    framework = request.theoretical_framework or "not specified"
    if request.mode == "deductive":
        return (
            f"Work top-down from the theoretical framework: {framework}. "
            "Look for themes that align with theoretical concepts."
        )
    if request.mode == "hybrid":
        return (
            "Use a combination approach: let themes emerge from data (inductive) while also "
            f"considering theoretical framework: {framework}"
        )
    return (
        "Work bottom-up from codes to discover themes emergent in the data. "
        "Let themes arise from patterns you observe."
    )


def build_prompt(
    codebook: Codebook,
    request: ThemeExtractionRequest,
    methodology: Optional[Methodology] = None,
) -> List[Dict[str, str]]:
    codes = [
        {
            "label": c.label,
            "definition": c.definition,
            "frequency": c.frequency,
            "examples": c.examples,
            "childCodes": c.child_codes or [],
        }
        for c in codebook.codes[:_PROMPT_CODE_LIMIT]
    ]
    more = len(codebook.codes) - _PROMPT_CODE_LIMIT
    user = (
        f"RESEARCH QUESTION: {request.research_question or 'Not specified'}\n\n"
        f"CODES ({len(codebook.codes)} codes):\n{json.dumps(codes, indent=2, ensure_ascii=False)}\n"
        + (f"\n... and {more} more codes\n" if more > 0 else "")
        + f"\nANALYSIS MODE: {request.mode.upper()}\n{_mode_guidance(request)}\n\n"
        "A THEME is a pattern of shared meaning organised around a central organising concept, "
        "supported by multiple codes and data extracts.\n\n"
        "QUALITY CRITERIA:\n"
        "- Each theme has a clear central concept\n"
        "- Themes are distinctive from each other (no overlap)\n"
        "- Themes have sufficient data support\n"
        "- Themes address the research question\n\n" + _OUTPUT_CONTRACT
    )
    stage = first_stage_guidance(methodology, "generate-themes", "theoretical-coding", "define-name-themes")
    if stage is not None:
        user += f"\n\n--- METHODOLOGY GUIDANCE ({methodology.name}) ---\n{stage.description}"
    user += f"\n\nANALYSIS DEPTH: {_DEPTH_INSTRUCTIONS[request.depth]}"
    return [
        {
            "role": "system",
            "content": "You are an expert qualitative researcher extracting themes from coded data. Return JSON only.",
        },
        {"role": "user", "content": user},
    ]


def _quotes(raw: Any, id_prefix: str, code_labels: List[str]) -> List[Quote]:
    quotes: List[Quote] = []
    for q in raw if isinstance(raw, list) else []:
        if isinstance(q, str):
            q = {"text": q}
        if not isinstance(q, dict):
            continue
        participant = q.get("participant")
        quotes.append(
            Quote(
                id=f"{id_prefix}-{len(quotes) + 1:03d}",
                text=ensure_str(q.get("text")),
                source=ensure_str(q.get("source")) or "unknown",
                participant=ensure_str(participant) if participant is not None else None,
                context=ensure_str(q.get("context")),
                code_labels=list(code_labels),
            )
        )
    return quotes


def _int(value: Any) -> Optional[int]:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def assemble_themes(
    payload: Any, request: ThemeExtractionRequest, total_participants: int
) -> ThemeMap:
    if not isinstance(payload, dict) or not isinstance(payload.get("themes"), list):
        raise MalformedUpstreamOutputError("Theme extraction output has no 'themes' list")
    themes: List[Theme] = []
    try:
        for index, t in enumerate(payload["themes"], start=1):
            if not isinstance(t, dict) or not ensure_str(t.get("name")):
                continue
            related = ensure_list(t.get("relatedCodes"))
            quotes = _quotes(t.get("supportingQuotes"), f"quote-{index:03d}", related)
            subthemes = []
            for s_index, st in enumerate(t.get("subthemes") or [], start=1):
                if not isinstance(st, dict):
                    continue
                subthemes.append(
                    Subtheme(
                        id=f"subtheme-{index:03d}-{s_index:02d}",
                        name=ensure_str(st.get("name")),
                        definition=ensure_str(st.get("definition")),
                        related_codes=ensure_list(st.get("relatedCodes")),
                        supporting_quotes=_quotes(
                            st.get("supportingQuotes"), f"quote-{index:03d}-{s_index:02d}", []
                        ),
                    )
                )
            prevalence = t.get("prevalence") if isinstance(t.get("prevalence"), dict) else {}
            # the model cannot see more participants than there are sources
            participants = min(max(_int(prevalence.get("participantCount")) or 0, 0), total_participants)
            themes.append(
                Theme(
                    id=f"theme-{index:03d}",
                    name=ensure_str(t.get("name")),
                    central_concept=ensure_str(t.get("centralConcept")),
                    definition=ensure_str(t.get("definition")),
                    subthemes=subthemes or None,
                    related_codes=related,
                    supporting_quotes=quotes,
                    prevalence=Prevalence(
                        participants=participants,
                        total_participants=total_participants,
                        data_points=max(_int(prevalence.get("dataPointCount")) or 0, 0) or len(quotes),
                    ),
                    significance=ensure_str(t.get("significance")),
                    extraction_mode=request.mode,
                    analysis_depth=request.depth,
                )
            )
        ids = {t.name: t.id for t in themes}
        links = [
            ThemeLink(
                from_theme_id=ids.get(ensure_str(tr.get("from")), ""),
                to_theme_id=ids.get(ensure_str(tr.get("to")), ""),
                relationship_type=tr.get("type"),
                description=ensure_str(tr.get("description")),
            )
            for tr in payload.get("themeRelationships") or []
            if isinstance(tr, dict)
        ]
    except ValidationError as exc:
        raise MalformedUpstreamOutputError(f"Theme extraction output has an unexpected shape: {exc}")
    return ThemeMap(
        themes=themes,
        relationships=links,
        overarching_narrative=ensure_str(payload.get("overarchingNarrative")),
    )


def extract_themes(
    provider: LLMProvider,
    request: ThemeExtractionRequest,
    codebook: Codebook,
    raw_data: Sequence[Any],
    methodology: Optional[Methodology] = None,
) -> ThemeExtractionResponse:
    log.info(
        "Extracting themes for %s (mode=%s, depth=%s) from %d codes",
        request.project_name, request.mode, request.depth, len(codebook.codes),
    )
    messages = build_prompt(codebook, request, methodology)
    payload = provider.generate_json(messages, temperature=TEMPERATURE, max_tokens=MAX_TOKENS)
    theme_map = assemble_themes(payload, request, total_participants=len(raw_data))
    themes = theme_map.themes

    assessment = validate_themes(themes, len(raw_data) * DATA_POINTS_PER_SOURCE)
    saturated = is_saturated(themes)

    warnings: List[str] = []
    if not assessment.passes_quality_threshold:
        warnings.append(
            f"Theme quality score ({assessment.overall_quality * 100:.0f}%) is below threshold"
        )
    if not saturated:
        warnings.append("Theoretical saturation may not be achieved - consider analyzing more data")
    uncategorized = ensure_list(payload.get("uncategorizedCodes"))
    if uncategorized:
        warnings.append(f"{len(uncategorized)} codes not incorporated into themes")
    if request.min_prevalence:
        low = [t for t in themes if t.prevalence.fraction < request.min_prevalence]
        if low:
            warnings.append(
                f"{len(low)} themes below minimum prevalence threshold ({request.min_prevalence})"
            )

    log.info(
        "Themes extracted: %d, quality %.0f%%, saturation %s",
        len(themes), assessment.overall_quality * 100, "yes" if saturated else "no",
    )
    scores = assessment.criteria_scores
    return ThemeExtractionResponse(
        themes=themes,
        theme_map=theme_map,
        extraction_mode=request.mode,
        quality_metrics=ThemeQualityMetrics(
            coherence=scores["coherence"],
            distinctiveness=scores["distinctiveness"],
            coverage=scores["coverage"],
            saturation=saturated,
        ),
        assessment=assessment,
        recommendations=list(assessment.recommendations),
        warnings=warnings,
    )
