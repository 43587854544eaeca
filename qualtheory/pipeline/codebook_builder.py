from __future__ import annotations

import json
from typing import Any, Dict, List, Optional, Sequence

from pydantic import ValidationError

from ..errors import EmptyInputError, MalformedUpstreamOutputError
from ..logging import get_logger
from ..methodology import Methodology, first_stage_guidance
from ..models.schemas import (
    Code,
    CodeHierarchy,
    Codebook,
    CodebookMetrics,
    CodebookRefinementRequest,
    CodebookRefinementResponse,
    CodebookSummary,
    InitialCode,
    MergedCode,
)
from ..providers.base import LLMProvider
from ..utils.json_utils import ensure_list, ensure_str
from .codebook_quality import validate_codebook
from .hierarchy import hierarchy_depth

log = get_logger(__name__)

TEMPERATURE = 0.3
MAX_TOKENS = 8000
_PROMPT_CODE_LIMIT = 50

_OUTPUT_CONTRACT = """OUTPUT FORMAT:
Return a JSON object with:
{
  "refinedCodes": [
    {
      "label": "code name",
      "definition": "clear definition",
      "whenToUse": "guidance on when to apply this code",
      "whenNotToUse": "guidance on when NOT to use",
      "examples": ["example quote 1", "example quote 2"],
      "childCodes": ["child code labels if applicable"],
      "mergedFrom": ["original code IDs that were merged"]
    }
  ],
  "hierarchy": {
    "rootCodes": ["top-level codes"],
    "relationships": {"parentCode": ["childCode1", "childCode2"]}
  },
  "mergingDecisions": [
    {"mergedCodes": ["code1", "code2"], "intoCode": "new code label", "reason": "why these were merged"}
  ],
  "refinementNotes": "overall notes about the refinement process"
}"""


def build_prompt(
    initial_codes: Sequence[InitialCode],
    request: CodebookRefinementRequest,
    methodology: Optional[Methodology] = None,
) -> List[Dict[str, str]]:
    shown = [c.model_dump(exclude_none=True) for c in initial_codes[:_PROMPT_CODE_LIMIT]]
    more = len(initial_codes) - _PROMPT_CODE_LIMIT
    using = f" using {methodology.name}" if methodology else ""
    guidelines = [
        "- Use gerunds (action words: -ing) for process-oriented codes",
        "- Keep codes close to the data",
        "- Create 2-3 levels of hierarchy maximum",
        "- Each code should have: label, definition, when to use, when NOT to use, examples",
    ]
    if request.preserve_in_vivo:
        guidelines.insert(0, "- Preserve in-vivo codes (participants' own words) when powerful")
    if not request.merge_similar:
        guidelines.append("- Do not merge codes; only define and organise them")

    user = (
        f"INITIAL CODES ({len(initial_codes)} codes):\n"
        f"{json.dumps(shown, indent=2, ensure_ascii=False)}\n"
        + (f"\n... and {more} more codes\n" if more > 0 else "")
        + "\nYour task is to refine this codebook by:\n"
        "1. Identifying similar codes\n"
        "2. Merging redundant codes\n"
        "3. Creating hierarchy (parent-child relationships)\n"
        "4. Defining codes clearly\n"
        "5. Preserving nuance; don't over-merge\n\n"
        "GUIDELINES:\n" + "\n".join(guidelines) + "\n\n" + _OUTPUT_CONTRACT
    )
    stage = first_stage_guidance(methodology, "focused-coding", "generate-initial-codes")
    if stage is not None:
        user += f"\n\n--- METHODOLOGY GUIDANCE ({methodology.name}) ---\n{stage.description}"
    return [
        {
            "role": "system",
            "content": f"You are an expert qualitative researcher refining a codebook{using}. Return JSON only.",
        },
        {"role": "user", "content": user},
    ]


def _normalize_codes(entries: Any) -> List[Code]:
    if not isinstance(entries, list):
        entries = [entries] if isinstance(entries, dict) else []
    codes: List[Code] = []
    for entry in entries:
        if not isinstance(entry, dict):
            continue
        label = ensure_str(entry.get("label") or entry.get("code") or entry.get("name"))
        if not label:
            continue
        merged_from = ensure_list(entry.get("mergedFrom"))
        codes.append(
            Code(
                id=f"code-{len(codes) + 1:03d}",
                label=label,
                definition=ensure_str(entry.get("definition") or entry.get("description")),
                when_to_use=ensure_str(entry.get("whenToUse")),
                when_not_to_use=ensure_str(entry.get("whenNotToUse")),
                examples=ensure_list(entry.get("examples")),
                frequency=len(merged_from) or 1,
                child_codes=ensure_list(entry.get("childCodes")),
                source="merged" if len(merged_from) > 1 else "refined",
                merged_from=merged_from or None,
            )
        )
    return codes


def _normalize_hierarchy(value: Any) -> CodeHierarchy:
    if not isinstance(value, dict):
        return CodeHierarchy()
    relationships = value.get("relationships")
    if not isinstance(relationships, dict):
        relationships = {}
    return CodeHierarchy(
        root_codes=ensure_list(value.get("rootCodes") or value.get("root_codes")),
        relationships={str(k): ensure_list(v) for k, v in relationships.items()},
    )


def _normalize_merges(value: Any, codes: Sequence[Code]) -> List[MergedCode]:
    by_label = {c.label: c.id for c in codes}
    merges: List[MergedCode] = []
    for md in value if isinstance(value, list) else []:
        if not isinstance(md, dict):
            continue
        merges.append(
            MergedCode(
                new_code_id=by_label.get(ensure_str(md.get("intoCode")), ""),
                original_code_ids=ensure_list(md.get("mergedCodes")),
                reason=ensure_str(md.get("reason")),
            )
        )
    return merges


def assemble_codebook(
    payload: Any,
    initial_codes: Sequence[InitialCode],
    request: CodebookRefinementRequest,
) -> Codebook:
    if not isinstance(payload, dict):
        raise MalformedUpstreamOutputError("Codebook refinement output is not a JSON object")
    entries = payload.get("refinedCodes") or payload.get("codes") or payload.get("entries")
    try:
        codes = _normalize_codes(entries)
        if request.min_frequency:
            codes = [c for c in codes if c.frequency >= request.min_frequency]
        hierarchy = _normalize_hierarchy(payload.get("hierarchy"))
        merged = _normalize_merges(payload.get("mergingDecisions"), codes)
    except ValidationError as exc:
        raise MalformedUpstreamOutputError(f"Codebook refinement output has an unexpected shape: {exc}")
    if not codes:
        raise EmptyInputError("Codebook refinement produced no codes")

    total = len(codes)
    return Codebook(
        project_name=request.project_name,
        methodology=request.methodology,
        codes=codes,
        code_hierarchy=hierarchy,
        merged_codes=merged,
        refinement_notes=ensure_str(payload.get("refinementNotes")),
        quality_metrics=CodebookMetrics(
            total_codes=total,
            hierarchy_depth=hierarchy_depth(hierarchy),
            average_code_frequency=sum(c.frequency for c in codes) / total,
            redundancy_score=1 - total / len(initial_codes) if initial_codes else 0.0,
        ),
    )


def refine_codebook(
    provider: LLMProvider,
    request: CodebookRefinementRequest,
    initial_codes: Sequence[InitialCode],
    methodology: Optional[Methodology] = None,
) -> CodebookRefinementResponse:
    log.info("Refining codebook for %s: %d initial codes", request.project_name, len(initial_codes))
    messages = build_prompt(initial_codes, request, methodology)
    payload = provider.generate_json(messages, temperature=TEMPERATURE, max_tokens=MAX_TOKENS)
    codebook = assemble_codebook(payload, initial_codes, request)

    assessment = validate_codebook(codebook)
    recommendations = list(assessment.recommendations)
    warnings: List[str] = []
    if not assessment.passes_quality_threshold:
        warning = (
            f"Codebook quality score ({assessment.overall_quality * 100:.0f}%) is below threshold. Please review."
        )
        warnings.append(warning)
        recommendations.insert(0, warning)

    log.info(
        "Codebook refined: %d -> %d codes, quality %.0f%%",
        len(initial_codes), len(codebook.codes), assessment.overall_quality * 100,
    )
    return CodebookRefinementResponse(
        codebook=codebook,
        summary=CodebookSummary(
            initial_code_count=len(initial_codes),
            final_code_count=len(codebook.codes),
            merged_code_count=len(codebook.merged_codes),
            hierarchy_levels=codebook.quality_metrics.hierarchy_depth,
            quality_score=assessment.overall_quality,
        ),
        assessment=assessment,
        recommendations=recommendations,
        warnings=warnings,
    )
