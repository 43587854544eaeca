
from __future__ import annotations
from typing import Any, List, Sequence
from pydantic import BaseModel
from ..errors import EmptyInputError

MIN_BATCHES = 3

class SaturationCheck(BaseModel):
    saturated: bool
    confidence: float
    evidence: str

def _batch_labels(batch: Sequence[Any]) -> set:
    labels = set()
    for item in batch:
        if isinstance(item, dict):
            label = item.get("code") or item.get("label")
        else:
            label = getattr(item, "label", None) or getattr(item, "code", None)
        labels.add(label)
    return labels

def check_saturation(codes: Sequence[Any], recent_batches: Sequence[Sequence[Any]]) -> SaturationCheck:
    if len(recent_batches) < MIN_BATCHES:
        return SaturationCheck(
            saturated=False,
            confidence=0.0,
            evidence="Insufficient data batches to assess saturation (need at least 3 batches)",
        )
    if not codes:
        raise EmptyInputError("Saturation check needs a non-empty code list")
    per_batch: List[int] = [len(_batch_labels(b)) for b in recent_batches]
    avg_new = sum(per_batch[-3:]) / 3
    rate = avg_new / len(codes)
    pct = round(rate * 100)
    if rate < 0.1:
        return SaturationCheck(
            saturated=True, confidence=0.8,
            evidence=f"Last 3 data batches generated <10% new codes ({pct}%)",
        )
    if rate < 0.2:
        return SaturationCheck(
            saturated=True, confidence=0.6,
            evidence=f"New code generation slowing ({pct}% in recent batches)",
        )
    return SaturationCheck(
        saturated=False, confidence=max(0.0, 1 - rate),
        evidence=f"Still generating new codes at {pct}% rate - continue data collection",
    )
