from __future__ import annotations
import re
from typing import Any, Dict, List, Optional, Sequence
from ..models.schemas import Code, ParadigmModel, Theme, ThemeRelationship


def _bullets(items: Sequence[str], indent: str) -> str:
    return f"\n{indent}".join(f"- {i}" for i in items)


def paradigm_diagram(model: ParadigmModel) -> str:
    return f"""
PARADIGM MODEL

┌─────────────────────────────────┐
│   CAUSAL CONDITIONS             │
│   {_bullets(model.causal_conditions, "    ")}
└──────────────┬──────────────────┘
               │
               ▼
┌─────────────────────────────────┐
│   PHENOMENON                    │
│   {model.phenomenon}
└──────────────┬──────────────────┘
               │
    ┌──────────┴──────────┐
    │                     │
    ▼                     ▼
┌─────────────────┐   ┌─────────────────┐
│  CONTEXT        │   │  INTERVENING    │
│  {_bullets(model.context, "  ")}
└─────────────────┘   │  CONDITIONS     │
                      │  {_bullets(model.intervening_conditions, "  ")}
                      └─────────────────┘
               │
               ▼
┌─────────────────────────────────┐
│   STRATEGIES/ACTIONS            │
│   {_bullets(model.strategies, "    ")}
└──────────────┬──────────────────┘
               │
               ▼
┌─────────────────────────────────┐
│   CONSEQUENCES                  │
│   {_bullets(model.consequences, "    ")}
└─────────────────────────────────┘
""".strip()


def process_model(process: Optional[Dict[str, Any]]) -> str:
    if not process or not process.get("stages"):
        return "No process model specified"
    blocks = []
    for i, stage in enumerate(process["stages"], start=1):
        transitions = ", ".join(stage.get("transitions") or []) or "N/A"
        blocks.append(
            f"Stage {i}: {stage.get('stage', '')}\n"
            f"  {stage.get('description', '')}\n"
            f"  Transitions: {transitions}"
        )
    return "PROCESS MODEL\n\n" + "\n\n".join(blocks)


def category_map(relationships: Sequence[ThemeRelationship]) -> str:
    if not relationships:
        return "No category relationships specified"
    blocks = [
        f"{r.source} --[{r.type}]--> {r.target}\n  {r.explanation}\n  Strength: {r.strength}"
        for r in relationships
    ]
    return "CATEGORY RELATIONSHIPS\n\n" + "\n\n".join(blocks)


def concept_map(codes: Sequence[Code], themes: Sequence[Theme]) -> Dict[str, List[Dict[str, Any]]]:
    by_key: Dict[str, Code] = {}
    for code in codes:
        by_key.setdefault(code.label, code)
        by_key.setdefault(code.id, code)
    nodes: List[Dict[str, Any]] = []
    edges: List[Dict[str, str]] = []
    seen = set()
    for theme in themes:
        nodes.append({"id": theme.name, "label": theme.name, "type": "theme",
                      "size": theme.prevalence.fraction * 100})
        seen.add(theme.name)
        for ref in theme.related_codes:
            code = by_key.get(ref)
            if code is None:
                continue
            if code.label not in seen:
                seen.add(code.label)
                nodes.append({"id": code.label, "label": code.label, "type": "code",
                              "size": code.frequency * 10})
            edges.append({"from": theme.name, "to": code.label, "type": "includes"})
    return {"nodes": nodes, "edges": edges}


def _node_id(prefix: str, i: int) -> str:
    return f"{prefix}{i}"


def _mermaid_label(text: str) -> str:
    return re.sub(r'["\[\]{}<>]', "", text)


def paradigm_mermaid(model: ParadigmModel) -> str:
    lines = ["flowchart LR", f'  P["{_mermaid_label(model.phenomenon) or "Phenomenon"}"]']
    lanes = [
        ("C", model.causal_conditions, "causes", True),
        ("X", model.context, "context", True),
        ("I", model.intervening_conditions, "shapes", True),
        ("S", model.strategies, "responds", False),
    ]
    for prefix, names, verb, into_phenomenon in lanes:
        for i, name in enumerate(names, start=1):
            node = _node_id(prefix, i)
            lines.append(f'  {node}["{_mermaid_label(name)}"]')
            lines.append(f"  {node} -- {verb} --> P" if into_phenomenon else f"  P -- {verb} --> {node}")
    for i, name in enumerate(model.consequences, start=1):
        node = _node_id("Q", i)
        lines.append(f'  {node}["{_mermaid_label(name)}"]')
        sources = [_node_id("S", j) for j in range(1, len(model.strategies) + 1)] or ["P"]
        for src in sources:
            lines.append(f"  {src} --> {node}")
    return "\n".join(lines)
