from __future__ import annotations
import json
import os
from typing import Any, Dict, List, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError

from .logging import get_logger

log = get_logger(__name__)

PACKAGED_DIR = os.path.join(os.path.dirname(__file__), "methodologies")
_EXTENSIONS = (".json", ".yaml", ".yml")


class MethodologyStage(BaseModel):
    name: str = ""
    description: str = ""
    order: Optional[int] = None
    prompt_template: str = Field(default="", alias="promptTemplate")
    requires: List[str] = Field(default_factory=list)
    inputs: List[str] = Field(default_factory=list)
    outputs: List[str] = Field(default_factory=list)
    optional: bool = False

    model_config = {"populate_by_name": True}


class Methodology(BaseModel):
    id: str = ""
    name: str = ""
    version: str = ""
    author: str = ""
    category: str = ""
    description: str = ""
    stages: List[MethodologyStage] = Field(default_factory=list)
    tools: Dict[str, List[str]] = Field(default_factory=dict)
    quality_criteria: Dict[str, List[str]] = Field(default_factory=dict, alias="qualityCriteria")
    validated: bool = False
    reviewers: List[str] = Field(default_factory=list)

    model_config = {"populate_by_name": True}


def _base_path(methodologies_path: Optional[str]) -> str:
    return methodologies_path or PACKAGED_DIR


def _read(path: str) -> Any:
    with open(path, "r", encoding="utf-8") as f:
        if path.endswith(".json"):
            return json.load(f)
        return yaml.safe_load(f)


def load_methodology(methodology_id: str, methodologies_path: Optional[str] = None) -> Optional[Methodology]:
    base = _base_path(methodologies_path)
    for ext in _EXTENSIONS:
        path = os.path.join(base, methodology_id + ext)
        if not os.path.exists(path):
            continue
        try:
            return Methodology.model_validate(_read(path))
        except (OSError, ValueError, yaml.YAMLError, ValidationError) as exc:
            log.error("Error loading methodology %s: %s", methodology_id, exc)
            return None
    log.error("Methodology file not found: %s in %s", methodology_id, base)
    return None


def get_stage_guidance(methodology: Methodology, stage_name: str) -> Optional[MethodologyStage]:
    for stage in methodology.stages:
        if stage.name == stage_name:
            return stage
    return None


def first_stage_guidance(methodology: Optional[Methodology], *stage_names: str) -> Optional[MethodologyStage]:
    if methodology is None:
        return None
    for name in stage_names:
        stage = get_stage_guidance(methodology, name)
        if stage is not None:
            return stage
    return None


def get_stage_prompt(methodology: Methodology, stage_name: str, variables: Dict[str, Any]) -> str:
    stage = get_stage_guidance(methodology, stage_name)
    if stage is None:
        return ""
    prompt = stage.prompt_template
    for key, value in variables.items():
        replacement = value if isinstance(value, str) else json.dumps(value, indent=2, ensure_ascii=False)
        prompt = prompt.replace("{{" + key + "}}", replacement)
    return prompt


def get_quality_criteria(methodology: Methodology) -> Dict[str, List[str]]:
    return methodology.quality_criteria


def list_methodologies(methodologies_path: Optional[str] = None) -> List[str]:
    base = _base_path(methodologies_path)
    if not os.path.isdir(base):
        log.error("Methodologies directory not found: %s", base)
        return []
    ids = []
    for filename in sorted(os.listdir(base)):
        stem, ext = os.path.splitext(filename)
        if ext in _EXTENSIONS and stem != "TEMPLATE" and stem not in ids:
            ids.append(stem)
    return ids


def validate_methodology_structure(methodology: Methodology) -> Dict[str, Any]:
    errors: List[str] = []
    for field in ("id", "name", "version", "category"):
        if not getattr(methodology, field):
            errors.append(f"Missing required field: {field}")
    if not methodology.stages:
        errors.append("Missing or empty required field: stages")

    for index, stage in enumerate(methodology.stages):
        if not stage.name:
            errors.append(f"Stage {index}: missing name")
        if not stage.description:
            errors.append(f"Stage {index}: missing description")
        if stage.order is None:
            errors.append(f"Stage {index}: missing order")
        if not stage.prompt_template:
            errors.append(f"Stage {index}: missing promptTemplate")

    # order 0 marks ongoing stages such as memo writing
    orders = sorted(s.order for s in methodology.stages if s.order is not None and s.order != 0)
    if orders != list(range(1, len(orders) + 1)):
        errors.append("Stage orders should be sequential starting from 1 (or 0 for ongoing stages)")

    return {"valid": not errors, "errors": errors}


def get_recommended_tools(methodology: Methodology) -> List[str]:
    tools: List[str] = []
    for tool_list in methodology.tools.values():
        for tool in tool_list:
            if tool not in tools:
                tools.append(tool)
    return tools


def is_tool_applicable(methodology: Methodology, tool_name: str, stage: Optional[str] = None) -> bool:
    if stage is not None and stage in methodology.tools:
        return tool_name in methodology.tools[stage]
    return tool_name in get_recommended_tools(methodology)
