from __future__ import annotations
import json
import os
from pydantic import BaseModel, Field
from typing import Dict, Optional, Literal
import yaml

class ProviderConfig(BaseModel):
    name: Literal["openai_compatible", "openai", "ollama", "anthropic"] = "anthropic"
    model: str = "claude-sonnet-4-20250514"
    api_key: Optional[str] = None
    # OpenAI-compatible options
    base_url: Optional[str] = None
    organization: Optional[str] = None
    extra_headers: Dict[str, str] = Field(default_factory=dict)
    # Behavior; stages override temperature and max_tokens per call
    temperature: float = 0.3
    max_tokens: int = 8000
    retry_max: int = 3
    # price for estimation ($ per 1k tokens)
    price_input_per_1k: float = 0.003
    price_output_per_1k: float = 0.015

class StorageConfig(BaseModel):
    projects_dir: str = "projects"

class MethodologyConfig(BaseModel):
    methodologies_dir: Optional[str] = None  # None -> packaged methodologies
    default_id: Optional[str] = "grounded-theory-charmaz"

class OutputConfig(BaseModel):
    out_dir: str = "output"
    log_file: Optional[str] = None
    log_level: str = "WARNING"

class AppConfig(BaseModel):
    provider: ProviderConfig = ProviderConfig()
    storage: StorageConfig = StorageConfig()
    methodology: MethodologyConfig = MethodologyConfig()
    output: OutputConfig = OutputConfig()

def load_config(config_path: Optional[str]) -> AppConfig:
    if config_path and os.path.exists(config_path):
        with open(config_path, "r", encoding="utf-8") as f:
            if config_path.endswith(".json"):
                data = json.load(f)
            else:
                data = yaml.safe_load(f)
        return AppConfig.model_validate(data or {})
    return AppConfig()
