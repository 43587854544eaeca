from __future__ import annotations
import json
import os
from typing import Any, List, Sequence

from pydantic import TypeAdapter

from .errors import ProjectNotFoundError
from .models.schemas import Codebook, GroundedTheory, InitialCode, Theme


class ProjectStore:
    """JSON snapshots of a project's codebook, themes and theory under `<base_dir>/<project>/`."""

    INITIAL_CODES = "initial_codes.json"
    CODEBOOK = "codebook.json"
    THEMES = "themes.json"
    THEORY = "theory.json"

    def __init__(self, base_dir: str):
        self.base_dir = base_dir

    def project_dir(self, project_name: str) -> str:
        name = (project_name or "").strip()
        if not name or name in (".", "..") or "/" in name or "\\" in name:
            raise ValueError(f"Invalid project name: {project_name!r}")
        return os.path.join(self.base_dir, name)

    def path(self, project_name: str, filename: str) -> str:
        return os.path.join(self.project_dir(project_name), filename)

    def _write(self, project_name: str, filename: str, obj: Any) -> str:
        p = self.path(project_name, filename)
        os.makedirs(os.path.dirname(p), exist_ok=True)
        with open(p, "w", encoding="utf-8") as f:
            json.dump(obj, f, ensure_ascii=False, indent=2, default=str)
        return p

    def _read(self, project_name: str, filename: str) -> Any:
        p = self.path(project_name, filename)
        if not os.path.exists(p):
            raise ProjectNotFoundError(f"{filename} not found for project {project_name!r} ({p})")
        with open(p, "r", encoding="utf-8") as f:
            return json.load(f)

    def exists(self, project_name: str, filename: str) -> bool:
        return os.path.exists(self.path(project_name, filename))

    def list_projects(self) -> List[str]:
        if not os.path.isdir(self.base_dir):
            return []
        return sorted(d for d in os.listdir(self.base_dir) if os.path.isdir(os.path.join(self.base_dir, d)))

    def save_initial_codes(self, project_name: str, codes: Sequence[InitialCode]) -> str:
        return self._write(project_name, self.INITIAL_CODES, [c.model_dump() for c in codes])

    def load_initial_codes(self, project_name: str) -> List[InitialCode]:
        return TypeAdapter(List[InitialCode]).validate_python(self._read(project_name, self.INITIAL_CODES))

    def save_codebook(self, project_name: str, codebook: Codebook) -> str:
        return self._write(project_name, self.CODEBOOK, codebook.model_dump(mode="json"))

    def load_codebook(self, project_name: str) -> Codebook:
        return Codebook.model_validate(self._read(project_name, self.CODEBOOK))

    def save_themes(self, project_name: str, themes: Sequence[Theme]) -> str:
        return self._write(project_name, self.THEMES, [t.model_dump(mode="json") for t in themes])

    def load_themes(self, project_name: str) -> List[Theme]:
        return TypeAdapter(List[Theme]).validate_python(self._read(project_name, self.THEMES))

    def save_theory(self, project_name: str, theory: GroundedTheory) -> str:
        return self._write(project_name, self.THEORY, theory.model_dump(mode="json"))

    def load_theory(self, project_name: str) -> GroundedTheory:
        return GroundedTheory.model_validate(self._read(project_name, self.THEORY))
