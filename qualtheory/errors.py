from __future__ import annotations
from typing import List, Optional


class QualtheoryError(Exception):
    """Base class for analysis errors."""


class EmptyInputError(QualtheoryError, ValueError):
    """A validator or classifier was handed an empty collection."""


class MalformedHierarchyError(QualtheoryError, ValueError):
    def __init__(self, cycle: List[str]):
        self.cycle = list(cycle)
        super().__init__("Code hierarchy contains a cycle: " + " -> ".join(self.cycle))


class MalformedUpstreamOutputError(QualtheoryError):
    """Generative-service output could not be parsed into the expected shape."""

    def __init__(self, message: str, raw: Optional[str] = None):
        self.raw = (raw or "")[:800]
        if raw is not None:
            message = f"{message}\nModel raw (first 800 chars): {self.raw}"
        super().__init__(message)


class ProjectNotFoundError(QualtheoryError, FileNotFoundError):
    pass
