"""
Shared pytest fixtures and builders for the qualtheory tests.

Builders produce minimal valid models; tests override only the fields they
exercise. StubProvider replays canned model output so no test touches the
network.
"""

from __future__ import annotations

import json
from typing import List, Sequence

import pytest

from qualtheory.config import ProviderConfig
from qualtheory.models.schemas import Code, Codebook, CodeHierarchy, Prevalence, Quote, Theme
from qualtheory.providers.base import LLMProvider


# ---------------------------------------------------------------------------
# Builders
# ---------------------------------------------------------------------------

def make_code(label: str, definition: str = "A clearly written definition", examples=("an excerpt",), **kw) -> Code:
    return Code(id=kw.pop("id", f"code-{label}"), label=label, definition=definition, examples=list(examples), **kw)


def make_codebook(codes: Sequence[Code], roots=(), relationships=None) -> Codebook:
    return Codebook(
        project_name="demo",
        codes=list(codes),
        code_hierarchy=CodeHierarchy(root_codes=list(roots), relationships=relationships or {}),
    )


def make_quotes(n: int) -> List[Quote]:
    return [Quote(id=f"q-{i}", text=f"quote {i}", participant=f"P{i}") for i in range(n)]


def make_theme(
    name: str,
    codes: Sequence[str] = (),
    participants: int = 3,
    total: int = 10,
    quotes: int = 3,
    data_points: int = 5,
    central_concept: str = "A central organising concept",
    significance: str = "Matters for the research question",
) -> Theme:
    return Theme(
        id=f"theme-{name}",
        name=name,
        central_concept=central_concept,
        significance=significance,
        related_codes=list(codes),
        supporting_quotes=make_quotes(quotes),
        prevalence=Prevalence(participants=participants, total_participants=total, data_points=data_points),
    )


# ---------------------------------------------------------------------------
# Stub provider
# ---------------------------------------------------------------------------

class StubProvider(LLMProvider):
    """Returns queued responses in order and records the messages it saw."""

    def __init__(self, responses: Sequence, retry_max: int = 1):
        super().__init__(ProviderConfig(retry_max=retry_max))
        self.responses = [r if isinstance(r, (str, Exception)) else json.dumps(r) for r in responses]
        self.calls: List = []

    def _complete(self, messages, temperature, max_tokens):
        self.calls.append({"messages": messages, "temperature": temperature, "max_tokens": max_tokens})
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        self._update_usage(100, 50)
        return response


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def process_themes() -> List[Theme]:
    """Four themes with overlapping codes and no gerund code labels.

    Coping strategies   -> strategies (keyword), most prevalent (8/10)
    Workplace challenges -> strategies (prevalence fallback, 6/10)
    Organisational context -> context
    Wellbeing outcomes  -> consequences, only 2 participants so unsaturated
    """
    return [
        make_theme("Coping strategies", ["self care", "peer support", "time management", "reframe"], participants=8),
        make_theme("Workplace challenges", ["deadlines", "conflict", "self care", "peer support", "time management"], participants=6),
        make_theme("Organisational context", ["deadlines", "culture"], participants=4),
        make_theme("Wellbeing outcomes", ["burnout", "self care", "peer support", "reframe"], participants=2),
    ]


@pytest.fixture
def no_sleep(monkeypatch):
    monkeypatch.setattr("qualtheory.providers.base.time.sleep", lambda s: None)
