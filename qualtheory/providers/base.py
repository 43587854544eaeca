from __future__ import annotations
import time
from typing import Any, Dict, List
from dataclasses import dataclass
from ..config import ProviderConfig
from ..logging import get_logger
from ..utils.json_utils import extract_json

log = get_logger(__name__)

Messages = List[Dict[str, str]]

@dataclass
class UsageStats:
    input_tokens: int = 0
    output_tokens: int = 0

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens

    def as_dict(self) -> Dict[str, int]:
        return {
            "input_tokens": self.input_tokens,
            "output_tokens": self.output_tokens,
            "total_tokens": self.total_tokens,
        }

class LLMProvider:
    """Client for the generative-text service.

    Subclasses implement `_complete`; transport failures are retried with backoff,
    unparseable output is not.
    """
    backoff_base: float = 1.5

    def __init__(self, conf: ProviderConfig):
        self.conf = conf
        self._last_usage = UsageStats()
        self._total_usage = UsageStats()

    def _update_usage(self, input_tokens: int, output_tokens: int):
        self._last_usage = UsageStats(int(input_tokens or 0), int(output_tokens or 0))
        self._total_usage.input_tokens += self._last_usage.input_tokens
        self._total_usage.output_tokens += self._last_usage.output_tokens

    def last_usage(self) -> Dict[str, int]:
        return self._last_usage.as_dict()

    def total_usage(self) -> Dict[str, int]:
        return self._total_usage.as_dict()

    def reset_usage_totals(self):
        self._total_usage = UsageStats()

    def estimated_cost(self) -> float:
        u = self._total_usage
        return round(
            u.input_tokens / 1000.0 * self.conf.price_input_per_1k
            + u.output_tokens / 1000.0 * self.conf.price_output_per_1k,
            6,
        )

    def _complete(self, messages: Messages, temperature: float, max_tokens: int) -> str:
        raise NotImplementedError

    def generate_text(self, messages: Messages, **params: Any) -> str:
        temperature = params.get("temperature", self.conf.temperature)
        max_tokens = params.get("max_tokens", self.conf.max_tokens)
        attempts = max(1, self.conf.retry_max)
        err: Exception | None = None
        for i in range(attempts):
            try:
                return self._complete(messages, temperature, max_tokens)
            except NotImplementedError:
                raise
            except Exception as exc:
                err = exc
                log.warning("Generation attempt %d/%d failed: %s", i + 1, attempts, exc)
                if i + 1 < attempts:
                    time.sleep(self.backoff_base ** i)
        raise RuntimeError(f"Generation request failed after {attempts} attempts: {err}")

    def generate_json(self, messages: Messages, **params: Any) -> Any:
        return extract_json(self.generate_text(messages, **params))

def make_provider(conf: ProviderConfig) -> LLMProvider:
    name = (conf.name or "anthropic").lower()
    if name in ("openai_compatible", "openai", "ollama"):
        from .openai_compatible import OpenAICompatibleProvider
        return OpenAICompatibleProvider(conf)
    elif name == "anthropic":
        from .anthropic_provider import AnthropicProvider
        return AnthropicProvider(conf)
    else:
        raise ValueError(f"Unknown provider: {name}")
