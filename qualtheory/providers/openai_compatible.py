from __future__ import annotations
import os
from openai import OpenAI
from .base import LLMProvider, Messages

class OpenAICompatibleProvider(LLMProvider):
    """Provider for any endpoint speaking the OpenAI chat-completions protocol (OpenAI, Ollama, vLLM...).

    base_url, api_key, organization and extra_headers come from ProviderConfig,
    falling back to the usual OPENAI_* environment variables.
    """
    def __init__(self, conf):
        super().__init__(conf)
        self.client = OpenAI(
            base_url=conf.base_url or os.getenv("OPENAI_BASE_URL", "https://api.openai.com/v1"),
            api_key=conf.api_key or os.getenv("OPENAI_API_KEY"),
            organization=conf.organization or os.getenv("OPENAI_ORG_ID"),
            default_headers=dict(conf.extra_headers or {}),
        )

    def _complete(self, messages: Messages, temperature: float, max_tokens: int) -> str:
        payload = dict(model=self.conf.model, messages=messages, temperature=temperature)
        if max_tokens:
            payload["max_tokens"] = max_tokens
        resp = self.client.chat.completions.create(**payload)
        usage = getattr(resp, "usage", None)
        self._update_usage(
            getattr(usage, "prompt_tokens", 0) or 0,
            getattr(usage, "completion_tokens", 0) or 0,
        )
        return resp.choices[0].message.content or ""
