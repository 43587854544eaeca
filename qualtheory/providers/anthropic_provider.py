from __future__ import annotations
import os
from anthropic import Anthropic
from .base import LLMProvider, Messages

class AnthropicProvider(LLMProvider):
    def __init__(self, conf):
        super().__init__(conf)
        self.client = Anthropic(api_key=conf.api_key or os.getenv("ANTHROPIC_API_KEY"))

    def _complete(self, messages: Messages, temperature: float, max_tokens: int) -> str:
        # system prompts travel separately in the Messages API
        system = "\n\n".join(m["content"] for m in messages if m["role"] == "system")
        turns = [
            {"role": m["role"], "content": m["content"]}
            for m in messages
            if m["role"] in ("user", "assistant")
        ]
        payload = dict(
            model=self.conf.model,
            max_tokens=max_tokens,
            temperature=temperature,
            messages=turns,
        )
        if system:
            payload["system"] = system
        resp = self.client.messages.create(**payload)
        usage = getattr(resp, "usage", None)
        self._update_usage(
            getattr(usage, "input_tokens", 0) or 0,
            getattr(usage, "output_tokens", 0) or 0,
        )
        texts = [getattr(block, "text", "") for block in resp.content if getattr(block, "type", None) == "text"]
        if not texts:
            raise ValueError("Unexpected response type from Anthropic: no text content")
        return "".join(texts)
