from .base import LLMProvider, UsageStats, make_provider
