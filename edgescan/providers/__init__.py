"""
Provider layer: catalog, per-provider adapters, proxy transport, key checks.

``get_adapter`` is the only place that maps a provider id to its adapter.
"""

from __future__ import annotations

from typing import Union

from .anthropic import AnthropicAdapter
from .base import NormalizedReply, ProviderAdapter
from .catalog import ModelDescriptor, ProviderId, get_model, resolve_provider_id
from .gemini import GeminiAdapter
from .openai_compat import DeepSeekAdapter, OpenAIAdapter, XAIAdapter

ADAPTERS: dict[ProviderId, ProviderAdapter] = {
    ProviderId.ANTHROPIC: AnthropicAdapter(),
    ProviderId.GOOGLE: GeminiAdapter(),
    ProviderId.OPENAI: OpenAIAdapter(),
    ProviderId.XAI: XAIAdapter(),
    ProviderId.DEEPSEEK: DeepSeekAdapter(),
}

#: Provider with the specialised analysis path (always searches, unadapted prompt).
REFERENCE_PROVIDER = ProviderId.ANTHROPIC


def get_adapter(provider: Union[ProviderId, str]) -> ProviderAdapter:
    return ADAPTERS[resolve_provider_id(provider)]


__all__ = [
    "ADAPTERS",
    "REFERENCE_PROVIDER",
    "ModelDescriptor",
    "NormalizedReply",
    "ProviderAdapter",
    "ProviderId",
    "get_adapter",
    "get_model",
]
