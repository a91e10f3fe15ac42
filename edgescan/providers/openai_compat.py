"""
Chat Completions adapters (choices/message wire shape).

OpenAI, xAI and DeepSeek all speak the OpenAI Chat Completions dialect and
differ only in their search tool, output ceiling and reasoning models.
"""

from __future__ import annotations

from typing import Any, Optional

from .base import NormalizedReply, ProviderAdapter, as_dict, as_token_count
from .catalog import ProviderId


class ChatCompletionsAdapter(ProviderAdapter):
    """Shared encoder/normalizer for OpenAI-compatible providers."""

    models_url: str
    #: Model-id prefixes that reject a sampling temperature.
    reasoning_prefixes: tuple[str, ...] = ()

    def is_reasoning_model(self, model_id: str) -> bool:
        return model_id.startswith(self.reasoning_prefixes) if self.reasoning_prefixes else False

    def search_options(self) -> Optional[dict[str, Any]]:
        """Extra body keys that switch on web search (``None`` = unsupported)."""
        return None

    def encode(
        self,
        model_id: str,
        prompt: str,
        web_search: bool,
        max_output_tokens: int,
    ) -> dict[str, Any]:
        body: dict[str, Any] = {
            "model": model_id,
            "messages": [{"role": "user", "content": prompt}],
        }
        if not self.is_reasoning_model(model_id):
            body["temperature"] = self.default_temperature
        body["max_tokens"] = self.clamp_output_tokens(max_output_tokens)

        options = self.search_options() if web_search else None
        if options:
            body.update(options)
        return body

    def parse_reply(self, data: Any) -> NormalizedReply:
        if not isinstance(data, dict):
            return NormalizedReply()

        choices = data.get("choices")
        first = choices[0] if isinstance(choices, list) and choices else {}
        message = first.get("message") if isinstance(first, dict) else None
        content = as_dict(message).get("content") or ""
        if isinstance(content, list):
            # Some compatible servers return content as typed parts.
            content = "\n".join(
                part.get("text") or "" for part in content if isinstance(part, dict)
            )

        usage = as_dict(data.get("usage"))
        return NormalizedReply(
            text=content if isinstance(content, str) else "",
            input_tokens=as_token_count(usage.get("prompt_tokens")),
            output_tokens=as_token_count(usage.get("completion_tokens")),
        )

    def models_request(self, api_key: str) -> tuple[str, dict[str, str], dict[str, Any]]:
        return self.models_url, {"Authorization": f"Bearer {api_key}"}, {}


class OpenAIAdapter(ChatCompletionsAdapter):
    provider = ProviderId.OPENAI
    proxy_function = "openai-proxy"
    output_ceiling = 32768
    models_url = "https://api.openai.com/v1/models"
    reasoning_prefixes = ("o1", "o3", "o4")

    def search_options(self) -> Optional[dict[str, Any]]:
        return {"tools": [{"type": "web_search_preview", "search_context_size": "medium"}]}


class XAIAdapter(ChatCompletionsAdapter):
    provider = ProviderId.XAI
    proxy_function = "xai-proxy"
    output_ceiling = 16384
    models_url = "https://api.x.ai/v1/models"

    def search_options(self) -> Optional[dict[str, Any]]:
        return {"search": {"mode": "auto"}}


class DeepSeekAdapter(ChatCompletionsAdapter):
    provider = ProviderId.DEEPSEEK
    proxy_function = "deepseek-proxy"
    output_ceiling = 8192
    models_url = "https://api.deepseek.com/models"
    reasoning_prefixes = ("deepseek-reasoner",)
