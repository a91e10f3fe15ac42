"""
Google Gemini ``generateContent`` adapter (candidates/parts wire shape).

Web searches surface through Google Search grounding metadata on the
first candidate.
"""

from __future__ import annotations

from typing import Any

from .base import NormalizedReply, ProviderAdapter, as_dict, as_token_count
from .catalog import ProviderId

GEMINI_API_BASE = "https://generativelanguage.googleapis.com/v1beta"


class GeminiAdapter(ProviderAdapter):
    provider = ProviderId.GOOGLE
    proxy_function = "gemini-proxy"
    output_ceiling = 65536

    def encode(
        self,
        model_id: str,
        prompt: str,
        web_search: bool,
        max_output_tokens: int,
    ) -> dict[str, Any]:
        body: dict[str, Any] = {
            "model": model_id,
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "generationConfig": {
                "temperature": self.default_temperature,
                "maxOutputTokens": self.clamp_output_tokens(max_output_tokens),
            },
        }
        if web_search:
            body["tools"] = [{"google_search": {}}]
        return body

    def parse_reply(self, data: Any) -> NormalizedReply:
        if not isinstance(data, dict):
            return NormalizedReply()

        candidates = data.get("candidates")
        candidate = as_dict(candidates[0]) if isinstance(candidates, list) and candidates else {}

        parts = as_dict(candidate.get("content")).get("parts") or []
        text = "\n".join(
            p["text"] for p in parts if isinstance(p, dict) and isinstance(p.get("text"), str)
        )

        usage = as_dict(data.get("usageMetadata"))
        grounding = as_dict(candidate.get("groundingMetadata"))
        queries = [q for q in grounding.get("webSearchQueries") or [] if isinstance(q, str)]

        return NormalizedReply(
            text=text,
            input_tokens=as_token_count(usage.get("promptTokenCount")),
            output_tokens=as_token_count(usage.get("candidatesTokenCount")),
            web_search_count=len(queries),
            search_queries=tuple(queries),
        )

    def models_request(self, api_key: str) -> tuple[str, dict[str, str], dict[str, Any]]:
        # Header auth keeps the key out of the request URL (and any URL logging).
        return (
            f"{GEMINI_API_BASE}/models",
            {"x-goog-api-key": api_key},
            {"pageSize": 1},
        )
