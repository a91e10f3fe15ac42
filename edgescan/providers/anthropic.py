"""
Anthropic Messages API adapter.

Replies arrive as a list of typed content blocks; text blocks carry the
answer and ``server_tool_use`` blocks record the web searches Claude ran.
"""

from __future__ import annotations

import logging
from typing import Any

from .base import NormalizedReply, ProviderAdapter, as_dict, as_token_count
from .catalog import ProviderId

logger = logging.getLogger(__name__)

ANTHROPIC_VERSION = "2023-06-01"
WEB_SEARCH_TOOL = {"type": "web_search_20250305", "name": "web_search"}


class AnthropicAdapter(ProviderAdapter):
    provider = ProviderId.ANTHROPIC
    proxy_function = "claude-proxy"
    output_ceiling = 16384

    def encode(
        self,
        model_id: str,
        prompt: str,
        web_search: bool,
        max_output_tokens: int,
    ) -> dict[str, Any]:
        body: dict[str, Any] = {
            "model": model_id,
            "max_tokens": self.clamp_output_tokens(max_output_tokens),
            "temperature": self.default_temperature,
            "messages": [{"role": "user", "content": prompt}],
        }
        if web_search:
            body["tools"] = [dict(WEB_SEARCH_TOOL)]
        return body

    def parse_reply(self, data: Any) -> NormalizedReply:
        if not isinstance(data, dict):
            return NormalizedReply()

        blocks = data.get("content")
        if not isinstance(blocks, list):
            blocks = []

        texts: list[str] = []
        queries: list[str] = []
        for block in blocks:
            if not isinstance(block, dict):
                continue
            kind = block.get("type")
            if kind == "text":
                texts.append(block.get("text") or "")
            elif kind == "server_tool_use" and block.get("name") == "web_search":
                query = as_dict(block.get("input")).get("query")
                queries.append(query if isinstance(query, str) else "?")

        usage = as_dict(data.get("usage"))
        if queries:
            logger.debug("Claude ran %d web searches", len(queries))
        return NormalizedReply(
            text="\n".join(texts),
            input_tokens=as_token_count(usage.get("input_tokens")),
            output_tokens=as_token_count(usage.get("output_tokens")),
            web_search_count=len(queries),
            search_queries=tuple(queries),
        )

    def models_request(self, api_key: str) -> tuple[str, dict[str, str], dict[str, Any]]:
        return (
            "https://api.anthropic.com/v1/models",
            {"x-api-key": api_key, "anthropic-version": ANTHROPIC_VERSION},
            {"limit": 1},
        )
