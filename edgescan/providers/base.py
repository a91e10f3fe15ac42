"""
Base provider adapter interface.

Each supported provider is one ``ProviderAdapter`` subclass that knows how to
encode the canonical prompt into the provider's wire schema and how to
normalize the provider's reply into a ``NormalizedReply``.  The orchestrator
selects an adapter once and never branches on provider again.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

from .catalog import ProviderId


# ── Normalized reply ─────────────────────────────────────────────────

@dataclass(frozen=True)
class NormalizedReply:
    """The one shape every provider reply is reduced to."""
    text: str = ""
    input_tokens: int = 0
    output_tokens: int = 0
    web_search_count: int = 0
    search_queries: tuple[str, ...] = ()


def as_dict(value: Any) -> dict:
    return value if isinstance(value, dict) else {}


def as_token_count(value: Any) -> int:
    """Coerce a usage counter to a non-negative int (0 when absent/garbled)."""
    try:
        return max(0, int(value or 0))
    except (TypeError, ValueError):
        return 0


# ── Base adapter ─────────────────────────────────────────────────────

class ProviderAdapter(ABC):
    """Encoder + normalizer pair for one provider family."""

    provider: ProviderId
    #: Name of the forwarding-proxy function for this provider.
    proxy_function: str
    #: Hard ceiling on output tokens accepted by the provider.
    output_ceiling: int
    default_temperature: float = 0.3

    def clamp_output_tokens(self, max_output_tokens: int) -> int:
        return max(1, min(max_output_tokens, self.output_ceiling))

    @abstractmethod
    def encode(
        self,
        model_id: str,
        prompt: str,
        web_search: bool,
        max_output_tokens: int,
    ) -> dict[str, Any]:
        """Build the provider-shaped request body for ``prompt``."""
        ...

    @abstractmethod
    def parse_reply(self, data: Any) -> NormalizedReply:
        """
        Normalize a decoded provider response.

        Must never raise on missing usage or malformed envelopes; those
        normalize to empty text and zero tokens.
        """
        ...

    @abstractmethod
    def models_request(self, api_key: str) -> tuple[str, dict[str, str], dict[str, Any]]:
        """Return ``(url, headers, params)`` for the model-listing endpoint."""
        ...
