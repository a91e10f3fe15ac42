"""
Cost accounting for AI calls.

``build_usage`` stamps one write-once ``Usage`` per call.  Accumulating a
running total is the caller's job; ``CostTracker`` is the helper for it.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Union

from ..providers.base import NormalizedReply
from ..providers.catalog import ProviderId, calculate_model_cost
from .models import Usage, utc_now

logger = logging.getLogger(__name__)

# Prompt scaffold + per-market line, and output per recommendation (tokens).
_EST_PROMPT_TOKENS = 400
_EST_TOKENS_PER_MARKET = 50
_EST_BASE_OUTPUT_TOKENS = 300
_EST_TOKENS_PER_RECOMMENDATION = 250
_EST_MAX_RECOMMENDATIONS = 5


def build_usage(
    provider: Union[ProviderId, str],
    model_id: str,
    reply: NormalizedReply,
    now: Optional[datetime] = None,
) -> Usage:
    """Price ``reply``'s token counts and stamp the capture time."""
    cost = calculate_model_cost(model_id, provider, reply.input_tokens, reply.output_tokens)
    return Usage(
        input_tokens=reply.input_tokens,
        output_tokens=reply.output_tokens,
        cost_usd=cost,
        model=model_id,
        timestamp=now or utc_now(),
        web_searches=reply.web_search_count,
        search_queries=reply.search_queries,
    )


def zero_usage(model_id: str, now: Optional[datetime] = None) -> Usage:
    return Usage(input_tokens=0, output_tokens=0, cost_usd=0.0, model=model_id, timestamp=now or utc_now())


def estimate_analysis_cost(
    market_count: int,
    provider: Union[ProviderId, str],
    model_id: str,
) -> float:
    """Rough USD estimate for analysing ``market_count`` markets in one call."""
    est_input = _EST_PROMPT_TOKENS + market_count * _EST_TOKENS_PER_MARKET
    est_output = _EST_BASE_OUTPUT_TOKENS + min(market_count, _EST_MAX_RECOMMENDATIONS) * _EST_TOKENS_PER_RECOMMENDATION
    return calculate_model_cost(model_id, provider, est_input, est_output)


def format_cost(usd: float) -> str:
    if usd == 0:
        return "$0.00"
    if usd < 0.01:
        return f"{usd * 100:.2f}¢"
    return f"${usd:.4f}"


@dataclass
class CostTracker:
    """Running totals across calls."""
    total_calls: int = 0
    total_input_tokens: int = 0
    total_output_tokens: int = 0
    total_cost_usd: float = 0.0
    history: list[Usage] = field(default_factory=list)

    def add(self, usage: Usage) -> None:
        self.total_calls += 1
        self.total_input_tokens += usage.input_tokens
        self.total_output_tokens += usage.output_tokens
        self.total_cost_usd += usage.cost_usd
        self.history.append(usage)
        logger.info(
            "AI cost: +%s (%s total over %d calls)",
            format_cost(usage.cost_usd), format_cost(self.total_cost_usd), self.total_calls,
        )

    def reset(self) -> None:
        self.total_calls = 0
        self.total_input_tokens = 0
        self.total_output_tokens = 0
        self.total_cost_usd = 0.0
        self.history.clear()
