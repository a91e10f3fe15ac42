"""Shared fixtures: sample markets, canned provider replies, a fake clock."""

from __future__ import annotations

import json
from datetime import datetime, timezone

import httpx
import pytest

from edgescan.analysis.models import AnalysisRequest, Market, OpenPosition

AS_OF = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)

# One cheap, unpaced model per provider.
MODELS = {
    "anthropic": "claude-sonnet-4-5",
    "google": "gemini-2.0-flash",
    "openai": "gpt-4o-mini",
    "xai": "grok-3-mini",
    "deepseek": "deepseek-chat",
}

ANALYSIS_JSON = {
    "summary": "One weather edge found.",
    "skipped": [{"marketId": "m2", "question": "BTC above 100k?", "reason": "Priced fairly"}],
    "recommendations": [
        {
            "marketId": "m1",
            "question": "Will NYC get more than 2in of rain on March 3?",
            "recommendedSide": "YES",
            "pReal": 0.55,
            "pMarket": 0.42,
            "pLow": 0.48,
            "pHigh": 0.62,
            "confidence": 72,
            "reasoning": "NWS forecast shows a coastal storm.",
            "sources": ["NWS - 2026-03-01 - https://weather.gov"],
        }
    ],
}


class FakeClock:
    """Deterministic clock whose ``sleep`` advances time instead of waiting."""

    def __init__(self, start: float = 1_000_000.0):
        self.now = start
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


def provider_reply(provider: str, text: str, input_tokens: int = 1200, output_tokens: int = 300) -> dict:
    """A minimal successful reply in ``provider``'s wire shape."""
    if provider == "anthropic":
        return {
            "content": [
                {"type": "server_tool_use", "name": "web_search", "input": {"query": "NYC rain forecast"}},
                {"type": "web_search_tool_result", "content": []},
                {"type": "text", "text": text},
            ],
            "usage": {"input_tokens": input_tokens, "output_tokens": output_tokens},
        }
    if provider == "google":
        return {
            "candidates": [
                {
                    "content": {"parts": [{"text": text}]},
                    "groundingMetadata": {"webSearchQueries": ["NYC rain forecast"]},
                }
            ],
            "usageMetadata": {"promptTokenCount": input_tokens, "candidatesTokenCount": output_tokens},
        }
    return {
        "choices": [{"message": {"role": "assistant", "content": text}}],
        "usage": {"prompt_tokens": input_tokens, "completion_tokens": output_tokens},
    }


def proxy_provider(request: httpx.Request) -> str:
    """Map a proxy URL back to the provider it targets."""
    function = request.url.path.rsplit("/", 1)[-1]
    return {
        "claude-proxy": "anthropic",
        "gemini-proxy": "google",
        "openai-proxy": "openai",
        "xai-proxy": "xai",
        "deepseek-proxy": "deepseek",
    }[function]


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def markets() -> tuple[Market, ...]:
    return (
        Market.model_validate({
            "id": "m1",
            "question": "Will NYC get more than 2in of rain on March 3?",
            "outcomePrices": '["0.42", "0.58"]',
            "volume": "12500",
            "liquidity": "15000",
            "endDate": "2026-03-03T23:59:00Z",
            "category": "weather",
        }),
        Market(
            id="m2",
            question="BTC above 100k?",
            outcome_prices=(0.61, 0.39),
            volume=2_500_000,
            liquidity=80_000,
            end_date=datetime(2026, 3, 1, 18, 0, tzinfo=timezone.utc),
        ),
    )


@pytest.fixture
def request_(markets) -> AnalysisRequest:
    return AnalysisRequest(
        markets=markets,
        open_positions=(
            OpenPosition(market_id="m9", question="Fed cuts in March?", outcome="NO", price=0.8),
        ),
        bankroll=250.0,
        api_key="sk-user-secret-key-123",
        as_of=AS_OF,
    )


@pytest.fixture
def analysis_text() -> str:
    return "Here is my analysis:\n```json\n" + json.dumps(ANALYSIS_JSON) + "\n```"
