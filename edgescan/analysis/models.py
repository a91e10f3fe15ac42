"""
Data models for market analysis.

Inputs (markets, positions, the request) are pydantic models so they can be
built straight from Polymarket Gamma payloads.  Outputs are frozen
dataclasses: once an ``AnalysisResult`` is returned it is never mutated.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, SecretStr, field_validator

from .utils import safe_float, safe_json

YES = "YES"
NO = "NO"
SKIP = "SKIP"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


# ── Inputs ───────────────────────────────────────────────────────────

class Market(BaseModel):
    """A binary market as seen at analysis time.  Accepts Gamma field names."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str
    question: str
    outcome_prices: tuple[float, ...] = Field(default=(), alias="outcomePrices")
    volume: float = 0.0
    liquidity: float = 0.0
    end_date: Optional[datetime] = Field(default=None, alias="endDate")
    category: str = ""

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, v: Any) -> str:
        return str(v)

    @field_validator("outcome_prices", mode="before")
    @classmethod
    def _parse_prices(cls, v: Any) -> tuple[float, ...]:
        # Gamma encodes outcomePrices as a JSON string: '["0.42", "0.58"]'
        if isinstance(v, tuple):
            v = list(v)
        return tuple(safe_float(p) for p in safe_json(v))

    @field_validator("volume", "liquidity", mode="before")
    @classmethod
    def _coerce_amount(cls, v: Any) -> float:
        return safe_float(v)

    @field_validator("category", mode="before")
    @classmethod
    def _coerce_category(cls, v: Any) -> str:
        return v or ""

    @property
    def yes_price(self) -> float:
        return self.outcome_prices[0] if self.outcome_prices else 0.0

    @property
    def no_price(self) -> float:
        if len(self.outcome_prices) > 1:
            return self.outcome_prices[1]
        return 1.0 - self.yes_price


class OpenPosition(BaseModel):
    """An order we already hold; its market must not be recommended again."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    market_id: str = Field(alias="marketId")
    question: str = Field(default="", alias="marketQuestion")
    outcome: str = ""
    price: float = 0.0

    @field_validator("market_id", mode="before")
    @classmethod
    def _coerce_id(cls, v: Any) -> str:
        return str(v)


class PerformanceHistory(BaseModel):
    """Resolved-trade track record fed back into the prompt for calibration."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    total_trades: int = Field(default=0, alias="totalTrades")
    wins: int = 0
    losses: int = 0
    total_pnl: float = Field(default=0.0, alias="totalPnl")
    win_rate: float = Field(default=0.0, alias="winRate")  # percent, 0-100


class AnalysisRequest(BaseModel):
    """Everything one analysis call needs.  Built fresh per cycle."""
    model_config = ConfigDict(frozen=True)

    markets: tuple[Market, ...] = ()
    open_positions: tuple[OpenPosition, ...] = ()
    bankroll: float = 0.0
    history: Optional[PerformanceHistory] = None
    api_key: Optional[SecretStr] = None
    as_of: datetime = Field(default_factory=utc_now)


# ── Outputs ──────────────────────────────────────────────────────────

@dataclass(frozen=True)
class RawRecommendation:
    """One per-market recommendation as decoded from the model's JSON."""
    market_id: str
    question: str
    recommended_side: str
    p_real: float
    p_market: float
    p_low: float
    p_high: float
    confidence: int
    reasoning: str = ""
    sources: tuple[str, ...] = ()
    # Optional sizing / execution hints
    ev_net: Optional[float] = None
    max_entry_price: Optional[float] = None
    size_usd: Optional[float] = None
    order_type: Optional[str] = None
    cluster_id: Optional[str] = None
    risks: str = ""
    resolution_criteria: str = ""
    category: Optional[str] = None
    friction: Optional[float] = None
    expires_in_min: Optional[int] = None
    liq_usd: Optional[float] = None
    vol_usd: Optional[float] = None
    data_freshness_score: Optional[int] = None
    execution_notes: Optional[str] = None


@dataclass(frozen=True)
class MarketAnalysis(RawRecommendation):
    """
    A repaired recommendation.

    ``recommended_side`` always agrees with ``p_real`` vs ``p_market``
    (outside the 0.01/0.99 exempt zone).  ``original_side`` keeps what the
    model actually said; ``corrections`` names the repairs applied.
    """
    edge: float = 0.0
    original_side: str = ""
    corrections: tuple[str, ...] = ()


@dataclass(frozen=True)
class SkippedMarket:
    market_id: str
    question: str
    reason: str


@dataclass(frozen=True)
class Usage:
    """Token usage and cost of a single AI call.  Write-once."""
    input_tokens: int
    output_tokens: int
    cost_usd: float
    model: str
    timestamp: datetime
    web_searches: int = 0
    search_queries: tuple[str, ...] = ()


@dataclass(frozen=True)
class AnalysisResult:
    """The sole object handed downstream (stake sizing, audit log)."""
    analyses: tuple[MarketAnalysis, ...]
    skipped: tuple[SkippedMarket, ...]
    usage: Usage
    summary: str
    prompt: str
    raw_response: str
    response_time_ms: int

    def to_dict(self) -> dict[str, Any]:
        """JSON-friendly representation for the audit log."""
        data = asdict(self)
        data["usage"]["timestamp"] = self.usage.timestamp.isoformat()
        return data
