"""
Canonical analysis prompt and capability adaptation.

``build_prompt`` renders the same prompt for every provider; it depends only
on the ``AnalysisRequest``.  ``adapt_prompt`` rewrites the search-oriented
instructions for models without web search.
"""

from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import Optional

from .models import AnalysisRequest, Market, OpenPosition, PerformanceHistory

NO_SEARCH_DISCLAIMER = (
    "NOTE: This model has no web search access. Use your training data.\n\n"
)

# Applied in order.  No replacement contains "web_search", so a second pass
# finds nothing to rewrite.
_SEARCH_SUBSTITUTIONS: tuple[tuple[re.Pattern[str], str], ...] = (
    (
        re.compile(r"Research ALL .+ markets using web_search\."),
        "Analyze ALL markets using your training data and reasoning.",
    ),
    (re.compile(r"Use as many web_search calls as you need"), "Use your best reasoning"),
    (re.compile(r"using web_search"), "using your knowledge"),
    (re.compile(r"with web_search"), "with your knowledge"),
)


# ── Formatting helpers ───────────────────────────────────────────────

def estimate_spread(liquidity: float) -> float:
    """Rough bid-ask spread implied by market liquidity."""
    if liquidity >= 50_000:
        return 0.01
    if liquidity >= 10_000:
        return 0.025
    if liquidity >= 2_000:
        return 0.045
    if liquidity >= 1_000:
        return 0.06
    return 0.08


def _usd_short(amount: float) -> str:
    if amount >= 1_000_000:
        return f"${amount / 1_000_000:.1f}M"
    if amount >= 1_000:
        return f"${amount / 1_000:.0f}K"
    return f"${amount:.0f}"


def _minutes_left(market: Market, now: datetime) -> int:
    if market.end_date is None:
        return 0
    end = market.end_date
    if end.tzinfo is None:
        end = end.replace(tzinfo=timezone.utc)
    return max(0, round((end - now).total_seconds() / 60))


def format_market_line(index: int, market: Market, now: datetime) -> str:
    minutes = _minutes_left(market, now)
    spread = estimate_spread(market.liquidity)
    return (
        f'[{index}] "{market.question}" '
        f"| YES={market.yes_price * 100:.0f}¢ NO={market.no_price * 100:.0f}¢ "
        f"| Vol={_usd_short(market.volume)} | Liq={_usd_short(market.liquidity)} "
        f"| Spread=~{spread * 100:.1f}% "
        f"| Expires: {minutes / 60:.1f}h ({minutes}min) | ID:{market.id}"
    )


def format_blacklist(positions: tuple[OpenPosition, ...]) -> str:
    # Positions priced at 0¢/100¢ are effectively resolved and not worth listing.
    active = [p for p in positions if 0 < round(p.price * 100) < 100]
    if not active:
        return "  (none)"
    return "\n".join(
        f'  - [ID:{p.market_id}] "{p.question[:100]}" → {p.outcome} @ {p.price * 100:.0f}¢'
        for p in active
    )


def format_history(history: Optional[PerformanceHistory]) -> str:
    if history is None or history.total_trades <= 0:
        return "HISTORY: No resolved trades yet — be conservative, require strong evidence."

    if history.win_rate >= 55:
        guidance = "Calibration OK — maintain discipline."
    elif history.win_rate >= 45:
        guidance = "Marginal — tighten confidence thresholds, require stronger edge."
    else:
        guidance = (
            "Poor — be MORE conservative, raise minimum confidence to 70, "
            "minimum edge to 0.12."
        )
    return (
        f'HISTORY: {{"trades": {history.total_trades}, "wins": {history.wins}, '
        f'"losses": {history.losses}, "winRate": {history.win_rate / 100:.2f}, '
        f'"pnl": {history.total_pnl:.2f}}}\n  → {guidance}'
    )


# ── Prompt ───────────────────────────────────────────────────────────

def build_prompt(request: AnalysisRequest) -> str:
    """Render the provider-agnostic analysis prompt for ``request``."""
    now = request.as_of
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    n = len(request.markets)
    bankroll = request.bankroll
    market_lines = "\n".join(
        format_market_line(i, m, now) for i, m in enumerate(request.markets, start=1)
    )

    return f"""Polymarket mispricing scanner. Find where public data disagrees with market prices.

UTC: {now.isoformat()} | BANKROLL: ${bankroll:.2f} | {format_history(request.history)}

═══ DEEP RESEARCH — ANALYZE ALL {n} MARKETS ═══
Use as many web_search calls as you need per market. For each market:
  1. Find the most relevant, recent data (forecasts, polls, official results, news)
  2. If the first pass isn't conclusive, look again from a different angle
  3. Compute pReal from the data you found
  4. Decide: recommend (if edge exists) or skip (explain why with data)

BLACKLIST (already own — do NOT recommend):
{format_blacklist(request.open_positions)}

MARKETS ({n}):
{market_lines}

PROCESS: Research ALL {n} markets using web_search. For each market: research → analyze → decide.

MATH:
  pReal = ALWAYS P(YES outcome happens). NOT the probability that your bet wins.
  pMarket = YES price shown above, as a decimal.
  If side=YES → pReal MUST be > pMarket. If side=NO → pReal MUST be < pMarket.
  edge = |pReal - pMarket|; minEdge = max(0.06, spread + 0.04).
  evNet = edge - friction (use the Spread shown; add 2% if expiring in <30min). Must be > 0.
  kelly = (pReal*b - q)/b where b = 1/price - 1, q = 1 - pReal. sizeUsd = kelly*0.50*bankroll, cap ${bankroll * 0.1:.2f}, min $2.
  confidence is an integer 0-100; ≥60 required to recommend. Fewer than 2 sources → confidence ≤40 → skip.
  Price of the recommended side must be 5¢-95¢.
  Max 1 recommendation per cluster of mutually exclusive markets (same subject, same metric).

CRITICAL RULES:
  - Do not invent facts. Cite dated sources; say "insufficient data" rather than guessing.
  - edge > 0.40 is ALWAYS wrong: re-derive pReal closer to pMarket.
  - If the market price already reflects common knowledge, keep pReal within ±0.15 of pMarket.
  - Back every claim about an already-resolved outcome with a source found with web_search.

OUTPUT: Raw JSON only, no code fence.
{{
  "summary": "1-2 lines",
  "skipped": [
    {{"marketId": "ID", "question": "short", "reason": "brief why"}}
  ],
  "recommendations": [
    {{
      "marketId": "ID from market list",
      "question": "exact question",
      "category": "weather|politics|geopolitics|entertainment|finance|crypto|other",
      "clusterId": "cluster-id|null",
      "pMarket": 0.00, "pReal": 0.00, "pLow": 0.00, "pHigh": 0.00,
      "edge": 0.00, "friction": 0.00, "evNet": 0.00,
      "confidence": 0,
      "recommendedSide": "YES|NO",
      "maxEntryPrice": 0.00, "sizeUsd": 0.00, "orderType": "LIMIT",
      "reasoning": "3-5 lines with data + logic",
      "sources": ["Source - YYYY-MM-DD - URL"],
      "risks": "1-2 lines",
      "resolutionCriteria": "how it resolves",
      "expiresInMin": 0, "liqUsd": 0, "volUsd": 0,
      "executionNotes": "spread/timing notes"
    }}
  ]
}}
Always list every market you did NOT recommend in "skipped" with a brief reason.
If nothing qualifies: {{"summary":"reason","skipped":[...],"recommendations":[]}}

FINAL CHECK for each recommendation before writing the JSON:
  1. pReal = P(YES happens)?
  2. side agrees with pReal vs pMarket?
  3. edge ≤ 0.40?
Never finish your response without the complete JSON output."""


def adapt_prompt(prompt: str, has_web_search: bool) -> str:
    """
    Rewrite search instructions for a model without web search.

    Idempotent: adapting an already-adapted prompt returns it unchanged.
    """
    if has_web_search:
        return prompt
    for pattern, replacement in _SEARCH_SUBSTITUTIONS:
        prompt = pattern.sub(replacement, prompt)
    if not prompt.startswith(NO_SEARCH_DISCLAIMER):
        prompt = NO_SEARCH_DISCLAIMER + prompt
    return prompt
