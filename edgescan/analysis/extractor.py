"""
Recommendation extraction and self-consistency repair.

Models wrap their JSON in prose or code fences, report probabilities in the
wrong orientation, and recommend the side their own numbers argue against.
This module finds the JSON, decodes it permissively, and applies two pure
repairs per recommendation:

  1. orientation — side=NO with pReal > 0.5 means the model reported
     P(NO) instead of P(YES); flip pReal and the bounds.
  2. side       — outside the 0.01/0.99 exempt zone, the side must agree
     with pReal vs pMarket; flip it when it doesn't.

Both are heuristics, logged at WARNING and recorded on the analysis.
Nothing in here raises on bad model output.
"""

from __future__ import annotations

import dataclasses
import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Optional

from .models import NO, SKIP, YES, MarketAnalysis, RawRecommendation, SkippedMarket
from .utils import safe_float, safe_int, safe_str

logger = logging.getLogger(__name__)

EXEMPT_LOW = 0.01
EXEMPT_HIGH = 0.99

_FENCE_RE = re.compile(r"```(?:json)?\s*\n?([\s\S]*?)\n?\s*```")


# ── JSON location ────────────────────────────────────────────────────

def _balanced_object(text: str, start: int) -> Optional[str]:
    """Return the ``{...}`` span starting at ``start``, honouring JSON strings."""
    depth = 0
    in_string = False
    escaped = False
    for i in range(start, len(text)):
        ch = text[i]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
        elif ch == '"':
            in_string = True
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return text[start:i + 1]
    return None


def _loads_object(candidate: str) -> Optional[dict]:
    try:
        data = json.loads(candidate)
    except (json.JSONDecodeError, TypeError):
        return None
    return data if isinstance(data, dict) else None


def extract_json(raw: str) -> Optional[dict]:
    """
    Locate and decode the outermost JSON object embedded in ``raw``.

    Tries, in order: the whole text, the first fenced code block, then each
    balanced ``{...}`` span from left to right.  Returns ``None`` when no
    candidate decodes to a JSON object.
    """
    if not raw:
        return None
    trimmed = raw.strip()

    if trimmed.startswith("{"):
        data = _loads_object(trimmed)
        if data is not None:
            return data

    fence = _FENCE_RE.search(raw)
    if fence:
        data = _loads_object(fence.group(1).strip())
        if data is not None:
            return data

    start = raw.find("{")
    while start != -1:
        candidate = _balanced_object(raw, start)
        if candidate is None:
            break
        data = _loads_object(candidate)
        if data is not None:
            return data
        start = raw.find("{", start + 1)
    return None


# ── Decoding ─────────────────────────────────────────────────────────

def _opt_float(val: Any) -> Optional[float]:
    # Zero and unparseable both mean "not provided" for sizing hints.
    return safe_float(val) or None


def _opt_int(val: Any) -> Optional[int]:
    return safe_int(val) or None


def _opt_str(val: Any) -> Optional[str]:
    return safe_str(val) or None


def parse_recommendation(item: dict) -> RawRecommendation:
    """Decode one ``recommendations[]`` entry; never raises on bad values."""
    sources = item.get("sources")
    if isinstance(sources, str):
        sources = [sources]
    elif not isinstance(sources, list):
        sources = []

    return RawRecommendation(
        market_id=safe_str(item.get("marketId")),
        question=safe_str(item.get("question")),
        recommended_side=safe_str(item.get("recommendedSide"), SKIP).strip().upper() or SKIP,
        p_real=safe_float(item.get("pReal")),
        p_market=safe_float(item.get("pMarket")),
        p_low=safe_float(item.get("pLow")),
        p_high=safe_float(item.get("pHigh")),
        confidence=safe_int(item.get("confidence")),
        reasoning=safe_str(item.get("reasoning")),
        sources=tuple(safe_str(s) for s in sources if s),
        ev_net=_opt_float(item.get("evNet")),
        max_entry_price=_opt_float(item.get("maxEntryPrice")),
        size_usd=_opt_float(item.get("sizeUsd")),
        order_type=_opt_str(item.get("orderType")),
        cluster_id=_opt_str(item.get("clusterId")),
        risks=safe_str(item.get("risks")),
        resolution_criteria=safe_str(item.get("resolutionCriteria")),
        category=_opt_str(item.get("category")),
        friction=_opt_float(item.get("friction")),
        expires_in_min=_opt_int(item.get("expiresInMin")),
        liq_usd=_opt_float(item.get("liqUsd")),
        vol_usd=_opt_float(item.get("volUsd")),
        data_freshness_score=_opt_int(item.get("dataFreshnessScore")),
        execution_notes=_opt_str(item.get("executionNotes")),
    )


def parse_skipped(item: Any) -> Optional[SkippedMarket]:
    if not isinstance(item, dict):
        return None
    return SkippedMarket(
        market_id=safe_str(item.get("marketId")),
        question=safe_str(item.get("question")),
        reason=safe_str(item.get("reason") or item.get("skipReason"), "No reason given"),
    )


# ── Repairs ──────────────────────────────────────────────────────────

def correct_orientation(item: RawRecommendation) -> RawRecommendation:
    """
    Flip pReal and its bounds when a NO recommendation reports P(NO).

    A NO recommendation with pReal > 0.5 is read as "probability my NO bet
    wins"; after the flip pReal is P(YES).  Heuristic: it cannot tell a
    genuine P(YES) > 0.5 paired with a deliberate NO.
    """
    if item.recommended_side != NO or item.p_real <= 0.5:
        return item
    logger.warning(
        "Orientation fix [%s]: side=NO but pReal=%.3f > 0.50 -> %.3f",
        item.market_id, item.p_real, 1 - item.p_real,
    )
    return dataclasses.replace(
        item,
        p_real=1 - item.p_real,
        p_low=1 - item.p_high,
        p_high=1 - item.p_low,
    )


def correct_side(item: RawRecommendation) -> RawRecommendation:
    """Make the side agree with pReal vs pMarket (outside the exempt zone)."""
    if not EXEMPT_LOW < item.p_market < EXEMPT_HIGH:
        return item
    if item.recommended_side == YES and item.p_real < item.p_market:
        new_side = NO
    elif item.recommended_side == NO and item.p_real > item.p_market:
        new_side = YES
    else:
        return item
    logger.warning(
        "Side fix [%s]: side=%s but pReal(%.3f) vs pMarket(%.3f) -> %s",
        item.market_id, item.recommended_side, item.p_real, item.p_market, new_side,
    )
    return dataclasses.replace(item, recommended_side=new_side)


def to_market_analysis(item: RawRecommendation) -> MarketAnalysis:
    """Apply both repairs in order and derive the edge."""
    corrections: list[str] = []

    oriented = correct_orientation(item)
    if oriented is not item:
        corrections.append("orientation")

    sided = correct_side(oriented)
    if sided is not oriented:
        corrections.append("side")

    return MarketAnalysis(
        **{f.name: getattr(sided, f.name) for f in dataclasses.fields(RawRecommendation)},
        edge=abs(sided.p_real - sided.p_market),
        original_side=item.recommended_side,
        corrections=tuple(corrections),
    )


# ── Whole-reply extraction ───────────────────────────────────────────

@dataclass(frozen=True)
class ExtractedReply:
    summary: str
    analyses: tuple[MarketAnalysis, ...] = ()
    skipped: tuple[SkippedMarket, ...] = ()
    parsed: bool = True


def extract_analyses(
    text: str,
    provider: str,
    max_edge: Optional[float] = None,
) -> ExtractedReply:
    """
    Turn a model reply into repaired analyses.

    Recommendations whose final side is not YES/NO (``SKIP``, missing,
    garbage) are dropped.  With ``max_edge`` set, analyses whose edge
    exceeds it are dropped as implausible.  A reply without a decodable
    JSON object yields a degraded, ``parsed=False`` result.
    """
    data = extract_json(text)
    if data is None:
        logger.error("Could not parse JSON from %s response: %s", provider, (text or "")[:500])
        return ExtractedReply(
            summary=f"Error: could not parse the {provider} response",
            parsed=False,
        )

    skipped_raw = data.get("skipped")
    skipped = tuple(
        s for s in (parse_skipped(i) for i in skipped_raw) if s is not None
    ) if isinstance(skipped_raw, list) else ()

    analyses: list[MarketAnalysis] = []
    recs = data.get("recommendations")
    for item in recs if isinstance(recs, list) else []:
        if not isinstance(item, dict):
            continue
        analysis = to_market_analysis(parse_recommendation(item))
        if analysis.recommended_side not in (YES, NO):
            logger.debug("Dropping %s recommendation for %s", analysis.recommended_side, analysis.market_id)
            continue
        if max_edge is not None and analysis.edge > max_edge:
            logger.warning(
                "Edge guard: rejected %r, edge %.1f%% > %.0f%%",
                analysis.question, analysis.edge * 100, max_edge * 100,
            )
            continue
        analyses.append(analysis)

    return ExtractedReply(
        summary=safe_str(data.get("summary")),
        analyses=tuple(analyses),
        skipped=skipped,
    )
