from datetime import datetime, timezone

from edgescan.analysis.models import AnalysisRequest, OpenPosition, PerformanceHistory
from edgescan.analysis.prompts import (
    NO_SEARCH_DISCLAIMER,
    adapt_prompt,
    build_prompt,
    estimate_spread,
    format_blacklist,
    format_history,
)


def test_prompt_lists_every_market(request_):
    prompt = build_prompt(request_)
    assert "ID:m1" in prompt
    assert "ID:m2" in prompt
    assert "MARKETS (2):" in prompt
    assert "YES=42¢ NO=58¢" in prompt
    assert "BANKROLL: $250.00" in prompt
    assert "2026-03-01T12:00:00+00:00" in prompt


def test_prompt_is_deterministic(request_):
    assert build_prompt(request_) == build_prompt(request_)


def test_market_line_time_to_expiry(request_):
    prompt = build_prompt(request_)
    # m2 closes six hours after as_of.
    assert "Expires: 6.0h (360min) | ID:m2" in prompt


def test_blacklist_includes_open_positions(request_):
    prompt = build_prompt(request_)
    assert '[ID:m9] "Fed cuts in March?" → NO @ 80¢' in prompt


def test_blacklist_ignores_resolved_positions():
    positions = (
        OpenPosition(market_id="a", question="Resolved yes", outcome="YES", price=1.0),
        OpenPosition(market_id="b", question="Resolved no", outcome="NO", price=0.0),
    )
    assert format_blacklist(positions) == "  (none)"


def test_history_guidance():
    assert "No resolved trades yet" in format_history(None)
    good = PerformanceHistory(totalTrades=20, wins=13, losses=7, totalPnl=41.5, winRate=65)
    assert "Calibration OK" in format_history(good)
    poor = PerformanceHistory(total_trades=20, wins=6, losses=14, total_pnl=-30, win_rate=30)
    assert "MORE conservative" in format_history(poor)


def test_spread_bands():
    assert estimate_spread(60_000) == 0.01
    assert estimate_spread(10_000) == 0.025
    assert estimate_spread(2_000) == 0.045
    assert estimate_spread(1_500) == 0.06
    assert estimate_spread(10) == 0.08


def test_adapt_is_noop_with_search(request_):
    prompt = build_prompt(request_)
    assert adapt_prompt(prompt, True) == prompt


def test_adapt_removes_search_instructions(request_):
    adapted = adapt_prompt(build_prompt(request_), False)
    assert adapted.startswith(NO_SEARCH_DISCLAIMER)
    assert "web_search" not in adapted
    assert "Analyze ALL markets using your training data and reasoning." in adapted
    assert "Use your best reasoning per market." in adapted


def test_adapt_is_idempotent(request_):
    once = adapt_prompt(build_prompt(request_), False)
    assert adapt_prompt(once, False) == once


def test_naive_as_of_treated_as_utc(markets):
    naive = AnalysisRequest(markets=markets, as_of=datetime(2026, 3, 1, 12, 0))
    aware = AnalysisRequest(markets=markets, as_of=naive.as_of.replace(tzinfo=timezone.utc))
    assert build_prompt(naive) == build_prompt(aware)
