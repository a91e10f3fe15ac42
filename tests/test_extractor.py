import json

import pytest

from edgescan.analysis.extractor import (
    correct_orientation,
    correct_side,
    extract_analyses,
    extract_json,
    parse_recommendation,
    to_market_analysis,
)
from edgescan.analysis.models import RawRecommendation


def _rec(**overrides) -> RawRecommendation:
    fields = dict(
        market_id="m1",
        question="Will it rain?",
        recommended_side="YES",
        p_real=0.5,
        p_market=0.5,
        p_low=0.4,
        p_high=0.6,
        confidence=70,
    )
    fields.update(overrides)
    return RawRecommendation(**fields)


def _reply(*recommendations, **extra) -> str:
    return json.dumps({"summary": "s", "recommendations": list(recommendations), **extra})


# ── JSON location ────────────────────────────────────────────────────

def test_extract_plain_object():
    assert extract_json('{"a": 1}') == {"a": 1}


def test_extract_fenced_block():
    assert extract_json('Sure!\n```json\n{"a": {"b": 2}}\n```\nDone.') == {"a": {"b": 2}}


def test_extract_from_prose_with_braces_in_strings():
    text = 'I looked at {several} sources. {"summary": "use } carefully", "n": [1, {"x": 2}]} Thanks'
    assert extract_json(text) == {"summary": "use } carefully", "n": [1, {"x": 2}]}


@pytest.mark.parametrize("text", ["", "no json here", "{broken", "[1, 2, 3]"])
def test_extract_nothing(text):
    assert extract_json(text) is None


# ── Decoding ─────────────────────────────────────────────────────────

def test_permissive_numbers():
    item = parse_recommendation({
        "marketId": 123,
        "recommendedSide": " yes ",
        "pReal": "0.62",
        "pMarket": "NaN",
        "pLow": None,
        "pHigh": "garbage",
        "confidence": "72.9",
        "sources": "single source",
        "sizeUsd": "12.5",
    })
    assert item.market_id == "123"
    assert item.recommended_side == "YES"
    assert item.p_real == 0.62
    assert item.p_market == 0.0
    assert item.p_low == 0.0 and item.p_high == 0.0
    assert item.confidence == 72
    assert item.sources == ("single source",)
    assert item.size_usd == 12.5
    assert item.ev_net is None


def test_missing_side_defaults_to_skip():
    assert parse_recommendation({"marketId": "x"}).recommended_side == "SKIP"


# ── Repairs ──────────────────────────────────────────────────────────

def test_orientation_fix_flips_probabilities():
    fixed = correct_orientation(_rec(recommended_side="NO", p_real=0.7, p_low=0.6, p_high=0.8))
    assert fixed.recommended_side == "NO"
    assert fixed.p_real == pytest.approx(0.3)
    assert fixed.p_low == pytest.approx(0.2)
    assert fixed.p_high == pytest.approx(0.4)


def test_orientation_fix_leaves_yes_alone():
    item = _rec(recommended_side="YES", p_real=0.7)
    assert correct_orientation(item) is item


def test_side_fix():
    analysis = to_market_analysis(_rec(recommended_side="YES", p_real=0.3, p_market=0.6))
    assert analysis.recommended_side == "NO"
    assert analysis.edge == pytest.approx(0.3)
    assert analysis.original_side == "YES"
    assert analysis.corrections == ("side",)


def test_side_fix_no_to_yes():
    fixed = correct_side(_rec(recommended_side="NO", p_real=0.45, p_market=0.2))
    assert fixed.recommended_side == "YES"


@pytest.mark.parametrize("side, p_real", [("YES", 0.1), ("NO", 0.999), ("YES", 0.0), ("NO", 0.5)])
def test_exempt_zone_never_flips_side(side, p_real):
    item = _rec(recommended_side=side, p_real=p_real, p_market=0.995)
    assert correct_side(item) is item


def test_both_repairs_recorded():
    # NO with pReal=0.8 reads as P(NO); flipped to 0.2, which is above pMarket 0.1 -> YES.
    analysis = to_market_analysis(_rec(recommended_side="NO", p_real=0.8, p_market=0.1, p_low=0.7, p_high=0.9))
    assert analysis.corrections == ("orientation", "side")
    assert analysis.recommended_side == "YES"
    assert analysis.original_side == "NO"
    assert analysis.p_real == pytest.approx(0.2)


def test_repairs_do_not_mutate_input():
    item = _rec(recommended_side="YES", p_real=0.3, p_market=0.6)
    to_market_analysis(item)
    assert item.recommended_side == "YES"


def test_repair_is_logged(caplog):
    with caplog.at_level("WARNING"):
        correct_side(_rec(recommended_side="YES", p_real=0.3, p_market=0.6))
    assert "Side fix" in caplog.text


# ── Whole-reply extraction ───────────────────────────────────────────

def test_skip_recommendations_are_dropped():
    text = _reply(
        {"marketId": "a", "recommendedSide": "SKIP", "pReal": 0.5, "pMarket": 0.5},
        {"marketId": "b", "recommendedSide": "maybe", "pReal": 0.5, "pMarket": 0.5},
        {"marketId": "c", "recommendedSide": "YES", "pReal": 0.6, "pMarket": 0.5},
    )
    result = extract_analyses(text, "openai")
    assert [a.market_id for a in result.analyses] == ["c"]


def test_skipped_list_parsed():
    text = _reply(skipped=[{"marketId": "a", "question": "q", "skipReason": "thin book"}, "junk", {"marketId": "b"}])
    result = extract_analyses(text, "xai")
    assert [(s.market_id, s.reason) for s in result.skipped] == [("a", "thin book"), ("b", "No reason given")]


def test_edge_guard():
    text = _reply(
        {"marketId": "wild", "recommendedSide": "YES", "pReal": 0.95, "pMarket": 0.3},
        {"marketId": "sane", "recommendedSide": "YES", "pReal": 0.45, "pMarket": 0.3},
    )
    assert len(extract_analyses(text, "google").analyses) == 2
    guarded = extract_analyses(text, "google", max_edge=0.40)
    assert [a.market_id for a in guarded.analyses] == ["sane"]


def test_unparseable_reply_degrades():
    result = extract_analyses("I could not find anything useful today.", "deepseek")
    assert result.analyses == ()
    assert result.parsed is False
    assert result.summary
    assert "deepseek" in result.summary


def test_non_list_recommendations_ignored():
    result = extract_analyses('{"summary": "ok", "recommendations": "none"}', "anthropic")
    assert result.parsed
    assert result.analyses == ()
    assert result.summary == "ok"
