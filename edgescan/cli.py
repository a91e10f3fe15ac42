"""
Command-line entry points.

    python -m edgescan.cli analyze --markets markets.json [--provider anthropic]
        [--model claude-sonnet-4-5] [--bankroll 100] [--config config.yaml]
    python -m edgescan.cli check-key --provider google

The markets file is either a JSON list of Gamma-style markets or an object
with ``markets`` and optional ``openPositions`` / ``history`` keys.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys

from .analysis.cost import format_cost
from .analysis.models import AnalysisResult
from .analysis.service import MarketAnalyzer
from .bot.config import load_config, provider_api_key
from .bot.database import Database, DatabaseTimestampStore
from .bot.ratelimit import RateLimiter
from .errors import ConfigurationError
from .providers.catalog import get_model, resolve_provider_id
from .providers.keycheck import test_api_key
from .providers.transport import ProxyClient


def _load_markets_file(path: str) -> dict:
    with open(path, "r") as f:
        data = json.load(f)
    if isinstance(data, list):
        return {"markets": data}
    if isinstance(data, dict) and isinstance(data.get("markets"), list):
        return data
    raise ConfigurationError(f"{path}: expected a list of markets or an object with 'markets'")


def _print_result(result: AnalysisResult) -> None:
    print(f"\n{result.summary}\n")
    for a in result.analyses:
        fixed = f" (was {a.original_side}: {', '.join(a.corrections)})" if a.corrections else ""
        print(
            f"  {a.recommended_side:<3} {a.question[:70]:<70} "
            f"pReal={a.p_real:.2f} pMarket={a.p_market:.2f} edge={a.edge:.2f} "
            f"conf={a.confidence}{fixed}"
        )
    for s in result.skipped:
        print(f"  skip {s.question[:70]:<70} {s.reason}")
    u = result.usage
    print(
        f"\n{u.model}: {u.input_tokens}+{u.output_tokens} tokens, "
        f"{u.web_searches} searches, {format_cost(u.cost_usd)}, {result.response_time_ms}ms"
    )


async def run_analysis(
    markets_path: str,
    provider: str | None = None,
    model_id: str | None = None,
    bankroll: float = 100.0,
    config_path: str = "config.yaml",
) -> AnalysisResult:
    """High-level entry: load config and markets, run one analysis, log it."""
    config = load_config(config_path)
    analysis_cfg = config["analysis"]
    provider_id = resolve_provider_id(provider or analysis_cfg["provider"])
    model_id = model_id or analysis_cfg.get("model")
    if not model_id:
        raise ConfigurationError("No model given (--model or analysis.model in config)")
    get_model(provider_id, model_id)

    db = Database(config["database"]["path"])
    await db.init_schema()

    proxy_cfg = config["proxy"]
    analyzer = MarketAnalyzer(
        proxy=ProxyClient(proxy_cfg["base_url"], proxy_cfg["service_key"]),
        rate_limiter=RateLimiter(DatabaseTimestampStore(db)),
        max_edge=analysis_cfg.get("max_edge"),
    )

    payload = _load_markets_file(markets_path)
    result = await analyzer.analyze_markets(
        provider_id,
        model_id,
        payload["markets"],
        open_positions=payload.get("openPositions") or (),
        bankroll=bankroll,
        history=payload.get("history"),
        api_key=provider_api_key(provider_id),
    )
    if result.prompt:
        await db.record_result(provider_id, result)
    return result


async def run_key_check(provider: str) -> bool:
    provider_id = resolve_provider_id(provider)
    api_key = provider_api_key(provider_id) or ""
    result = await test_api_key(provider_id, api_key)
    status = "OK" if result.valid else "FAIL"
    print(f"[{status}] {provider_id.value}: {result.message}")
    return result.valid


def main() -> None:
    """CLI entry point."""
    parser = argparse.ArgumentParser(description="Polymarket mispricing scanner")
    sub = parser.add_subparsers(dest="command", required=True)

    analyze = sub.add_parser("analyze", help="Analyze a batch of markets with one model")
    analyze.add_argument("--markets", required=True, help="JSON file with markets")
    analyze.add_argument("--provider", help="AI provider (default: from config)")
    analyze.add_argument("--model", help="Model id (default: from config)")
    analyze.add_argument(
        "--bankroll", type=float, default=100.0, help="Bankroll in USD (default: 100)"
    )
    analyze.add_argument("--config", default="config.yaml", help="Config file path")

    check = sub.add_parser("check-key", help="Validate the provider API key from the environment")
    check.add_argument("--provider", required=True, help="AI provider")

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    if args.command == "check-key":
        ok = asyncio.run(run_key_check(args.provider))
        sys.exit(0 if ok else 1)

    result = asyncio.run(
        run_analysis(
            markets_path=args.markets,
            provider=args.provider,
            model_id=args.model,
            bankroll=args.bankroll,
            config_path=args.config,
        )
    )
    _print_result(result)


if __name__ == "__main__":
    main()
