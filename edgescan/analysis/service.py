"""
Market analysis orchestrator.

One call, one model, one batch of markets:

    rate-limit wait -> prompt -> capability adapt -> encode -> proxy POST
    -> normalize -> extract/correct -> cost -> AnalysisResult

The reference provider (Anthropic) takes a specialised path: the prompt is
sent unadapted and the web-search tool is always declared.  Every other
provider goes through the generic adapter pipeline.  The result shape is
identical either way.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Iterable, Optional, Union

from ..providers import REFERENCE_PROVIDER, get_adapter
from ..providers.base import ProviderAdapter
from ..providers.catalog import ModelDescriptor, ProviderId, get_model, resolve_provider_id
from ..providers.transport import ProxyClient
from ..bot.ratelimit import MemoryTimestampStore, RateLimiter
from .cost import build_usage, zero_usage
from .extractor import extract_analyses
from .models import (
    AnalysisRequest,
    AnalysisResult,
    Market,
    OpenPosition,
    PerformanceHistory,
)
from .prompts import adapt_prompt, build_prompt

logger = logging.getLogger(__name__)

EMPTY_SUMMARY = "No markets to analyze."


class MarketAnalyzer:
    """Runs one analysis call per invocation against any supported provider."""

    def __init__(
        self,
        proxy: ProxyClient,
        rate_limiter: Optional[RateLimiter] = None,
        max_edge: Optional[float] = None,
    ):
        self.proxy = proxy
        self.rate_limiter = rate_limiter or RateLimiter(MemoryTimestampStore())
        self.max_edge = max_edge

    async def analyze_markets(
        self,
        provider: Union[ProviderId, str],
        model_id: str,
        markets: Iterable[Union[Market, dict]],
        open_positions: Iterable[Union[OpenPosition, dict]] = (),
        bankroll: float = 0.0,
        history: Optional[Union[PerformanceHistory, dict]] = None,
        api_key: Optional[str] = None,
    ) -> AnalysisResult:
        """Build an ``AnalysisRequest`` from loose inputs and analyse it."""
        request = AnalysisRequest(
            markets=tuple(markets),
            open_positions=tuple(open_positions),
            bankroll=bankroll,
            history=history,
            api_key=api_key,
        )
        return await self.analyze(provider, model_id, request)

    async def analyze(
        self,
        provider: Union[ProviderId, str],
        model_id: str,
        request: AnalysisRequest,
    ) -> AnalysisResult:
        """
        Analyse ``request.markets`` with ``model_id``.

        Raises:
            ConfigurationError: unknown provider or model.
            ProviderRequestError: non-2xx response or network failure.
        """
        provider_id = resolve_provider_id(provider)
        model = get_model(provider_id, model_id)

        if not request.markets:
            logger.info("No markets to analyze, skipping %s call", provider_id.value)
            return AnalysisResult(
                analyses=(),
                skipped=(),
                usage=zero_usage(model_id),
                summary=EMPTY_SUMMARY,
                prompt="",
                raw_response="",
                response_time_ms=0,
            )

        await self.rate_limiter.wait(model)

        adapter = get_adapter(provider_id)
        if provider_id is REFERENCE_PROVIDER:
            return await self._analyze_reference(adapter, model, request)

        prompt = adapt_prompt(build_prompt(request), model.has_web_search)
        payload = adapter.encode(model.id, prompt, model.has_web_search, model.max_output)
        return await self._complete(adapter, model, request, prompt, payload, model.has_web_search)

    async def _analyze_reference(
        self,
        adapter: ProviderAdapter,
        model: ModelDescriptor,
        request: AnalysisRequest,
    ) -> AnalysisResult:
        prompt = build_prompt(request)
        payload = adapter.encode(model.id, prompt, True, model.max_output)
        return await self._complete(adapter, model, request, prompt, payload, True)

    async def _complete(
        self,
        adapter: ProviderAdapter,
        model: ModelDescriptor,
        request: AnalysisRequest,
        prompt: str,
        payload: dict[str, Any],
        web_search: bool,
    ) -> AnalysisResult:
        provider_name = adapter.provider.value
        if request.api_key is not None:
            payload["apiKey"] = request.api_key.get_secret_value()

        logger.info(
            "Analyzing %d markets with %s/%s (web search: %s)",
            len(request.markets), provider_name, model.id, web_search,
        )
        start = time.monotonic()
        data = await self.proxy.post(provider_name, adapter.proxy_function, payload)
        response_time_ms = int((time.monotonic() - start) * 1000)

        reply = adapter.parse_reply(data)
        extracted = extract_analyses(reply.text, provider_name, max_edge=self.max_edge)
        usage = build_usage(adapter.provider, model.id, reply)

        logger.info(
            "%s/%s: %d recommendations, %d skipped, %d searches, %d+%d tokens in %dms",
            provider_name, model.id, len(extracted.analyses), len(extracted.skipped),
            reply.web_search_count, reply.input_tokens, reply.output_tokens, response_time_ms,
        )
        return AnalysisResult(
            analyses=extracted.analyses,
            skipped=extracted.skipped,
            usage=usage,
            summary=extracted.summary,
            prompt=prompt,
            raw_response=reply.text,
            response_time_ms=response_time_ms,
        )
