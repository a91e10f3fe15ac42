"""
Provider/model catalog — the single source of truth for supported models,
their pricing, free tiers, and capabilities.

Pure lookups; nothing here holds state or performs I/O.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict

from ..errors import UnknownModelError, UnknownProviderError


class ProviderId(str, Enum):
    ANTHROPIC = "anthropic"
    GOOGLE = "google"
    OPENAI = "openai"
    XAI = "xai"
    DEEPSEEK = "deepseek"


# ── Descriptors ──────────────────────────────────────────────────────

class FreeTier(BaseModel):
    """Usage limits for a provider's free tier."""
    model_config = ConfigDict(frozen=True)

    daily_requests: int
    tokens_per_minute: Optional[int] = None
    requests_per_minute: Optional[int] = None
    min_interval_ms: Optional[int] = None  # pacing between calls
    description: str = ""


class ModelDescriptor(BaseModel):
    """Static metadata for one model.  Prices are USD per 1M tokens."""
    model_config = ConfigDict(frozen=True)

    provider: ProviderId
    id: str
    name: str
    input_price: float
    output_price: float
    max_output: int
    context_window: int
    has_web_search: bool
    reasoning: bool = False
    free_tier: Optional[FreeTier] = None
    note: str = ""

    @property
    def rate_limit_key(self) -> str:
        return f"{self.provider.value}:{self.id}"


class ProviderDescriptor(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: ProviderId
    name: str
    website: str
    api_key_url: str
    api_key_prefix: str
    web_search_method: str
    models: tuple[ModelDescriptor, ...]


def _model(provider: ProviderId, id: str, name: str, inp: float, out: float,
           ctx: int, max_out: int, search: bool, **extra) -> ModelDescriptor:
    return ModelDescriptor(
        provider=provider, id=id, name=name, input_price=inp, output_price=out,
        context_window=ctx, max_output=max_out, has_web_search=search, **extra,
    )


_A, _G, _O, _X, _D = (
    ProviderId.ANTHROPIC, ProviderId.GOOGLE, ProviderId.OPENAI,
    ProviderId.XAI, ProviderId.DEEPSEEK,
)

PROVIDERS: tuple[ProviderDescriptor, ...] = (
    ProviderDescriptor(
        id=_A,
        name="Anthropic",
        website="anthropic.com",
        api_key_url="https://console.anthropic.com/settings/keys",
        api_key_prefix="sk-ant-api03-...",
        web_search_method="web_search tool (native)",
        models=(
            _model(_A, "claude-3-5-haiku-20241022", "Claude 3.5 Haiku", 0.80, 4, 200_000, 8192, True),
            _model(_A, "claude-haiku-4-5", "Claude Haiku 4.5", 1, 5, 200_000, 8192, True),
            _model(_A, "claude-sonnet-4-20250514", "Claude Sonnet 4", 3, 15, 200_000, 16384, True),
            _model(_A, "claude-sonnet-4-5", "Claude Sonnet 4.5", 3, 15, 200_000, 16384, True),
            _model(_A, "claude-opus-4-5", "Claude Opus 4.5", 5, 25, 200_000, 16384, True),
            _model(_A, "claude-opus-4-6", "Claude Opus 4.6", 5, 25, 200_000, 16384, True),
        ),
    ),
    ProviderDescriptor(
        id=_G,
        name="Google",
        website="ai.google.dev",
        api_key_url="https://aistudio.google.com/apikey",
        api_key_prefix="AIzaSy...",
        web_search_method="Google Search grounding",
        models=(
            _model(
                _G, "gemini-2.0-flash", "Gemini 2.0 Flash", 0.10, 0.40, 1_000_000, 8192, True,
                free_tier=FreeTier(daily_requests=1500, description="1,500 req/day free (Search: 500 RPD free)"),
            ),
            _model(
                _G, "gemini-2.5-flash", "Gemini 2.5 Flash", 0.15, 0.60, 1_000_000, 65536, True,
                free_tier=FreeTier(
                    daily_requests=20, tokens_per_minute=250_000, requests_per_minute=5,
                    min_interval_ms=15_000,
                    description="20 req/day, 5 RPM, 250k TPM (Search: 500 RPD free)",
                ),
                note="Thinking tokens: $3.50/M output",
            ),
            _model(
                _G, "gemini-2.5-pro", "Gemini 2.5 Pro", 1.25, 10, 1_000_000, 65536, False,
                free_tier=FreeTier(
                    daily_requests=25, requests_per_minute=5, min_interval_ms=15_000,
                    description="25 req/day, 5 RPM (no Google Search on free tier)",
                ),
                note=">200K ctx: $2.50/$15 per M. Search only on paid plan ($35/1K)",
            ),
        ),
    ),
    ProviderDescriptor(
        id=_O,
        name="OpenAI",
        website="platform.openai.com",
        api_key_url="https://platform.openai.com/api-keys",
        api_key_prefix="sk-proj-...",
        web_search_method="web_search_preview tool",
        models=(
            _model(_O, "gpt-4o-mini", "GPT-4o Mini", 0.15, 0.60, 128_000, 16384, True),
            _model(_O, "gpt-4.1-mini", "GPT-4.1 Mini", 0.40, 1.60, 1_000_000, 32768, True),
            _model(_O, "gpt-4o", "GPT-4o", 2.50, 10, 128_000, 16384, True),
            _model(_O, "gpt-4.1", "GPT-4.1", 2, 8, 1_000_000, 32768, True),
            _model(_O, "o4-mini", "o4 Mini", 1.10, 4.40, 200_000, 100_000, True,
                   reasoning=True, note="Reasoning model"),
            _model(_O, "o3", "o3", 10, 40, 200_000, 100_000, True,
                   reasoning=True, note="Reasoning model"),
        ),
    ),
    ProviderDescriptor(
        id=_X,
        name="xAI",
        website="x.ai",
        api_key_url="https://console.x.ai/team/default/api-keys",
        api_key_prefix="xai-...",
        web_search_method="Live search (native)",
        models=(
            _model(_X, "grok-3-mini", "Grok 3 Mini", 0.30, 0.50, 131_072, 16384, True),
            _model(_X, "grok-3", "Grok 3", 3, 15, 131_072, 16384, True),
        ),
    ),
    ProviderDescriptor(
        id=_D,
        name="DeepSeek",
        website="deepseek.com",
        api_key_url="https://platform.deepseek.com/api_keys",
        api_key_prefix="sk-...",
        web_search_method="No web search (training data only)",
        models=(
            _model(_D, "deepseek-chat", "DeepSeek V3", 0.27, 1.10, 64_000, 8192, False,
                   note="No web search, uses training data"),
            _model(_D, "deepseek-reasoner", "DeepSeek R1", 0.55, 2.19, 64_000, 8192, False,
                   reasoning=True, note="Reasoning model, no web search"),
        ),
    ),
)

_BY_ID: dict[ProviderId, ProviderDescriptor] = {p.id: p for p in PROVIDERS}

# Average tokens per cycle from real usage (~5 calls analysing 8 markets each).
AVG_INPUT_TOKENS_PER_CYCLE = 1_074_344
AVG_OUTPUT_TOKENS_PER_CYCLE = 6_342
CYCLES_PER_MONTH = 30


# ── Lookups ──────────────────────────────────────────────────────────

def resolve_provider_id(provider: Union[ProviderId, str]) -> ProviderId:
    """Coerce a provider name into a ``ProviderId``."""
    if isinstance(provider, ProviderId):
        return provider
    try:
        return ProviderId(str(provider).lower())
    except ValueError:
        raise UnknownProviderError(str(provider)) from None


def get_provider(provider: Union[ProviderId, str]) -> ProviderDescriptor:
    return _BY_ID[resolve_provider_id(provider)]


def get_model(provider: Union[ProviderId, str], model_id: str) -> ModelDescriptor:
    """Return the descriptor for ``model_id`` or raise ``UnknownModelError``."""
    descriptor = get_provider(provider)
    for model in descriptor.models:
        if model.id == model_id:
            return model
    raise UnknownModelError(descriptor.id.value, model_id)


def all_models() -> list[ModelDescriptor]:
    return [m for p in PROVIDERS for m in p.models]


def has_free_tier(provider: Union[ProviderId, str], model_id: str) -> bool:
    return get_model(provider, model_id).free_tier is not None


# ── Pricing ──────────────────────────────────────────────────────────

def calculate_model_cost(
    model_id: str,
    provider: Union[ProviderId, str],
    input_tokens: int,
    output_tokens: int,
    is_free_tier: bool = False,
) -> float:
    """USD cost of one call.  Negative token counts are treated as zero."""
    if is_free_tier:
        return 0.0
    model = get_model(provider, model_id)
    return (
        max(0, input_tokens) / 1_000_000 * model.input_price
        + max(0, output_tokens) / 1_000_000 * model.output_price
    )


def estimate_cycle_cost(model: ModelDescriptor) -> float:
    """Estimated USD per analysis cycle; free-tier models cost nothing."""
    if model.free_tier:
        return 0.0
    return (
        model.input_price * AVG_INPUT_TOKENS_PER_CYCLE
        + model.output_price * AVG_OUTPUT_TOKENS_PER_CYCLE
    ) / 1_000_000


def estimate_monthly_cost(model: ModelDescriptor) -> float:
    return estimate_cycle_cost(model) * CYCLES_PER_MONTH
