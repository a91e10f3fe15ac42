"""
API key validation against each provider's model-listing endpoint.

Listing models costs zero tokens and does not count against generation
rate limits, so it is the cheapest way to learn whether a key is accepted.
Calls go directly to the provider, not through the proxy.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Union

import httpx

from . import get_adapter
from .catalog import ProviderId, resolve_provider_id
from .transport import redact_key

logger = logging.getLogger(__name__)

TIMEOUT = 15.0
MIN_KEY_LENGTH = 5


@dataclass(frozen=True)
class ApiKeyTestResult:
    valid: bool
    provider: ProviderId
    message: str
    latency_ms: int


def _error_message(resp: httpx.Response) -> str:
    try:
        data: Any = resp.json()
    except ValueError:
        data = {}
    error = data.get("error") if isinstance(data, dict) else None
    if isinstance(error, dict):
        return str(error.get("message") or error.get("type") or f"HTTP {resp.status_code}")
    if isinstance(error, str) and error:
        return error
    return f"HTTP {resp.status_code}"


async def test_api_key(
    provider: Union[ProviderId, str],
    api_key: str,
    client: httpx.AsyncClient | None = None,
) -> ApiKeyTestResult:
    """
    Check whether ``api_key`` is accepted by ``provider``.

    Returns:
        ApiKeyTestResult: 2xx and 429 (rate-limited but recognised) are
        valid; 401/403 and everything else are invalid.  Connection
        failures are reported as invalid rather than raised.
    """
    provider_id = resolve_provider_id(provider)
    key = (api_key or "").strip()
    if len(key) < MIN_KEY_LENGTH:
        return ApiKeyTestResult(False, provider_id, "API key is empty or too short", 0)

    url, headers, params = get_adapter(provider_id).models_request(key)
    logger.info("Testing %s key %s", provider_id.value, redact_key(key))

    start = time.monotonic()
    try:
        if client is None:
            async with httpx.AsyncClient(timeout=TIMEOUT) as own_client:
                resp = await own_client.get(url, headers=headers, params=params)
        else:
            resp = await client.get(url, headers=headers, params=params)
    except httpx.HTTPError as e:
        latency_ms = int((time.monotonic() - start) * 1000)
        return ApiKeyTestResult(False, provider_id, f"Connection error: {e}", latency_ms)

    latency_ms = int((time.monotonic() - start) * 1000)

    if resp.is_success or resp.status_code == 429:
        return ApiKeyTestResult(True, provider_id, f"API key valid ({latency_ms}ms)", latency_ms)

    message = _error_message(resp)
    if resp.status_code in (401, 403):
        return ApiKeyTestResult(
            False, provider_id, f"API key invalid or lacks permissions: {message}", latency_ms,
        )
    return ApiKeyTestResult(False, provider_id, f"Error {resp.status_code}: {message}", latency_ms)


# Keep pytest from collecting this as a test when imported into a test module.
test_api_key.__test__ = False
