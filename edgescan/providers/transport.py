"""
HTTP transport to the forwarding proxy.

Every provider call goes through one proxy function per provider:

  POST {base_url}/functions/v1/{provider}-proxy

The proxy authenticates us with a service-level key, pulls the user's
``apiKey`` out of the body, and relays the rest upstream.  No retries here;
retry policy belongs to the caller.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

import httpx

from ..errors import ProviderRequestError

logger = logging.getLogger(__name__)

TIMEOUT = 180.0


_client: httpx.AsyncClient | None = None

async def _get_client() -> httpx.AsyncClient:
    """Get or create shared HTTP client."""
    global _client
    if _client is None:
        _client = httpx.AsyncClient(timeout=TIMEOUT)
    return _client


def redact_key(key: Optional[str]) -> str:
    """Loggable hint for a secret: first 4 chars and its length, never the key."""
    if not key:
        return "<none>"
    key = key.strip()
    return f"{key[:4]}…({len(key)} chars)"


class ProxyClient:
    """Posts provider envelopes to the forwarding proxy."""

    def __init__(
        self,
        base_url: str,
        service_key: str,
        client: httpx.AsyncClient | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.service_key = service_key
        self._client = client

    def url_for(self, proxy_function: str) -> str:
        return f"{self.base_url}/functions/v1/{proxy_function}"

    async def post(self, provider: str, proxy_function: str, payload: dict[str, Any]) -> Any:
        """
        POST ``payload`` to the proxy and return the decoded JSON reply.

        Raises:
            ProviderRequestError: non-2xx status, network failure, or a body
                that is not JSON.
        """
        client = self._client or await _get_client()
        url = self.url_for(proxy_function)
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.service_key}",
            "apikey": self.service_key,
        }
        # Never log the payload: it carries the user's key.
        logger.debug(
            "POST %s model=%s key=%s",
            url, payload.get("model"), redact_key(payload.get("apiKey")),
        )

        try:
            resp = await client.post(url, json=payload, headers=headers)
        except httpx.HTTPError as e:
            logger.error("%s proxy request failed: %s", provider, e)
            raise ProviderRequestError(provider, None, str(e) or type(e).__name__) from e

        if not resp.is_success:
            logger.error("%s API error: HTTP %d %s", provider, resp.status_code, resp.text[:500])
            raise ProviderRequestError(provider, resp.status_code, resp.text)

        try:
            return resp.json()
        except ValueError as e:
            raise ProviderRequestError(provider, resp.status_code, resp.text) from e
