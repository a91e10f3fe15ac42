import asyncio

import httpx
import pytest

from edgescan.providers.catalog import ProviderId
from edgescan.providers.keycheck import test_api_key as check_api_key


def _client(status_code: int, body=None, seen=None) -> httpx.AsyncClient:
    def handler(request: httpx.Request) -> httpx.Response:
        if seen is not None:
            seen.append(request)
        return httpx.Response(status_code, json=body if body is not None else {})

    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def test_valid_key():
    seen = []
    result = asyncio.run(check_api_key("anthropic", "sk-ant-valid", client=_client(200, seen=seen)))
    assert result.valid
    assert result.provider is ProviderId.ANTHROPIC
    assert result.message.startswith("API key valid")
    assert seen[0].url.host == "api.anthropic.com"
    assert seen[0].headers["x-api-key"] == "sk-ant-valid"


@pytest.mark.parametrize("status", [401, 403])
def test_auth_failure_is_invalid(status):
    body = {"error": {"message": "Incorrect API key provided"}}
    result = asyncio.run(check_api_key("openai", "sk-wrong-key", client=_client(status, body)))
    assert not result.valid
    assert result.message == "API key invalid or lacks permissions: Incorrect API key provided"


def test_rate_limited_key_is_valid():
    result = asyncio.run(check_api_key("google", "AIzaSy-rate-limited", client=_client(429)))
    assert result.valid


def test_other_status_is_invalid():
    result = asyncio.run(check_api_key("xai", "xai-key-123", client=_client(500, {"error": "boom"})))
    assert not result.valid
    assert result.message == "Error 500: boom"


@pytest.mark.parametrize("key", ["", "   ", "abcd"])
def test_short_key_rejected_without_request(key):
    seen = []
    result = asyncio.run(check_api_key("deepseek", key, client=_client(200, seen=seen)))
    assert not result.valid
    assert seen == []
    assert result.latency_ms == 0


def test_connection_error_is_invalid():
    def handler(request):
        raise httpx.ConnectTimeout("timed out", request=request)

    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    result = asyncio.run(check_api_key("xai", "xai-key-123", client=client))
    assert not result.valid
    assert result.message.startswith("Connection error")


def test_key_is_not_logged(caplog):
    with caplog.at_level("DEBUG"):
        asyncio.run(check_api_key("anthropic", "sk-ant-very-secret", client=_client(200)))
    assert "sk-ant-very-secret" not in caplog.text
