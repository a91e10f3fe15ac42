import pytest

from edgescan.bot.config import DEFAULT_MAX_EDGE, load_config, provider_api_key
from edgescan.errors import ConfigurationError


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(
        "proxy:\n"
        "  base_url: https://example.supabase.co\n"
        "analysis:\n"
        "  provider: google\n"
        "  model: gemini-2.5-flash\n"
    )
    return str(path)


def test_injects_service_key(config_file, monkeypatch):
    monkeypatch.setenv("PROXY_SERVICE_KEY", "svc-123")
    monkeypatch.delenv("PROXY_BASE_URL", raising=False)
    config = load_config(config_file)
    assert config["proxy"] == {"base_url": "https://example.supabase.co", "service_key": "svc-123"}
    assert config["analysis"]["model"] == "gemini-2.5-flash"
    assert config["analysis"]["max_edge"] == DEFAULT_MAX_EDGE
    assert config["database"]["path"] == "data/edgescan.db"


def test_base_url_env_override(config_file, monkeypatch):
    monkeypatch.setenv("PROXY_SERVICE_KEY", "svc-123")
    monkeypatch.setenv("PROXY_BASE_URL", "http://localhost:54321")
    assert load_config(config_file)["proxy"]["base_url"] == "http://localhost:54321"


def test_missing_service_key(config_file, monkeypatch):
    monkeypatch.delenv("PROXY_SERVICE_KEY", raising=False)
    with pytest.raises(ConfigurationError, match="PROXY_SERVICE_KEY"):
        load_config(config_file)


def test_missing_file(tmp_path):
    with pytest.raises(ConfigurationError):
        load_config(str(tmp_path / "nope.yaml"))


def test_empty_file_gets_defaults(tmp_path, monkeypatch):
    path = tmp_path / "empty.yaml"
    path.write_text("")
    monkeypatch.setenv("PROXY_SERVICE_KEY", "svc-123")
    monkeypatch.delenv("PROXY_BASE_URL", raising=False)
    config = load_config(str(path))
    assert config["analysis"]["provider"] == "anthropic"
    assert config["proxy"]["base_url"]


def test_provider_api_key(monkeypatch):
    monkeypatch.setenv("GEMINI_API_KEY", "AIzaSy-test")
    monkeypatch.delenv("XAI_API_KEY", raising=False)
    assert provider_api_key("google") == "AIzaSy-test"
    assert provider_api_key("xai") is None
