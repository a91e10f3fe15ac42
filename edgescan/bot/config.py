"""
Configuration loader.

Reads a YAML config and injects secrets from environment variables.
"""

from __future__ import annotations

import os
from typing import Optional

import yaml
from dotenv import load_dotenv

from ..errors import ConfigurationError
from ..providers.catalog import ProviderId, resolve_provider_id

load_dotenv()

DEFAULT_PROXY_BASE_URL = "https://proxy.edgescan.local"
DEFAULT_MAX_EDGE = 0.40

PROVIDER_KEY_ENV = {
    ProviderId.ANTHROPIC: "ANTHROPIC_API_KEY",
    ProviderId.GOOGLE: "GEMINI_API_KEY",
    ProviderId.OPENAI: "OPENAI_API_KEY",
    ProviderId.XAI: "XAI_API_KEY",
    ProviderId.DEEPSEEK: "DEEPSEEK_API_KEY",
}


def load_config(config_path: str = "config.yaml") -> dict:
    """
    Load configuration from YAML file.

    Injects PROXY_SERVICE_KEY into proxy.service_key (required) and lets
    PROXY_BASE_URL override proxy.base_url.  Fills in defaults for the
    analysis and database sections.
    """
    try:
        with open(config_path, "r") as f:
            config = yaml.safe_load(f) or {}
    except FileNotFoundError as e:
        raise ConfigurationError(f"Config file not found: {config_path}") from e

    if not isinstance(config, dict):
        raise ConfigurationError(f"Config file {config_path} must contain a mapping")

    proxy = config.setdefault("proxy", {})
    service_key = os.getenv("PROXY_SERVICE_KEY")
    if not service_key:
        raise ConfigurationError("PROXY_SERVICE_KEY not found in environment")
    proxy["service_key"] = service_key
    proxy["base_url"] = os.getenv("PROXY_BASE_URL") or proxy.get("base_url") or DEFAULT_PROXY_BASE_URL

    analysis = config.setdefault("analysis", {})
    analysis.setdefault("provider", ProviderId.ANTHROPIC.value)
    analysis.setdefault("max_edge", DEFAULT_MAX_EDGE)

    config.setdefault("database", {}).setdefault("path", "data/edgescan.db")
    return config


def provider_api_key(provider: ProviderId | str) -> Optional[str]:
    """The user's own key for ``provider`` from the environment, if set."""
    env_name = PROVIDER_KEY_ENV[resolve_provider_id(provider)]
    return os.getenv(env_name) or None
