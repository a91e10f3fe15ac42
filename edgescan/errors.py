"""Exception types shared across the provider and analysis layers."""

from __future__ import annotations

from typing import Optional


class ConfigurationError(ValueError):
    """Invalid or missing configuration (unknown provider/model, missing secret)."""


class UnknownProviderError(ConfigurationError):
    def __init__(self, provider: str):
        super().__init__(f"Unknown AI provider: {provider!r}")
        self.provider = provider


class UnknownModelError(ConfigurationError):
    def __init__(self, provider: str, model_id: str):
        super().__init__(f"Model {model_id!r} not found for provider {provider!r}")
        self.provider = provider
        self.model_id = model_id


class ProviderRequestError(Exception):
    """
    A provider call failed at the transport level.

    ``status_code`` is ``None`` when no HTTP response was received
    (connection error, timeout).  ``body`` is truncated to 200 characters.
    """

    BODY_LIMIT = 200

    def __init__(self, provider: str, status_code: Optional[int], body: str = ""):
        self.provider = provider
        self.status_code = status_code
        self.body = body[: self.BODY_LIMIT]
        if status_code is None:
            message = f"{provider} API request failed: {self.body}"
        else:
            message = f"{provider} API HTTP {status_code}: {self.body}"
        super().__init__(message)
