"""Selects the generation backend named by the configuration."""

from __future__ import annotations

from ..config import CLOUD_PROVIDERS, LOCAL_PROVIDERS, ConfigurationError, LLMConfig
from .client import GenerationClient
from .cloud import CloudClient
from .local import LocalClient


def build_client(config: LLMConfig) -> GenerationClient:
    """Return a client for ``config.provider``; validation happens before any request."""
    if config.provider in CLOUD_PROVIDERS:
        return CloudClient(
            config.api_key,
            model=config.effective_model,
            base_url=config.base_url,
            temperature=config.temperature,
            max_tokens=config.max_tokens,
            request_timeout=config.request_timeout,
        )
    if config.provider in LOCAL_PROVIDERS:
        return LocalClient(
            model=config.effective_model,
            base_url=config.base_url,
            temperature=config.temperature,
            max_tokens=config.max_tokens,
            request_timeout=config.request_timeout,
        )
    raise ConfigurationError(f"Unsupported AI provider: {config.provider}")


__all__ = ["build_client"]
