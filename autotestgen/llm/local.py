"""Adapter for a model server on the local machine (Ollama)."""

from __future__ import annotations

import ipaddress
from urllib.parse import urlparse

from ..config import DEFAULT_LOCAL_MODEL, DEFAULT_MAX_TOKENS, DEFAULT_TEMPERATURE, ConfigurationError
from .client import ChatCompletionClient


class LocalClient(ChatCompletionClient):
    """Talks to Ollama's OpenAI-compatible endpoint; no credential needed."""

    provider_name = "ollama"
    DEFAULT_BASE_URL = "http://localhost:11434/v1"

    def __init__(
        self,
        *,
        model: str = DEFAULT_LOCAL_MODEL,
        base_url: str | None = None,
        temperature: float = DEFAULT_TEMPERATURE,
        max_tokens: int = DEFAULT_MAX_TOKENS,
        request_timeout: float | None = None,
    ) -> None:
        super().__init__(
            base_url=self._ensure_local_url(base_url or self.DEFAULT_BASE_URL),
            model=model,
            temperature=temperature,
            max_tokens=max_tokens,
            request_timeout=request_timeout,
        )

    @classmethod
    def _ensure_local_url(cls, url: str) -> str:
        host = urlparse(url).hostname
        if host is None or cls._is_local_host(host):
            return url
        raise ConfigurationError(
            f"Remote base_url '{url}' is not permitted for the local provider."
        )

    @staticmethod
    def _is_local_host(host: str) -> bool:
        lowered = host.lower()
        if lowered in {"localhost", "127.0.0.1", "0.0.0.0", "::1", "host.docker.internal"}:
            return True
        if lowered.endswith(".local") or lowered.endswith(".localdomain"):
            return True
        try:
            ip = ipaddress.ip_address(lowered)
        except ValueError:
            return False
        return ip.is_loopback


__all__ = ["LocalClient"]
