"""Hosted chat-completions backend."""

from __future__ import annotations

from ..config import DEFAULT_CLOUD_MODEL, DEFAULT_MAX_TOKENS, DEFAULT_TEMPERATURE, ConfigurationError
from .client import ChatCompletionClient


class CloudClient(ChatCompletionClient):
    """Calls the OpenAI API; a credential is mandatory."""

    provider_name = "openai"
    DEFAULT_BASE_URL = "https://api.openai.com/v1"

    def __init__(
        self,
        api_key: str | None,
        *,
        model: str = DEFAULT_CLOUD_MODEL,
        base_url: str | None = None,
        temperature: float = DEFAULT_TEMPERATURE,
        max_tokens: int = DEFAULT_MAX_TOKENS,
        request_timeout: float | None = None,
    ) -> None:
        if not api_key or not api_key.strip():
            raise ConfigurationError("Missing OpenAI API key (set ai_api_key or OPENAI_API_KEY)")
        super().__init__(
            base_url=base_url or self.DEFAULT_BASE_URL,
            model=model,
            temperature=temperature,
            max_tokens=max_tokens,
            api_key=api_key.strip(),
            request_timeout=request_timeout,
        )


__all__ = ["CloudClient"]
