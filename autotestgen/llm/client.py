"""Generation client contract and the shared chat-completions transport."""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from dataclasses import dataclass
from http.client import HTTPException
from typing import Optional
from urllib.error import HTTPError, URLError
from urllib.request import Request, urlopen

from ..logging import get_logger


class GenerationError(RuntimeError):
    """Raised when the provider call fails for any reason."""


class GenerationClient(ABC):
    """Sends one system/user exchange to a model and returns its text."""

    @abstractmethod
    def complete(self, system: str, user: str) -> str:
        """Return the completion text or raise :class:`GenerationError`."""


@dataclass
class ChatRequest:
    """Represents a single chat-completions call."""

    endpoint: str
    model: str
    system: str
    user: str
    temperature: float
    max_tokens: int
    api_key: Optional[str]
    timeout: Optional[float]


class ChatCompletionClient(GenerationClient):
    """Posts OpenAI-style chat payloads to ``{base_url}/chat/completions``."""

    provider_name = "chat"

    def __init__(
        self,
        *,
        base_url: str,
        model: str,
        temperature: float,
        max_tokens: int,
        api_key: str | None = None,
        request_timeout: float | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.api_key = api_key
        self.request_timeout = request_timeout
        self.logger = get_logger(f"llm.{self.provider_name}")

    def complete(self, system: str, user: str) -> str:
        request = ChatRequest(
            endpoint=f"{self.base_url}/chat/completions",
            model=self.model,
            system=system,
            user=user,
            temperature=self.temperature,
            max_tokens=self.max_tokens,
            api_key=self.api_key,
            timeout=self.request_timeout,
        )
        self.logger.debug("POST %s (model=%s)", request.endpoint, request.model)
        return self._send(request)

    def _send(self, request: ChatRequest) -> str:
        payload = {
            "model": request.model,
            "temperature": request.temperature,
            "max_tokens": request.max_tokens,
            "messages": [
                {"role": "system", "content": request.system},
                {"role": "user", "content": request.user},
            ],
        }
        data = json.dumps(payload).encode("utf-8")
        headers = {"Content-Type": "application/json"}
        if request.api_key:
            headers["Authorization"] = f"Bearer {request.api_key}"

        http_request = Request(request.endpoint, data=data, headers=headers, method="POST")
        try:
            # A timeout of None blocks until the provider answers.
            with urlopen(http_request, timeout=request.timeout) as response:  # type: ignore[arg-type]
                raw = response.read()
        except HTTPError as exc:
            detail = exc.read().decode("utf-8", errors="ignore") if hasattr(exc, "read") else ""
            message = _provider_message(detail) or exc.reason
            raise GenerationError(
                f"{self.provider_name} request failed with status {exc.code}: {message}"
            ) from exc
        except URLError as exc:
            raise GenerationError(f"{self.provider_name} request failed: {exc.reason}") from exc
        except HTTPException as exc:
            raise GenerationError(f"{self.provider_name} response was interrupted: {exc!r}") from exc
        except OSError as exc:
            raise GenerationError(f"{self.provider_name} request failed: {exc}") from exc

        try:
            response_payload = json.loads(raw.decode("utf-8"))
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise GenerationError(f"{self.provider_name} returned invalid JSON") from exc

        content = extract_content(response_payload)
        if not content:
            raise GenerationError(f"{self.provider_name} returned an empty response")
        return content


def extract_content(payload: object) -> str:
    """Return ``choices[0].message.content`` or an empty string."""
    if not isinstance(payload, dict):
        return ""
    choices = payload.get("choices")
    if not isinstance(choices, list) or not choices:
        return ""
    first = choices[0]
    if not isinstance(first, dict):
        return ""
    message = first.get("message")
    if isinstance(message, dict):
        content = message.get("content")
        if isinstance(content, str):
            return content
    return ""


def _provider_message(detail: str) -> str:
    detail = detail.strip()
    if not detail:
        return ""
    try:
        parsed = json.loads(detail)
    except json.JSONDecodeError:
        return detail
    if isinstance(parsed, dict):
        error = parsed.get("error")
        if isinstance(error, dict) and isinstance(error.get("message"), str):
            return error["message"]
        if isinstance(error, str):
            return error
    return detail


__all__ = [
    "ChatCompletionClient",
    "ChatRequest",
    "GenerationClient",
    "GenerationError",
    "extract_content",
]
