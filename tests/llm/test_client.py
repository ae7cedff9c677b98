"""Tests for the chat-completions generation clients."""

from __future__ import annotations

import http.client
import io
import json
from urllib.error import HTTPError, URLError

import pytest

from autotestgen.config import ConfigurationError, LLMConfig
from autotestgen.llm import CloudClient, GenerationError, LocalClient, build_client


class FakeResponse:
    def __init__(self, payload) -> None:
        self._payload = payload

    def read(self) -> bytes:
        if isinstance(self._payload, bytes):
            return self._payload
        return json.dumps(self._payload).encode("utf-8")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        return False


def test_cloud_client_posts_chat_payload(monkeypatch) -> None:
    captured = {}

    def fake_urlopen(request, timeout=None):
        captured["url"] = request.full_url
        captured["headers"] = {k.lower(): v for k, v in request.header_items()}
        captured["payload"] = json.loads(request.data.decode("utf-8"))
        captured["timeout"] = timeout
        return FakeResponse({"choices": [{"message": {"content": "RSpec.describe User do\nend"}}]})

    monkeypatch.setattr("autotestgen.llm.client.urlopen", fake_urlopen)

    client = CloudClient(
        "sk-test",
        model="gpt-4o-mini",
        base_url="https://llm.example.com/v1/",
        temperature=0.2,
        max_tokens=512,
        request_timeout=30.0,
    )
    result = client.complete("system message", "user message")

    assert result == "RSpec.describe User do\nend"
    assert captured["url"] == "https://llm.example.com/v1/chat/completions"
    assert captured["headers"]["authorization"] == "Bearer sk-test"
    assert captured["timeout"] == 30.0
    assert captured["payload"] == {
        "model": "gpt-4o-mini",
        "temperature": 0.2,
        "max_tokens": 512,
        "messages": [
            {"role": "system", "content": "system message"},
            {"role": "user", "content": "user message"},
        ],
    }


def test_local_client_omits_authorization(monkeypatch) -> None:
    captured = {}

    def fake_urlopen(request, timeout=None):
        captured["url"] = request.full_url
        captured["headers"] = {k.lower(): v for k, v in request.header_items()}
        return FakeResponse({"choices": [{"message": {"content": "ok"}}]})

    monkeypatch.setattr("autotestgen.llm.client.urlopen", fake_urlopen)

    assert LocalClient().complete("s", "u") == "ok"
    assert captured["url"] == "http://localhost:11434/v1/chat/completions"
    assert "authorization" not in captured["headers"]


def test_http_error_becomes_generation_error(monkeypatch) -> None:
    def fake_urlopen(request, timeout=None):
        body = io.BytesIO(b'{"error": {"message": "Incorrect API key provided"}}')
        raise HTTPError(request.full_url, 401, "Unauthorized", hdrs=None, fp=body)

    monkeypatch.setattr("autotestgen.llm.client.urlopen", fake_urlopen)

    with pytest.raises(GenerationError, match="status 401: Incorrect API key provided"):
        CloudClient("sk-bad").complete("s", "u")


def test_transport_error_becomes_generation_error(monkeypatch) -> None:
    def fake_urlopen(request, timeout=None):
        raise URLError("connection refused")

    monkeypatch.setattr("autotestgen.llm.client.urlopen", fake_urlopen)

    with pytest.raises(GenerationError, match="connection refused"):
        LocalClient().complete("s", "u")


@pytest.mark.parametrize(
    "payload",
    [b"not json", {"choices": []}, {"choices": [{"message": {"content": ""}}]}],
)
def test_unusable_response_becomes_generation_error(monkeypatch, payload) -> None:
    monkeypatch.setattr(
        "autotestgen.llm.client.urlopen", lambda request, timeout=None: FakeResponse(payload)
    )
    with pytest.raises(GenerationError):
        CloudClient("sk-test").complete("s", "u")


def test_cloud_client_requires_api_key() -> None:
    with pytest.raises(ConfigurationError):
        CloudClient("  ")


def test_local_client_rejects_remote_host() -> None:
    with pytest.raises(ConfigurationError, match="not permitted"):
        LocalClient(base_url="https://api.example.com/v1")
    assert LocalClient(base_url="http://127.0.0.1:11434/v1").base_url == "http://127.0.0.1:11434/v1"


def test_build_client_selects_backend_by_provider() -> None:
    cloud = build_client(LLMConfig(provider="cloud", api_key="sk-test"))
    local = build_client(LLMConfig(provider="ollama"))

    assert isinstance(cloud, CloudClient)
    assert cloud.model == "gpt-3.5-turbo"
    assert isinstance(local, LocalClient)
    assert local.model == "codellama"

    with pytest.raises(ConfigurationError, match="Unsupported AI provider"):
        build_client(LLMConfig(provider="anthropic"))


def test_interrupted_response_becomes_generation_error(monkeypatch) -> None:
    class TruncatedResponse(FakeResponse):
        def read(self) -> bytes:
            raise http.client.IncompleteRead(b'{"choices": [')

    monkeypatch.setattr(
        "autotestgen.llm.client.urlopen", lambda request, timeout=None: TruncatedResponse({})
    )
    with pytest.raises(GenerationError, match="interrupted"):
        LocalClient().complete("s", "u")
