"""Pytest fixtures for prober tests."""

import json
import os
from typing import Any

import httpx
import pytest

# Keep test runs independent of the developer's environment
os.environ.pop("MODEL_PROBER_API_KEY", None)
os.environ.pop("MODEL_PROBER_BASE_URL", None)

from model_prober.client import ProviderClient

Outcome = tuple[int, Any] | Exception


def chat_reply(content: str | None) -> tuple[int, dict]:
    """A 200 chat completion body."""
    return 200, {
        "id": "chatcmpl-123",
        "object": "chat.completion",
        "choices": [{"index": 0, "message": {"role": "assistant", "content": content}}],
    }


def legacy_reply(text: str | None) -> tuple[int, dict]:
    """A 200 legacy completion body."""
    return 200, {"id": "cmpl-123", "object": "text_completion", "choices": [{"text": text}]}


def error_reply(status: int, message: str | None = None) -> tuple[int, Any]:
    """A provider error body, or an empty body when no message is given."""
    if message is None:
        return status, None
    return status, {"error": {"message": message, "type": "invalid_request_error"}}


class FakeProvider:
    """Scripted OpenAI-compatible provider served through httpx.MockTransport.

    Outcomes are looked up per model id; an Exception outcome is raised
    from the transport to simulate a network failure.
    """

    chat_reply = staticmethod(chat_reply)
    legacy_reply = staticmethod(legacy_reply)
    error_reply = staticmethod(error_reply)

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.models: Outcome = (200, {"object": "list", "data": []})
        self.chat: dict[str, Outcome] = {}
        self.legacy: dict[str, Outcome] = {}
        self.default_chat: Outcome = chat_reply("Hi there!")
        self.default_legacy: Outcome = legacy_reply("Hello!")

    def list_models(self, *model_ids: str, owner: str = "openai") -> None:
        self.models = (
            200,
            {
                "object": "list",
                "data": [
                    {"id": m, "object": "model", "created": 1700000000, "owned_by": owner}
                    for m in model_ids
                ],
            },
        )

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        if path == "/v1/models":
            outcome = self.models
        else:
            model = json.loads(request.content)["model"]
            if path == "/v1/chat/completions":
                outcome = self.chat.get(model, self.default_chat)
            elif path == "/v1/completions":
                outcome = self.legacy.get(model, self.default_legacy)
            else:
                outcome = error_reply(404, f"Unknown path {path}")

        if isinstance(outcome, Exception):
            raise outcome
        status, payload = outcome
        if payload is None:
            return httpx.Response(status)
        if isinstance(payload, str):
            return httpx.Response(status, text=payload)
        return httpx.Response(status, json=payload)

    def calls(self, path: str) -> list[str]:
        """Model ids sent to a completion path, in request order."""
        return [
            json.loads(r.content)["model"] for r in self.requests if r.url.path == path
        ]

    def paths(self) -> list[str]:
        return [r.url.path for r in self.requests]

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


@pytest.fixture
def provider() -> FakeProvider:
    """A fresh scripted provider."""
    return FakeProvider()


@pytest.fixture
async def client(provider: FakeProvider):
    """Provider client wired to the fake provider."""
    provider_client = ProviderClient(api_key="sk-test", transport=provider.transport())
    yield provider_client
    await provider_client.close()


@pytest.fixture
def patched_client_factory(provider: FakeProvider, monkeypatch):
    """Make every client the prober creates talk to the fake provider."""

    def factory(api_key: str, base_url: str | None = None, **kwargs: Any) -> ProviderClient:
        return ProviderClient(api_key=api_key, transport=provider.transport())

    monkeypatch.setattr("model_prober.prober.create_provider_client", factory)
    return factory
