from __future__ import annotations

import copy
import io
import json
from typing import Any

import pytest
from rich.console import Console

from kubectl_assistant.config import Settings
from kubectl_assistant.context import Context


class FakeProvider:
    """Returns (or raises) scripted results and records every history it was given."""

    def __init__(self, *results: Any):
        self.results = list(results)
        self.calls: list[list[str]] = []

    def complete(self, history, token):
        self.calls.append(list(history))
        result = self.results.pop(0)
        if isinstance(result, BaseException):
            raise result
        return result


class FakePrompter:
    def __init__(self, *decisions: Any):
        self.decisions = list(decisions)
        self.calls = 0

    def ask(self, token):
        self.calls += 1
        decision = self.decisions.pop(0)
        if isinstance(decision, BaseException):
            raise decision
        return decision


class FakeApplier:
    def __init__(self, error: BaseException | None = None):
        self.error = error
        self.applied: list[str] = []

    def apply(self, manifest, token):
        self.applied.append(manifest)
        if self.error is not None:
            raise self.error
        return "deployment.apps/nginx created"


class FakeResponse:
    def __init__(self, status_code: int = 200, body: Any = None, text: str | None = None):
        self.status_code = status_code
        self._body = body
        self.text = text if text is not None else json.dumps(body)
        self.headers = {"Content-Type": "application/json"}
        self.reason = "OK" if status_code == 200 else "Error"

    def json(self):
        if self._body is None:
            raise ValueError("No JSON object could be decoded")
        return self._body


class FakeSession:
    """Stands in for requests.Session; pops one scripted response per call."""

    def __init__(self, *responses: Any):
        self.responses = list(responses)
        self.posts: list[dict[str, Any]] = []
        self.gets: list[str] = []
        self.headers: dict[str, str] = {}

    def _next(self):
        result = self.responses.pop(0)
        if isinstance(result, BaseException):
            raise result
        return result

    def post(self, url, json=None, params=None, timeout=None):
        self.posts.append({"url": url, "json": copy.deepcopy(json), "params": params})
        return self._next()

    def get(self, url, timeout=None):
        self.gets.append(url)
        return self._next()


def completion_body(content: str | None = None, tool_calls: list[dict] | None = None) -> dict[str, Any]:
    message: dict[str, Any] = {"role": "assistant", "content": content}
    if tool_calls:
        message["tool_calls"] = tool_calls
    return {
        "id": "chatcmpl-1",
        "object": "chat.completion",
        "choices": [{"index": 0, "message": message, "finish_reason": "stop"}],
        "usage": {"prompt_tokens": 10, "completion_tokens": 20, "total_tokens": 30},
    }


@pytest.fixture
def make_settings():
    def _make(**overrides: Any) -> Settings:
        values: dict[str, Any] = {"openai_api_key": "sk-test"}
        values.update(overrides)
        return Settings(**values)

    return _make


@pytest.fixture
def ctx() -> Context:
    return Context(
        console=Console(file=io.StringIO(), width=120),
        err_console=Console(file=io.StringIO(), width=120),
    )


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch: pytest.MonkeyPatch, tmp_path) -> None:
    for name in (
        "OPENAI_ENDPOINT",
        "OPENAI_DEPLOYMENT_NAME",
        "OPENAI_API_KEY",
        "AZURE_OPENAI_MAP",
        "TEMPERATURE",
        "REQUIRE_CONFIRMATION",
        "USE_K8S_API",
        "K8S_OPENAPI_URL",
        "DEBUG",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("KUBECTL_ASSISTANT_SETTINGS", str(tmp_path / "missing-settings.yaml"))
