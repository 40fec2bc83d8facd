import json

import httpx
import pytest

from webrag.core.exceptions import CompletionFailed
from webrag.core.llm import LLMWrapper


def _llm(handler) -> LLMWrapper:
    return LLMWrapper(api_key="router-key", http_client=httpx.Client(transport=httpx.MockTransport(handler)))


def test_complete_returns_message_content():
    seen = {}

    def handler(request: httpx.Request):
        seen["auth"] = request.headers["authorization"]
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"choices": [{"message": {"content": "Paris."}}]})

    assert _llm(handler).complete("Capital of France?") == "Paris."
    assert seen["auth"] == "Bearer router-key"
    assert seen["body"]["messages"] == [{"role": "user", "content": "Capital of France?"}]
    assert "stream" not in seen["body"]


def test_non_success_status_raises():
    with pytest.raises(CompletionFailed):
        _llm(lambda request: httpx.Response(503, text="overloaded")).complete("hi")


def test_malformed_payload_raises():
    with pytest.raises(CompletionFailed):
        _llm(lambda request: httpx.Response(200, json={"choices": []})).complete("hi")


def test_non_json_payload_raises():
    with pytest.raises(CompletionFailed):
        _llm(lambda request: httpx.Response(200, text="not json")).complete("hi")


def test_transport_error_raises():
    def handler(request):
        raise httpx.ReadTimeout("slow", request=request)

    with pytest.raises(CompletionFailed):
        _llm(handler).complete("hi")


def test_missing_api_key(monkeypatch):
    monkeypatch.delenv("OPENROUTER_API_KEY", raising=False)
    with pytest.raises(RuntimeError):
        LLMWrapper()
