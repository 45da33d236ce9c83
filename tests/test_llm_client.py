import asyncio
import json

import httpx
import pytest

from docquiz.services import llm_client
from docquiz.services.llm_client import (
    LLMAPIError,
    LLMClientError,
    LLMNetworkError,
    LLMTimeoutError,
)


def openai_style(content):
    return {"choices": [{"message": {"role": "assistant", "content": content}}]}


@pytest.fixture(autouse=True)
def api_keys(monkeypatch):
    monkeypatch.setenv("DEEPSEEK_API_KEY", "test-deepseek")
    monkeypatch.setenv("ANTHROPIC_API_KEY", "test-anthropic")


async def test_complete_returns_raw_text():
    seen = {}

    def handler(request):
        seen["url"] = str(request.url)
        seen["auth"] = request.headers["authorization"]
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json=openai_style('{"summary": "x"}'))

    result = await llm_client.complete(
        "PROMPT", 100, 0.2, provider="deepseek", transport=httpx.MockTransport(handler)
    )
    assert result == '{"summary": "x"}'
    assert seen["url"] == llm_client.DEEPSEEK_API_URL
    assert seen["auth"] == "Bearer test-deepseek"
    assert seen["body"]["max_tokens"] == 100
    assert seen["body"]["temperature"] == 0.2
    assert seen["body"]["messages"][-1] == {"role": "user", "content": "PROMPT"}


async def test_anthropic_request_and_response_shape():
    def handler(request):
        assert request.headers["x-api-key"] == "test-anthropic"
        body = json.loads(request.content)
        assert body["system"] == llm_client.DEFAULT_SYSTEM_MESSAGE
        return httpx.Response(200, json={"content": [{"type": "text", "text": "hello"}]})

    result = await llm_client.complete(
        "p", 10, 0.0, provider="anthropic", transport=httpx.MockTransport(handler)
    )
    assert result == "hello"


async def test_timeout_cancels_request():
    async def handler(request):
        await asyncio.sleep(5)
        return httpx.Response(200, json=openai_style("late"))

    with pytest.raises(LLMTimeoutError) as exc_info:
        await llm_client.complete(
            "p", 10, 0.0, provider="deepseek", timeout=0.05, transport=httpx.MockTransport(handler)
        )
    assert exc_info.value.reason == "timeout"
    assert exc_info.value.kind == "ai-service-failure"


async def test_non_success_status_raises_api_error():
    transport = httpx.MockTransport(lambda request: httpx.Response(500, text="boom"))
    with pytest.raises(LLMAPIError) as exc_info:
        await llm_client.complete("p", 10, 0.0, provider="deepseek", transport=transport)
    assert exc_info.value.status == 500


async def test_non_json_success_body_raises_api_error():
    transport = httpx.MockTransport(lambda request: httpx.Response(200, text="<html>bad gateway</html>"))
    with pytest.raises(LLMAPIError) as exc_info:
        await llm_client.complete("p", 10, 0.0, provider="deepseek", transport=transport)
    assert exc_info.value.status == 200
    assert exc_info.value.kind == "ai-service-failure"


async def test_empty_content_raises_api_error():
    transport = httpx.MockTransport(lambda request: httpx.Response(200, json=openai_style("   ")))
    with pytest.raises(LLMAPIError):
        await llm_client.complete("p", 10, 0.0, provider="deepseek", transport=transport)


async def test_network_failure_raises_network_error():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(LLMNetworkError):
        await llm_client.complete("p", 10, 0.0, provider="deepseek", transport=httpx.MockTransport(handler))


async def test_missing_api_key(monkeypatch):
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    with pytest.raises(LLMClientError):
        await llm_client.complete("p", 10, 0.0, provider="openai")


async def test_unknown_provider():
    with pytest.raises(LLMClientError):
        await llm_client.complete("p", 10, 0.0, provider="nope")


async def test_health_check(monkeypatch):
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    assert (await llm_client.health_check("deepseek"))["status"] == "ready"
    assert (await llm_client.health_check("openai"))["status"] == "not_configured"
    assert (await llm_client.health_check("nope"))["status"] == "error"


def test_get_available_providers(monkeypatch):
    for name in ("OPENAI_API_KEY", "GROK_API_KEY", "XAI_API_KEY"):
        monkeypatch.delenv(name, raising=False)
    assert llm_client.get_available_providers() == ["deepseek", "anthropic"]
