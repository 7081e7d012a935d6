"""
Tests for OllamaClient with a stubbed HTTP session

Tests:
1. Chat payload layout (system + user messages, options)
2. Response parsing and token accounting
3. HTTP and API errors surface as LLM errors
4. Model listing and health check
"""

from unittest.mock import AsyncMock

import pytest

from editor_rag.llm.base import LLMResponseError
from editor_rag.llm.ollama_client import OllamaClient


class FakeResponse:
    def __init__(self, status=200, data=None, text=""):
        self.status = status
        self._data = data or {}
        self._text = text

    async def json(self):
        return self._data

    async def text(self):
        return self._text

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return False


class FakeSession:
    def __init__(self, response):
        self.response = response
        self.requests = []
        self.closed = False

    def post(self, url, json=None):
        self.requests.append(("POST", url, json))
        return self.response

    def get(self, url):
        self.requests.append(("GET", url, None))
        return self.response

    async def close(self):
        self.closed = True


def client_with(response):
    client = OllamaClient(base_url="http://ollama:11434/", model="coder")
    session = FakeSession(response)
    client._get_session = AsyncMock(return_value=session)
    return client, session


class TestOllamaClient:

    @pytest.mark.asyncio
    async def test_generate(self):
        client, session = client_with(FakeResponse(data={
            "model": "coder",
            "message": {"role": "assistant", "content": "It parses config."},
            "eval_count": 7,
            "prompt_eval_count": 30,
        }))

        response = await client.generate("QUESTION: what?", system_prompt="be brief", max_tokens=64)

        assert response.content == "It parses config."
        assert response.tokens_used == 37
        method, url, payload = session.requests[0]
        assert (method, url) == ("POST", "http://ollama:11434/api/chat")
        assert payload["model"] == "coder"
        assert payload["stream"] is False
        assert payload["messages"] == [
            {"role": "system", "content": "be brief"},
            {"role": "user", "content": "QUESTION: what?"},
        ]
        assert payload["options"] == {"temperature": 0.7, "num_predict": 64}

    @pytest.mark.asyncio
    async def test_http_error(self):
        client, _ = client_with(FakeResponse(status=500, text="model crashed"))
        with pytest.raises(LLMResponseError, match="500"):
            await client.generate("q")

    @pytest.mark.asyncio
    async def test_api_error_payload(self):
        client, _ = client_with(FakeResponse(data={"error": "model 'coder' not found"}))
        with pytest.raises(LLMResponseError, match="not found"):
            await client.generate("q")

    @pytest.mark.asyncio
    async def test_missing_content(self):
        client, _ = client_with(FakeResponse(data={"model": "coder", "message": {}}))
        with pytest.raises(LLMResponseError):
            await client.generate("q")

    @pytest.mark.asyncio
    async def test_list_models_and_health(self):
        client, session = client_with(FakeResponse(data={"models": [{"name": "coder"}, {"name": "other"}]}))

        assert await client.list_models() == ["coder", "other"]
        assert session.requests[0][:2] == ("GET", "http://ollama:11434/api/tags")
        assert await client.health_check() is True

        client.model = "absent"
        assert await client.health_check() is False

    def test_provider_name(self):
        assert OllamaClient().get_provider_name() == "ollama"
