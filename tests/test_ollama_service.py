"""
Tests for the Ollama chat client.
"""

import json

import httpx
import pytest

from src.core.tools import TOOL_SPECS
from src.services.llm.models import GenerationConfig, LLMMessage, LLMRole, ToolCall
from src.services.llm.ollama import OllamaService
from src.utils.exceptions import (
    LLMConnectionError,
    LLMError,
    LLMGenerationError,
    LLMModelNotFoundError,
)


def make_service(handler) -> OllamaService:
    return OllamaService(base_url="http://ollama.test", transport=httpx.MockTransport(handler))


class TestOllamaChat:
    """Chat requests with tools."""

    @pytest.mark.asyncio
    async def test_tool_calls_are_parsed(self):
        seen = []

        def handler(request):
            seen.append(json.loads(request.content))
            return httpx.Response(200, json={
                "message": {
                    "role": "assistant",
                    "content": "",
                    "tool_calls": [
                        {"function": {"name": "braveSearch", "arguments": {"query": "python"}}},
                        {"function": {"name": "braveSuggest", "arguments": '{"query": "pyth"}'}},
                    ],
                },
                "prompt_eval_count": 12,
                "eval_count": 3,
                "done_reason": "stop",
            })

        service = make_service(handler)
        messages = [
            LLMMessage(role=LLMRole.USER, content="hi"),
            LLMMessage(role=LLMRole.TOOL, content="{}", tool_name="braveSearch"),
        ]

        result = await service.chat(messages, tools=TOOL_SPECS)
        await service.close()

        body = seen[0]
        assert body["stream"] is False
        assert [t["function"]["name"] for t in body["tools"]] == ["braveSearch", "braveSuggest"]
        assert body["messages"][1] == {"role": "tool", "content": "{}", "tool_name": "braveSearch"}
        assert result.tool_calls == [
            ToolCall(name="braveSearch", arguments={"query": "python"}),
            ToolCall(name="braveSuggest", arguments={"query": "pyth"}),
        ]
        assert result.usage.total_tokens == 15

    @pytest.mark.asyncio
    async def test_missing_model(self):
        service = make_service(lambda request: httpx.Response(404))

        with pytest.raises(LLMModelNotFoundError):
            await service.chat([LLMMessage(role=LLMRole.USER, content="hi")])

    @pytest.mark.asyncio
    async def test_unreachable(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        service = make_service(handler)

        with pytest.raises(LLMConnectionError):
            await service.chat([LLMMessage(role=LLMRole.USER, content="hi")])

    @pytest.mark.asyncio
    async def test_generation_config_reaches_options(self):
        seen = []

        def handler(request):
            seen.append(json.loads(request.content))
            return httpx.Response(200, json={"message": {"role": "assistant", "content": "ok"}})

        service = make_service(handler)
        config = GenerationConfig(model="qwen2.5:7b", temperature=0.2, max_tokens=256, seed=7)

        result = await service.chat([LLMMessage(role=LLMRole.USER, content="hi")], config=config)

        assert seen[0]["model"] == "qwen2.5:7b"
        assert seen[0]["options"] == {"temperature": 0.2, "num_predict": 256, "seed": 7}
        assert "tools" not in seen[0]
        assert result.content == "ok"
        assert result.tool_calls == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("response, error", [
        (httpx.Response(500), LLMError),
        (httpx.Response(200, text="not json"), LLMGenerationError),
        (httpx.Response(200, json=["not", "an", "object"]), LLMGenerationError),
    ])
    async def test_bad_responses_raise_llm_errors(self, response, error):
        service = make_service(lambda request: response)

        with pytest.raises(error):
            await service.chat([LLMMessage(role=LLMRole.USER, content="hi")])


class TestOllamaModels:
    """Model listing."""

    @pytest.mark.asyncio
    async def test_list_models(self):
        service = make_service(lambda request: httpx.Response(200, json={
            "models": [{"name": "llama3.1:8b"}, {"name": ""}],
        }))

        assert await service.list_models() == ["llama3.1:8b"]

    @pytest.mark.asyncio
    async def test_list_models_when_down(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        assert await make_service(handler).list_models() == []

    @pytest.mark.asyncio
    async def test_list_models_ignores_unexpected_shapes(self):
        service = make_service(lambda request: httpx.Response(200, json={"models": ["llama3.1:8b"]}))

        assert await service.list_models() == []
