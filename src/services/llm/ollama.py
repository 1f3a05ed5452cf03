"""
Ollama chat client for the agentic search loop.

Talks to ``/api/chat`` with ``stream: false`` and a tool list. The configured
model must support tool calling; ``/api/tags`` backs model listing and the
health check.
"""

from typing import Any, Optional
import time

import httpx

from src.config import get_settings
from src.services.llm.base import LLMService
from src.services.llm.models import (
    GenerationConfig,
    GenerationResult,
    LLMMessage,
    TokenUsage,
    ToolCall,
    ToolSpec,
)
from src.utils.exceptions import (
    LLMError,
    LLMGenerationError,
    LLMTimeoutError,
    LLMConnectionError,
    LLMModelNotFoundError,
)
from src.utils.logging import get_logger

logger = get_logger(__name__)


class OllamaService(LLMService):
    """Tool-calling chat against a local or remote Ollama server."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        default_model: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        config = get_settings().llm
        self.base_url = base_url or config.base_url
        self.default_model = default_model or config.model
        self.timeout = timeout or config.timeout
        self.default_temperature = config.temperature
        self.default_max_tokens = config.max_tokens
        self._verify_ssl = config.verify_ssl
        self._transport = transport

        self._client: Optional[httpx.AsyncClient] = None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout),
                base_url=self.base_url,
                verify=self._verify_ssl,
                transport=self._transport,
            )
        return self._client

    async def close(self):
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    def _chat_payload(
        self,
        messages: list[LLMMessage],
        tools: Optional[list[ToolSpec]],
        config: Optional[GenerationConfig],
    ) -> dict[str, Any]:
        config = config or GenerationConfig(
            model=self.default_model,
            temperature=self.default_temperature,
            max_tokens=self.default_max_tokens,
        )
        options: dict[str, Any] = {"temperature": config.temperature, "num_predict": config.max_tokens}
        if config.seed is not None:
            options["seed"] = config.seed

        payload: dict[str, Any] = {
            "model": config.model or self.default_model,
            "messages": [m.to_dict() for m in messages],
            "stream": False,
            "options": options,
        }
        if tools:
            payload["tools"] = [t.to_dict() for t in tools]
        return payload

    async def _post_chat(self, payload: dict[str, Any]) -> dict[str, Any]:
        """POST one chat request and map every failure to an ``LLMError``."""
        model = payload["model"]
        try:
            client = await self._get_client()
            response = await client.post("/api/chat", json=payload)
            response.raise_for_status()
            data = response.json()
        except httpx.TimeoutException:
            logger.error(f"Ollama timed out after {self.timeout}s ({model})")
            raise LLMTimeoutError(model, self.timeout)
        except httpx.TransportError as e:
            logger.error(f"Ollama unreachable at {self.base_url}: {e}")
            raise LLMConnectionError("Ollama", str(e))
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            if status == 404:
                raise LLMModelNotFoundError(model)
            logger.error(f"Ollama chat returned {status}")
            raise LLMError(f"Chat failed with status {status}", code="LLM_HTTP_ERROR")
        except ValueError as e:
            raise LLMGenerationError(model, f"invalid response body: {e}")

        if not isinstance(data, dict):
            raise LLMGenerationError(model, "response body is not an object")
        return data

    async def chat(
        self,
        messages: list[LLMMessage],
        tools: Optional[list[ToolSpec]] = None,
        config: Optional[GenerationConfig] = None,
    ) -> GenerationResult:
        payload = self._chat_payload(messages, tools, config)
        model = payload["model"]
        logger.debug(f"Chat with {model}: {len(messages)} messages, {len(tools or [])} tools")

        start_time = time.time()
        data = await self._post_chat(payload)
        elapsed = time.time() - start_time

        message = data.get("message") or {}
        tool_calls = [ToolCall.from_dict(c) for c in message.get("tool_calls") or []]
        prompt_tokens = data.get("prompt_eval_count", 0)
        completion_tokens = data.get("eval_count", 0)

        logger.info(f"{model} replied with {len(tool_calls)} tool calls in {elapsed:.2f}s")

        return GenerationResult(
            content=message.get("content", ""),
            model=model,
            usage=TokenUsage(
                prompt_tokens=prompt_tokens,
                completion_tokens=completion_tokens,
                total_tokens=prompt_tokens + completion_tokens,
            ),
            generation_time=elapsed,
            finish_reason=data.get("done_reason"),
            tool_calls=tool_calls,
        )

    async def list_models(self) -> list[str]:
        """Installed model names; empty when Ollama cannot be reached."""
        try:
            client = await self._get_client()
            response = await client.get("/api/tags")
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Failed to list Ollama models: {e}")
            return []

        models = data.get("models") if isinstance(data, dict) else None
        return [m["name"] for m in models or [] if isinstance(m, dict) and m.get("name")]

    async def health_check(self) -> bool:
        try:
            client = await self._get_client()
            response = await client.get("/api/tags")
        except httpx.HTTPError as e:
            logger.warning(f"Ollama health check failed: {e}")
            return False
        return response.status_code == 200
