"""
Abstract base class for LLM services.
"""

from abc import ABC, abstractmethod
from typing import Optional

from src.services.llm.models import (
    GenerationConfig,
    GenerationResult,
    LLMMessage,
    ToolSpec,
)


class LLMService(ABC):
    """
    Abstract interface for LLM providers.

    Implementations must support chat with function calling.
    """

    @abstractmethod
    async def chat(
        self,
        messages: list[LLMMessage],
        tools: Optional[list[ToolSpec]] = None,
        config: Optional[GenerationConfig] = None,
    ) -> GenerationResult:
        """
        Generate response for a conversation.

        Args:
            messages: List of conversation messages
            tools: Functions the model may call instead of answering
            config: Generation configuration

        Returns:
            GenerationResult with the response text and any tool calls

        Raises:
            LLMError: If generation fails
            LLMTimeoutError: If generation times out
        """
        pass

    @abstractmethod
    async def list_models(self) -> list[str]:
        """
        List available models.

        Returns:
            List of model names
        """
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        """
        Check if the LLM service is available.

        Returns:
            True if service is healthy
        """
        pass

    async def close(self) -> None:
        """Release any held connections."""
        return None
