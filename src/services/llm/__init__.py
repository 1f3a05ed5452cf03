"""LLM Service - Ollama integration with function calling."""
from .base import LLMService
from .ollama import OllamaService
from .models import GenerationConfig, GenerationResult, LLMMessage, LLMRole, ToolCall, ToolSpec

__all__ = [
    "LLMService",
    "OllamaService",
    "GenerationConfig",
    "GenerationResult",
    "LLMMessage",
    "LLMRole",
    "ToolCall",
    "ToolSpec",
]
