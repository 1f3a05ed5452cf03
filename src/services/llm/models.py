"""
LLM service models.
"""

import json
from dataclasses import dataclass, field
from typing import Optional, Any
from enum import Enum


class LLMRole(str, Enum):
    """Message role in a conversation."""
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"
    TOOL = "tool"


@dataclass
class ToolCall:
    """A function call requested by the model."""

    name: str
    arguments: dict[str, Any] = field(default_factory=dict)
    id: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict) -> "ToolCall":
        """Parse an Ollama ``tool_calls`` entry. Arguments may arrive JSON-encoded."""
        function = data.get("function", {})
        arguments = function.get("arguments") or {}
        if isinstance(arguments, str):
            try:
                arguments = json.loads(arguments)
            except json.JSONDecodeError:
                arguments = {}
        return cls(
            name=function.get("name", ""),
            arguments=arguments if isinstance(arguments, dict) else {},
            id=data.get("id"),
        )

    def to_dict(self) -> dict:
        data: dict[str, Any] = {"function": {"name": self.name, "arguments": self.arguments}}
        if self.id:
            data["id"] = self.id
        return data


@dataclass
class LLMMessage:
    """A single message in a conversation."""

    role: LLMRole
    content: str
    tool_calls: list[ToolCall] = field(default_factory=list)
    tool_name: Optional[str] = None  # Set on TOOL messages

    def to_dict(self) -> dict:
        data: dict[str, Any] = {"role": self.role.value, "content": self.content}
        if self.tool_calls:
            data["tool_calls"] = [c.to_dict() for c in self.tool_calls]
        if self.tool_name:
            data["tool_name"] = self.tool_name
        return data


@dataclass
class ToolSpec:
    """A function the model may call."""

    name: str
    description: str
    parameters: dict  # JSON schema

    def to_dict(self) -> dict:
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.parameters,
            },
        }


@dataclass
class GenerationConfig:
    """Configuration for LLM generation requests.

    Note: This is different from src.config.LLMConfig which is for
    application-level LLM service settings.
    """

    model: str
    temperature: float = 0.0
    max_tokens: int = 4096
    seed: Optional[int] = None  # For reproducibility


@dataclass
class TokenUsage:
    """Token usage statistics."""

    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0

    def __add__(self, other: "TokenUsage") -> "TokenUsage":
        return TokenUsage(
            prompt_tokens=self.prompt_tokens + other.prompt_tokens,
            completion_tokens=self.completion_tokens + other.completion_tokens,
            total_tokens=self.total_tokens + other.total_tokens,
        )


@dataclass
class GenerationResult:
    """Result of an LLM generation."""

    content: str
    model: str
    usage: TokenUsage = field(default_factory=TokenUsage)
    generation_time: float = 0.0
    finish_reason: Optional[str] = None
    tool_calls: list[ToolCall] = field(default_factory=list)

    @property
    def has_tool_calls(self) -> bool:
        return bool(self.tool_calls)

    def to_message(self) -> LLMMessage:
        """The assistant message to append to the conversation."""
        return LLMMessage(
            role=LLMRole.ASSISTANT,
            content=self.content,
            tool_calls=list(self.tool_calls),
        )
