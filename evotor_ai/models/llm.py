"""LLM-related data models and types (provider-agnostic)."""

import json
from dataclasses import dataclass, field
from typing import Any, Literal, Protocol

from pydantic import BaseModel, ConfigDict, field_validator

Role = Literal["system", "user", "assistant", "tool"]


class TextPart(BaseModel):
    """One text part of a multi-part message."""

    model_config = ConfigDict(extra="ignore")

    type: Literal["text"] = "text"
    text: str


class FunctionCall(BaseModel):
    """Function name and raw JSON argument payload requested by the model."""

    name: str
    arguments: str = ""

    @field_validator("arguments", mode="before")
    @classmethod
    def _encode_arguments(cls, value: Any) -> Any:
        # Some providers send null or an already decoded object
        if value is None:
            return ""
        if isinstance(value, dict):
            return json.dumps(value, ensure_ascii=False)
        return value


class ToolCall(BaseModel):
    """A single function call requested by the assistant."""

    model_config = ConfigDict(extra="ignore")

    id: str
    type: Literal["function"] = "function"
    function: FunctionCall

    @property
    def name(self) -> str:
        return self.function.name


class ChatMessage(BaseModel):
    """A message of the conversation history."""

    role: Role
    content: str | list[TextPart] = ""
    tool_calls: list[ToolCall] | None = None
    tool_call_id: str | None = None

    @classmethod
    def system(cls, text: str) -> "ChatMessage":
        return cls(role="system", content=text)

    @classmethod
    def user(cls, *parts: str) -> "ChatMessage":
        """User message; several parts produce multi-part content."""
        if len(parts) == 1:
            return cls(role="user", content=parts[0])
        return cls(role="user", content=[TextPart(text=part) for part in parts])

    @classmethod
    def assistant(cls, text: str = "", tool_calls: list[ToolCall] | None = None) -> "ChatMessage":
        return cls(role="assistant", content=text, tool_calls=tool_calls or None)

    @classmethod
    def tool(cls, tool_call_id: str, payload: str) -> "ChatMessage":
        return cls(role="tool", content=payload, tool_call_id=tool_call_id)

    def text_parts(self) -> list[str]:
        """All non-empty text parts of the message."""
        if isinstance(self.content, str):
            return [self.content] if self.content else []
        return [part.text for part in self.content if part.text]

    @property
    def text(self) -> str:
        return "\n".join(self.text_parts())

    @property
    def has_tool_calls(self) -> bool:
        return bool(self.tool_calls)


class LLMToolDefinition(BaseModel):
    """Complete tool definition sent to the model."""

    name: str
    description: str
    parameters: dict[str, Any]


@dataclass
class LLMUsage:
    """Token/resource usage information from the LLM provider."""

    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0
    cost: float = 0.0


@dataclass
class LLMChoice:
    """One candidate answer of a model response."""

    message: ChatMessage
    finish_reason: str | None = None


@dataclass
class LLMResponse:
    """Provider-agnostic response from an LLM client."""

    choices: list[LLMChoice] = field(default_factory=list)
    usage: LLMUsage | None = None
    model: str = ""
    provider: str = ""


class LLMClient(Protocol):
    """Interface implemented by the model clients."""

    @property
    def enabled(self) -> bool:
        """Whether the client has an API key and a model."""
        ...

    async def chat(self, messages: list[ChatMessage], tools: list[LLMToolDefinition]) -> LLMResponse:
        """Send the conversation and the tool catalog, return the model response.

        Raises:
            LLMNotConfiguredError: If the client is disabled
            LLMUnavailableError: If the call fails
        """
        ...


def drop_orphan_tool_results(messages: list[ChatMessage]) -> list[ChatMessage]:
    """Remove tool results whose originating assistant call is no longer in the history.

    History trimming can evict an assistant tool-call message while keeping its
    results; providers reject such results, so they are left out of the wire payload.
    """
    known_ids: set[str] = set()
    kept: list[ChatMessage] = []
    for message in messages:
        if message.role == "assistant" and message.tool_calls:
            known_ids.update(call.id for call in message.tool_calls)
        if message.role == "tool" and message.tool_call_id not in known_ids:
            continue
        kept.append(message)
    return kept
