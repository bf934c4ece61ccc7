"""OpenAI-compatible chat completions client (OpenRouter by default)."""

from typing import Any

import httpx
from pydantic import ValidationError

from evotor_ai.config import DEFAULT_OPENROUTER_BASE_URL
from evotor_ai.exceptions import LLMNotConfiguredError, LLMUnavailableError
from evotor_ai.models.llm import (
    ChatMessage,
    LLMChoice,
    LLMResponse,
    LLMToolDefinition,
    LLMUsage,
    ToolCall,
    drop_orphan_tool_results,
)
from evotor_ai.utils.logging import get_logger

logger = get_logger(__name__)


def message_to_wire(message: ChatMessage) -> dict[str, Any]:
    """Convert a history message to the chat completions format."""
    payload: dict[str, Any] = {"role": message.role}
    if isinstance(message.content, str):
        payload["content"] = message.content
    else:
        payload["content"] = [part.model_dump() for part in message.content]
    if message.tool_calls:
        payload["tool_calls"] = [call.model_dump() for call in message.tool_calls]
    if message.tool_call_id:
        payload["tool_call_id"] = message.tool_call_id
    return payload


def tool_to_wire(tool: LLMToolDefinition) -> dict[str, Any]:
    return {
        "type": "function",
        "function": {
            "name": tool.name,
            "description": tool.description,
            "parameters": tool.parameters,
        },
    }


def parse_response(data: dict[str, Any], provider: str = "openrouter") -> LLMResponse:
    """Parse a chat completions response body."""
    choices: list[LLMChoice] = []
    for raw_choice in data.get("choices") or []:
        raw_message = raw_choice.get("message") or {}
        tool_calls = [ToolCall.model_validate(call) for call in raw_message.get("tool_calls") or []]
        message = ChatMessage.assistant(text=raw_message.get("content") or "", tool_calls=tool_calls)
        choices.append(LLMChoice(message=message, finish_reason=raw_choice.get("finish_reason")))

    usage = None
    if raw_usage := data.get("usage"):
        usage = LLMUsage(
            prompt_tokens=raw_usage.get("prompt_tokens") or 0,
            completion_tokens=raw_usage.get("completion_tokens") or 0,
            total_tokens=raw_usage.get("total_tokens") or 0,
            cost=float(raw_usage.get("cost") or 0.0),
        )

    return LLMResponse(choices=choices, usage=usage, model=data.get("model", ""), provider=provider)


class OpenRouterClient:
    """Chat completions client with tool calling.

    A client without API key or model is created disabled; every call then raises
    ``LLMNotConfiguredError``.
    """

    def __init__(
        self,
        api_key: str,
        model: str,
        base_url: str = DEFAULT_OPENROUTER_BASE_URL,
        timeout: float = 20.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.api_key = api_key.strip()
        self.model = model.strip()
        self.base_url = (base_url.strip() or DEFAULT_OPENROUTER_BASE_URL).rstrip("/")

        if not self.enabled:
            logger.warning(
                f"LLM config is incomplete; LLM calls will be disabled "
                f"(has_model={bool(self.model)}, has_api_key={bool(self.api_key)})"
            )

        self.http = httpx.AsyncClient(timeout=timeout, transport=transport)

    @property
    def enabled(self) -> bool:
        return bool(self.api_key and self.model)

    async def aclose(self) -> None:
        await self.http.aclose()

    async def chat(self, messages: list[ChatMessage], tools: list[LLMToolDefinition]) -> LLMResponse:
        if not self.enabled:
            raise LLMNotConfiguredError()

        payload: dict[str, Any] = {
            "model": self.model,
            "messages": [message_to_wire(message) for message in drop_orphan_tool_results(messages)],
        }
        if tools:
            payload["tools"] = [tool_to_wire(tool) for tool in tools]

        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

        logger.debug(f"Calling {self.base_url} model={self.model} messages={len(payload['messages'])}")
        try:
            response = await self.http.post(f"{self.base_url}/chat/completions", json=payload, headers=headers)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as e:
            body = e.response.text.strip()[:500]
            logger.error(f"LLM call failed with status {e.response.status_code}: {body}")
            raise LLMUnavailableError(f"llm call failed: {e.response.status_code}: {body}") from e
        except httpx.RequestError as e:
            logger.error(f"HTTP error calling LLM at {self.base_url}: {e!r}")
            raise LLMUnavailableError(f"llm request failed: {e!r}") from e
        except ValueError as e:
            raise LLMUnavailableError(f"llm returned invalid JSON: {e}") from e

        if isinstance(data, dict) and data.get("error"):
            raise LLMUnavailableError(f"llm error: {data['error']}")

        try:
            return parse_response(data)
        except (ValidationError, AttributeError, TypeError) as e:
            raise LLMUnavailableError(f"llm returned an unexpected response: {e}") from e
