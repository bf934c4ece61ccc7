"""Anthropic Messages API client with rate limiting and tool-call translation."""

import json
from dataclasses import dataclass
from typing import Any, Literal

from anthropic import APIError, AsyncAnthropic
from pydantic import BaseModel

from evotor_ai.exceptions import LLMNotConfiguredError, LLMUnavailableError
from evotor_ai.models.llm import (
    ChatMessage,
    FunctionCall,
    LLMChoice,
    LLMResponse,
    LLMToolDefinition,
    LLMUsage,
    ToolCall,
    drop_orphan_tool_results,
)
from evotor_ai.utils.logging import get_logger
from evotor_ai.utils.rate_limit import RateLimiter

logger = get_logger(__name__)


class CacheControl(BaseModel):
    """Cache control configuration for prompt caching."""

    type: Literal["ephemeral"] = "ephemeral"


class AnthropicTool(BaseModel):
    """Tool definition for Anthropic API."""

    name: str
    description: str
    input_schema: dict[str, Any]
    cache_control: CacheControl | None = None


@dataclass
class AnthropicConfig:
    """Configuration for Anthropic API client."""

    model: str = ""
    max_tokens: int = 1024
    temperature: float = 0.1
    timeout: float = 20.0
    requests_per_minute: int = 50


def _decode_arguments(arguments: str) -> dict[str, Any]:
    if not arguments.strip():
        return {}
    try:
        decoded = json.loads(arguments)
    except json.JSONDecodeError:
        return {"_raw": arguments}
    return decoded if isinstance(decoded, dict) else {"_raw": decoded}


def _content_blocks(message: ChatMessage) -> list[dict[str, Any]]:
    """Translate one history message into Anthropic content blocks."""
    if message.role == "tool":
        return [
            {
                "type": "tool_result",
                "tool_use_id": message.tool_call_id or "",
                "content": message.text,
            }
        ]

    blocks: list[dict[str, Any]] = [{"type": "text", "text": text} for text in message.text_parts() if text.strip()]
    for call in message.tool_calls or []:
        blocks.append(
            {
                "type": "tool_use",
                "id": call.id,
                "name": call.function.name,
                "input": _decode_arguments(call.function.arguments),
            }
        )
    return blocks


def convert_messages(messages: list[ChatMessage]) -> tuple[str, list[dict[str, Any]]]:
    """Split history into a system prompt and alternating user/assistant messages.

    Tool results travel as ``tool_result`` blocks inside user messages; consecutive
    messages of the same role are merged. Messages ahead of the first user message
    are skipped.
    """
    system_parts: list[str] = []
    converted: list[dict[str, Any]] = []

    for message in drop_orphan_tool_results(messages):
        if message.role == "system":
            system_parts.append(message.text)
            continue

        role = "assistant" if message.role == "assistant" else "user"
        blocks = _content_blocks(message)
        if not blocks or (not converted and message.role != "user"):
            continue

        if converted and converted[-1]["role"] == role:
            converted[-1]["content"].extend(blocks)
        else:
            converted.append({"role": role, "content": blocks})

    return "\n\n".join(part for part in system_parts if part), converted


class AnthropicLLMClient:
    """Anthropic-backed implementation of the LLM client interface."""

    def __init__(
        self,
        api_key: str,
        config: AnthropicConfig | None = None,
        client: AsyncAnthropic | None = None,
    ):
        """Initialize Anthropic client.

        Args:
            api_key: Anthropic API key (empty key disables the client)
            config: Client configuration
            client: Pre-built SDK client (tests)
        """
        self.api_key = api_key.strip()
        self.config = config or AnthropicConfig()
        self.rate_limiter = RateLimiter(requests_per_minute=self.config.requests_per_minute, name="anthropic")

        if not self.enabled:
            logger.warning(
                f"LLM config is incomplete; LLM calls will be disabled "
                f"(has_model={bool(self.config.model)}, has_api_key={bool(self.api_key)})"
            )
            self.client = client
            return

        # The agent loop never retries model calls, so neither does the SDK
        self.client = client or AsyncAnthropic(api_key=self.api_key, timeout=self.config.timeout, max_retries=0)

    @property
    def enabled(self) -> bool:
        return bool(self.api_key and self.config.model.strip())

    async def aclose(self) -> None:
        if self.client is not None:
            await self.client.close()

    async def chat(self, messages: list[ChatMessage], tools: list[LLMToolDefinition]) -> LLMResponse:
        if not self.enabled or self.client is None:
            raise LLMNotConfiguredError()

        system_prompt, anthropic_messages = convert_messages(messages)

        # Cache control on the last tool caches the whole tool catalog
        anthropic_tools = [
            AnthropicTool(
                name=tool.name,
                description=tool.description,
                input_schema=tool.parameters,
                cache_control=CacheControl() if i == len(tools) - 1 else None,
            ).model_dump(exclude_none=True)
            for i, tool in enumerate(tools)
        ]

        request_params: dict[str, Any] = {
            "model": self.config.model,
            "max_tokens": self.config.max_tokens,
            "temperature": self.config.temperature,
            "messages": anthropic_messages,
        }
        if system_prompt:
            request_params["system"] = system_prompt
        if anthropic_tools:
            request_params["tools"] = anthropic_tools

        await self.rate_limiter.acquire()
        logger.debug(f"Making Anthropic API call with model {self.config.model}, {len(anthropic_messages)} messages")
        try:
            response = await self.client.messages.create(**request_params)
        except APIError as e:
            logger.error(f"Anthropic call failed: {e}")
            raise LLMUnavailableError(f"llm call failed: {e}") from e

        return self._convert_response(response)

    def _convert_response(self, response: Any) -> LLMResponse:
        """Convert an Anthropic message into a single-choice response."""
        texts: list[str] = []
        tool_calls: list[ToolCall] = []
        for block in response.content or []:
            block_type = getattr(block, "type", None)
            if block_type == "text":
                texts.append(block.text)
            elif block_type == "tool_use":
                tool_calls.append(
                    ToolCall(
                        id=block.id,
                        function=FunctionCall(name=block.name, arguments=json.dumps(block.input, ensure_ascii=False)),
                    )
                )
            else:
                logger.warning(f"Unknown content block type: {block_type}")

        usage = None
        if response.usage:
            usage = LLMUsage(
                prompt_tokens=response.usage.input_tokens,
                completion_tokens=response.usage.output_tokens,
                total_tokens=response.usage.input_tokens + response.usage.output_tokens,
            )

        choices: list[LLMChoice] = []
        if texts or tool_calls:
            message = ChatMessage.assistant(text="".join(texts), tool_calls=tool_calls)
            choices.append(LLMChoice(message=message, finish_reason=response.stop_reason))

        return LLMResponse(choices=choices, usage=usage, model=response.model, provider="anthropic")
