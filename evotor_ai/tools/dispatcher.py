"""Tool dispatcher: executes the tool calls of one model round."""

import json
import time
from dataclasses import dataclass, field
from typing import Any

from pydantic_core import PydanticSerializationError, to_json

from evotor_ai.exceptions import ToolArgumentError, ToolDispatchError, UnknownToolError
from evotor_ai.models.llm import ChatMessage, ToolCall
from evotor_ai.models.response import Results, ToolCallRecord
from evotor_ai.tools.base import ToolContext, ToolName, elapsed_ms, log_tool_record
from evotor_ai.tools.registry import ToolsRegistry, get_tools_registry
from evotor_ai.utils.logging import get_logger

logger = get_logger(__name__)

SKIPPED_CALL_ERROR = "tool call skipped: batch aborted"


@dataclass
class DispatchBatch:
    """Outcome of one batch: tool-result messages, audit records and the latest structured results."""

    messages: list[ChatMessage] = field(default_factory=list)
    records: list[ToolCallRecord] = field(default_factory=list)
    results: Results | None = None


def tool_error_payload(message: str) -> str:
    return json.dumps({"error": message}, ensure_ascii=False)


def decode_arguments(raw: str) -> dict[str, Any]:
    """Decode a raw argument payload into a key/value map.

    Raises:
        ToolArgumentError: If the payload is not a JSON object
    """
    if not raw.strip():
        return {}
    try:
        decoded = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ToolArgumentError(f"invalid tool args: {e}") from e
    if not isinstance(decoded, dict):
        raise ToolArgumentError(f"invalid tool args: expected a JSON object, got {type(decoded).__name__}")
    return decoded


class ToolDispatcher:
    """Runs tool calls sequentially against the data facade.

    Argument problems stay local to their call. Anything else (unknown tool, facade
    failure, unserializable result) aborts the batch with ``ToolDispatchError``.
    """

    def __init__(self, context: ToolContext, registry: ToolsRegistry | None = None):
        self.context = context
        self.registry = registry or get_tools_registry()

    async def dispatch(self, calls: list[ToolCall]) -> DispatchBatch:
        """Dispatch every call in request order.

        Every call is answered by exactly one tool-result message addressed to its
        id, including the calls left unexecuted by an aborted batch.

        Raises:
            ToolDispatchError: Carrying the cause and the batch produced so far
        """
        batch = DispatchBatch()
        for index, call in enumerate(calls):
            try:
                await self._dispatch_one(call, batch)
            except ToolDispatchError:
                for skipped in calls[index + 1 :]:
                    batch.messages.append(ChatMessage.tool(skipped.id, tool_error_payload(SKIPPED_CALL_ERROR)))
                raise
        return batch

    async def _dispatch_one(self, call: ToolCall, batch: DispatchBatch) -> None:
        try:
            args = decode_arguments(call.function.arguments)
        except ToolArgumentError as e:
            self._record_failure(batch, call, {}, str(e))
            return

        try:
            name = ToolName(call.name)
        except ValueError:
            error = UnknownToolError(call.name)
            logger.error(f"Unknown tool requested: {call.name}")
            self._record_failure(batch, call, args, str(error))
            raise ToolDispatchError(error, batch) from None

        tool = self.registry.get(name)
        started = time.perf_counter()
        try:
            params = tool.parse_input(args)
        except ToolArgumentError as e:
            self._record_failure(batch, call, args, str(e), elapsed_ms(started))
            return

        logger.debug(f"Executing tool: {name} with input: {args}")
        try:
            result = await tool.handler(params, self.context)
        except Exception as e:
            self._record_failure(batch, call, args, str(e) or repr(e), elapsed_ms(started))
            raise ToolDispatchError(e, batch) from e
        ms = elapsed_ms(started)

        try:
            payload = to_json(result, by_alias=True).decode()
        except PydanticSerializationError as e:
            self._record_failure(batch, call, args, f"cannot serialize result: {e}", ms)
            raise ToolDispatchError(e, batch) from e

        record = ToolCallRecord(name=name.value, args=args, ms=ms, ok=True)
        log_tool_record(record)
        batch.records.append(record)
        batch.messages.append(ChatMessage.tool(call.id, payload))
        if tool.to_results is not None:
            batch.results = tool.to_results(result)

    @staticmethod
    def _record_failure(batch: DispatchBatch, call: ToolCall, args: dict[str, Any], err: str, ms: int = 0) -> None:
        record = ToolCallRecord.failed(call.name, args, err, ms)
        log_tool_record(record)
        batch.records.append(record)
        batch.messages.append(ChatMessage.tool(call.id, tool_error_payload(record.err)))
