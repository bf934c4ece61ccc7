"""Base types and definitions for tools."""

import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, ValidationError

from evotor_ai.clients.evotor import PosDataSource
from evotor_ai.exceptions import ToolArgumentError
from evotor_ai.models.llm import LLMToolDefinition
from evotor_ai.models.response import Results, ToolCallRecord
from evotor_ai.tools.args import describe_validation_error
from evotor_ai.utils.logging import get_logger

logger = get_logger(__name__)

DEFAULT_OUTPUT_LIMIT = 10

STORE_ID_DESCRIPTION = (
    "Optional store ID. Use when the user selected a specific store; otherwise omit to use the default store."
)


class ToolName(StrEnum):
    """Closed set of operations the model may request."""

    GET_SALES_METRICS = "GetSalesMetrics"
    LIST_STORES = "ListStores"
    SEARCH_ITEMS = "SearchItems"
    SEARCH_DOCUMENTS = "SearchDocuments"
    GET_DOCUMENT = "GetDocument"


class ToolInput(BaseModel):
    """Base for tool argument models.

    Unknown keys are ignored when parsing, but the published schema forbids them.
    """

    model_config = ConfigDict(
        extra="ignore",
        populate_by_name=True,
        json_schema_extra={"additionalProperties": False},
    )


@dataclass
class ToolContext:
    """Everything a tool handler needs besides its arguments."""

    client: PosDataSource
    default_store_id: str = ""
    output_limit: int = DEFAULT_OUTPUT_LIMIT

    def resolve_store_id(self, store_id: str) -> str | None:
        """Explicit store id wins, then the configured default; None lets the client decide."""
        return store_id.strip() or self.default_store_id.strip() or None


ToolHandler = Callable[[Any, ToolContext], Awaitable[Any]]
ResultsBuilder = Callable[[Any], Results | None]


@dataclass
class ToolDefinition:
    """Definition of a tool available to the model."""

    name: ToolName
    description: str
    input_schema_class: type[ToolInput]
    handler: ToolHandler
    to_results: ResultsBuilder | None = None

    def get_json_schema(self) -> dict[str, Any]:
        """Get JSON schema for this tool's input."""
        schema = self.input_schema_class.model_json_schema()
        schema.pop("title", None)
        schema.setdefault("properties", {})
        return schema

    def parse_input(self, raw_input: dict[str, Any]) -> ToolInput:
        """Parse and validate tool input.

        Raises:
            ToolArgumentError: If an argument is missing or cannot be coerced
        """
        try:
            return self.input_schema_class.model_validate(raw_input)
        except ValidationError as e:
            raise ToolArgumentError(describe_validation_error(e)) from e

    def to_llm_tool(self) -> LLMToolDefinition:
        return LLMToolDefinition(name=self.name.value, description=self.description, parameters=self.get_json_schema())


def elapsed_ms(started: float) -> int:
    """Milliseconds since a ``time.perf_counter()`` reading."""
    return int((time.perf_counter() - started) * 1000)


def log_tool_record(record: ToolCallRecord) -> None:
    """Log one tool call with its outcome."""
    if record.ok:
        logger.info(f"Tool call {record.name} ok in {record.ms}ms, args={record.args}")
    else:
        logger.warning(f"Tool call {record.name} failed in {record.ms}ms, args={record.args}: {record.err}")
