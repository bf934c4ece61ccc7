"""Shared fakes and fixtures."""

import json
from collections.abc import Callable
from datetime import datetime
from typing import Any

import pytest

from evotor_ai.config import Settings
from evotor_ai.models.evotor import DocumentFull, DocumentShort, Item, SalesMetrics, Store
from evotor_ai.models.llm import ChatMessage, FunctionCall, LLMChoice, LLMResponse, LLMToolDefinition, LLMUsage, ToolCall

ScriptedReply = LLMResponse | Exception | Callable[[list[ChatMessage]], LLMResponse]


def text_response(text: str) -> LLMResponse:
    """Model reply with a final answer."""
    return LLMResponse(
        choices=[LLMChoice(message=ChatMessage.assistant(text=text), finish_reason="stop")],
        usage=LLMUsage(prompt_tokens=10, completion_tokens=5, total_tokens=15),
        model="test-model",
        provider="test",
    )


def tool_call_response(*calls: tuple[str, dict[str, Any] | str], round_id: str = "r1") -> LLMResponse:
    """Model reply requesting tool calls; string arguments are sent verbatim."""
    tool_calls = [
        ToolCall(
            id=f"{round_id}-call-{i}",
            function=FunctionCall(
                name=name,
                arguments=arguments if isinstance(arguments, str) else json.dumps(arguments, ensure_ascii=False),
            ),
        )
        for i, (name, arguments) in enumerate(calls)
    ]
    return LLMResponse(
        choices=[LLMChoice(message=ChatMessage.assistant(tool_calls=tool_calls), finish_reason="tool_calls")],
        model="test-model",
        provider="test",
    )


class ScriptedLLM:
    """LLM client replaying prepared replies in order."""

    def __init__(self, replies: list[ScriptedReply] | None = None, enabled: bool = True):
        self.replies = list(replies or [])
        self._enabled = enabled
        self.calls: list[list[ChatMessage]] = []
        self.tools: list[list[LLMToolDefinition]] = []
        self.closed = False

    @property
    def enabled(self) -> bool:
        return self._enabled

    async def chat(self, messages: list[ChatMessage], tools: list[LLMToolDefinition]) -> LLMResponse:
        self.calls.append(messages)
        self.tools.append(tools)
        if not self.replies:
            raise AssertionError("unexpected model call")
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        if callable(reply):
            return reply(messages)
        return reply

    async def aclose(self) -> None:
        self.closed = True


class FakeDataSource:
    """In-memory data facade recording every call."""

    def __init__(
        self,
        stores: list[Store] | None = None,
        items: list[Item] | None = None,
        documents: list[DocumentShort] | None = None,
        full_documents: dict[str, DocumentFull] | None = None,
        errors: dict[str, Exception] | None = None,
    ):
        self.stores = stores or []
        self.items = items or []
        self.documents = documents or []
        self.full_documents = full_documents or {}
        self.errors = errors or {}
        self.calls: list[tuple[str, dict[str, Any]]] = []
        self.closed = False

    def _record(self, name: str, **kwargs: Any) -> None:
        self.calls.append((name, kwargs))
        if name in self.errors:
            raise self.errors[name]

    def call_names(self) -> list[str]:
        return [name for name, _ in self.calls]

    async def list_stores(self) -> list[Store]:
        self._record("list_stores")
        return list(self.stores)

    async def search_items(self, query: str, limit: int, store_id: str | None = None) -> list[Item]:
        self._record("search_items", query=query, limit=limit, store_id=store_id)
        matches = [item for item in self.items if query.lower() in item.name.lower()]
        return matches[:limit] if limit > 0 else matches

    async def search_documents(
        self,
        date_from: datetime | None,
        date_to: datetime | None,
        store_id: str | None = None,
        limit: int = 0,
        offset: int = 0,
    ) -> list[DocumentShort]:
        self._record(
            "search_documents", date_from=date_from, date_to=date_to, store_id=store_id, limit=limit, offset=offset
        )
        documents = self.documents[offset:]
        return documents[:limit] if limit > 0 else documents

    async def get_document(self, doc_id: str, store_id: str | None = None) -> DocumentFull:
        self._record("get_document", doc_id=doc_id, store_id=store_id)
        return self.full_documents[doc_id]

    async def get_sales_metrics(
        self,
        date_from: datetime | None,
        date_to: datetime | None,
        store_id: str | None = None,
        document_type: str | None = None,
    ) -> SalesMetrics:
        self._record(
            "get_sales_metrics", date_from=date_from, date_to=date_to, store_id=store_id, document_type=document_type
        )
        return SalesMetrics(
            count=3,
            total_sum=1500.5,
            store_id=store_id or "",
            from_=date_from.isoformat() if date_from else "",
            to=date_to.isoformat() if date_to else "",
            document_types={"SELL": 3},
        )

    async def aclose(self) -> None:
        self.closed = True


@pytest.fixture
def settings() -> Settings:
    return Settings(
        evotor_token="evotor-token",
        evotor_store_id="store-1",
        llm_api_key="llm-key",
        llm_model="test-model",
        log_file=None,
    )


@pytest.fixture
def data_source() -> FakeDataSource:
    return FakeDataSource(
        stores=[Store(id="store-1", name="Кофейня на Ленина"), Store(id="store-2", name="Склад")],
        items=[
            Item(id="item-1", name="Кофе 250г", price=450.0, article_number="A-1", barcodes=["4600000000011"]),
            Item(id="item-2", name="Чай зелёный", price=300.0),
        ],
    )
