"""Tests for the tool-calling agent loop."""

import asyncio
import json

import pytest
from conftest import FakeDataSource, ScriptedLLM, text_response, tool_call_response

from evotor_ai.exceptions import (
    EmptyModelResponseError,
    LLMNotConfiguredError,
    LLMUnavailableError,
    MissingStoreIDError,
    RateLimitedError,
    ToolDispatchError,
    UnknownToolError,
)
from evotor_ai.models.llm import ChatMessage, LLMResponse
from evotor_ai.models.response import ItemResults
from evotor_ai.services.agent import (
    STEP_LIMIT_ANSWER,
    STEP_LIMIT_NEXT_STEP,
    AgentLoop,
    friendly_error,
)
from evotor_ai.services.history import ConversationStore
from evotor_ai.tools.base import ToolContext
from evotor_ai.tools.dispatcher import ToolDispatcher
from evotor_ai.tools.registry import ToolsRegistry

PERIOD = {"from": "2025-01-01T00:00:00+03:00", "to": "2025-01-07T23:59:59+03:00"}


def make_agent(llm, data_source, default_store_id: str = "store-1") -> AgentLoop:
    registry = ToolsRegistry()
    return AgentLoop(llm, ToolDispatcher(ToolContext(data_source, default_store_id), registry), registry)


def assert_protocol(messages: list[ChatMessage]) -> None:
    """Every tool call is answered by exactly one following tool message."""
    pending: list[str] = []
    for message in messages:
        if message.role == "tool":
            assert message.tool_call_id == pending.pop(0)
            continue
        assert pending == [], "tool calls left unanswered"
        if message.role == "assistant" and message.tool_calls:
            pending = [call.id for call in message.tool_calls]
    assert pending == []


class TestFinalAnswer:
    """Tests for turns that end with a text answer."""

    @pytest.mark.asyncio
    async def test_answer_without_tools(self, data_source):
        """Test that a direct answer ends the turn in one round."""
        llm = ScriptedLLM([text_response("  Здравствуйте!  \n")])
        store = ConversationStore()

        result = await make_agent(llm, data_source).run(store, ChatMessage.user("привет"), "system prompt")

        assert result.answer_text == "Здравствуйте!"
        assert result.rounds == 1
        assert result.tool_calls == []
        assert result.results is None
        assert [m.role for m in store.snapshot()] == ["system", "user", "assistant"]

    @pytest.mark.asyncio
    async def test_catalog_sent_every_round(self, data_source):
        """Test that the model receives the five tools with every request."""
        llm = ScriptedLLM([tool_call_response(("ListStores", {})), text_response("Два магазина.")])

        await make_agent(llm, data_source).run(ConversationStore(), ChatMessage.user("магазины"), "sys")

        assert len(llm.tools) == 2
        assert all(len(tools) == 5 for tools in llm.tools)

    @pytest.mark.asyncio
    async def test_tool_round_then_answer(self, data_source):
        """Test that tool results are fed back before the final answer."""
        llm = ScriptedLLM([tool_call_response(("SearchItems", {"query": "кофе"})), text_response("Кофе стоит 450 ₽.")])
        store = ConversationStore()

        result = await make_agent(llm, data_source).run(store, ChatMessage.user("сколько стоит кофе"), "sys")

        assert result.answer_text == "Кофе стоит 450 ₽."
        assert result.rounds == 2
        assert [record.name for record in result.tool_calls] == ["SearchItems"]
        assert isinstance(result.results, ItemResults)

        second_request = llm.calls[1]
        assert [m.role for m in second_request] == ["system", "user", "assistant", "tool"]
        assert second_request[-1].tool_call_id == "r1-call-0"
        assert json.loads(second_request[-1].content)[0]["name"] == "Кофе 250г"
        assert_protocol(store.snapshot())

    @pytest.mark.asyncio
    async def test_system_message_seeded_once(self, data_source):
        """Test that a store with history is not seeded again."""
        llm = ScriptedLLM([text_response("первый"), text_response("второй")])
        store = ConversationStore()
        agent = make_agent(llm, data_source)

        await agent.run(store, ChatMessage.user("один"), "sys")
        await agent.run(store, ChatMessage.user("два"), "другой промпт")

        messages = store.snapshot()
        assert [m.role for m in messages] == ["system", "user", "assistant", "user", "assistant"]
        assert messages[0].text == "sys"
        assert len(llm.calls[1]) == 4


class TestRoundLimit:
    """Tests for the tool-round cap."""

    @pytest.mark.asyncio
    async def test_step_limit(self, data_source):
        """Test that four tool rounds without an answer give the step-limit reply."""
        llm = ScriptedLLM([tool_call_response(("ListStores", {}), round_id=f"r{i}") for i in range(4)])
        store = ConversationStore()

        result = await make_agent(llm, data_source).run(store, ChatMessage.user("магазины"), "sys")

        assert result.answer_text == STEP_LIMIT_ANSWER
        assert result.next_step == STEP_LIMIT_NEXT_STEP
        assert result.rounds == 4
        assert len(result.tool_calls) == 4
        assert len(llm.calls) == 4
        assert data_source.call_names() == ["list_stores"] * 4
        assert_protocol(store.snapshot())

    @pytest.mark.asyncio
    async def test_custom_round_limit(self, data_source):
        """Test that the round cap is configurable."""
        llm = ScriptedLLM([tool_call_response(("ListStores", {}))])
        registry = ToolsRegistry()
        agent = AgentLoop(llm, ToolDispatcher(ToolContext(data_source), registry), registry, max_rounds=1)

        result = await agent.run(ConversationStore(), ChatMessage.user("магазины"), "sys")

        assert result.answer_text == STEP_LIMIT_ANSWER
        assert result.rounds == 1


class TestFailures:
    """Tests for failed turns."""

    @pytest.mark.asyncio
    async def test_not_configured(self, data_source):
        """Test that a disabled client fails before any model call."""
        llm = ScriptedLLM(enabled=False)
        store = ConversationStore()

        with pytest.raises(LLMNotConfiguredError):
            await make_agent(llm, data_source).run(store, ChatMessage.user("привет"), "sys")

        assert llm.calls == []
        assert len(store) == 0

    @pytest.mark.asyncio
    async def test_empty_response(self, data_source):
        """Test that zero choices abort the turn."""
        llm = ScriptedLLM([LLMResponse(choices=[])])

        with pytest.raises(EmptyModelResponseError):
            await make_agent(llm, data_source).run(ConversationStore(), ChatMessage.user("привет"), "sys")

    @pytest.mark.asyncio
    async def test_llm_error_propagates(self, data_source):
        """Test that a model failure propagates to the caller."""
        llm = ScriptedLLM([LLMUnavailableError("llm request failed: timeout")])

        with pytest.raises(LLMUnavailableError, match="timeout"):
            await make_agent(llm, data_source).run(ConversationStore(), ChatMessage.user("привет"), "sys")

    @pytest.mark.asyncio
    async def test_missing_store_id_answer(self, data_source):
        """Test that a missing store id becomes a friendly answer and keeps the protocol."""
        data_source.errors["search_items"] = MissingStoreIDError()
        llm = ScriptedLLM([tool_call_response(("SearchItems", {"query": "кофе"}), ("ListStores", {}))])
        store = ConversationStore()

        result = await make_agent(llm, data_source, default_store_id="").run(
            store, ChatMessage.user("кофе"), "sys"
        )

        assert result.answer_text == "Нужен store_id: укажите --store-id или EVOTOR_STORE_ID."
        assert result.rounds == 1
        assert len(result.tool_calls) == 1
        assert not result.tool_calls[0].ok
        assert len(llm.calls) == 1
        assert data_source.call_names() == ["search_items"]
        assert [m.role for m in store.snapshot()] == ["system", "user", "assistant", "tool", "tool"]
        assert_protocol(store.snapshot())

    @pytest.mark.asyncio
    async def test_unknown_tool_answer(self, data_source):
        """Test that an unknown tool ends the turn with the error text."""
        llm = ScriptedLLM([tool_call_response(("DropTables", {}))])

        result = await make_agent(llm, data_source).run(ConversationStore(), ChatMessage.user("x"), "sys")

        assert result.answer_text == "unknown tool: DropTables"
        assert [record.ok for record in result.tool_calls] == [False]

    @pytest.mark.asyncio
    async def test_results_survive_later_abort(self, data_source):
        """Test that results from an earlier round are kept when a later round aborts."""
        data_source.errors["list_stores"] = RateLimitedError(429, "429 Too Many Requests")
        llm = ScriptedLLM(
            [
                tool_call_response(("SearchItems", {"query": "кофе"})),
                tool_call_response(("ListStores", {}), round_id="r2"),
            ]
        )

        result = await make_agent(llm, data_source).run(ConversationStore(), ChatMessage.user("кофе"), "sys")

        assert result.answer_text == "Слишком много запросов. Попробуйте позже."
        assert isinstance(result.results, ItemResults)
        assert [record.ok for record in result.tool_calls] == [True, False]


class BlockingDataSource(FakeDataSource):
    """Data source whose item search waits until released."""

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self.entered = asyncio.Event()
        self.release = asyncio.Event()

    async def search_items(self, query: str, limit: int, store_id: str | None = None):
        self.entered.set()
        await self.release.wait()
        return await super().search_items(query, limit, store_id)


class TestCancellation:
    """Tests for turns cancelled while tools are running."""

    @pytest.mark.asyncio
    async def test_cancelled_round_appends_nothing(self):
        """Test that cancelling mid-round leaves only the system and user messages."""
        data_source = BlockingDataSource()
        llm = ScriptedLLM([tool_call_response(("ListStores", {}), ("SearchItems", {"query": "кофе"}))])
        store = ConversationStore()
        task = asyncio.create_task(make_agent(llm, data_source).run(store, ChatMessage.user("кофе"), "system prompt"))

        await data_source.entered.wait()
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        assert [m.role for m in store.snapshot()] == ["system", "user"]
        assert data_source.call_names() == ["list_stores", "search_items"]

    @pytest.mark.asyncio
    async def test_store_usable_after_cancel(self, data_source):
        """Test that the next turn on the same store runs normally after a cancel."""
        blocking = BlockingDataSource()
        store = ConversationStore()
        first = ScriptedLLM([tool_call_response(("SearchItems", {"query": "кофе"}))])
        task = asyncio.create_task(make_agent(first, blocking).run(store, ChatMessage.user("кофе"), "system prompt"))
        await blocking.entered.wait()
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        second = ScriptedLLM([text_response("Готово.")])
        result = await make_agent(second, data_source).run(store, ChatMessage.user("чай"), "system prompt")

        assert result.answer_text == "Готово."
        assert [m.role for m in second.calls[0]] == ["system", "user", "user"]
        assert_protocol(store.snapshot())


class TestFriendlyError:
    """Tests for user-facing error messages."""

    def test_unwraps_dispatch_error(self):
        """Test that the cause of a dispatch error is described."""
        error = ToolDispatchError(MissingStoreIDError(), batch=None)
        assert friendly_error(error) == "Нужен store_id: укажите --store-id или EVOTOR_STORE_ID."

    def test_falls_back_to_error_text(self):
        """Test that other errors are shown as their text."""
        assert friendly_error(UnknownToolError("X")) == "unknown tool: X"
        assert friendly_error(RuntimeError()) == "RuntimeError()"
