"""Tool-calling agent loop."""

from dataclasses import dataclass, field

from evotor_ai.exceptions import (
    EmptyModelResponseError,
    LLMNotConfiguredError,
    MissingStoreIDError,
    MissingTokenError,
    RateLimitedError,
    ToolDispatchError,
    UnauthorizedError,
)
from evotor_ai.models.llm import ChatMessage, LLMClient, LLMResponse
from evotor_ai.models.response import Results, ToolCallRecord
from evotor_ai.services.history import ConversationStore
from evotor_ai.tools.dispatcher import ToolDispatcher
from evotor_ai.tools.registry import ToolsRegistry, get_tools_registry
from evotor_ai.utils.logging import get_logger

logger = get_logger(__name__)

MAX_TOOL_ROUNDS = 4

STEP_LIMIT_ANSWER = "Не удалось завершить запрос: превышен лимит шагов."
STEP_LIMIT_NEXT_STEP = "Уточните запрос или сузьте период/магазин."


def friendly_error(error: BaseException) -> str:
    """Short user-facing message for a failed turn."""
    if isinstance(error, ToolDispatchError):
        error = error.cause
    if isinstance(error, MissingTokenError):
        return "Нет доступа: неверный или отсутствующий токен."
    if isinstance(error, MissingStoreIDError):
        return "Нужен store_id: укажите --store-id или EVOTOR_STORE_ID."
    if isinstance(error, UnauthorizedError):
        return "Нет доступа: неверный токен или недостаточно прав."
    if isinstance(error, RateLimitedError):
        return "Слишком много запросов. Попробуйте позже."
    return str(error) or repr(error)


@dataclass
class AgentResult:
    """Outcome of one agent run."""

    answer_text: str
    tool_calls: list[ToolCallRecord] = field(default_factory=list)
    results: Results | None = None
    next_step: str = ""
    rounds: int = 0


def log_llm_usage(response: LLMResponse) -> None:
    if response.usage is None:
        return
    usage = response.usage
    logger.info(
        f"LLM usage ({response.provider} {response.model}): prompt_tokens={usage.prompt_tokens}, "
        f"completion_tokens={usage.completion_tokens}, total_tokens={usage.total_tokens}, cost={usage.cost}"
    )


class AgentLoop:
    """Drives the model through at most ``max_rounds`` rounds of tool calls.

    Each round re-reads a snapshot of the conversation store, so a REPL session and
    a one-shot turn go through the same code.
    """

    def __init__(
        self,
        llm_client: LLMClient,
        dispatcher: ToolDispatcher,
        registry: ToolsRegistry | None = None,
        max_rounds: int = MAX_TOOL_ROUNDS,
    ):
        """Initialize the agent loop.

        Args:
            llm_client: Model client
            dispatcher: Executes the requested tool calls
            registry: Tool catalog sent every round (defaults to the global registry)
            max_rounds: Model invocations allowed per turn
        """
        self.llm_client = llm_client
        self.dispatcher = dispatcher
        self.registry = registry or get_tools_registry()
        self.max_rounds = max_rounds

    async def run(self, store: ConversationStore, user_message: ChatMessage, system_prompt: str) -> AgentResult:
        """Run one user turn against ``store``.

        Raises:
            LLMNotConfiguredError: If the model client has no API key or model
            LLMUnavailableError: If a model call fails
            EmptyModelResponseError: If the model returns no choices
        """
        if not self.llm_client.enabled:
            raise LLMNotConfiguredError()

        if len(store) == 0:
            store.append(ChatMessage.system(system_prompt))
        store.append(user_message)

        tools = self.registry.get_llm_tools()
        records: list[ToolCallRecord] = []
        results: Results | None = None

        logger.info(f"Starting agent loop with {len(store)} messages, {len(tools)} tools, max_rounds: {self.max_rounds}")
        for round_number in range(1, self.max_rounds + 1):
            logger.debug(f"Agent loop round {round_number}/{self.max_rounds}")

            response = await self.llm_client.chat(store.snapshot(), tools)
            log_llm_usage(response)
            if not response.choices:
                raise EmptyModelResponseError()

            message = response.choices[0].message
            logger.debug(
                f"LLM response - finish reason: {response.choices[0].finish_reason}, "
                f"tool calls: {len(message.tool_calls or [])}"
            )

            if not message.has_tool_calls:
                store.append(message)
                logger.info(f"Agent loop completed in {round_number} rounds")
                return AgentResult(
                    answer_text=message.text.strip(),
                    tool_calls=records,
                    results=results,
                    rounds=round_number,
                )

            logger.info(f"LLM wants to use {len(message.tool_calls or [])} tools")
            try:
                batch = await self.dispatcher.dispatch(message.tool_calls or [])
            except ToolDispatchError as e:
                records.extend(e.batch.records)
                self._append_round(store, message, e.batch.messages)
                logger.error(f"Tool dispatch aborted in round {round_number}: {e.cause!r}")
                return AgentResult(
                    answer_text=friendly_error(e),
                    tool_calls=records,
                    results=results,
                    rounds=round_number,
                )

            records.extend(batch.records)
            if batch.results is not None:
                results = batch.results
            self._append_round(store, message, batch.messages)

        logger.warning(f"Agent loop reached max rounds ({self.max_rounds})")
        return AgentResult(
            answer_text=STEP_LIMIT_ANSWER,
            tool_calls=records,
            results=results,
            next_step=STEP_LIMIT_NEXT_STEP,
            rounds=self.max_rounds,
        )

    @staticmethod
    def _append_round(store: ConversationStore, message: ChatMessage, tool_messages: list[ChatMessage]) -> None:
        store.append(message)
        for tool_message in tool_messages:
            store.append(tool_message)
