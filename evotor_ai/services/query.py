"""Query service: one user turn from raw text to an ``AgentResponse``."""

from evotor_ai.clients.evotor import PosDataSource
from evotor_ai.config import Settings
from evotor_ai.exceptions import (
    ConfigurationError,
    EmptyModelResponseError,
    LLMUnavailableError,
    MissingTokenError,
)
from evotor_ai.models.llm import ChatMessage, LLMClient
from evotor_ai.models.response import AgentResponse, AppliedFilters
from evotor_ai.models.session import Session
from evotor_ai.services.agent import AgentLoop, AgentResult, friendly_error
from evotor_ai.services.history import ConversationStore
from evotor_ai.services.prompts import get_request_context, get_system_prompt
from evotor_ai.tools.base import ToolContext
from evotor_ai.tools.dispatcher import ToolDispatcher
from evotor_ai.tools.registry import ToolsRegistry
from evotor_ai.utils.logging import get_logger
from evotor_ai.utils.period import resolve_period

logger = get_logger(__name__)


class QueryService:
    """Runs user turns in one-shot mode or inside a REPL ``Session``."""

    def __init__(
        self,
        settings: Settings,
        llm_client: LLMClient,
        data_source: PosDataSource,
        registry: ToolsRegistry | None = None,
    ):
        self.settings = settings
        context = ToolContext(client=data_source, default_store_id=settings.evotor_store_id)
        self.agent = AgentLoop(llm_client, ToolDispatcher(context, registry), registry)

    def new_store(self) -> ConversationStore:
        return ConversationStore(
            max_messages=self.settings.history_max_messages,
            max_tokens=self.settings.history_max_tokens,
        )

    def new_session(self) -> Session:
        """Start a REPL session with its own history."""
        return Session(system_prompt=get_system_prompt(interactive=True), history=self.new_store())

    async def handle_query(
        self,
        query: str,
        session: Session | None = None,
        date_from: str = "",
        date_to: str = "",
    ) -> AgentResponse:
        """Answer one query.

        Without a session the turn runs against a fresh store that is discarded
        afterwards.

        Raises:
            ConfigurationError: If the token or LLM configuration is missing, or the
                --from/--to dates are invalid
        """
        query = query.strip()
        interactive = session is not None
        logger.info(
            f"Query received: {query!r} (store_id={self.settings.evotor_store_id or '-'}, "
            f"from={date_from or '-'}, to={date_to or '-'}, interactive={interactive})"
        )

        if not self.settings.evotor_token.strip():
            raise MissingTokenError()

        period, note = resolve_period(query, date_from, date_to)
        filters = AppliedFilters(
            date_from=period.date_from.isoformat(timespec="seconds"),
            date_to=period.date_to.isoformat(timespec="seconds"),
            store_id=self.settings.evotor_store_id,
        )
        message = ChatMessage.user(query, get_request_context(period, self.settings.evotor_store_id, note))

        store = session.history if session is not None else self.new_store()
        system_prompt = session.system_prompt if session is not None else get_system_prompt(interactive=False)

        try:
            result = await self.agent.run(store, message, system_prompt)
        except ConfigurationError:
            raise
        except (LLMUnavailableError, EmptyModelResponseError) as e:
            logger.error(f"Turn aborted: {e!r}")
            result = AgentResult(answer_text=friendly_error(e))

        if session is not None:
            session.update_activity()

        response = AgentResponse(
            query=query,
            answer_text=result.answer_text,
            applied_filters=filters,
            results=result.results,
            tool_calls=result.tool_calls,
            next_step=result.next_step,
            notes=[note] if note else [],
        )
        log_response(response)
        return response


def log_response(response: AgentResponse) -> None:
    results_count = len(response.results) if response.results is not None else 0
    logger.info(
        f"Response: query={response.query!r}, answer={response.answer_text.strip()!r}, "
        f"results_count={results_count}, tool_calls={len(response.tool_calls)}, "
        f"next_step={response.next_step.strip()!r}, filters={response.applied_filters.model_dump()}"
    )
