"""Interactive session state."""

from dataclasses import dataclass, field
from datetime import UTC, datetime

from cuid2 import cuid_wrapper

from evotor_ai.models.llm import ChatMessage
from evotor_ai.services.history import ConversationStore
from evotor_ai.utils.logging import get_logger

logger = get_logger(__name__)

cuid = cuid_wrapper()


@dataclass
class Session:
    """One REPL session: a long-lived conversation store and its system prompt.

    Passed explicitly into every turn; there is no process-wide session state.
    """

    system_prompt: str
    history: ConversationStore = field(default_factory=ConversationStore)
    session_id: str = field(default_factory=cuid)
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    last_activity: datetime = field(default_factory=lambda: datetime.now(UTC))
    turns: int = 0

    def __post_init__(self) -> None:
        if len(self.history) == 0:
            self.history.append(ChatMessage.system(self.system_prompt))

    def update_activity(self) -> None:
        """Record a processed turn."""
        self.turns += 1
        self.last_activity = datetime.now(UTC)

    def reset(self) -> None:
        """Clear the history and re-seed the system prompt."""
        logger.info(f"Clearing history of session {self.session_id}")
        self.history.clear()
        self.history.append(ChatMessage.system(self.system_prompt))

    def as_dict(self) -> dict[str, str | int]:
        """Return the session summary as a dictionary."""
        return {
            "session_id": self.session_id,
            "messages": len(self.history),
            "tokens": self.history.estimate_tokens(),
            "turns": self.turns,
            "created_at": self.created_at.isoformat(),
            "last_activity": self.last_activity.isoformat(),
        }
