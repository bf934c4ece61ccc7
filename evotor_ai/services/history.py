"""Bounded conversation history shared by the agent loop and the REPL."""

from evotor_ai.config import DEFAULT_HISTORY_MAX_MESSAGES, DEFAULT_HISTORY_MAX_TOKENS
from evotor_ai.models.llm import ChatMessage
from evotor_ai.utils.logging import get_logger

logger = get_logger(__name__)


def estimate_message_tokens(message: ChatMessage) -> int:
    """Approximate token count of one message: whitespace-delimited words.

    This is a cheap proxy, not a tokenizer; real model token counts differ.
    """
    return sum(len(part.split()) for part in message.text_parts())


def estimate_tokens(messages: list[ChatMessage]) -> int:
    """Approximate token count of a message sequence."""
    return sum(estimate_message_tokens(message) for message in messages)


def trim_by_count(messages: list[ChatMessage], max_messages: int) -> list[ChatMessage]:
    """Keep at most ``max_messages`` newest messages, retaining a leading system message."""
    if len(messages) <= max_messages:
        return messages
    if max_messages <= 0:
        return []
    if messages[0].role == "system":
        keep = max_messages - 1
        if keep <= 0:
            return messages[:1]
        return [messages[0], *messages[-keep:]]
    return messages[-max_messages:]


def trim_oldest_non_system(messages: list[ChatMessage]) -> list[ChatMessage]:
    """Drop the oldest message that is not the leading system message."""
    if not messages:
        return messages
    if messages[0].role == "system":
        if len(messages) <= 1:
            return messages
        return [messages[0], *messages[2:]]
    return messages[1:]


class ConversationStore:
    """Ordered chat log with a message-count cap and an approximate token budget.

    The store exclusively owns its message list. Readers get independent copies via
    ``snapshot``; mutation happens only through ``append`` and ``clear``. A single
    turn owns the store at a time; concurrent writers would need to serialize
    ``append`` since it mutates and enforces limits in one step.
    """

    def __init__(self, max_messages: int = DEFAULT_HISTORY_MAX_MESSAGES, max_tokens: int = DEFAULT_HISTORY_MAX_TOKENS):
        """Initialize an empty store.

        Args:
            max_messages: Message-count cap (non-positive means the default)
            max_tokens: Estimated token budget (non-positive means the default)
        """
        self.max_messages = max_messages if max_messages > 0 else DEFAULT_HISTORY_MAX_MESSAGES
        self.max_tokens = max_tokens if max_tokens > 0 else DEFAULT_HISTORY_MAX_TOKENS
        self._messages: list[ChatMessage] = []

    def __len__(self) -> int:
        return len(self._messages)

    def append(self, message: ChatMessage) -> None:
        """Add a message to the end and enforce the limits."""
        self._messages.append(message)
        self._enforce_limits()

    def snapshot(self) -> list[ChatMessage]:
        """Independent copy of the current messages."""
        return [message.model_copy(deep=True) for message in self._messages]

    def clear(self) -> None:
        """Remove every message, including the system message."""
        self._messages = []

    def estimate_tokens(self) -> int:
        """Approximate token count of the whole history (word count, not a tokenizer)."""
        return estimate_tokens(self._messages)

    def _enforce_limits(self) -> None:
        trimmed = False
        if len(self._messages) > self.max_messages:
            self._messages = trim_by_count(self._messages, self.max_messages)
            trimmed = True

        # Bounded by the sequence length: each pass removes one message
        for _ in range(len(self._messages)):
            if len(self._messages) <= 1 or self.estimate_tokens() <= self.max_tokens:
                break
            self._messages = trim_oldest_non_system(self._messages)
            trimmed = True

        if trimmed:
            logger.info(
                f"Session history trimmed: messages={len(self._messages)}, tokens~{self.estimate_tokens()}"
            )
