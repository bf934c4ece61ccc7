"""Exception hierarchy shared by the clients, the dispatcher and the agent loop."""

from typing import Any


class EvotorAIError(Exception):
    """Base exception for the application."""


class ConfigurationError(EvotorAIError):
    """Raised when required configuration is missing or inconsistent.

    Fatal to the whole invocation: surfaced verbatim, never retried.
    """


# --- Data facade errors ---


class EvotorError(EvotorAIError):
    """Base exception for the Evotor data client."""


class MissingTokenError(EvotorError, ConfigurationError):
    """Raised when no Evotor API token is configured."""

    def __init__(self, message: str = "evotor token is required"):
        super().__init__(message)


class MissingStoreIDError(EvotorError):
    """Raised when neither an explicit nor a default store id is available."""

    def __init__(self, message: str = "evotor store id is required"):
        super().__init__(message)


class EmptyQueryError(EvotorError):
    """Raised when an item search is requested with an empty query."""

    def __init__(self, message: str = "search query is empty"):
        super().__init__(message)


class EvotorAPIError(EvotorError):
    """Raised when the Evotor API answers with an error status."""

    def __init__(self, status_code: int, status: str, body: str = ""):
        self.status_code = status_code
        self.status = status
        self.body = body
        if body:
            super().__init__(f"evotor api error: {status}: {body}")
        else:
            super().__init__(f"evotor api error: {status}")


class UnauthorizedError(EvotorAPIError):
    """Raised on 401/403 answers."""


class RateLimitedError(EvotorAPIError):
    """Raised on 429 answers that survived the retry."""


class EvotorRequestError(EvotorError):
    """Raised when the HTTP request itself failed (connection, timeout)."""


# --- LLM errors ---


class LLMUnavailableError(EvotorAIError):
    """Raised when the model call fails. Aborts the current turn."""


class LLMNotConfiguredError(ConfigurationError, LLMUnavailableError):
    """Raised when the LLM API key or model is missing."""

    def __init__(self, message: str = "llm is not configured"):
        super().__init__(message)


class EmptyModelResponseError(EvotorAIError):
    """Raised when the model returns zero choices."""

    def __init__(self, message: str = "llm returned empty response"):
        super().__init__(message)


# --- Tool dispatch errors ---


class ToolArgumentError(EvotorAIError):
    """Raised when tool arguments are malformed. Local to one tool call."""


class UnknownToolError(EvotorAIError):
    """Raised when the model requests a function outside the tool catalog."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"unknown tool: {name}")


class ToolDispatchError(EvotorAIError):
    """Raised when a tool batch must be aborted.

    Carries the partial batch (records and tool messages produced so far) so the
    agent loop can keep the audit trail and the conversation protocol intact.
    """

    def __init__(self, cause: Exception, batch: Any):
        self.cause = cause
        self.batch = batch
        super().__init__(str(cause))
