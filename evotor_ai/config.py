"""Process configuration loaded from the environment."""

import os
from typing import Literal

from pydantic import BaseModel, Field

DEFAULT_EVOTOR_BASE_URL = "https://api.evotor.ru"
DEFAULT_OPENROUTER_BASE_URL = "https://openrouter.ai/api/v1"
DEFAULT_HISTORY_MAX_MESSAGES = 20
DEFAULT_HISTORY_MAX_TOKENS = 2000


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name, "").strip()
    try:
        return int(value)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name, "").strip()
    try:
        return float(value)
    except ValueError:
        return default


class Settings(BaseModel):
    """Application settings.

    Built from environment variables via ``from_env``; the CLI overrides
    individual fields with ``model_copy(update=...)``.
    """

    evotor_token: str = ""
    evotor_store_id: str = ""
    evotor_base_url: str = DEFAULT_EVOTOR_BASE_URL

    llm_provider: Literal["openrouter", "anthropic"] = "openrouter"
    llm_base_url: str = DEFAULT_OPENROUTER_BASE_URL
    llm_api_key: str = ""
    llm_model: str = ""

    timeout: float = Field(default=20.0, gt=0, description="Network timeout in seconds")
    log_file: str | None = "./evotor-ai.log"
    debug: bool = False

    history_max_messages: int = DEFAULT_HISTORY_MAX_MESSAGES
    history_max_tokens: int = DEFAULT_HISTORY_MAX_TOKENS

    @classmethod
    def from_env(cls) -> "Settings":
        """Load settings from environment variables."""
        provider = os.getenv("LLM_PROVIDER", "openrouter").strip().lower() or "openrouter"
        return cls(
            evotor_token=os.getenv("EVOTOR_TOKEN", "").strip(),
            evotor_store_id=os.getenv("EVOTOR_STORE_ID", "").strip(),
            evotor_base_url=os.getenv("EVOTOR_BASE_URL", DEFAULT_EVOTOR_BASE_URL).strip(),
            llm_provider=provider,
            llm_base_url=os.getenv("LLM_BASE_URL", DEFAULT_OPENROUTER_BASE_URL).strip(),
            llm_api_key=os.getenv("LLM_API_KEY", "").strip(),
            llm_model=os.getenv("LLM_MODEL", "").strip(),
            timeout=_env_float("TIMEOUT", 20.0),
            log_file=os.getenv("LOG_FILE", "./evotor-ai.log").strip() or None,
            debug=_env_bool("DEBUG"),
            history_max_messages=_env_int("HISTORY_MAX_MESSAGES", DEFAULT_HISTORY_MAX_MESSAGES),
            history_max_tokens=_env_int("HISTORY_MAX_TOKENS", DEFAULT_HISTORY_MAX_TOKENS),
        )

    @property
    def llm_configured(self) -> bool:
        """Whether both the LLM API key and model are set."""
        return bool(self.llm_api_key.strip() and self.llm_model.strip())
