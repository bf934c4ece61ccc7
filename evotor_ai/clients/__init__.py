"""API clients: the Evotor data facade and the LLM providers."""

from evotor_ai.clients.anthropic import AnthropicConfig, AnthropicLLMClient
from evotor_ai.clients.evotor import EvotorClient, PosDataSource
from evotor_ai.clients.openrouter import OpenRouterClient
from evotor_ai.config import Settings


def create_llm_client(settings: Settings) -> AnthropicLLMClient | OpenRouterClient:
    """Build the LLM client for the configured provider (possibly disabled)."""
    if settings.llm_provider == "anthropic":
        return AnthropicLLMClient(
            api_key=settings.llm_api_key,
            config=AnthropicConfig(model=settings.llm_model, timeout=settings.timeout),
        )
    return OpenRouterClient(
        api_key=settings.llm_api_key,
        model=settings.llm_model,
        base_url=settings.llm_base_url,
        timeout=settings.timeout,
    )


__all__ = [
    "AnthropicConfig",
    "AnthropicLLMClient",
    "EvotorClient",
    "OpenRouterClient",
    "PosDataSource",
    "create_llm_client",
]
