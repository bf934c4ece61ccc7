"""API endpoints for the query service."""

from datetime import UTC, datetime
from typing import Any

from fastapi import APIRouter, Depends, HTTPException

from evotor_ai import __version__
from evotor_ai.clients import EvotorClient, create_llm_client
from evotor_ai.config import Settings
from evotor_ai.exceptions import ConfigurationError, LLMNotConfiguredError, MissingTokenError
from evotor_ai.models.api import HealthResponse, QueryRequest
from evotor_ai.services.query import QueryService
from evotor_ai.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter()

_query_service: QueryService | None = None
_clients: list[Any] = []


def get_query_service() -> QueryService:
    """Get or create the query service from environment settings."""
    global _query_service
    if _query_service is None:
        settings = Settings.from_env()
        llm_client = create_llm_client(settings)
        evotor_client = EvotorClient.from_settings(settings)
        _clients.extend([llm_client, evotor_client])
        _query_service = QueryService(settings, llm_client, evotor_client)
    return _query_service


async def close_query_service() -> None:
    """Close the HTTP clients of the query service, if it was created."""
    global _query_service
    for client in _clients:
        await client.aclose()
    _clients.clear()
    _query_service = None


@router.post("/query", tags=["Query"])
async def handle_query(request: QueryRequest, service: QueryService = Depends(get_query_service)) -> dict[str, Any]:
    """Answer one question statelessly and return the machine-readable report."""
    logger.info(f"Processing query: {request.query[:50]}...")
    try:
        response = await service.handle_query(request.query, date_from=request.date_from, date_to=request.date_to)
    except (MissingTokenError, LLMNotConfiguredError) as e:
        logger.error(f"Service is not configured: {e}")
        raise HTTPException(status_code=503, detail=str(e)) from e
    except ConfigurationError as e:
        logger.warning(f"Query validation error: {e}")
        raise HTTPException(status_code=400, detail=str(e)) from e
    return response.to_report()


@router.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check() -> HealthResponse:
    """Health check endpoint."""
    return HealthResponse(
        status="healthy",
        timestamp=datetime.now(UTC),
        version=__version__,
    )
