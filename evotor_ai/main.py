"""Main FastAPI application."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from evotor_ai import __version__
from evotor_ai.api.endpoints import close_query_service, router
from evotor_ai.utils.logging import LogConfig, setup_logging


@asynccontextmanager
async def lifespan(_: FastAPI) -> AsyncIterator[None]:
    setup_logging(LogConfig())
    yield
    await close_query_service()


# Create FastAPI application
app = FastAPI(
    title="Evotor AI",
    description="Natural-language questions about Evotor point-of-sale data, answered by a tool-calling LLM agent.",
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
    openapi_tags=[
        {
            "name": "Query",
            "description": "One-shot questions; every request runs a fresh conversation.",
        },
        {
            "name": "Health",
            "description": "Service health monitoring and status checks.",
        },
    ],
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(router)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("evotor_ai.main:app", host="0.0.0.0", port=8000, reload=True, log_level="info")
