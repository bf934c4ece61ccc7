"""HTTP API request and response models."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class QueryRequest(BaseModel):
    """Request model for a one-shot query."""

    model_config = ConfigDict(populate_by_name=True)

    query: str = Field(..., min_length=1, description="Question about the sales data")
    date_from: str = Field(default="", alias="from", description="Start date (YYYY-MM-DD)")
    date_to: str = Field(default="", alias="to", description="End date (YYYY-MM-DD)")


class HealthResponse(BaseModel):
    """Health check response model."""

    status: str = Field(..., description="Service health status")
    timestamp: datetime = Field(..., description="Current server timestamp")
    version: str = Field(..., description="Service version")
