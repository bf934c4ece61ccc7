"""Sales metrics tool."""

from pydantic import Field, field_validator

from evotor_ai.models.evotor import SalesMetrics
from evotor_ai.tools.args import LooseStr, Timestamp
from evotor_ai.tools.base import STORE_ID_DESCRIPTION, ToolContext, ToolDefinition, ToolInput, ToolName


class GetSalesMetricsInput(ToolInput):
    """Input schema for the sales metrics tool."""

    date_from: Timestamp = Field(
        ...,
        alias="from",
        description="Start date in RFC3339 format (e.g., 2025-01-01T00:00:00Z). If not specified, use 7 days ago.",
    )
    date_to: Timestamp = Field(
        ...,
        alias="to",
        description="End date in RFC3339 format (e.g., 2025-01-31T23:59:59Z). If not specified, use now.",
    )
    document_type: LooseStr = Field(
        default="",
        description=(
            "Document type to count. Use 'SELL' for sales only (default). "
            "Use 'ALL' to include all types (SELL, RETURN, REFUND)."
        ),
    )
    store_id: LooseStr = Field(default="", description=STORE_ID_DESCRIPTION)

    @field_validator("document_type")
    @classmethod
    def normalize_document_type(cls, v: str) -> str:
        return v.upper()


async def get_sales_metrics(params: GetSalesMetricsInput, context: ToolContext) -> SalesMetrics:
    return await context.client.get_sales_metrics(
        params.date_from,
        params.date_to,
        store_id=context.resolve_store_id(params.store_id),
        document_type=params.document_type or None,
    )


def create_sales_metrics_tool() -> ToolDefinition:
    return ToolDefinition(
        name=ToolName.GET_SALES_METRICS,
        description=(
            "Get sales count and total sum for a period. Returns count, total_sum, store_id, period (from/to), "
            "and document_types with counts. Use this for 'how many receipts' or 'sum for period' queries. "
            "Much faster than SearchDocuments + aggregation. Default: counts only SELL documents (sales)."
        ),
        input_schema_class=GetSalesMetricsInput,
        handler=get_sales_metrics,
    )
