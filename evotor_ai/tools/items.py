"""Item search tool."""

from pydantic import Field, field_validator

from evotor_ai.models.evotor import Item
from evotor_ai.models.response import ItemResults, ResultItem
from evotor_ai.tools.args import ItemLimit, LooseStr
from evotor_ai.tools.base import STORE_ID_DESCRIPTION, ToolContext, ToolDefinition, ToolInput, ToolName


class SearchItemsInput(ToolInput):
    """Input schema for the item search tool."""

    query: LooseStr = Field(
        ...,
        description="Text to search for in item names (case-insensitive substring match).",
    )
    limit: ItemLimit = Field(default=10, description="Maximum number of items to return (default: 10, max: 50).")
    store_id: LooseStr = Field(default="", description=STORE_ID_DESCRIPTION)

    @field_validator("query")
    @classmethod
    def validate_query(cls, v: str) -> str:
        if not v:
            raise ValueError("search query is empty")
        return v


async def search_items(params: SearchItemsInput, context: ToolContext) -> list[Item]:
    return await context.client.search_items(
        params.query,
        params.limit,
        store_id=context.resolve_store_id(params.store_id),
    )


def items_to_results(items: list[Item]) -> ItemResults:
    return ItemResults(items=[ResultItem.from_item(item) for item in items])


def create_search_items_tool() -> ToolDefinition:
    return ToolDefinition(
        name=ToolName.SEARCH_ITEMS,
        description=(
            "Find items by free-text query. Returns items with id, name, price, code, barcodes, article_number, "
            "measure_name. Search is case-insensitive and matches substrings in item names. Default limit: 10."
        ),
        input_schema_class=SearchItemsInput,
        handler=search_items,
        to_results=items_to_results,
    )
