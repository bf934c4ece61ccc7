"""Store listing tool."""

from evotor_ai.models.evotor import Store
from evotor_ai.tools.base import ToolContext, ToolDefinition, ToolInput, ToolName


class ListStoresInput(ToolInput):
    """The tool takes no arguments."""


async def list_stores(params: ListStoresInput, context: ToolContext) -> list[Store]:  # noqa: ARG001
    return await context.client.list_stores()


def create_list_stores_tool() -> ToolDefinition:
    return ToolDefinition(
        name=ToolName.LIST_STORES,
        description=(
            "List all available stores for the current token. Returns stores with id and name. "
            "Use this to help user select which store to query if not specified."
        ),
        input_schema_class=ListStoresInput,
        handler=list_stores,
    )
