"""Tools registry: the tool catalog published to the model."""

from evotor_ai.models.llm import LLMToolDefinition
from evotor_ai.tools.base import ToolDefinition, ToolName
from evotor_ai.tools.documents import create_get_document_tool, create_search_documents_tool
from evotor_ai.tools.items import create_search_items_tool
from evotor_ai.tools.sales_metrics import create_sales_metrics_tool
from evotor_ai.tools.stores import create_list_stores_tool


def default_tools() -> list[ToolDefinition]:
    return [
        create_sales_metrics_tool(),
        create_list_stores_tool(),
        create_search_items_tool(),
        create_search_documents_tool(),
        create_get_document_tool(),
    ]


class ToolsRegistry:
    """Registry for the read-only data tools.

    Every ``ToolName`` member must have exactly one definition; a registry that
    disagrees with the enumeration refuses to build.
    """

    def __init__(self, tools: list[ToolDefinition] | None = None):
        """Initialize tools registry, with the default catalog unless ``tools`` is given."""
        self._tools: dict[ToolName, ToolDefinition] = {}
        for tool in default_tools() if tools is None else tools:
            self.register_tool(tool)

        missing = [name.value for name in ToolName if name not in self._tools]
        if missing:
            raise ValueError(f"Tool catalog is missing definitions for: {', '.join(missing)}")

    def register_tool(self, tool: ToolDefinition) -> None:
        """Register a tool; names outside ``ToolName`` and duplicates are rejected."""
        name = ToolName(tool.name)
        if name in self._tools:
            raise ValueError(f"Tool {name} is already registered")
        self._tools[name] = tool

    def get(self, name: ToolName) -> ToolDefinition:
        return self._tools[name]

    def get_llm_tools(self) -> list[LLMToolDefinition]:
        """Tool schemas sent to the model, in catalog order."""
        return [self._tools[name].to_llm_tool() for name in ToolName]

    def get_tool_names(self) -> list[str]:
        """Get list of all registered tool names."""
        return [name.value for name in ToolName]

    def has_tool(self, name: str) -> bool:
        """Check if a tool is registered."""
        return name in self._tools


_tools_registry: ToolsRegistry | None = None


def get_tools_registry() -> ToolsRegistry:
    """Get or create tools registry instance."""
    global _tools_registry
    if _tools_registry is None:
        _tools_registry = ToolsRegistry()
    return _tools_registry
