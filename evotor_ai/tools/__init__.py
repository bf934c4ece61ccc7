"""Read-only data tools the model can call."""

from evotor_ai.tools.base import ToolContext, ToolDefinition, ToolName
from evotor_ai.tools.dispatcher import DispatchBatch, ToolDispatcher
from evotor_ai.tools.registry import ToolsRegistry, get_tools_registry

__all__ = [
    "DispatchBatch",
    "ToolContext",
    "ToolDefinition",
    "ToolDispatcher",
    "ToolName",
    "ToolsRegistry",
    "get_tools_registry",
]
