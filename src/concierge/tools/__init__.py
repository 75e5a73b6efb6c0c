"""Tool declarations, argument rules and dispatch."""

from concierge.tools.arguments import ArgKind, ArgSpec
from concierge.tools.dispatcher import ToolDispatcher
from concierge.tools.schemas import model_tools

__all__ = ["ArgKind", "ArgSpec", "ToolDispatcher", "model_tools"]
