"""Tools module for agentgraph."""

from agentgraph.core.tools.base import (
    ToolFunction,
    BoundToolFunction,
    tools,
    tool_functions,
    call_tool,
)

__all__ = [
    'ToolFunction',
    'BoundToolFunction',
    'tools',
    'tool_functions',
    'call_tool',
]
