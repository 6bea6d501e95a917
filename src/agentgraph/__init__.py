"""Agentgraph - typed state-machine graphs for LLM agent workflows."""

from agentgraph.core.graph import (
    Graph,
    CompiledGraph,
    Node,
    FunctionNode,
    MethodNode,
    function_node,
    Context,
    NodeConfig,
    GraphState,
    Full,
    Updates,
    update,
    START,
    END,
)
from agentgraph.core.logging import configure_logging, LogLevel, LogComponent

__all__ = [
    'Graph',
    'CompiledGraph',
    'Node',
    'FunctionNode',
    'MethodNode',
    'function_node',
    'Context',
    'NodeConfig',
    'GraphState',
    'Full',
    'Updates',
    'update',
    'START',
    'END',
    'configure_logging',
    'LogLevel',
    'LogComponent'
]
