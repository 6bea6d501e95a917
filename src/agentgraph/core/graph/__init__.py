"""Graph package initialization.

Exposes core graph components and helpers for building workflows.
"""

from agentgraph.core.graph.base import Graph, CompiledGraph
from agentgraph.core.graph.config import NodeConfig
from agentgraph.core.graph.context import Context
from agentgraph.core.graph.edges import START, END, Edge, DirectEdge, ConditionalEdge
from agentgraph.core.graph.state import (
    GraphState,
    StateUpdate,
    UpdateStrategy,
    NodeOutput,
    Full,
    Updates,
    update,
)
from agentgraph.core.graph.nodes import Node, FunctionNode, MethodNode, function_node

__all__ = [
    # Core classes
    "Graph",
    "CompiledGraph",
    "Node",
    "FunctionNode",
    "MethodNode",
    "Context",
    "NodeConfig",

    # Edges
    "START",
    "END",
    "Edge",
    "DirectEdge",
    "ConditionalEdge",

    # State
    "GraphState",
    "StateUpdate",
    "UpdateStrategy",
    "NodeOutput",
    "Full",
    "Updates",

    # Decorators and helpers
    "function_node",
    "update",
]
