"""Node package initialization.

Exposes node types and helpers for building workflows.
"""

from agentgraph.core.graph.nodes.base.node import Node
from agentgraph.core.graph.nodes.function import FunctionNode, function_node
from agentgraph.core.graph.nodes.method import MethodNode

__all__ = [
    # Base node types
    "Node",
    "FunctionNode",
    "MethodNode",

    # Decorators and helpers
    "function_node",
]
