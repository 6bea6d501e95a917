"""Base node abstraction."""

from agentgraph.core.graph.nodes.base.node import Node

__all__ = ["Node"]
