"""Core modules for agentgraph."""

from agentgraph.core.graph import Graph, CompiledGraph, Context, NodeConfig, START, END
from agentgraph.core.logging import configure_logging, LogLevel, LogComponent

__all__ = [
    'Graph',
    'CompiledGraph',
    'Context',
    'NodeConfig',
    'START',
    'END',
    'configure_logging',
    'LogLevel',
    'LogComponent'
]
