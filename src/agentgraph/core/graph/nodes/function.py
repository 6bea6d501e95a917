"""Function-backed nodes.

Wraps a plain coroutine function ``f(ctx, state)`` as a Node so it can be
added to a graph without subclassing.

Example:
    ```python
    @function_node("inc5")
    async def inc5(ctx: Context, state: CounterState) -> Updates:
        return Updates([CounterState.Update.Count(state.count + 5)])

    graph.add_node(inc5)
    ```
"""

import inspect
from typing import Any, Callable, Union

from pydantic import Field

from agentgraph.core.graph.context import Context
from agentgraph.core.graph.nodes.base.node import Node
from agentgraph.core.graph.state import NodeOutput
from agentgraph.core.logging import get_logger, LogComponent

logger = get_logger(LogComponent.NODES)


class FunctionNode(Node):
    """Node that delegates to a function ``(ctx, state) -> NodeOutput``."""

    func: Callable[..., Any] = Field(..., description="Coroutine function called with (ctx, state)")

    async def process(self, ctx: Context, state: Any) -> NodeOutput:
        logger.debug(f"Calling function node {self.name}")
        result = self.func(ctx, state)
        if inspect.isawaitable(result):
            result = await result
        return result


def function_node(name: Union[str, Callable[..., Any], None] = None):
    """Decorator turning a coroutine function into a ``FunctionNode``.

    Usable bare (``@function_node``, the function name becomes the node
    name) or with an explicit name (``@function_node("step1")``).
    """
    if callable(name):
        return FunctionNode(name=name.__name__, func=name)

    def decorator(func: Callable[..., Any]) -> FunctionNode:
        return FunctionNode(name=name or func.__name__, func=func)

    return decorator
