"""Method-backed nodes.

Binds a shared receiver to a method so that ``method(receiver, ctx, state)``
runs as a graph step. Handy when several nodes share a client or a
configuration object.
"""

import inspect
from typing import Any, Callable, Optional

from pydantic import Field

from agentgraph.core.graph.context import Context
from agentgraph.core.graph.nodes.base.node import Node
from agentgraph.core.graph.state import NodeOutput
from agentgraph.core.logging import get_logger, LogComponent

logger = get_logger(LogComponent.NODES)


class MethodNode(Node):
    """Node that calls ``method(instance, ctx, state)``.

    Attributes:
        instance: Receiver shared by every invocation
        method: Unbound method (or any function) taking the receiver first
    """

    instance: Any = Field(..., description="Shared receiver")
    method: Callable[..., Any] = Field(..., description="Called as method(instance, ctx, state)")

    @classmethod
    def bind(cls, instance: Any, attribute: str, name: Optional[str] = None) -> "MethodNode":
        """Build a node from a method looked up on the receiver's class.

        Args:
            instance: Receiver object
            attribute: Method name on ``type(instance)``
            name: Node name, defaults to ``attribute``
        """
        method = getattr(type(instance), attribute, None)
        if method is None:
            raise ValueError(f"{type(instance).__name__} has no method '{attribute}'")
        return cls(name=name or attribute, instance=instance, method=method)

    async def process(self, ctx: Context, state: Any) -> NodeOutput:
        logger.debug(f"Calling method node {self.name} on {type(self.instance).__name__}")
        result = self.method(self.instance, ctx, state)
        if inspect.isawaitable(result):
            result = await result
        return result
