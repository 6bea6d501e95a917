"""Base node class for the graph system.

A Node is an individual unit of work (an LLM call, a tool invocation, a
whole subgraph) identified by its ``name``. The graph wires nodes by name
and calls ``process`` with the run's context and a private copy of the
current state.

Typical Usage:
    - Subclass Node and override ``process``
    - Or wrap a plain coroutine function with ``FunctionNode`` / ``function_node``
    - Or bind a method on a shared object with ``MethodNode``

Nodes may be shared by several concurrent runs of the same graph, so
``process`` must not keep per-run data on the node itself.
"""

from typing import Any, TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field, model_validator

from agentgraph.core.graph.edges import RESERVED_NAMES

if TYPE_CHECKING:
    from agentgraph.core.graph.context import Context
    from agentgraph.core.graph.state import NodeOutput


class Node(BaseModel):
    """Abstract base node for graph operations.

    Attributes:
        name: Stable identifier used to wire the node into a graph
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    name: str = Field(..., description="Unique identifier for this node")

    @model_validator(mode='after')
    def validate_node(self) -> 'Node':
        """Validate node configuration."""
        if not self.name:
            raise ValueError("Node must have a name")
        if self.name in RESERVED_NAMES:
            raise ValueError(f"'{self.name}' is reserved and cannot name a node")
        return self

    async def process(self, ctx: "Context", state: Any) -> "NodeOutput":
        """Process node logic. Must be implemented by subclasses.

        Args:
            ctx: Context for this attempt
            state: Private copy of the current state

        Returns:
            ``Full`` with a replacement state or ``Updates`` with field updates.
            A bare state, a list of updates or ``None`` are accepted too.

        Raises:
            NodeError: On failure; the graph may retry the step
        """
        raise NotImplementedError("Subclasses must implement process()")

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"
