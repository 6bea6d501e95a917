"""Edge definitions for graph transitions.

An edge leaving a node decides which node runs next:

- ``DirectEdge`` always names the same successor.
- ``ConditionalEdge`` calls a function with the current state and uses the
  returned name. The function is called every time; results are not cached.

Successor names are not checked here; the graph reports unknown names
when it is about to execute them.
"""

from typing import Any, Callable

from pydantic import BaseModel, ConfigDict

START = "__start__"
END = "__end__"

RESERVED_NAMES = frozenset({START, END})

Condition = Callable[[Any], str]


class Edge(BaseModel):
    """Base edge type."""

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    def resolve(self, state: Any) -> str:
        raise NotImplementedError("Subclasses must implement resolve()")


class DirectEdge(Edge):
    target: str

    def resolve(self, state: Any) -> str:
        return self.target

    def __repr__(self) -> str:
        return f"DirectEdge({self.target!r})"


class ConditionalEdge(Edge):
    condition: Condition

    def resolve(self, state: Any) -> str:
        return self.condition(state)

    def __repr__(self) -> str:
        name = getattr(self.condition, "__name__", "<condition>")
        return f"ConditionalEdge({name})"
