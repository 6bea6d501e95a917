"""Execution context passed to every node invocation."""

import uuid
from typing import Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


def new_trace_id() -> str:
    """Generate a fresh trace identifier."""
    return str(uuid.uuid4())


class Context(BaseModel):
    """Per-run metadata shared with nodes.

    Contexts are frozen; the ``with_*`` helpers return modified copies.

    Attributes:
        trace_id: Identifier of the current unit of work
        parent_trace_id: Identifier of the unit of work that spawned this one
        metadata: Free-form string metadata supplied by the caller
    """

    model_config = ConfigDict(frozen=True)

    trace_id: str = Field(default_factory=new_trace_id)
    parent_trace_id: Optional[str] = None
    metadata: Dict[str, str] = Field(default_factory=dict)

    @classmethod
    def new(cls, trace_id: Optional[str] = None) -> "Context":
        """Create a root context, generating a trace id if none is given."""
        return cls(trace_id=trace_id) if trace_id else cls()

    def with_parent_trace_id(self, parent_trace_id: str) -> "Context":
        return self.model_copy(update={"parent_trace_id": parent_trace_id})

    def with_metadata(self, key: str, value: str) -> "Context":
        return self.model_copy(update={"metadata": {**self.metadata, key: value}})

    def next_node_context(self) -> "Context":
        """Derive the context for the next attempt or step.

        The current ``trace_id`` becomes the parent and a fresh one is
        generated; metadata is carried over.
        """
        return Context(
            trace_id=new_trace_id(),
            parent_trace_id=self.trace_id,
            metadata=dict(self.metadata),
        )

    def clone(self) -> "Context":
        return self.model_copy(deep=True)
