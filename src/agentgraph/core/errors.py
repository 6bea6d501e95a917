"""Error taxonomy for agentgraph.

Three families mirror the layers of a run:

- ``ToolError``: raised by tool adapters.
- ``NodeError``: raised (or returned) by a node's ``process``. The engine
  retries these according to the node's ``NodeConfig``.
- ``GraphError``: raised out of ``CompiledGraph.run``. Structural errors
  (``NodeNotFoundError``, ``InvalidTransitionError``,
  ``InvalidGraphStateError``) are fatal and never retried; a node failure
  that exhausted its attempts surfaces as ``NodeFailedError``.

Every error carries a plain ``message`` and renders as
``"<prefix>: <message>"``.
"""

from typing import Dict, List, Optional


class AgentGraphError(Exception):
    """Base class for all agentgraph errors."""

    prefix: str = "Error"
    kind: str = "Error"

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return f"{self.prefix}: {self.message}"

    def to_dict(self) -> Dict[str, str]:
        """Serialize as ``{"type": ..., "message": ...}``."""
        return {"type": self.kind, "message": self.message}


# Tool errors

class ToolError(AgentGraphError):
    """Base class for tool failures."""
    prefix = "Tool error"
    kind = "Tool"


class ToolSchemaError(ToolError):
    prefix = "Schema error"
    kind = "Schema"


class ToolExecutionError(ToolError):
    prefix = "Execution error"
    kind = "Execution"


class ToolSerializationError(ToolError):
    prefix = "Serialization error"
    kind = "Serialization"


# Node errors

class NodeError(AgentGraphError):
    """Base class for failures raised from a node's ``process``."""
    prefix = "Node error"
    kind = "Node"


class NodeExecutionError(NodeError):
    prefix = "Node execution error"
    kind = "Execution"


class NodeToolError(NodeError):
    """A tool failure propagated through a node."""
    kind = "Tool"

    def __init__(self, tool_error: ToolError):
        super().__init__(tool_error.message)
        self.tool_error = tool_error

    def __str__(self) -> str:
        return str(self.tool_error)


class SubgraphExecutionError(NodeError):
    prefix = "Subgraph execution error"
    kind = "SubgraphExecution"


class NodeModelError(NodeError):
    prefix = "Model error"
    kind = "ModelError"


# Graph errors

class GraphError(AgentGraphError):
    """Base class for failures raised out of a graph run or build."""
    prefix = "Graph error"
    kind = "Graph"


class NodeNotFoundError(GraphError):
    prefix = "Node not found"
    kind = "NodeNotFound"

    def __init__(self, name: str):
        super().__init__(name)
        self.name = name


class InvalidTransitionError(GraphError):
    prefix = "Invalid transition"
    kind = "InvalidTransition"


class InvalidGraphStateError(GraphError):
    prefix = "Invalid state"
    kind = "InvalidState"


class GraphExecutionError(GraphError):
    prefix = "Graph execution error"
    kind = "ExecutionError"


class NodeFailedError(GraphError):
    """A node error that exhausted its attempts, bubbled out of the run."""
    kind = "Node"

    def __init__(self, node_name: str, error: NodeError):
        super().__init__(error.message)
        self.node_name = node_name
        self.error = error

    def __str__(self) -> str:
        return str(self.error)

    def to_dict(self) -> Dict[str, str]:
        return {"type": self.kind, "message": self.message, "node": self.node_name}


class ModelError(GraphError):
    prefix = "LLM error"
    kind = "ModelError"


class OtherGraphError(GraphError):
    prefix = "Other error"
    kind = "Other"


class GraphBuildError(GraphError):
    """Misuse of the graph builder (e.g. mutating it after ``build``)."""
    prefix = "Graph build error"
    kind = "Build"


class GraphStructureError(GraphError):
    """Structural validation failed during a strict build."""
    prefix = "Invalid graph structure"
    kind = "Structure"

    def __init__(self, problems: List[str]):
        super().__init__("; ".join(problems))
        self.problems = problems


class StateDefinitionError(TypeError):
    """A ``GraphState`` subclass declares an unusable update strategy."""


# Tracing errors

class TracingError(AgentGraphError):
    prefix = "Tracing Other"
    kind = "Other"


class TracingHttpError(TracingError):
    prefix = "Tracing HttpError"
    kind = "HttpError"

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code
