"""Graph Base Classes

This module defines the core graph system for orchestrating agent workflows.
A workflow is a directed graph of named nodes that transform a typed state:

1. ``Graph`` collects nodes, edges and per-node configuration
2. ``Graph.build()`` turns it into an executable ``CompiledGraph``
3. ``CompiledGraph.run()`` walks START -> ... -> END, one node at a time,
   applying each node's timeout and retry policy and folding its output
   into the current state
4. A ``CompiledGraph`` is itself a ``Node``, so graphs compose

Example:
    ```python
    graph = Graph(name="counter")
    graph.add_node(inc5).add_node(double)
    graph.add_edge(START, "inc5").add_edge("inc5", "double").add_edge("double", END)
    graph.configure_node("double", NodeConfig(max_retries=1, timeout_seconds=5))

    compiled = graph.build()
    final_state = await compiled.run(Context(), CounterState(count=10))
    ```
"""

import asyncio
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt

from agentgraph.core.errors import (
    GraphBuildError,
    GraphError,
    GraphExecutionError,
    GraphStructureError,
    InvalidGraphStateError,
    InvalidTransitionError,
    ModelError,
    NodeError,
    NodeExecutionError,
    NodeFailedError,
    NodeModelError,
    NodeNotFoundError,
    NodeToolError,
    SubgraphExecutionError,
    ToolError,
)
from agentgraph.core.graph.config import NodeConfig
from agentgraph.core.graph.context import Context
from agentgraph.core.graph.edges import (
    END,
    START,
    RESERVED_NAMES,
    Condition,
    ConditionalEdge,
    DirectEdge,
    Edge,
)
from agentgraph.core.graph.nodes.base.node import Node
from agentgraph.core.graph.state import Full, NodeOutput, clone_state
from agentgraph.core.logging import (
    AgentGraphLoggingConfig,
    LogComponent,
    get_logger,
    log_state,
    log_verbose,
)

logger = get_logger(LogComponent.GRAPH)


async def _no_sleep(seconds: float) -> None:
    """Retry sleep that never yields to the event loop."""


class Graph(BaseModel):
    """Builder for a workflow graph.

    Every mutator returns the graph so calls can be chained. Once
    ``build()`` has been called the builder is consumed and rejects
    further changes.

    Attributes:
        name: Graph name; also the node name when the built graph is nested
        nodes: Nodes by name
        edges: Outgoing edge by source name (``START`` or a node name)
        configs: Scheduling policy by node name
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    name: str = Field(default="graph")
    nodes: Dict[str, Node] = Field(default_factory=dict)
    edges: Dict[str, Edge] = Field(default_factory=dict)
    configs: Dict[str, NodeConfig] = Field(default_factory=dict)
    logging_config: AgentGraphLoggingConfig = Field(default_factory=AgentGraphLoggingConfig)
    _built: bool = PrivateAttr(default=False)

    def _ensure_open(self) -> None:
        if self._built:
            raise GraphBuildError(f"Graph '{self.name}' has already been built")

    def add_node(self, node: Node) -> "Graph":
        """Register a node under ``node.name``.

        A node with the same name replaces the earlier one.
        """
        self._ensure_open()
        if node.name in self.nodes:
            logger.warning(f"Replacing node '{node.name}' in graph '{self.name}'")
        self.nodes[node.name] = node
        logger.debug(f"Added node: {node.name} of type {type(node).__name__}")
        return self

    def add_edge(self, from_node: str, to_node: str) -> "Graph":
        """Add a direct edge. A source has at most one outgoing edge."""
        self._ensure_open()
        self.edges[from_node] = DirectEdge(target=to_node)
        logger.debug(f"Added edge: {from_node} --> {to_node}")
        return self

    def add_conditional_edge(self, from_node: str, condition: Condition) -> "Graph":
        """Add an edge whose target is ``condition(state)``.

        The condition must return a node name or ``END``.
        """
        self._ensure_open()
        self.edges[from_node] = ConditionalEdge(condition=condition)
        logger.debug(f"Added conditional edge from: {from_node}")
        return self

    def configure_node(self, name: str, config: NodeConfig) -> "Graph":
        """Set the timeout and retry policy for one node."""
        self._ensure_open()
        self.configs[name] = config
        return self

    def chain(self, nodes: List[Node]) -> "Graph":
        """Add nodes and connect them ``START -> n1 -> ... -> nk -> END``."""
        self._ensure_open()
        if not nodes:
            return self
        for node in nodes:
            self.add_node(node)
        names = [START] + [node.name for node in nodes] + [END]
        for source, target in zip(names, names[1:]):
            self.add_edge(source, target)
        return self

    def validate(self) -> List[str]:
        """Check the graph's wiring.

        Returns:
            List of problems (empty if the graph is well formed)
        """
        errors: List[str] = []

        if not self.nodes:
            errors.append("Graph has no nodes")

        for name in self.nodes:
            if name in RESERVED_NAMES:
                errors.append(f"Reserved name used as node: {name}")

        if START not in self.edges:
            errors.append("No edge from START")

        for source, edge in self.edges.items():
            if source != START and source not in self.nodes:
                errors.append(f"Edge from unknown node: {source}")
            if isinstance(edge, DirectEdge) and edge.target != END and edge.target not in self.nodes:
                errors.append(f"Edge {source} --> {edge.target} references unknown node")

        for name in self.configs:
            if name not in self.nodes:
                errors.append(f"Config for unknown node: {name}")

        return errors

    def build(
        self,
        strict: bool = False,
        implicit_start: bool = False,
        max_steps: Optional[int] = None,
    ) -> "CompiledGraph":
        """Consume the builder and return an executable graph.

        Args:
            strict: Run ``validate()`` and fail on any problem
            implicit_start: Without a START edge, begin at the first added
                node instead of failing
            max_steps: Optional cap on node steps per run

        Raises:
            GraphBuildError: If the builder was already consumed
            GraphStructureError: If ``strict`` and validation found problems
        """
        self._ensure_open()
        if strict:
            problems = self.validate()
            if problems:
                raise GraphStructureError(problems)

        compiled = CompiledGraph(
            name=self.name,
            nodes=dict(self.nodes),
            edges=dict(self.edges),
            configs=dict(self.configs),
            logging_config=self.logging_config,
            implicit_start=implicit_start,
            max_steps=max_steps,
        )
        self._built = True
        logger.info(f"Built graph '{self.name}' with {len(self.nodes)} nodes")
        return compiled


class CompiledGraph(Node):
    """An executable, immutable workflow.

    ``run`` may be called any number of times, including concurrently; each
    run owns its own cursor and current state. As a ``Node``, a compiled
    graph runs as a single step of an enclosing graph.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    nodes: Dict[str, Node] = Field(default_factory=dict)
    edges: Dict[str, Edge] = Field(default_factory=dict)
    configs: Dict[str, NodeConfig] = Field(default_factory=dict)
    logging_config: AgentGraphLoggingConfig = Field(default_factory=AgentGraphLoggingConfig)
    implicit_start: bool = False
    max_steps: Optional[int] = Field(default=None, ge=1)

    def successor(self, current: str, state: Any) -> str:
        """Pick the node that follows ``current``.

        Raises:
            InvalidGraphStateError: START has no edge (and no fallback applies)
            InvalidTransitionError: A node has no outgoing edge
        """
        edge = self.edges.get(current)
        if edge is not None:
            try:
                return edge.resolve(state)
            except Exception as e:
                raise GraphExecutionError(
                    f"Condition on edge from {current} failed: {e}"
                ) from e

        if current == START:
            if not self.nodes:
                raise InvalidGraphStateError("Graph has no nodes")
            if self.implicit_start:
                return next(iter(self.nodes))
            raise InvalidGraphStateError(f"No edge from START in graph '{self.name}'")

        raise InvalidTransitionError(f"No transition defined from node: {current}")

    async def run(self, ctx: Context, state: Any) -> Any:
        """Run the workflow from START to END.

        Args:
            ctx: Caller context; each node step receives a copy
            state: Initial state

        Returns:
            The final state

        Raises:
            NodeFailedError: A node failed on every allowed attempt
            NodeNotFoundError: A transition named an unknown node
            InvalidTransitionError: A node without an outgoing edge finished
            InvalidGraphStateError: START has no edge
            GraphExecutionError: The step budget was exhausted or a node's
                output could not be applied to the state
        """
        current_state = state
        current_node = START
        steps = 0

        logger.info(f"Starting graph '{self.name}' (trace {ctx.trace_id})")

        while True:
            next_node = self.successor(current_node, current_state)
            if next_node == END:
                break

            node = self.nodes.get(next_node)
            if node is None:
                logger.error(f"Graph '{self.name}': transition to unknown node '{next_node}'")
                raise NodeNotFoundError(next_node)

            steps += 1
            if self.max_steps is not None and steps > self.max_steps:
                raise GraphExecutionError(
                    f"Graph '{self.name}' exceeded {self.max_steps} steps"
                )

            if self.logging_config.show_node_transitions:
                log_verbose(logger, f"Transitioning {current_node} --> {next_node}")

            config = self.configs.get(next_node) or NodeConfig()
            try:
                output = await self.run_node_with_policy(node, config, ctx.clone(), current_state)
            except NodeError as e:
                logger.error(f"Error in node {next_node}: {e}")
                raise NodeFailedError(next_node, e) from e

            try:
                current_state = output.fold(current_state)
            except (TypeError, ValueError) as e:
                logger.error(f"Error applying output of node {next_node}: {e}")
                raise GraphExecutionError(f"Applying output of {next_node} failed: {e}") from e
            if self.logging_config.show_state and hasattr(current_state, "model_dump"):
                log_state(logger, current_state.model_dump())

            current_node = next_node

        logger.info(f"Finished graph '{self.name}' after {steps} steps")
        return current_state

    async def run_node_with_policy(
        self,
        node: Node,
        config: NodeConfig,
        ctx: Context,
        state: Any,
    ) -> NodeOutput:
        """Execute one node step under its timeout and retry policy.

        Attempts are sequential and immediate. Each attempt gets a fresh copy
        of ``state``; from the second attempt on, the context is replaced by
        ``next_node_context()`` of the previous attempt's context.
        No sleep runs between attempts, so the only suspension points are
        the node's own ``process`` and its deadline.

        Raises:
            NodeError: The last attempt's error once attempts are exhausted
        """
        attempt_ctx = ctx
        attempts = 0
        retrying = AsyncRetrying(
            stop=stop_after_attempt(config.max_retries),
            retry=retry_if_exception_type((NodeError, asyncio.TimeoutError)),
            reraise=True,
            sleep=_no_sleep,
        )
        try:
            async for attempt in retrying:
                with attempt:
                    attempts = attempt.retry_state.attempt_number
                    if attempts > 1:
                        attempt_ctx = attempt_ctx.next_node_context()
                        logger.warning(
                            f"Retrying node {node.name} (attempt {attempts}/{config.max_retries})"
                        )
                    return await asyncio.wait_for(
                        self._attempt(node, attempt_ctx, state),
                        timeout=config.timeout_seconds,
                    )
        except asyncio.TimeoutError:
            logger.warning(f"Node {node.name} timed out after {attempts} attempts")
            raise NodeExecutionError(
                f"Node {node.name} timed out after {attempts} attempts"
            ) from None
        raise NodeExecutionError(f"Node {node.name} produced no output")

    @staticmethod
    async def _attempt(node: Node, ctx: Context, state: Any) -> NodeOutput:
        try:
            result = await node.process(ctx, clone_state(state))
        except NodeError:
            raise
        except ModelError as e:
            raise NodeModelError(e.message) from e
        except ToolError as e:
            raise NodeToolError(e) from e
        except Exception as e:
            raise NodeExecutionError(f"{type(e).__name__}: {e}") from e

        output = NodeOutput.coerce(result)
        if output is None:
            raise NodeExecutionError(
                f"Node {node.name} returned unsupported output {type(result).__name__}"
            )
        return output

    async def process(self, ctx: Context, state: Any) -> NodeOutput:
        """Run this graph as a single step of an enclosing graph."""
        try:
            new_state = await self.run(ctx, state)
        except GraphError as e:
            raise SubgraphExecutionError(str(e)) from e
        return Full(new_state)
