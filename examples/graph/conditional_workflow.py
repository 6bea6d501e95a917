"""
Conditional Branch Example

This example demonstrates:
1. Routing with a conditional edge
2. Per-node retry and timeout configuration

step1 adds one; positive counts go through step2 (double) before step3
(subtract three), others go straight to step3.
"""

import asyncio

from agentgraph.core.graph import END, START, Context, Graph, GraphState, NodeConfig, Updates, function_node
from agentgraph.core.logging import Colors, LogLevel, configure_logging


class BranchState(GraphState):
    count: int = 0


@function_node
async def step1(ctx: Context, state: BranchState) -> Updates:
    return Updates([BranchState.Update.Count(state.count + 1)])


@function_node
async def step2(ctx: Context, state: BranchState) -> Updates:
    return Updates([BranchState.Update.Count(state.count * 2)])


@function_node
async def step3(ctx: Context, state: BranchState) -> Updates:
    return Updates([BranchState.Update.Count(state.count - 3)])


def route(state: BranchState) -> str:
    return "step2" if state.count > 0 else "step3"


async def main():
    """Run the branch for a positive and a negative start."""
    configure_logging(default_level=LogLevel.VERBOSE)

    graph = (
        Graph(name="branch")
        .add_node(step1)
        .add_node(step2)
        .add_node(step3)
        .add_edge(START, "step1")
        .add_conditional_edge("step1", route)
        .add_edge("step2", "step3")
        .add_edge("step3", END)
        .configure_node("step2", NodeConfig(max_retries=1, timeout_seconds=5))
        .build()
    )

    for start in (5, -5):
        final_state = await graph.run(Context(), BranchState(count=start))
        print(f"{Colors.INFO}count={start}{Colors.RESET} -> {final_state.count}")


if __name__ == "__main__":
    asyncio.run(main())
