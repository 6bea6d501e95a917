"""
Linear Counter Example

This example demonstrates:
1. A typed GraphState with an append-only field
2. Function nodes returning field updates
3. A straight START -> inc5 -> double -> END workflow

Expected result: count 30, history ['inc_5', 'double']
"""

import asyncio
from typing import Annotated, List

from pydantic import Field

from agentgraph.core.graph import END, START, Context, Graph, GraphState, Updates, function_node, update
from agentgraph.core.logging import Colors, LogLevel, configure_logging


class CounterState(GraphState):
    """Counter with a record of the steps applied."""
    count: int = 0
    history: Annotated[List[str], update("append")] = Field(default_factory=list)


@function_node
async def inc5(ctx: Context, state: CounterState) -> Updates:
    return Updates([
        CounterState.Update.Count(state.count + 5),
        CounterState.Update.History(["inc_5"]),
    ])


@function_node
async def double(ctx: Context, state: CounterState) -> Updates:
    return Updates([
        CounterState.Update.Count(state.count * 2),
        CounterState.Update.History(["double"]),
    ])


def build_counter_graph(name: str = "counter") -> Graph:
    return (
        Graph(name=name)
        .add_node(inc5)
        .add_node(double)
        .add_edge(START, "inc5")
        .add_edge("inc5", "double")
        .add_edge("double", END)
    )


async def main():
    """Run the counter workflow."""
    configure_logging(default_level=LogLevel.VERBOSE)

    graph = build_counter_graph().build(strict=True)
    final_state = await graph.run(Context(), CounterState(count=10))

    print(f"\n{Colors.SUCCESS}Final state:{Colors.RESET} {final_state}")


if __name__ == "__main__":
    asyncio.run(main())
