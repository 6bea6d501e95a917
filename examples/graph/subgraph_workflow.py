"""
Subgraph Example

This example demonstrates:
1. Using a built graph as a node of another graph
2. Chaining nodes with Graph.chain

The inner graph is the linear counter; the outer graph runs it between two
bookkeeping steps.
"""

import asyncio

from agentgraph.core.graph import Context, Graph, Updates, function_node
from agentgraph.core.logging import Colors, LogLevel, configure_logging

from counter_workflow import CounterState, build_counter_graph


@function_node
async def announce(ctx: Context, state: CounterState) -> Updates:
    return Updates([CounterState.Update.History(["start"])])


@function_node
async def finish(ctx: Context, state: CounterState) -> Updates:
    return Updates([CounterState.Update.History(["finish"])])


async def main():
    """Run the nested workflow."""
    configure_logging(default_level=LogLevel.INFO)

    inner = build_counter_graph(name="inner").build()
    outer = Graph(name="outer").chain([announce, inner, finish]).build(strict=True)

    final_state = await outer.run(Context(), CounterState(count=10))
    print(f"\n{Colors.SUCCESS}Final state:{Colors.RESET} {final_state}")


if __name__ == "__main__":
    asyncio.run(main())
