"""
Tool-Using Agent Example

This example demonstrates:
1. Exposing methods as tools with the tools decorator
2. Calling a chat model from a node with tracing ids from the context
3. Looping between the model and tool execution with a conditional edge

Requires OPENAI_API_KEY. Set LANGSMITH_API_KEY to record traces.
"""

import asyncio
import json
import os
from typing import Annotated, List

from mirascope.core import BaseMessageParam
from pydantic import BaseModel, Field

from agentgraph.core.completion import (
    ChatCompletionCallOptions,
    ChatCompletionRequestOptions,
    LangSmithTracer,
    MirascopeChatClient,
    ToolCall,
)
from agentgraph.core.graph import END, START, Context, Graph, GraphState, MethodNode, NodeConfig, Updates, update
from agentgraph.core.logging import Colors, LogLevel, configure_logging
from agentgraph.core.tools import call_tool, tool_functions, tools


class AddParams(BaseModel):
    a: int = Field(..., description="First operand")
    b: int = Field(..., description="Second operand")


@tools(add="Adds two integers")
class MathTool:
    async def add(self, params: AddParams) -> int:
        return params.a + params.b


class AgentState(GraphState):
    messages: Annotated[List[BaseMessageParam], update("append")] = Field(default_factory=list)
    pending: List[ToolCall] = Field(default_factory=list)
    answer: str = ""


class Agent:
    """Receiver shared by the model and tool nodes."""

    def __init__(self, client: MirascopeChatClient):
        self.client = client
        self.tools = tool_functions(MathTool())

    async def think(self, ctx: Context, state: AgentState) -> Updates:
        request = self.client.create_request(
            state.messages,
            ChatCompletionRequestOptions(tools=self.tools, tool_choice="auto"),
        )
        response = await self.client.complete(request, ChatCompletionCallOptions.from_context(ctx))
        return Updates([
            AgentState.Update.Messages([BaseMessageParam(role="assistant", content=response.content)]),
            AgentState.Update.Pending(response.tool_calls),
            AgentState.Update.Answer(response.content),
        ])

    async def act(self, ctx: Context, state: AgentState) -> Updates:
        results = []
        for call in state.pending:
            output = await call_tool(self.tools, call.name, call.arguments)
            results.append(BaseMessageParam(
                role="user",
                content=f"Tool {call.name}({json.dumps(call.arguments)}) returned {output}",
            ))
        return Updates([AgentState.Update.Messages(results), AgentState.Update.Pending([])])


def route(state: AgentState) -> str:
    return "act" if state.pending else END


async def main():
    """Ask the agent a question that needs the add tool."""
    configure_logging(default_level=LogLevel.INFO)

    tracer = LangSmithTracer.from_env() if os.environ.get("LANGSMITH_API_KEY") else None
    agent = Agent(MirascopeChatClient(tracer=tracer))

    graph = (
        Graph(name="tool_agent")
        .add_node(MethodNode.bind(agent, "think"))
        .add_node(MethodNode.bind(agent, "act"))
        .add_edge(START, "think")
        .add_conditional_edge("think", route)
        .add_edge("act", "think")
        .configure_node("think", NodeConfig(max_retries=2, timeout_seconds=60))
        .build(max_steps=10)
    )

    state = AgentState(messages=[
        BaseMessageParam(role="system", content="Use the add tool for arithmetic."),
        BaseMessageParam(role="user", content="What is 1234 + 4321?"),
    ])
    final_state = await graph.run(Context(), state)
    print(f"\n{Colors.SUCCESS}Answer:{Colors.RESET} {final_state.answer}")

    if tracer is not None:
        await tracer.aclose()


if __name__ == "__main__":
    asyncio.run(main())
