"""Chat completion client used from inside graph nodes.

The client is deliberately thin: it turns a list of mirascope
``BaseMessageParam`` messages plus request options into a provider call,
normalizes the response, and reports the call to an optional tracer.

Message Flow:
    1. A node builds a ``ChatCompletionRequest`` (messages + options)
    2. ``complete`` / ``complete_stream`` starts a trace (if a tracer is set)
       using the trace ids from ``ChatCompletionCallOptions``
    3. The provider is called through mirascope's ``openai.call`` with a
       dynamic config carrying messages, tools and call params
    4. The response is normalized to ``ChatCompletionResponse`` (or a
       stream of ``ChatCompletionChunk``) and the trace is ended

Example:
    ```python
    client = MirascopeChatClient(tracer=LangSmithTracer.from_env())
    request = client.create_request(
        [BaseMessageParam(role="user", content="Hello")],
        ChatCompletionRequestOptions(model="gpt-4o-mini"),
    )
    response = await client.complete(request, ChatCompletionCallOptions.from_context(ctx))
    ```
"""

import inspect
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, AsyncIterator, Callable, Dict, List, Optional

from mirascope.core import BaseDynamicConfig, BaseMessageParam, openai
from pydantic import BaseModel, ConfigDict, Field

from agentgraph.core.errors import ModelError, TracingError
from agentgraph.core.graph.context import Context, new_trace_id
from agentgraph.core.logging import get_logger, LogComponent, log_verbose
from agentgraph.core.completion.tracing import TracingProvider
from agentgraph.core.tools.base import ToolFunction

logger = get_logger(LogComponent.COMPLETION)

DEFAULT_MODEL = "gpt-4o-mini"
DEFAULT_TEMPERATURE = 0.0


class ChatCompletionRequestOptions(BaseModel):
    """Options for a chat completion request.

    Attributes:
        model: Provider model name
        temperature: Sampling temperature, ``None`` for the provider default
        tools: ``ToolFunction`` instances, mirascope ``BaseTool`` classes or
            plain functions
        tool_choice: Provider tool choice (``"auto"``, ``"none"``, ``"required"``)
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    model: str = Field(default=DEFAULT_MODEL)
    temperature: Optional[float] = Field(default=DEFAULT_TEMPERATURE)
    tools: List[Any] = Field(default_factory=list)
    tool_choice: Optional[str] = None


class ChatCompletionCallOptions(BaseModel):
    """Per-call tracing ids."""

    trace_id: Optional[str] = None
    parent_trace_id: Optional[str] = None

    @classmethod
    def from_context(cls, ctx: Context) -> "ChatCompletionCallOptions":
        """Trace the call under the node's context."""
        return cls(trace_id=ctx.trace_id, parent_trace_id=ctx.parent_trace_id)


class ChatCompletionRequest(BaseModel):
    messages: List[BaseMessageParam]
    options: ChatCompletionRequestOptions = Field(default_factory=ChatCompletionRequestOptions)

    def trace_inputs(self) -> Dict[str, Any]:
        return {
            "messages": [message.model_dump(mode="json") for message in self.messages],
            "model": self.options.model,
            "temperature": self.options.temperature,
            "tools": [_tool_name(tool) for tool in self.options.tools],
        }


class ToolCall(BaseModel):
    """A tool invocation requested by the model."""

    name: str
    arguments: Dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_tool(cls, tool: Any) -> "ToolCall":
        return cls(name=tool._name(), arguments=dict(tool.args))


class ChatCompletionResponse(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)

    content: str = ""
    tool_calls: List[ToolCall] = Field(default_factory=list)
    raw: Any = None

    @classmethod
    def from_provider(cls, response: Any) -> "ChatCompletionResponse":
        tools = getattr(response, "tools", None) or []
        return cls(
            content=response.content or "",
            tool_calls=[ToolCall.from_tool(tool) for tool in tools],
            raw=response,
        )

    def trace_outputs(self) -> Dict[str, Any]:
        return {
            "content": self.content,
            "tool_calls": [call.model_dump() for call in self.tool_calls],
        }


class ChatCompletionChunk(BaseModel):
    """One streamed piece: either a content delta or a complete tool call."""

    content: str = ""
    tool_call: Optional[ToolCall] = None


def _tool_name(tool: Any) -> str:
    if isinstance(tool, ToolFunction):
        return tool.name
    if hasattr(tool, "_name"):
        return tool._name()
    return getattr(tool, "__name__", type(tool).__name__)


def as_mirascope_tool(tool: ToolFunction) -> Callable[..., Dict[str, Any]]:
    """Expose a ``ToolFunction`` to mirascope as a typed function.

    Mirascope derives the tool schema from the function's name, docstring
    and signature. Tool calls are dispatched back by name with
    ``call_tool``, so the function body only echoes its arguments.
    """
    parameters = [
        inspect.Parameter(
            name,
            inspect.Parameter.KEYWORD_ONLY,
            annotation=info.annotation,
            default=inspect.Parameter.empty if info.is_required() else info.default,
        )
        for name, info in tool.params_model.model_fields.items()
    ]

    def proxy(**kwargs: Any) -> Dict[str, Any]:
        return kwargs

    proxy.__name__ = tool.name
    proxy.__qualname__ = tool.name
    proxy.__doc__ = tool.description
    proxy.__signature__ = inspect.Signature(parameters, return_annotation=dict)
    proxy.__annotations__ = {param.name: param.annotation for param in parameters}
    proxy.__annotations__["return"] = dict
    return proxy


class ChatClient(ABC):
    """Interface for chat completion clients."""

    def create_request(
        self,
        messages: List[BaseMessageParam],
        options: Optional[ChatCompletionRequestOptions] = None,
    ) -> ChatCompletionRequest:
        return ChatCompletionRequest(
            messages=list(messages),
            options=options or ChatCompletionRequestOptions(),
        )

    @abstractmethod
    async def complete(
        self,
        request: ChatCompletionRequest,
        call_opts: Optional[ChatCompletionCallOptions] = None,
    ) -> ChatCompletionResponse:
        ...

    @abstractmethod
    def complete_stream(
        self,
        request: ChatCompletionRequest,
        call_opts: Optional[ChatCompletionCallOptions] = None,
    ) -> AsyncIterator[ChatCompletionChunk]:
        ...


class MirascopeChatClient(ChatClient):
    """Chat client backed by mirascope's OpenAI provider.

    Args:
        client: Optional provider client passed through to mirascope
        tracer: Optional tracing observer
    """

    trace_name = "ChatCompletion"
    trace_type = "llm"

    def __init__(self, client: Any = None, tracer: Optional[TracingProvider] = None):
        self.client = client
        self.tracer = tracer

    def with_tracer(self, tracer: TracingProvider) -> "MirascopeChatClient":
        return type(self)(client=self.client, tracer=tracer)

    async def _invoke(self, request: ChatCompletionRequest, stream: bool) -> Any:
        """Call the provider and return mirascope's response or stream."""
        options = request.options
        call_params: Dict[str, Any] = {}
        if options.temperature is not None:
            call_params["temperature"] = options.temperature
        if options.tool_choice and options.tools:
            call_params["tool_choice"] = options.tool_choice

        tools = [
            as_mirascope_tool(tool) if isinstance(tool, ToolFunction) else tool
            for tool in options.tools
        ]
        messages = list(request.messages)

        @openai.call(options.model, stream=stream, client=self.client, call_params=call_params)
        async def _call() -> BaseDynamicConfig:
            return {"messages": messages, "tools": tools}

        return await _call()

    async def _start_trace(self, trace_id: str, parent_trace_id: Optional[str], request: ChatCompletionRequest) -> None:
        if self.tracer is None:
            return
        await self.tracer.start_trace(
            trace_id,
            self.trace_name,
            self.trace_type,
            request.trace_inputs(),
            parent_trace_id,
            datetime.now(timezone.utc),
        )

    async def complete(
        self,
        request: ChatCompletionRequest,
        call_opts: Optional[ChatCompletionCallOptions] = None,
    ) -> ChatCompletionResponse:
        """Run a non-streaming completion.

        Raises:
            ModelError: The provider call failed
            TracingError: The tracer rejected the start or end event
        """
        call_opts = call_opts or ChatCompletionCallOptions()
        trace_id = call_opts.trace_id or new_trace_id()

        await self._start_trace(trace_id, call_opts.parent_trace_id, request)
        log_verbose(logger, f"Chat completion on {request.options.model} (trace {trace_id})")

        try:
            raw = await self._invoke(request, stream=False)
        except Exception as e:
            logger.error(f"Chat completion failed: {e}")
            raise ModelError(str(e)) from e

        response = ChatCompletionResponse.from_provider(raw)
        if self.tracer is not None:
            await self.tracer.end_trace(trace_id, response.trace_outputs(), datetime.now(timezone.utc))
        return response

    async def complete_stream(
        self,
        request: ChatCompletionRequest,
        call_opts: Optional[ChatCompletionCallOptions] = None,
    ) -> AsyncIterator[ChatCompletionChunk]:
        """Stream a completion as content deltas and tool calls.

        The trace is ended with the aggregated content once the stream is
        exhausted; a failure to end it is logged, not raised.
        """
        call_opts = call_opts or ChatCompletionCallOptions()
        trace_id = call_opts.trace_id or new_trace_id()

        await self._start_trace(trace_id, call_opts.parent_trace_id, request)

        try:
            stream = await self._invoke(request, stream=True)
        except Exception as e:
            logger.error(f"Chat completion stream failed: {e}")
            raise ModelError(str(e)) from e

        aggregated = ChatCompletionResponse()
        try:
            async for chunk, tool in stream:
                if tool is not None:
                    call = ToolCall.from_tool(tool)
                    aggregated.tool_calls.append(call)
                    yield ChatCompletionChunk(tool_call=call)
                elif chunk.content:
                    aggregated.content += chunk.content
                    yield ChatCompletionChunk(content=chunk.content)
        except Exception as e:
            logger.error(f"Chat completion stream failed: {e}")
            raise ModelError(str(e)) from e

        if self.tracer is not None:
            try:
                await self.tracer.end_trace(trace_id, aggregated.trace_outputs(), datetime.now(timezone.utc))
            except TracingError as e:
                logger.error(f"Error ending stream trace: {e}")
