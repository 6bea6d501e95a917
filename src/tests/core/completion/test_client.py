"""Tests for the chat completion client.

Most tests stub the provider call by overriding ``_invoke``. The provider
wiring tests keep it and route the OpenAI client through an httpx mock
transport, so no request ever leaves the process.
"""

import inspect
import json
from datetime import datetime
from types import SimpleNamespace
from typing import Any, Dict, List, Optional

import httpx
import openai
import pytest
from mirascope.core import BaseMessageParam
from pydantic import BaseModel, Field

from agentgraph.core.completion import (
    ChatCompletionCallOptions,
    ChatCompletionChunk,
    ChatCompletionRequest,
    ChatCompletionRequestOptions,
    MirascopeChatClient,
    ToolCall,
    TracingProvider,
    as_mirascope_tool,
)
from agentgraph.core.errors import ModelError, TracingHttpError
from agentgraph.core.graph import Context
from agentgraph.core.tools import tool_functions, tools


class FakeTool:
    """Stands in for a mirascope tool instance."""

    def __init__(self, name: str, args: Dict[str, Any]):
        self.name = name
        self.args = args

    def _name(self) -> str:
        return self.name


class RecordingTracer(TracingProvider):
    """Tracer that remembers every event."""

    def __init__(self, fail_start: bool = False, fail_end: bool = False):
        self.events: List[Dict[str, Any]] = []
        self.fail_start = fail_start
        self.fail_end = fail_end

    async def start_trace(self, trace_id, name, trace_type, inputs, parent_trace_id=None, start_time=None):
        if self.fail_start:
            raise TracingHttpError("start_trace failed: HTTP 500 – down", status_code=500)
        self.events.append({
            "event": "start",
            "trace_id": trace_id,
            "name": name,
            "trace_type": trace_type,
            "inputs": inputs,
            "parent_trace_id": parent_trace_id,
            "start_time": start_time,
        })

    async def end_trace(self, trace_id, outputs, end_time=None):
        if self.fail_end:
            raise TracingHttpError("end_trace failed: HTTP 500 – down", status_code=500)
        self.events.append({"event": "end", "trace_id": trace_id, "outputs": outputs})


class StubClient(MirascopeChatClient):
    """Client whose provider call returns canned results."""

    def __init__(self, response: Any = None, chunks: Optional[List[Any]] = None,
                 error: Optional[Exception] = None, **kwargs: Any):
        super().__init__(**kwargs)
        self.response = response
        self.chunks = chunks or []
        self.error = error
        self.invocations: List[Dict[str, Any]] = []

    async def _invoke(self, request: ChatCompletionRequest, stream: bool) -> Any:
        self.invocations.append({"request": request, "stream": stream})
        if self.error is not None:
            raise self.error
        if stream:
            return self._stream()
        return self.response

    async def _stream(self):
        for item in self.chunks:
            if isinstance(item, Exception):
                raise item
            yield item


def text_chunk(content: str):
    return SimpleNamespace(content=content), None


def tool_chunk(name: str, args: Dict[str, Any]):
    return SimpleNamespace(content=""), FakeTool(name, args)


@pytest.fixture
def messages() -> List[BaseMessageParam]:
    """Fixture providing a minimal conversation."""
    return [
        BaseMessageParam(role="system", content="You are terse."),
        BaseMessageParam(role="user", content="Hello"),
    ]


@pytest.fixture
def call_opts() -> ChatCompletionCallOptions:
    """Fixture providing call options bound to a node context."""
    return ChatCompletionCallOptions.from_context(Context(trace_id="node-trace", parent_trace_id="run-trace"))


class TestOptions:
    """Test suite for request and call options."""

    def test_request_defaults(self):
        """Requests default to a small deterministic model."""
        options = ChatCompletionRequestOptions()
        assert options.model == "gpt-4o-mini"
        assert options.temperature == 0.0
        assert options.tools == []
        assert options.tool_choice is None

    def test_call_options_from_context(self, call_opts: ChatCompletionCallOptions):
        """Call options copy the context's trace ids."""
        assert call_opts.trace_id == "node-trace"
        assert call_opts.parent_trace_id == "run-trace"

    def test_create_request(self, messages: List[BaseMessageParam]):
        """create_request fills in default options."""
        request = StubClient().create_request(messages)
        assert request.messages == messages
        assert request.options == ChatCompletionRequestOptions()

    def test_trace_inputs(self, messages: List[BaseMessageParam]):
        """Trace inputs carry the messages and options."""
        request = ChatCompletionRequest(messages=messages)
        inputs = request.trace_inputs()
        assert inputs["messages"][1] == {"role": "user", "content": "Hello"}
        assert inputs["model"] == "gpt-4o-mini"
        assert inputs["temperature"] == 0.0


class TestComplete:
    """Test suite for non-streaming completions."""

    async def test_complete(self, messages: List[BaseMessageParam], call_opts: ChatCompletionCallOptions):
        """Responses are normalized and traced."""
        tracer = RecordingTracer()
        client = StubClient(response=SimpleNamespace(content="Hi!", tools=None), tracer=tracer)

        response = await client.complete(client.create_request(messages), call_opts)

        assert response.content == "Hi!"
        assert response.tool_calls == []
        assert client.invocations[0]["stream"] is False

        start, end = tracer.events
        assert start["event"] == "start"
        assert start["trace_id"] == "node-trace"
        assert start["parent_trace_id"] == "run-trace"
        assert start["name"] == "ChatCompletion"
        assert start["trace_type"] == "llm"
        assert isinstance(start["start_time"], datetime)
        assert end == {
            "event": "end",
            "trace_id": "node-trace",
            "outputs": {"content": "Hi!", "tool_calls": []},
        }

    async def test_tool_calls(self, messages: List[BaseMessageParam]):
        """Tool calls requested by the model are exposed."""
        raw = SimpleNamespace(content="", tools=[FakeTool("add", {"a": 1, "b": 2})])
        response = await StubClient(response=raw).complete(ChatCompletionRequest(messages=messages))
        assert response.tool_calls == [ToolCall(name="add", arguments={"a": 1, "b": 2})]
        assert response.raw is raw

    async def test_generated_trace_id(self, messages: List[BaseMessageParam]):
        """Without call options a fresh trace id is used."""
        tracer = RecordingTracer()
        client = StubClient(response=SimpleNamespace(content="ok", tools=None), tracer=tracer)
        await client.complete(ChatCompletionRequest(messages=messages))

        start, end = tracer.events
        assert start["trace_id"]
        assert start["parent_trace_id"] is None
        assert end["trace_id"] == start["trace_id"]

    async def test_without_tracer(self, messages: List[BaseMessageParam]):
        """Tracing is optional."""
        client = StubClient(response=SimpleNamespace(content="ok", tools=None))
        assert (await client.complete(ChatCompletionRequest(messages=messages))).content == "ok"

    async def test_provider_error(self, messages: List[BaseMessageParam]):
        """Provider failures surface as ModelError."""
        client = StubClient(error=RuntimeError("rate limited"))
        with pytest.raises(ModelError) as exc_info:
            await client.complete(ChatCompletionRequest(messages=messages))
        assert str(exc_info.value) == "LLM error: rate limited"
        assert isinstance(exc_info.value.__cause__, RuntimeError)

    async def test_start_trace_error(self, messages: List[BaseMessageParam]):
        """A tracer refusing the start event fails the call before the provider is hit."""
        client = StubClient(
            response=SimpleNamespace(content="ok", tools=None),
            tracer=RecordingTracer(fail_start=True),
        )
        with pytest.raises(TracingHttpError):
            await client.complete(ChatCompletionRequest(messages=messages))
        assert client.invocations == []


class TestCompleteStream:
    """Test suite for streaming completions."""

    async def test_stream(self, messages: List[BaseMessageParam], call_opts: ChatCompletionCallOptions):
        """Chunks are forwarded and the aggregate is traced."""
        tracer = RecordingTracer()
        client = StubClient(
            chunks=[text_chunk("Hel"), text_chunk("lo"), tool_chunk("add", {"a": 1, "b": 1})],
            tracer=tracer,
        )

        received = [chunk async for chunk in client.complete_stream(client.create_request(messages), call_opts)]

        assert received == [
            ChatCompletionChunk(content="Hel"),
            ChatCompletionChunk(content="lo"),
            ChatCompletionChunk(tool_call=ToolCall(name="add", arguments={"a": 1, "b": 1})),
        ]
        assert client.invocations[0]["stream"] is True
        assert tracer.events[-1] == {
            "event": "end",
            "trace_id": "node-trace",
            "outputs": {
                "content": "Hello",
                "tool_calls": [{"name": "add", "arguments": {"a": 1, "b": 1}}],
            },
        }

    async def test_empty_chunks_skipped(self, messages: List[BaseMessageParam]):
        """Chunks without content are not forwarded."""
        client = StubClient(chunks=[text_chunk(""), text_chunk("x")])
        received = [chunk async for chunk in client.complete_stream(ChatCompletionRequest(messages=messages))]
        assert received == [ChatCompletionChunk(content="x")]

    async def test_end_trace_error_is_logged(self, messages: List[BaseMessageParam], caplog):
        """Failing to end a stream trace does not fail the stream."""
        client = StubClient(chunks=[text_chunk("ok")], tracer=RecordingTracer(fail_end=True))
        received = [chunk async for chunk in client.complete_stream(ChatCompletionRequest(messages=messages))]
        assert received == [ChatCompletionChunk(content="ok")]
        assert "Error ending stream trace" in caplog.text

    async def test_stream_error(self, messages: List[BaseMessageParam]):
        """Errors mid-stream surface as ModelError."""
        client = StubClient(chunks=[text_chunk("partial"), RuntimeError("connection reset")])
        received = []
        with pytest.raises(ModelError):
            async for chunk in client.complete_stream(ChatCompletionRequest(messages=messages)):
                received.append(chunk)
        assert received == [ChatCompletionChunk(content="partial")]

    async def test_stream_open_error(self, messages: List[BaseMessageParam]):
        """Errors opening the stream surface as ModelError."""
        client = StubClient(error=RuntimeError("bad key"))
        with pytest.raises(ModelError):
            async for _ in client.complete_stream(ChatCompletionRequest(messages=messages)):
                pass


class WeatherParams(BaseModel):
    city: str = Field(..., description="City name")
    units: str = "metric"


@tools(weather="Looks up the weather")
class WeatherTool:
    async def weather(self, params: WeatherParams) -> str:
        return f"Sunny in {params.city}"


class TestMirascopeTools:
    """Test suite for exposing tools to mirascope."""

    def test_as_mirascope_tool(self):
        """The proxy carries the tool's name, description and signature."""
        tool, = tool_functions(WeatherTool())
        proxy = as_mirascope_tool(tool)

        assert proxy.__name__ == "weather"
        assert proxy.__doc__ == "Looks up the weather"
        parameters = inspect.signature(proxy).parameters
        assert list(parameters) == ["city", "units"]
        assert parameters["city"].annotation is str
        assert parameters["city"].default is inspect.Parameter.empty
        assert parameters["units"].default == "metric"
        assert proxy(city="Paris") == {"city": "Paris"}

    def test_trace_inputs_name_tools(self, messages: List[BaseMessageParam]):
        """Traced inputs list tools by name."""
        tool, = tool_functions(WeatherTool())
        request = ChatCompletionRequest(
            messages=messages,
            options=ChatCompletionRequestOptions(tools=[tool], tool_choice="auto"),
        )
        assert request.trace_inputs()["tools"] == ["weather"]


def completion_body(message: Dict[str, Any], finish_reason: str = "stop") -> Dict[str, Any]:
    return {
        "id": "chatcmpl-1",
        "object": "chat.completion",
        "created": 0,
        "model": "gpt-4o-mini",
        "choices": [{"index": 0, "message": message, "finish_reason": finish_reason, "logprobs": None}],
        "usage": {"prompt_tokens": 5, "completion_tokens": 2, "total_tokens": 7},
    }


def stream_body(*contents: str) -> bytes:
    events = []
    for content in contents:
        chunk = {
            "id": "chatcmpl-1",
            "object": "chat.completion.chunk",
            "created": 0,
            "model": "gpt-4o-mini",
            "choices": [{"index": 0, "delta": {"role": "assistant", "content": content}, "finish_reason": None}],
        }
        events.append(f"data: {json.dumps(chunk)}\n\n")
    final = {
        "id": "chatcmpl-1",
        "object": "chat.completion.chunk",
        "created": 0,
        "model": "gpt-4o-mini",
        "choices": [{"index": 0, "delta": {}, "finish_reason": "stop"}],
    }
    events.append(f"data: {json.dumps(final)}\n\n")
    events.append("data: [DONE]\n\n")
    return "".join(events).encode()


def openai_client(requests: List[httpx.Request], response: httpx.Response) -> MirascopeChatClient:
    """Real client whose HTTP traffic stays in the mock transport."""
    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return response

    provider = openai.AsyncOpenAI(
        api_key="test-key",
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
    )
    return MirascopeChatClient(client=provider)


class TestProviderWiring:
    """Test suite for the requests sent through the OpenAI client."""

    async def test_complete_request_and_response(self, messages: List[BaseMessageParam]):
        """Options and tools reach the chat completions endpoint."""
        requests: List[httpx.Request] = []
        tool_call = {
            "id": "call_1",
            "type": "function",
            "function": {"name": "weather", "arguments": '{"city": "Paris"}'},
        }
        client = openai_client(requests, httpx.Response(200, json=completion_body(
            {"role": "assistant", "content": None, "tool_calls": [tool_call]},
            finish_reason="tool_calls",
        )))
        tool, = tool_functions(WeatherTool())
        request = ChatCompletionRequest(
            messages=messages,
            options=ChatCompletionRequestOptions(tools=[tool], tool_choice="auto"),
        )

        response = await client.complete(request)

        assert len(requests) == 1
        assert requests[0].url.path.endswith("/chat/completions")
        body = json.loads(requests[0].content)
        assert body["model"] == "gpt-4o-mini"
        assert body["temperature"] == 0.0
        assert [message["role"] for message in body["messages"]] == ["system", "user"]
        assert body["tools"][0]["function"]["name"] == "weather"
        assert body["tool_choice"] == "auto"

        assert response.content == ""
        call, = response.tool_calls
        assert call.name == "weather"
        assert call.arguments["city"] == "Paris"

    async def test_complete_without_tools(self, messages: List[BaseMessageParam]):
        """Tool choice is only sent alongside tools."""
        requests: List[httpx.Request] = []
        client = openai_client(requests, httpx.Response(200, json=completion_body(
            {"role": "assistant", "content": "Hi!"},
        )))
        request = ChatCompletionRequest(
            messages=messages,
            options=ChatCompletionRequestOptions(model="gpt-4o", temperature=0.5, tool_choice="auto"),
        )

        response = await client.complete(request)

        body = json.loads(requests[0].content)
        assert body["model"] == "gpt-4o"
        assert body["temperature"] == 0.5
        assert "tools" not in body
        assert "tool_choice" not in body
        assert response.content == "Hi!"
        assert response.tool_calls == []

    async def test_provider_http_error(self, messages: List[BaseMessageParam]):
        """Provider error responses surface as ModelError."""
        requests: List[httpx.Request] = []
        client = openai_client(requests, httpx.Response(
            400, json={"error": {"message": "bad request", "type": "invalid_request_error"}},
        ))
        with pytest.raises(ModelError):
            await client.complete(ChatCompletionRequest(messages=messages))
        assert len(requests) == 1

    async def test_stream_request_and_chunks(self, messages: List[BaseMessageParam]):
        """Streaming requests are flagged and server events become chunks."""
        requests: List[httpx.Request] = []
        client = openai_client(requests, httpx.Response(
            200,
            content=stream_body("Hel", "lo"),
            headers={"content-type": "text/event-stream"},
        ))

        received = [chunk async for chunk in client.complete_stream(ChatCompletionRequest(messages=messages))]

        body = json.loads(requests[0].content)
        assert body["stream"] is True
        assert body["model"] == "gpt-4o-mini"
        assert received == [ChatCompletionChunk(content="Hel"), ChatCompletionChunk(content="lo")]
