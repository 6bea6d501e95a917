"""Tests for the LangSmith tracer."""

import json
from datetime import datetime, timezone
from typing import List

import httpx
import pytest

from agentgraph.core.completion.tracing import (
    DEFAULT_LANGSMITH_URL,
    LangSmithTracer,
    format_timestamp,
)
from agentgraph.core.errors import TracingError, TracingHttpError

T0 = datetime(2024, 1, 2, 3, 4, 5, 678000, tzinfo=timezone.utc)


@pytest.fixture
def requests() -> List[httpx.Request]:
    """Requests seen by the mock transport."""
    return []


def make_tracer(requests: List[httpx.Request], status_code: int = 200, text: str = "") -> LangSmithTracer:
    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(status_code, text=text)

    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return LangSmithTracer(api_key="secret", base_url="https://smith.test/", http_client=client)


class TestFormatTimestamp:
    """Test suite for timestamp formatting."""

    def test_utc_millis(self):
        """Timestamps are UTC with millisecond precision."""
        assert format_timestamp(T0) == "2024-01-02T03:04:05.678Z"

    def test_naive_is_utc(self):
        """Naive datetimes are read as UTC."""
        assert format_timestamp(datetime(2024, 1, 1)) == "2024-01-01T00:00:00.000Z"

    def test_default_now(self):
        """Without an argument the current time is used."""
        assert format_timestamp().endswith("Z")


class TestLangSmithTracer:
    """Test suite for LangSmithTracer."""

    async def test_start_trace(self, requests: List[httpx.Request]):
        """start_trace posts a run."""
        tracer = make_tracer(requests)
        await tracer.start_trace(
            "trace-1", "ChatCompletion", "llm", {"messages": []}, "parent-1", T0
        )

        request = requests[0]
        assert request.method == "POST"
        assert str(request.url) == "https://smith.test/runs"
        assert request.headers["x-api-key"] == "secret"
        assert json.loads(request.content) == {
            "id": "trace-1",
            "name": "ChatCompletion",
            "run_type": "llm",
            "inputs": {"messages": []},
            "start_time": "2024-01-02T03:04:05.678Z",
            "parent_run_id": "parent-1",
        }
        await tracer.aclose()

    async def test_start_trace_without_parent(self, requests: List[httpx.Request]):
        """Root runs omit the parent id."""
        tracer = make_tracer(requests)
        await tracer.start_trace("trace-1", "ChatCompletion", "llm", {}, start_time=T0)
        assert "parent_run_id" not in json.loads(requests[0].content)

    async def test_end_trace(self, requests: List[httpx.Request]):
        """end_trace patches the run."""
        tracer = make_tracer(requests)
        await tracer.end_trace("trace-1", {"content": "hi"}, T0)

        request = requests[0]
        assert request.method == "PATCH"
        assert str(request.url) == "https://smith.test/runs/trace-1"
        assert json.loads(request.content) == {
            "outputs": {"content": "hi"},
            "end_time": "2024-01-02T03:04:05.678Z",
        }

    async def test_http_error(self, requests: List[httpx.Request]):
        """Non-success responses raise with the status and body."""
        tracer = make_tracer(requests, status_code=401, text="unauthorized")
        with pytest.raises(TracingHttpError) as exc_info:
            await tracer.start_trace("trace-1", "ChatCompletion", "llm", {})

        error = exc_info.value
        assert error.status_code == 401
        assert error.message == "start_trace failed: HTTP 401 – unauthorized"
        assert isinstance(error, TracingError)

    async def test_empty_error_body(self, requests: List[httpx.Request]):
        """A missing body is reported as such."""
        tracer = make_tracer(requests, status_code=500)
        with pytest.raises(TracingHttpError) as exc_info:
            await tracer.end_trace("trace-1", {})
        assert exc_info.value.message == "end_trace failed: HTTP 500 – No response body"

    async def test_transport_error(self):
        """Connection failures raise TracingHttpError."""
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        tracer = LangSmithTracer(api_key="secret", http_client=client)
        with pytest.raises(TracingHttpError) as exc_info:
            await tracer.start_trace("trace-1", "ChatCompletion", "llm", {})
        assert isinstance(exc_info.value.__cause__, httpx.ConnectError)


class TestFromEnv:
    """Test suite for environment configuration."""

    def test_from_env(self, monkeypatch):
        """The key and endpoint come from the environment."""
        monkeypatch.setenv("LANGSMITH_API_KEY", "env-key")
        monkeypatch.setenv("LANGSMITH_ENDPOINT", "https://custom.test")
        tracer = LangSmithTracer.from_env()
        assert tracer.api_key == "env-key"
        assert tracer.base_url == "https://custom.test"

    def test_default_endpoint(self, monkeypatch):
        """The hosted service is the default endpoint."""
        monkeypatch.setenv("LANGSMITH_API_KEY", "env-key")
        monkeypatch.delenv("LANGSMITH_ENDPOINT", raising=False)
        assert LangSmithTracer.from_env().base_url == DEFAULT_LANGSMITH_URL

    def test_missing_key(self, monkeypatch):
        """A missing key is a configuration error."""
        monkeypatch.delenv("LANGSMITH_API_KEY", raising=False)
        with pytest.raises(ValueError):
            LangSmithTracer.from_env()
