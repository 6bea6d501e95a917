"""Tracing observers for chat completions.

A ``TracingProvider`` is told when a traced unit of work starts and ends.
``LangSmithTracer`` forwards these events to the LangSmith runs API.
"""

import os
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import httpx

from agentgraph.core.errors import TracingHttpError
from agentgraph.core.logging import get_logger, LogComponent

logger = get_logger(LogComponent.TRACING)

DEFAULT_LANGSMITH_URL = "https://api.smith.langchain.com"


def format_timestamp(moment: Optional[datetime] = None) -> str:
    """RFC 3339 UTC timestamp with millisecond precision, e.g. ``2024-01-01T00:00:00.000Z``."""
    moment = moment or datetime.now(timezone.utc)
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class TracingProvider(ABC):
    """Receives start/end events for traced work."""

    @abstractmethod
    async def start_trace(
        self,
        trace_id: str,
        name: str,
        trace_type: str,
        inputs: Dict[str, Any],
        parent_trace_id: Optional[str] = None,
        start_time: Optional[datetime] = None,
    ) -> None:
        ...

    @abstractmethod
    async def end_trace(
        self,
        trace_id: str,
        outputs: Dict[str, Any],
        end_time: Optional[datetime] = None,
    ) -> None:
        ...


class LangSmithTracer(TracingProvider):
    """Tracer that records runs in LangSmith.

    Args:
        api_key: Sent as the ``x-api-key`` header
        base_url: API root, defaults to the hosted service
        http_client: Optional pre-configured ``httpx.AsyncClient``
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = DEFAULT_LANGSMITH_URL,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.http_client = http_client or httpx.AsyncClient(timeout=10.0)

    @classmethod
    def from_env(cls, http_client: Optional[httpx.AsyncClient] = None) -> "LangSmithTracer":
        """Build a tracer from ``LANGSMITH_API_KEY`` and optional ``LANGSMITH_ENDPOINT``.

        Raises:
            ValueError: If ``LANGSMITH_API_KEY`` is not set
        """
        api_key = os.environ.get("LANGSMITH_API_KEY")
        if not api_key:
            raise ValueError("LANGSMITH_API_KEY is not set")
        base_url = os.environ.get("LANGSMITH_ENDPOINT", DEFAULT_LANGSMITH_URL)
        return cls(api_key=api_key, base_url=base_url, http_client=http_client)

    async def _send(self, method: str, path: str, body: Dict[str, Any], action: str) -> None:
        try:
            response = await self.http_client.request(
                method,
                f"{self.base_url}{path}",
                headers={"x-api-key": self.api_key},
                json=body,
            )
        except httpx.HTTPError as e:
            raise TracingHttpError(str(e)) from e

        if not response.is_success:
            text = response.text or "No response body"
            raise TracingHttpError(
                f"{action} failed: HTTP {response.status_code} – {text}",
                status_code=response.status_code,
            )
        logger.debug(f"{action} ok for {path}")

    async def start_trace(
        self,
        trace_id: str,
        name: str,
        trace_type: str,
        inputs: Dict[str, Any],
        parent_trace_id: Optional[str] = None,
        start_time: Optional[datetime] = None,
    ) -> None:
        body = {
            "id": trace_id,
            "name": name,
            "run_type": trace_type,
            "inputs": inputs,
            "start_time": format_timestamp(start_time),
        }
        if parent_trace_id:
            body["parent_run_id"] = parent_trace_id
        await self._send("POST", "/runs", body, "start_trace")

    async def end_trace(
        self,
        trace_id: str,
        outputs: Dict[str, Any],
        end_time: Optional[datetime] = None,
    ) -> None:
        body = {
            "outputs": outputs,
            "end_time": format_timestamp(end_time),
        }
        await self._send("PATCH", f"/runs/{trace_id}", body, "end_trace")

    async def aclose(self) -> None:
        await self.http_client.aclose()
