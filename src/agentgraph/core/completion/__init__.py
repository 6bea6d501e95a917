"""Chat completion and tracing collaborators."""

from agentgraph.core.completion.client import (
    ChatClient,
    MirascopeChatClient,
    ChatCompletionRequest,
    ChatCompletionRequestOptions,
    ChatCompletionCallOptions,
    ChatCompletionResponse,
    ChatCompletionChunk,
    ToolCall,
    as_mirascope_tool,
)
from agentgraph.core.completion.tracing import TracingProvider, LangSmithTracer

__all__ = [
    'ChatClient',
    'MirascopeChatClient',
    'ChatCompletionRequest',
    'ChatCompletionRequestOptions',
    'ChatCompletionCallOptions',
    'ChatCompletionResponse',
    'ChatCompletionChunk',
    'ToolCall',
    'as_mirascope_tool',
    'TracingProvider',
    'LangSmithTracer',
]
