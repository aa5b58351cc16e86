"""Chat-completion client and response parsing helpers."""

from __future__ import annotations

from .client import (
    ChatClient,
    ChatCompletion,
    ChatCompletionError,
    LiteLLMChatClient,
    StubChatClient,
    TokenUsage,
    build_chat_client,
)
from .parsing import extract_content, parse_json_payload

__all__ = [
    "ChatClient",
    "ChatCompletion",
    "ChatCompletionError",
    "LiteLLMChatClient",
    "StubChatClient",
    "TokenUsage",
    "build_chat_client",
    "extract_content",
    "parse_json_payload",
]
