"""Chat-completion clients used by the briefing pipeline.

The client performs exactly one provider call per ``complete`` invocation.
Retry, repair and fallback policy belongs to the callers.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from typing import Any, Dict, Protocol

from loguru import logger
import litellm

from briefsys.config.llm import LLMConfig

from .parsing import read_field


class ChatCompletionError(RuntimeError):
    """Raised when the provider call fails or returns an unusable envelope."""

    def __init__(self, message: str, *, status_code: int | None = None, body: Any = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body


@dataclass(frozen=True, slots=True)
class TokenUsage:
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0

    @classmethod
    def from_response(cls, usage: Any) -> "TokenUsage | None":
        if usage is None:
            return None

        def _count(name: str) -> int:
            value = read_field(usage, name)
            return int(value) if isinstance(value, (int, float)) else 0

        prompt = _count("prompt_tokens")
        completion = _count("completion_tokens")
        total = _count("total_tokens") or prompt + completion
        return cls(prompt_tokens=prompt, completion_tokens=completion, total_tokens=total)


@dataclass(frozen=True, slots=True)
class ChatCompletion:
    """Raw provider envelope plus the metering extracted from it."""

    raw: Any
    usage: TokenUsage | None = None
    model: str | None = None


ChatMessage = Dict[str, str]


class ChatClient(Protocol):
    def complete(self, messages: Sequence[ChatMessage], *, max_tokens: int) -> ChatCompletion:
        """Send ``messages`` and return the provider response."""
        ...


_GET_SUPPORTED_OPENAI_PARAMS = getattr(litellm, "get_supported_openai_params", None)


def build_chat_client(config: LLMConfig) -> ChatClient:
    if config.is_stub:
        logger.debug("Using stub chat client for alias {}", config.alias)
        return StubChatClient(config)
    logger.debug("Using LiteLLM chat client for alias {}", config.alias)
    return LiteLLMChatClient(config)


def _guess_custom_provider(base_url: str | None) -> str | None:
    if not base_url:
        return None
    normalized = base_url.strip().lower()
    provider_hints: tuple[tuple[str, str], ...] = (
        ("openai.azure.com", "azure"),
        ("azure", "azure"),
        ("anthropic", "anthropic"),
        ("generativelanguage.googleapis", "gemini"),
        ("groq", "groq"),
        ("deepseek", "deepseek"),
        ("openrouter", "openrouter"),
    )
    for needle, provider in provider_hints:
        if needle in normalized:
            return provider
    return None


def _supports_response_format(model: str, provider: str | None) -> bool:
    if _GET_SUPPORTED_OPENAI_PARAMS is None:
        return False
    for candidate in dict.fromkeys((provider, None)):
        try:
            params = _GET_SUPPORTED_OPENAI_PARAMS(model=model, custom_llm_provider=candidate)  # type: ignore[misc]
        except Exception as exc:  # noqa: BLE001
            logger.debug(
                "LiteLLM response_format probe failed for model {} (provider {}): {}",
                model,
                candidate,
                exc,
            )
            continue
        if isinstance(params, Iterable) and any(str(item) == "response_format" for item in params):
            return True
    return False


@dataclass(slots=True)
class LiteLLMChatClient:
    """Client that delegates chat completions to LiteLLM."""

    config: LLMConfig
    api_key: str = field(init=False, repr=False)
    _custom_provider: str | None = field(init=False, repr=False, default=None)
    _json_mode: bool = field(init=False, repr=False, default=False)

    def __post_init__(self) -> None:
        self.api_key = self.config.api_key_secret
        self._custom_provider = _guess_custom_provider(self.config.base_url)
        self._json_mode = self.config.json_mode and _supports_response_format(
            self.config.name, self._custom_provider
        )
        logger.debug(
            "LiteLLM chat client ready for alias {} (model {}) - json_mode={}",
            self.config.alias,
            self.config.name,
            self._json_mode,
        )

    def complete(self, messages: Sequence[ChatMessage], *, max_tokens: int) -> ChatCompletion:
        if not messages:
            raise ValueError("messages must not be empty")

        call_kwargs: Dict[str, Any] = {
            "model": self.config.name,
            "messages": list(messages),
            "max_completion_tokens": max_tokens,
            "api_key": self.api_key,
            "timeout": self.config.timeout,
        }
        base_url = self.config.base_url.strip()
        if base_url:
            call_kwargs["api_base"] = base_url
        if self.config.temperature is not None:
            call_kwargs["temperature"] = self.config.temperature
        if self.config.reasoning_effort:
            call_kwargs["reasoning_effort"] = self.config.reasoning_effort
        if self._json_mode:
            call_kwargs["response_format"] = {"type": "json_object"}

        try:
            response = litellm.completion(**call_kwargs)
        except Exception as exc:  # noqa: BLE001
            status_code = getattr(exc, "status_code", None)
            body = getattr(exc, "body", None) or getattr(exc, "message", None)
            logger.warning(
                "Chat completion failed for alias {} (status={}): {}",
                self.config.alias,
                status_code,
                exc,
            )
            raise ChatCompletionError(
                f"LLM request failed: {exc}", status_code=status_code, body=body
            ) from exc

        if not read_field(response, "choices"):
            raise ChatCompletionError("LLM response envelope has no choices", body=response)

        usage = TokenUsage.from_response(read_field(response, "usage"))
        model = read_field(response, "model") or self.config.name
        return ChatCompletion(raw=response, usage=usage, model=str(model))


@dataclass(slots=True)
class StubChatClient:
    """Offline stand-in that always answers with empty assistant content.

    Every run against it goes through the repair call and ends in the
    deterministic local synthesis, which keeps offline runs reproducible.
    """

    config: LLMConfig
    calls: int = field(default=0, init=False)

    def complete(self, messages: Sequence[ChatMessage], *, max_tokens: int) -> ChatCompletion:
        if not messages:
            raise ValueError("messages must not be empty")
        self.calls += 1
        envelope = {
            "choices": [{"message": {"role": "assistant", "content": ""}}],
            "usage": {"prompt_tokens": 0, "completion_tokens": 0, "total_tokens": 0},
            "model": self.config.name,
        }
        return ChatCompletion(raw=envelope, usage=TokenUsage(), model=self.config.name)


__all__ = [
    "ChatClient",
    "ChatCompletion",
    "ChatCompletionError",
    "ChatMessage",
    "LiteLLMChatClient",
    "StubChatClient",
    "TokenUsage",
    "build_chat_client",
]
