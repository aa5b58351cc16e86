"""Shared helpers for briefsys tests."""

from __future__ import annotations

import json
import sys
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Sequence

from loguru import logger

from briefsys.config import AppConfig, BriefingConfig, LLMConfig, StorageConfig
from briefsys.llm.client import ChatCompletion, ChatMessage, TokenUsage


@contextmanager
def logger_to_stderr(level: str = "INFO"):
    """Temporarily route Loguru output to stderr for assertion."""

    handler_id = logger.add(sys.stderr, level=level)
    try:
        yield
    finally:
        logger.remove(handler_id)


class ScriptedClient:
    """Chat client that replays canned replies in order.

    Exceptions in the script are raised, dicts and lists are sent as JSON and
    strings are sent verbatim. Once the script runs out every call returns
    empty content.
    """

    def __init__(self, replies: Sequence[Any] = ()) -> None:
        self.replies = list(replies)
        self.calls: list[dict[str, Any]] = []

    def complete(self, messages: Sequence[ChatMessage], *, max_tokens: int) -> ChatCompletion:
        self.calls.append({"messages": list(messages), "max_tokens": max_tokens})
        reply = self.replies.pop(0) if self.replies else ""
        if isinstance(reply, BaseException):
            raise reply
        content = reply if isinstance(reply, str) else json.dumps(reply)
        return ChatCompletion(
            raw={"choices": [{"message": {"role": "assistant", "content": content}}]},
            usage=TokenUsage(prompt_tokens=10, completion_tokens=5, total_tokens=15),
            model="scripted-model",
        )


class AlwaysFailingClient:
    def __init__(self, exc: Exception | None = None) -> None:
        self.exc = exc or TimeoutError("upstream timed out")
        self.calls = 0

    def complete(self, messages: Sequence[ChatMessage], *, max_tokens: int) -> ChatCompletion:
        self.calls += 1
        raise self.exc


def make_app_config(base_dir: Path, *, stub: bool = True) -> AppConfig:
    """Construct an in-memory AppConfig writing under ``base_dir``."""

    llm = LLMConfig(
        alias="briefing-llm",
        name="openai/gpt-5-mini",
        base_url="stub://local" if stub else "",
        api_key="dummy",
    )
    return AppConfig(
        data_root=base_dir,
        logging_level="INFO",
        briefing=BriefingConfig(model=llm.alias),
        storage=StorageConfig(reports_dir=Path("reports"), usage_log=Path("reports/token_usage.jsonl")),
        llms=[llm],
    )


def valid_document(company: str = "Acme") -> dict[str, Any]:
    return {
        "company": company,
        "company_overview": f"{company} builds industrial rockets.",
        "highlights": [
            {
                "title": "Acme headline 1",
                "url": "https://news.example.com/1",
                "one_line_summary": "Acme development 1.",
                "sales_bullet": "Sales angle 1",
                "suggested_question": "Question 1?",
            }
        ],
        "slides": [
            {
                "slide_number": 1,
                "slide_title": "Key Facts & Summary",
                "bullet_points": ["Fact A", "Fact B", "Fact C"],
            },
            {
                "slide_number": 2,
                "slide_title": "Sales Opportunities & Risks",
                "bullet_points": ["Opportunity A", "Opportunity B", "Risk C"],
            },
            {
                "slide_number": 3,
                "slide_title": "Questions & Next Steps",
                "bullet_points": ["Ask A?", "Ask B?", "Follow up C"],
            },
        ],
    }
