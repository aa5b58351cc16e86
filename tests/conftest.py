"""Shared pytest fixtures for the briefsys test suite."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

_REPO_ROOT = Path(__file__).resolve().parents[1]
if str(_REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(_REPO_ROOT))

from briefsys.briefing.models import ArticleInput, ArticleSummary  # noqa: E402


@pytest.fixture()
def acme_article() -> ArticleInput:
    return ArticleInput(
        id="1",
        title="Acme signs partnership with Globex",
        url="https://news.example.com/acme-globex",
        description="Acme and Globex agreed a multi-year supply deal. The contract starts in 2025.",
        source="Reuters",
        published_at="2024-05-01T09:00:00Z",
    )


@pytest.fixture()
def acme_summaries() -> list[ArticleSummary]:
    return [
        ArticleSummary(
            id=str(index),
            title=f"Acme headline {index}",
            url=f"https://news.example.com/{index}",
            one_line_summary=f"Acme development {index}.",
            short_summary=f"Acme development {index} in more detail.",
            sales_bullet=f"Sales angle {index}",
            suggested_question=f"Question {index}?",
        )
        for index in (1, 2, 3)
    ]
