from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timezone

import pytest

from briefsys.briefing.models import ArticleInput
from briefsys.news.ranking import filter_english, is_english, rank_articles, score_article

NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


def _article(title: str, description: str = "", **kwargs: str) -> ArticleInput:
    return ArticleInput(title=title, url=kwargs.pop("url", "https://news.example.com/a"), description=description, **kwargs)


def test_is_english() -> None:
    assert is_english("Acme signs a deal with Globex for the supply of parts")
    assert not is_english("Acme")
    assert not is_english("Acme unterzeichnet einen Vertrag über die Lieferung")
    assert not is_english("アクメはグローベックスとの提携を発表しました、詳細は後日")


def test_filter_english_uses_title_and_description() -> None:
    english = _article("Acme news", "Acme signs a deal with Globex for the supply of parts")
    german = _article("Acme Nachrichten", "Acme unterzeichnet einen Vertrag über die Lieferung")

    assert filter_english([english, german]) == [english]


def test_score_article_rewards_sales_signals() -> None:
    strong = _article(
        "Acme announces acquisition of Initech",
        "Acme said the acquisition deal will boost revenue in the second half of the year.",
        source="Reuters",
        published_at="2024-05-30T08:00:00Z",
    )
    weak = _article("Acme mentioned in passing", "A short note on the market today.")

    assert score_article(strong, "Acme", now=NOW) > score_article(weak, "Acme", now=NOW)
    # title +3, description +2, three keywords +4.5, premium outlet +1.2, fresh +1
    assert score_article(strong, "Acme", now=NOW) == pytest.approx(11.7)


def test_score_article_penalises_junk_urls() -> None:
    opinion = _article(
        "Acme signs partnership with the city",
        "Acme and the city of Springfield signed a partnership for the new depot.",
        url="https://news.example.com/opinion/acme",
    )
    clean = replace(opinion, url="https://news.example.com/city/acme")

    assert score_article(opinion, "Acme", now=NOW) == pytest.approx(score_article(clean, "Acme", now=NOW) - 10)


def test_rank_articles_orders_filters_and_truncates() -> None:
    best = _article(
        "Acme wins contract with the navy",
        "Acme won a large contract with the navy for the supply of engines.",
        published_at="2024-05-31T00:00:00Z",
    )
    middle = _article("Acme opens an office in Berlin", "Acme said it will hire staff for the new office in Berlin.")
    junk = _article(
        "Acme deal comments",
        "Readers discuss the Acme deal with the navy in the comments.",
        url="https://news.example.com/story/comments",
    )
    foreign = _article("Acme Nachrichten", "Acme unterzeichnet einen Vertrag über die Lieferung")
    other = _article("Weather report for the weekend", "Sunny with a chance of rain in the north.")

    ranked = rank_articles([other, junk, middle, foreign, best], "Acme", top_n=2, now=NOW)

    assert [article.title for article in ranked] == [best.title, middle.title]
    assert all(article.relevance_score is not None for article in ranked)
    assert ranked[0].relevance_score >= ranked[1].relevance_score  # type: ignore[operator]
