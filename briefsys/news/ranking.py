"""English filtering and sales-relevance ranking of candidate articles."""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timezone
from typing import Iterable

from briefsys.briefing.models import ArticleInput

SALES_KEYWORDS: tuple[str, ...] = (
    "partnership", "acquisition", "earnings", "revenue", "profit", "loss", "deal", "contract",
    "launch", "product", "supplier", "supply", "merger", "funding", "invest", "appoint",
    "lawsuit", "settlement", "order", "purchase",
)
PREMIUM_OUTLETS: tuple[str, ...] = ("reuters", "bloomberg", "fortune")
JUNK_URL_MARKERS: tuple[str, ...] = ("/comments", "opinion", "/offers/")
_ENGLISH_FUNCTION_WORDS: tuple[str, ...] = (
    " the ", " and ", " for ", " with ", " from ", " to ", " in ", " on ", " of ", " says ",
)
MIN_SCORE = -5.0


def is_english(text: str) -> bool:
    """Cheap English detector: mostly ASCII plus at least two common function words."""

    if len(text) < 20:
        return False
    sample = text[:800]
    ascii_ratio = sum(1 for ch in sample if ord(ch) <= 127) / len(sample)
    if ascii_ratio < 0.9:
        return False
    padded = f" {sample.lower()} "
    return sum(1 for word in _ENGLISH_FUNCTION_WORDS if word in padded) >= 2


def filter_english(articles: Iterable[ArticleInput]) -> list[ArticleInput]:
    return [
        article
        for article in articles
        if is_english(" ".join(part for part in (article.title, article.description) if part))
    ]


def _age_days(published_at: str | None, now: datetime) -> float | None:
    if not published_at:
        return None
    try:
        published = datetime.fromisoformat(published_at.replace("Z", "+00:00"))
    except ValueError:
        return None
    if published.tzinfo is None:
        published = published.replace(tzinfo=timezone.utc)
    return (now - published).total_seconds() / 86400


def score_article(article: ArticleInput, company_name: str, *, now: datetime | None = None) -> float:
    title = article.title.lower()
    description = (article.description or "").lower()
    source = (article.source or "").lower()
    company = company_name.lower()

    score = 0.0
    if company in title:
        score += 3
    if company in description:
        score += 2
    score += 1.5 * sum(1 for keyword in SALES_KEYWORDS if keyword in title or keyword in description)
    if any(outlet in source for outlet in PREMIUM_OUTLETS):
        score += 1.2

    age = _age_days(article.published_at, now or datetime.now(timezone.utc))
    if age is not None:
        if age <= 7:
            score += 1.0
        elif age <= 30:
            score += 0.5

    if len(description.strip()) < 40:
        score -= 0.7
    if any(marker in article.url.lower() for marker in JUNK_URL_MARKERS):
        score -= 10
    return score


def rank_articles(
    articles: Iterable[ArticleInput],
    company_name: str,
    top_n: int,
    *,
    now: datetime | None = None,
) -> list[ArticleInput]:
    """English articles ordered by sales relevance, best first, with scores attached."""

    scored = [
        (score_article(article, company_name, now=now), article)
        for article in filter_english(articles)
    ]
    scored.sort(key=lambda pair: pair[0], reverse=True)
    return [
        replace(article, relevance_score=score)
        for score, article in scored
        if score > MIN_SCORE
    ][:top_n]


__all__ = ["filter_english", "is_english", "rank_articles", "score_article"]
