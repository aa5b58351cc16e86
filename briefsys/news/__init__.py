"""News retrieval and ranking."""

from __future__ import annotations

from .ranking import filter_english, is_english, rank_articles, score_article
from .sources import ArticleSource, FileArticleSource, NewsApiArticleSource

__all__ = [
    "ArticleSource",
    "FileArticleSource",
    "NewsApiArticleSource",
    "filter_english",
    "is_english",
    "rank_articles",
    "score_article",
]
