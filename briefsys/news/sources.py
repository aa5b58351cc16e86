"""Article sources feeding ranked candidates into the briefing pipeline."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Protocol

import polars as pl
import requests
from loguru import logger

from briefsys.briefing.models import ArticleInput
from briefsys.config.news import NewsConfig

from .ranking import filter_english, rank_articles

USER_AGENT = "briefsys/0.1 (sales briefing research)"


class ArticleSource(Protocol):
    def fetch_ranked_articles(self, company_name: str, limit: int) -> list[ArticleInput]:
        """Return at most ``limit`` articles about ``company_name``, best first."""
        ...


class NewsApiArticleSource:
    """Query the NewsAPI ``everything`` endpoint and rank the results."""

    def __init__(self, config: NewsConfig, *, session: requests.Session | None = None) -> None:
        self._config = config
        self._api_key = config.api_key_secret
        self.session = session or requests.Session()
        self.session.headers.update({"User-Agent": USER_AGENT})

    def search(self, company_name: str) -> list[ArticleInput]:
        """Raw English candidates in API order; empty on any failure."""

        if not self._api_key:
            logger.debug("NewsAPI key not configured; skipping news search")
            return []

        params: dict[str, str | int] = {
            "q": company_name,
            "language": self._config.language,
            "pageSize": self._config.page_size,
            "sortBy": "publishedAt",
            "apiKey": self._api_key,
        }
        try:
            response = self.session.get(self._config.endpoint, params=params, timeout=self._config.timeout)
            response.raise_for_status()
            payload = response.json()
        except (requests.RequestException, ValueError) as exc:
            logger.warning("NewsAPI fetch failed for {}: {}", company_name, exc)
            return []

        items = payload.get("articles") if isinstance(payload, dict) else None
        articles = [
            ArticleInput.from_mapping({**item, "id": item.get("id") or str(index)})
            for index, item in enumerate(items or [], start=1)
            if isinstance(item, dict) and item.get("title")
        ]
        english = filter_english(articles)
        if len(english) != len(articles):
            logger.info("NewsAPI filtered non-English articles: {} -> {}", len(articles), len(english))
        return english

    def fetch_ranked_articles(self, company_name: str, limit: int) -> list[ArticleInput]:
        return rank_articles(self.search(company_name), company_name, limit)


class FileArticleSource:
    """Candidate articles loaded from a JSON, JSONL or Parquet file."""

    def __init__(self, path: Path) -> None:
        self._path = Path(path)

    def load(self) -> list[ArticleInput]:
        path = self._path.resolve()
        if not path.exists():
            raise FileNotFoundError(f"Article file not found: {path}")

        suffix = path.suffix.lower()
        if suffix == ".parquet":
            frame = pl.read_parquet(path)
        elif suffix in {".jsonl", ".ndjson"}:
            frame = pl.read_ndjson(path)
        elif suffix == ".json":
            frame = pl.read_json(path)
        else:
            raise ValueError(f"Unsupported article file format: {path.suffix}")

        rows: list[dict[str, Any]] = list(frame.iter_rows(named=True))
        return [ArticleInput.from_mapping(row) for row in rows if row.get("title")]

    def fetch_ranked_articles(self, company_name: str, limit: int) -> list[ArticleInput]:
        return rank_articles(self.load(), company_name, limit)


__all__ = ["ArticleSource", "FileArticleSource", "NewsApiArticleSource"]
