"""High-level orchestration for the briefing pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Mapping, Protocol, Sequence

from loguru import logger

from briefsys.config import AppConfig, BriefingConfig
from briefsys.llm.client import ChatClient, build_chat_client
from briefsys.news.sources import ArticleSource, NewsApiArticleSource
from briefsys.storage.reports import (
    FileReportStore,
    JsonlUsageLog,
    ReportStoreError,
    StoredReport,
    idempotency_key,
)

from .merger import SummaryMerger
from .models import ArticleInput, ArticleSummary, FinalDocument, MergeResult, UsageRecord
from .summarizer import ArticleSummarizer
from .usage import summarize_usage


class ReportStore(Protocol):
    def persist_report(self, document: FinalDocument, metadata: Mapping[str, Any]) -> str: ...

    def create_if_absent(self, report_id: str, document: FinalDocument, metadata: Mapping[str, Any]) -> bool: ...

    def get_report(self, report_id: str) -> StoredReport | None: ...

    def find_recent(self, company_name: str, *, max_age_hours: float) -> StoredReport | None: ...


class UsageRecorder(Protocol):
    def record_usage(self, record: UsageRecord, *, report_id: str | None = None) -> None: ...


@dataclass(slots=True)
class BriefingReport:
    """Result of one pipeline run, or of a cache hit when ``cached`` is set."""

    report_id: str | None
    company_name: str
    cached: bool
    articles: list[ArticleInput] = field(default_factory=list)
    summaries: list[ArticleSummary] = field(default_factory=list)
    result: MergeResult | None = None
    usage: list[UsageRecord] = field(default_factory=list)
    stored: dict[str, Any] | None = None

    def record(self) -> dict[str, Any]:
        """The report body produced by this run (empty for cache hits)."""
        if self.result is None:
            return {}
        return {
            "company_name": self.company_name,
            "news": [article.to_dict() for article in self.articles],
            "per_article_summaries": [summary.to_dict() for summary in self.summaries],
            "summary": self.result.document.to_dict(),
            "fallback": self.result.used_fallback,
            "merge_error": self.result.error,
            "token_usage": summarize_usage(self.usage),
        }

    def to_dict(self) -> dict[str, Any]:
        body = self.stored if self.cached and self.stored is not None else self.record()
        return {"report_id": self.report_id, "cached": self.cached, "report": body}


class BriefingPipeline:
    """Wire article retrieval, the map and merge stages, and persistence together."""

    def __init__(
        self,
        config: AppConfig,
        *,
        base_path: Path | None = None,
        client: ChatClient | None = None,
        article_source: ArticleSource | None = None,
        store: ReportStore | None = None,
        usage_recorder: UsageRecorder | None = None,
    ) -> None:
        if config.briefing is None:
            raise ValueError("briefing config is required for research operations")
        self._config = config
        self._briefing_cfg: BriefingConfig = config.briefing
        self._base_path = self._resolve_base_path(base_path)
        self._client = client or build_chat_client(config.resolve_llm(self._briefing_cfg.model))
        self._article_source = article_source or self._create_article_source()
        self._store = store or FileReportStore(self._resolve_path(config.storage.reports_dir))
        self._usage_recorder = usage_recorder or JsonlUsageLog(self._resolve_path(config.storage.usage_log))

    def _resolve_base_path(self, base_path: Path | None) -> Path:
        if base_path is not None:
            return Path(base_path).resolve()
        if self._config.data_root is not None:
            return Path(self._config.data_root).resolve()
        return Path.cwd()

    def _resolve_path(self, fragment: str | Path) -> Path:
        path = Path(fragment)
        if not path.is_absolute():
            path = (self._base_path / path).resolve()
        return path

    def _create_article_source(self) -> ArticleSource | None:
        if self._config.news is None:
            return None
        return NewsApiArticleSource(self._config.news)

    @property
    def store(self) -> ReportStore:
        return self._store

    # ------------------------------------------------------------------
    def summarize_articles(
        self,
        company_name: str,
        articles: Sequence[ArticleInput],
        usage: list[UsageRecord],
    ) -> list[ArticleSummary]:
        summarizer = ArticleSummarizer(
            self._client,
            max_tokens=self._briefing_cfg.per_article_max_tokens,
            repair_max_tokens=self._briefing_cfg.per_article_repair_tokens,
            usage_sink=usage.append,
        )
        summaries: list[ArticleSummary] = []
        for article in articles:
            summaries.append(summarizer.summarize(article, company_name))
            logger.debug("Summarised article {!r} for {}", article.title, company_name)
        return summaries

    def merge(
        self,
        company_name: str,
        summaries: Sequence[ArticleSummary],
        usage: list[UsageRecord],
    ) -> MergeResult:
        merger = SummaryMerger(
            self._client,
            max_tokens=self._briefing_cfg.final_max_tokens,
            repair_max_tokens=self._briefing_cfg.final_repair_tokens,
            usage_sink=usage.append,
        )
        return merger.merge(company_name, summaries, self._briefing_cfg.top_k)

    def run(
        self,
        company_name: str,
        *,
        articles: Sequence[ArticleInput] | None = None,
        force: bool = False,
    ) -> BriefingReport:
        if not company_name or not company_name.strip():
            raise ValueError("company_name is required")
        company_name = company_name.strip()
        top_k = self._briefing_cfg.top_k

        if not force:
            cached = self._store.find_recent(company_name, max_age_hours=self._briefing_cfg.cache_max_age_hours)
            if cached is not None:
                logger.info("Reusing report {} for {}", cached.report_id, company_name)
                return BriefingReport(
                    report_id=cached.report_id, company_name=company_name, cached=True, stored=cached.data
                )

        ranked = list(articles[:top_k]) if articles is not None else self._fetch_articles(company_name)
        logger.info("Briefing {} from {} article(s)", company_name, len(ranked))

        usage: list[UsageRecord] = []
        summaries = self.summarize_articles(company_name, ranked, usage)
        result = self.merge(company_name, summaries, usage)
        if result.used_fallback:
            logger.warning("Briefing for {} used the local fallback ({})", company_name, result.error)

        report = BriefingReport(
            report_id=None,
            company_name=company_name,
            cached=False,
            articles=ranked,
            summaries=summaries,
            result=result,
            usage=usage,
        )
        self._persist(report, force=force)
        self._record_usage(usage, report.report_id)
        return report

    # ------------------------------------------------------------------
    def _fetch_articles(self, company_name: str) -> list[ArticleInput]:
        if self._article_source is None:
            logger.warning("No article source configured; briefing {} without news", company_name)
            return []
        candidates = self._article_source.fetch_ranked_articles(company_name, self._briefing_cfg.fetch_limit)
        return list(candidates[: self._briefing_cfg.top_k])

    def _persist(self, report: BriefingReport, *, force: bool) -> None:
        assert report.result is not None
        metadata = report.record()
        metadata.pop("summary")
        metadata["created_at"] = datetime.now(timezone.utc).isoformat()
        document = report.result.document

        if force:
            report.report_id = self._store.persist_report(document, metadata)
            logger.info("Report {} created for {} (forced)", report.report_id, report.company_name)
            return

        key = idempotency_key(report.company_name)
        if self._store.create_if_absent(key, document, metadata):
            report.report_id = key
            logger.info("Report {} created for {}", key, report.company_name)
            return

        try:
            existing = self._store.get_report(key)
        except ReportStoreError as exc:
            logger.warning("Report {} is unreadable ({}); storing under a fresh id", key, exc)
            existing = None
        if existing is not None:
            logger.info("Report {} already stored for {}; returning it", key, report.company_name)
            report.report_id = key
            report.cached = True
            report.stored = existing.data
            return
        report.report_id = self._store.persist_report(document, metadata)

    def _record_usage(self, records: Sequence[UsageRecord], report_id: str | None) -> None:
        for record in records:
            try:
                self._usage_recorder.record_usage(record, report_id=report_id)
            except Exception as exc:  # noqa: BLE001
                logger.warning("Failed to record token usage for {}: {}", record.source, exc)


__all__ = ["BriefingPipeline", "BriefingReport", "ReportStore", "UsageRecorder"]
