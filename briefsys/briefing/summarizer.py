"""Map stage: summarise one news article into sales-ready fields.

Strategy: one structured JSON request, one small repair request when any
text field comes back empty, then a keyword-driven heuristic fill that needs
no network call. The result never has a blank text field.
"""

from __future__ import annotations

import re
from typing import Any, Mapping

from loguru import logger

from briefsys.llm.client import ChatClient, ChatCompletion, ChatMessage
from briefsys.llm.parsing import extract_content, parse_json_payload

from .models import SUMMARY_TEXT_FIELDS, ArticleInput, ArticleSummary
from .prompts import article_messages, article_repair_messages
from .usage import UsageSink, emit_usage, usage_record

# Ordered (pattern, sales angle) pairs; the first match wins.
_SALES_ANGLES: tuple[tuple[re.Pattern[str], str], ...] = (
    (
        re.compile(r"partnership|deal|contract|agreement|acquire|acquisition", re.IGNORECASE),
        "New partnership/contract: time a solution pitch",
    ),
    (
        re.compile(r"funding|investment|raise|earnings|revenue|profit|guidance", re.IGNORECASE),
        "Financial momentum: budget window to engage",
    ),
    (
        re.compile(r"launch|product|platform|feature|service|rollout", re.IGNORECASE),
        "New launch: attach integration or value add",
    ),
    (
        re.compile(r"regulation|compliance|security|risk|breach", re.IGNORECASE),
        "Compliance/security driver: check solution fit",
    ),
)
_DEFAULT_SALES_ANGLE = "Potential opportunity: explore fit and timing"

_SENTENCE_BREAK = re.compile(r"(?<=[.!?])\s")
_WHITESPACE = re.compile(r"\s+")


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _text(value: Any) -> str:
    if value is None:
        return ""
    return value.strip() if isinstance(value, str) else str(value).strip()


def missing_fields(fields: Mapping[str, Any]) -> list[str]:
    return [name for name in SUMMARY_TEXT_FIELDS if _is_blank(fields.get(name))]


def force_fill(article: ArticleInput, company_name: str, fields: Mapping[str, Any]) -> ArticleSummary:
    """Fill every blank field from the article's own title and description.

    Pure and total: no network call, and every text field of the result is
    non-empty even when the article has neither title nor description.
    """

    title = _text(article.title)
    description = _text(article.description)
    base = _WHITESPACE.sub(" ", description or title).strip()
    haystack = f"{title} {description}"

    out = {key: _text(value) for key, value in fields.items()}

    if _is_blank(out.get("id")):
        out["id"] = article.id or ""
    if _is_blank(out.get("title")):
        out["title"] = title or f"{company_name} news update"
    if _is_blank(out.get("url")):
        out["url"] = article.url or ""

    if _is_blank(out.get("one_line_summary")):
        if base:
            out["one_line_summary"] = _SENTENCE_BREAK.split(base, maxsplit=1)[0]
        else:
            out["one_line_summary"] = f"Update relevant to {company_name}"

    if _is_blank(out.get("short_summary")):
        out["short_summary"] = (
            f"{base} This may influence {company_name}'s roadmap or procurement timing."
            if base
            else f"Recent development potentially relevant to {company_name}'s commercial plans."
        )

    if _is_blank(out.get("sales_bullet")):
        out["sales_bullet"] = next(
            (angle for pattern, angle in _SALES_ANGLES if pattern.search(haystack)),
            _DEFAULT_SALES_ANGLE,
        )

    if _is_blank(out.get("suggested_question")):
        out["suggested_question"] = f"What impact does this have on {company_name}'s priorities and timelines?"

    return ArticleSummary.from_mapping(out)


def _seed(article: ArticleInput) -> dict[str, Any]:
    seed: dict[str, Any] = {"id": article.id, "title": article.title, "url": article.url}
    seed.update({name: "" for name in SUMMARY_TEXT_FIELDS})
    return seed


def _merge_fields(base: dict[str, Any], payload: Any) -> dict[str, Any]:
    """Copy non-blank summary fields from ``payload`` into blanks of ``base``."""

    if isinstance(payload, list):
        payload = next((item for item in payload if isinstance(item, dict)), None)
    if not isinstance(payload, dict):
        return base

    merged = dict(base)
    for name in ("id", "title", "url", *SUMMARY_TEXT_FIELDS):
        if _is_blank(merged.get(name)) and not _is_blank(payload.get(name)):
            merged[name] = _text(payload[name])
    return merged


class ArticleSummarizer:
    """Run the map stage for one article at a time."""

    def __init__(
        self,
        client: ChatClient,
        *,
        max_tokens: int = 300,
        repair_max_tokens: int = 120,
        usage_sink: UsageSink | None = None,
    ) -> None:
        self._client = client
        self._max_tokens = max_tokens
        self._repair_max_tokens = repair_max_tokens
        self._usage_sink = usage_sink

    def summarize(self, article: ArticleInput, company_name: str) -> ArticleSummary:
        fields = _seed(article)

        try:
            first = self._call("map:summary", article_messages(article, company_name), self._max_tokens, article)
        except Exception as exc:  # noqa: BLE001
            logger.warning("Summary call failed for article {!r}; using heuristic fill: {}", article.title, exc)
            return force_fill(article, company_name, fields)

        fields = _merge_fields(fields, parse_json_payload(extract_content(first.raw)))
        missing = missing_fields(fields)
        if not missing:
            return ArticleSummary.from_mapping(fields)

        logger.info("Repairing summary for article {!r}; missing {}", article.title, ", ".join(missing))
        try:
            repair = self._call(
                "map:repair",
                article_repair_messages(article, company_name, missing),
                self._repair_max_tokens,
                article,
            )
        except Exception as exc:  # noqa: BLE001
            logger.warning("Repair call failed for article {!r}: {}", article.title, exc)
        else:
            fields = _merge_fields(fields, parse_json_payload(extract_content(repair.raw)))

        still_missing = missing_fields(fields)
        if still_missing:
            logger.debug("Heuristic fill for {!r}: {}", article.title, ", ".join(still_missing))
        return force_fill(article, company_name, fields)

    def _call(
        self,
        source: str,
        messages: list[ChatMessage],
        max_tokens: int,
        article: ArticleInput,
    ) -> ChatCompletion:
        metadata = {"article_id": article.id, "title": article.title, "url": article.url}
        completion: ChatCompletion | None = None
        try:
            completion = self._client.complete(messages, max_tokens=max_tokens)
            return completion
        finally:
            emit_usage(self._usage_sink, usage_record(source, completion, metadata=metadata))


__all__ = ["ArticleSummarizer", "force_fill", "missing_fields"]
