"""Reduce stage: merge per-article summaries into one briefing document.

Guarantees a schema-valid document with fixed slide titles and exactly three
bullets per slide. At most two LLM calls are made (initial and repair); when
both fail the document is synthesised locally from the summaries.
"""

from __future__ import annotations

from dataclasses import asdict
from typing import Any, Sequence

from loguru import logger

from briefsys.llm.client import ChatClient, ChatCompletion, ChatMessage
from briefsys.llm.parsing import extract_content, parse_json_payload

from .models import ArticleHighlight, ArticleSummary, FinalDocument, MergeResult, Slide
from .prompts import SLIDE_TITLES, merge_messages, merge_repair_messages
from .schema import BULLETS_PER_SLIDE, SLIDE_COUNT, validate_document
from .usage import UsageSink, emit_usage, usage_record

PLACEHOLDER_BULLET = "•"
ELLIPSIS = "…"

# Per-field ceilings for the prompt context; typical summaries fit well inside.
FIELD_LIMITS: dict[str, int] = {
    "title": 220,
    "one_line_summary": 260,
    "short_summary": 520,
    "sales_bullet": 120,
    "suggested_question": 140,
}

_GENERIC_FACTS = ("Key development noted", "{count} highlight(s) extracted")
_GENERIC_OPPORTUNITIES = (
    "Potential opportunity: align solution and timing",
    "Assess budget and timeline window",
    "Check risk and compliance drivers",
)
_GENERIC_QUESTIONS = (
    "What impact on {company}'s roadmap?",
    "Who are the stakeholders and what is the decision timeline?",
    "Any integration or compliance constraints?",
)


class MergeAttemptError(RuntimeError):
    """One merge attempt produced no usable document."""

    def __init__(self, code: str, detail: str = "") -> None:
        super().__init__(f"{code}: {detail}" if detail else code)
        self.code = code
        self.detail = detail


def clip(text: str, limit: int) -> str:
    return text if len(text) <= limit else text[:limit] + ELLIPSIS


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    return value.strip() if isinstance(value, str) else str(value).strip()


def compact_summaries(summaries: Sequence[ArticleSummary], top_k: int) -> list[dict[str, Any]]:
    """Prompt context: the first ``top_k`` summaries with every text field clipped."""

    compact: list[dict[str, Any]] = []
    for summary in summaries[:top_k]:
        item: dict[str, Any] = {"id": summary.id, "url": summary.url}
        for name, limit in FIELD_LIMITS.items():
            item[name] = clip(getattr(summary, name), limit)
        compact.append(item)
    return compact


def generic_highlight(company_name: str) -> dict[str, str]:
    return {
        "title": company_name or "Company",
        "url": "",
        "one_line_summary": "Recent development relevant to sales engagement.",
        "sales_bullet": _GENERIC_OPPORTUNITIES[0],
        "suggested_question": f"Any impact on {company_name}'s priorities?",
    }


def synthesize_overview(company: str, one_liners: Sequence[str]) -> str:
    seed = " ".join(text for text in one_liners if text)
    if seed:
        return f"{company}: {seed}"
    return f"{company}: recent developments with potential commercial impact."


def three_bullets(items: Any) -> list[str]:
    """Exactly three non-blank bullets, padded with the placeholder bullet."""

    bullets = [_as_text(item) for item in items] if isinstance(items, list) else []
    bullets = [item for item in bullets if item][:BULLETS_PER_SLIDE]
    bullets.extend([PLACEHOLDER_BULLET] * (BULLETS_PER_SLIDE - len(bullets)))
    return bullets


def derive_slide_bullets(company: str, overview: str, highlights: Sequence[dict[str, str]]) -> list[list[str]]:
    """Bullets per slide taken from the highlights, with a generic filler per missing slot.

    Slide 1 uses one-line summaries, slide 2 sales bullets, slide 3 suggested
    questions, in highlight order.
    """

    def slot(index: int) -> dict[str, str]:
        return highlights[index] if index < len(highlights) else {}

    facts_fallbacks = (overview, _GENERIC_FACTS[0], _GENERIC_FACTS[1].format(count=len(highlights)))
    facts = [
        slot(i).get("one_line_summary") or slot(i).get("title") or facts_fallbacks[i]
        for i in range(BULLETS_PER_SLIDE)
    ]
    opportunities = [slot(i).get("sales_bullet") or _GENERIC_OPPORTUNITIES[i] for i in range(BULLETS_PER_SLIDE)]
    questions = [
        slot(i).get("suggested_question") or _GENERIC_QUESTIONS[i].format(company=company)
        for i in range(BULLETS_PER_SLIDE)
    ]
    return [three_bullets(facts), three_bullets(opportunities), three_bullets(questions)]


def _coerce_highlight(item: dict[str, Any]) -> dict[str, str]:
    return {
        "title": _as_text(item.get("title")),
        "url": _as_text(item.get("url")),
        "one_line_summary": _as_text(item.get("one_line_summary")) or _as_text(item.get("short_summary")),
        "sales_bullet": _as_text(item.get("sales_bullet")),
        "suggested_question": _as_text(item.get("suggested_question")),
    }


def sanitize_document(company_name: str, payload: dict[str, Any], top_k: int) -> dict[str, Any]:
    """Coerce parsed model output into the final document shape.

    Slide titles always come from the canonical list; bullet counts are forced
    to three and fully empty slides are derived from the highlights.
    """

    raw_highlights = payload.get("highlights")
    highlights = [
        _coerce_highlight(item)
        for item in (raw_highlights if isinstance(raw_highlights, list) else [])
        if isinstance(item, dict)
    ][:top_k]
    if not highlights:
        highlights = [generic_highlight(company_name)]

    company = _as_text(payload.get("company")) or company_name
    overview = _as_text(payload.get("company_overview")) or synthesize_overview(
        company, [item["one_line_summary"] for item in highlights[:2]]
    )

    raw_slides = payload.get("slides")
    model_slides = [item for item in raw_slides if isinstance(item, dict)] if isinstance(raw_slides, list) else []
    model_slides = (model_slides + [{}] * SLIDE_COUNT)[:SLIDE_COUNT]
    derived = derive_slide_bullets(company, overview, highlights)

    slides: list[dict[str, Any]] = []
    for index, raw in enumerate(model_slides):
        bullets = three_bullets(raw.get("bullet_points"))
        if all(bullet == PLACEHOLDER_BULLET for bullet in bullets):
            bullets = derived[index]
        slides.append(
            {
                "slide_number": index + 1,
                "slide_title": SLIDE_TITLES[index],
                "bullet_points": bullets,
            }
        )

    return {
        "company": company,
        "company_overview": overview,
        "highlights": highlights,
        "slides": slides,
    }


def local_fallback_document(
    company_name: str,
    summaries: Sequence[ArticleSummary],
    top_k: int,
) -> FinalDocument:
    """Build the briefing from the summaries alone, without any LLM call."""

    top = list(summaries[: max(1, top_k)])
    highlights = [asdict(ArticleHighlight.from_summary(summary)) for summary in top]
    overview = synthesize_overview(company_name, [item["one_line_summary"] for item in highlights[:2]])
    if not highlights:
        highlights = [generic_highlight(company_name)]

    slides = tuple(
        Slide(slide_number=index + 1, slide_title=SLIDE_TITLES[index], bullet_points=tuple(bullets))  # type: ignore[arg-type]
        for index, bullets in enumerate(derive_slide_bullets(company_name, overview, highlights))
    )
    return FinalDocument(
        company=company_name,
        company_overview=overview,
        highlights=tuple(ArticleHighlight(**item) for item in highlights),
        slides=slides,  # type: ignore[arg-type]
    )


class SummaryMerger:
    """Run the reduce stage over the ranked per-article summaries."""

    def __init__(
        self,
        client: ChatClient,
        *,
        max_tokens: int = 2200,
        repair_max_tokens: int = 1200,
        usage_sink: UsageSink | None = None,
    ) -> None:
        self._client = client
        self._max_tokens = max_tokens
        self._repair_max_tokens = repair_max_tokens
        self._usage_sink = usage_sink

    def merge(self, company_name: str, summaries: Sequence[ArticleSummary], top_k: int = 3) -> MergeResult:
        if not company_name or not company_name.strip():
            raise ValueError("company_name is required")
        if top_k < 1:
            raise ValueError("top_k must be at least 1")

        context = compact_summaries(summaries, top_k)
        attempts: tuple[tuple[str, list[ChatMessage], int], ...] = (
            ("merge:initial", merge_messages(company_name, context, top_k), self._max_tokens),
            ("merge:repair", merge_repair_messages(company_name, context), self._repair_max_tokens),
        )

        errors: list[str] = []
        for source, messages, max_tokens in attempts:
            try:
                document = self._attempt(source, messages, max_tokens, company_name, top_k)
            except MergeAttemptError as exc:
                logger.warning("[merger] {} attempt failed: {}", source.split(":")[1], exc)
                errors.append(exc.code)
                continue
            return MergeResult(document=document, used_fallback=False, error=None, attempt_errors=tuple(errors))

        logger.warning("[merger] using local fallback for {} ({})", company_name, ", ".join(errors))
        return MergeResult(
            document=local_fallback_document(company_name, summaries, top_k),
            used_fallback=True,
            error=errors[-1],
            attempt_errors=tuple(errors),
        )

    def _attempt(
        self,
        source: str,
        messages: list[ChatMessage],
        max_tokens: int,
        company_name: str,
        top_k: int,
    ) -> FinalDocument:
        completion: ChatCompletion | None = None
        try:
            completion = self._client.complete(messages, max_tokens=max_tokens)
        except Exception as exc:  # noqa: BLE001
            raise MergeAttemptError(f"call_failed:{type(exc).__name__}", str(exc)) from exc
        finally:
            emit_usage(self._usage_sink, usage_record(source, completion, metadata={"top_k": top_k}))

        content = extract_content(completion.raw)
        if not content:
            raise MergeAttemptError("empty_content")

        payload = parse_json_payload(content)
        if payload is None:
            raise MergeAttemptError("json_parse_failed")
        if not isinstance(payload, dict):
            raise MergeAttemptError("schema_invalid", "top-level JSON value is not an object")

        candidate = sanitize_document(company_name, payload, top_k)
        report = validate_document(candidate)
        if not report.valid:
            raise MergeAttemptError("schema_invalid", "; ".join(report.errors))
        return FinalDocument.from_dict(candidate)


__all__ = [
    "FIELD_LIMITS",
    "PLACEHOLDER_BULLET",
    "MergeAttemptError",
    "SummaryMerger",
    "clip",
    "compact_summaries",
    "derive_slide_bullets",
    "local_fallback_document",
    "sanitize_document",
]
