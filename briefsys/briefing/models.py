"""Data models used by the briefing pipeline."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any, Mapping

SUMMARY_TEXT_FIELDS: tuple[str, ...] = (
    "one_line_summary",
    "short_summary",
    "sales_bullet",
    "suggested_question",
)

HIGHLIGHT_FIELDS: tuple[str, ...] = (
    "title",
    "url",
    "one_line_summary",
    "sales_bullet",
    "suggested_question",
)


def _optional_text(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


@dataclass(frozen=True, slots=True)
class ArticleInput:
    """A ranked candidate news article supplied to the map stage."""

    title: str
    url: str
    id: str | None = None
    description: str | None = None
    source: str | None = None
    published_at: str | None = None
    relevance_score: float | None = None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "ArticleInput":
        source = data.get("source")
        if isinstance(source, Mapping):
            source = source.get("name")
        score = data.get("relevance_score", data.get("relevanceScore"))
        return cls(
            title=str(data.get("title") or ""),
            url=str(data.get("url") or ""),
            id=_optional_text(data.get("id")),
            description=_optional_text(data.get("description")),
            source=_optional_text(source),
            published_at=_optional_text(data.get("published_at", data.get("publishedAt"))),
            relevance_score=float(score) if isinstance(score, (int, float)) else None,
        )

    def to_prompt_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "url": self.url,
            "description": self.description or "",
            "source": self.source or "",
            "publishedAt": self.published_at or "",
        }

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True, slots=True)
class ArticleSummary:
    """Sales-oriented summary of one article produced by the map stage."""

    id: str | None
    title: str
    url: str
    one_line_summary: str
    short_summary: str
    sales_bullet: str
    suggested_question: str

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "ArticleSummary":
        return cls(
            id=_optional_text(data.get("id")),
            title=str(data.get("title") or ""),
            url=str(data.get("url") or ""),
            **{name: str(data.get(name) or "") for name in SUMMARY_TEXT_FIELDS},
        )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True, slots=True)
class ArticleHighlight:
    title: str
    url: str
    one_line_summary: str
    sales_bullet: str
    suggested_question: str

    @classmethod
    def from_summary(cls, summary: ArticleSummary) -> "ArticleHighlight":
        return cls(
            title=summary.title,
            url=summary.url,
            one_line_summary=summary.one_line_summary or summary.short_summary,
            sales_bullet=summary.sales_bullet,
            suggested_question=summary.suggested_question,
        )


@dataclass(frozen=True, slots=True)
class Slide:
    slide_number: int
    slide_title: str
    bullet_points: tuple[str, str, str]

    def to_dict(self) -> dict[str, Any]:
        return {
            "slide_number": self.slide_number,
            "slide_title": self.slide_title,
            "bullet_points": list(self.bullet_points),
        }


@dataclass(frozen=True, slots=True)
class FinalDocument:
    """The merged briefing: overview, highlights and the three-slide outline."""

    company: str
    company_overview: str
    highlights: tuple[ArticleHighlight, ...]
    slides: tuple[Slide, Slide, Slide]

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "FinalDocument":
        """Build from a mapping that already passed schema validation."""
        highlights = tuple(
            ArticleHighlight(**{name: item[name] for name in HIGHLIGHT_FIELDS}) for item in data["highlights"]
        )
        slides = tuple(
            Slide(
                slide_number=item["slide_number"],
                slide_title=item["slide_title"],
                bullet_points=tuple(item["bullet_points"]),  # type: ignore[arg-type]
            )
            for item in data["slides"]
        )
        return cls(
            company=data["company"],
            company_overview=data["company_overview"],
            highlights=highlights,
            slides=slides,  # type: ignore[arg-type]
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "company": self.company,
            "company_overview": self.company_overview,
            "highlights": [asdict(item) for item in self.highlights],
            "slides": [slide.to_dict() for slide in self.slides],
        }


@dataclass(frozen=True, slots=True)
class UsageRecord:
    """Token metering for one attempted LLM call."""

    source: str
    model: str | None
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0
    metadata: dict[str, Any] = field(default_factory=dict)
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def stage(self) -> str:
        return self.source.split(":", 1)[0]

    @property
    def operation(self) -> str:
        return self.source.partition(":")[2]

    def to_dict(self) -> dict[str, Any]:
        record = asdict(self)
        record["created_at"] = self.created_at.isoformat()
        return record


@dataclass(frozen=True, slots=True)
class MergeResult:
    """Outcome of the reduce stage; ``document`` is always schema-valid."""

    document: FinalDocument
    used_fallback: bool
    error: str | None = None
    attempt_errors: tuple[str, ...] = ()


__all__ = [
    "HIGHLIGHT_FIELDS",
    "SUMMARY_TEXT_FIELDS",
    "ArticleHighlight",
    "ArticleInput",
    "ArticleSummary",
    "FinalDocument",
    "MergeResult",
    "Slide",
    "UsageRecord",
]
