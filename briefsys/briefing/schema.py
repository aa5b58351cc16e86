"""Structural contract a merged briefing must satisfy before it is accepted."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Annotated, Any

from pydantic import BaseModel, ConfigDict, Field, StrictInt, StrictStr, ValidationError

SLIDE_COUNT = 3
BULLETS_PER_SLIDE = 3


class _Contract(BaseModel):
    # Unknown keys are tolerated so the document can be enriched later.
    model_config = ConfigDict(extra="allow")


class HighlightContract(_Contract):
    title: StrictStr
    url: StrictStr
    one_line_summary: StrictStr
    sales_bullet: StrictStr
    suggested_question: StrictStr


class SlideContract(_Contract):
    slide_number: StrictInt
    slide_title: StrictStr
    bullet_points: Annotated[
        list[StrictStr], Field(min_length=BULLETS_PER_SLIDE, max_length=BULLETS_PER_SLIDE)
    ]


class FinalDocumentContract(_Contract):
    company: StrictStr
    company_overview: StrictStr
    highlights: Annotated[list[HighlightContract], Field(min_length=1)]
    slides: Annotated[list[SlideContract], Field(min_length=SLIDE_COUNT, max_length=SLIDE_COUNT)]


@dataclass(frozen=True, slots=True)
class ValidationReport:
    valid: bool
    errors: tuple[str, ...] = ()

    def __bool__(self) -> bool:
        return self.valid


def validate_document(document: Any) -> ValidationReport:
    """Check ``document`` (a plain mapping) against the final briefing contract."""

    try:
        FinalDocumentContract.model_validate(document)
    except ValidationError as exc:
        errors = tuple(
            f"{'.'.join(str(part) for part in err['loc']) or '<root>'}: {err['msg']}"
            for err in exc.errors()
        )
        return ValidationReport(valid=False, errors=errors)
    return ValidationReport(valid=True)


__all__ = [
    "BULLETS_PER_SLIDE",
    "SLIDE_COUNT",
    "FinalDocumentContract",
    "HighlightContract",
    "SlideContract",
    "ValidationReport",
    "validate_document",
]
