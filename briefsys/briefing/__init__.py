"""Summarise-and-merge briefing package.

``briefsys.briefing.pipeline`` is imported directly by callers: it depends on
the news and storage packages, which in turn import the models defined here.
"""

from __future__ import annotations

from .models import (
    ArticleHighlight,
    ArticleInput,
    ArticleSummary,
    FinalDocument,
    MergeResult,
    Slide,
    UsageRecord,
)
from .merger import MergeAttemptError, SummaryMerger, local_fallback_document, sanitize_document
from .schema import ValidationReport, validate_document
from .summarizer import ArticleSummarizer, force_fill

__all__ = [
    "ArticleHighlight",
    "ArticleInput",
    "ArticleSummarizer",
    "ArticleSummary",
    "FinalDocument",
    "MergeAttemptError",
    "MergeResult",
    "Slide",
    "SummaryMerger",
    "UsageRecord",
    "ValidationReport",
    "force_fill",
    "local_fallback_document",
    "sanitize_document",
    "validate_document",
]
