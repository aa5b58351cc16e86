"""Briefing pipeline configuration models."""

from __future__ import annotations

from pydantic import Field

from briefsys.config.base import BaseConfig


class BriefingConfig(BaseConfig):
    """Behavioural controls for the summarise-and-merge pipeline."""

    model: str = Field(..., description="LLM alias used for both pipeline stages")
    top_k: int = Field(3, ge=1, description="Number of ranked articles summarised and merged")
    fetch_limit: int = Field(12, ge=1, description="Candidate articles requested from the news source")
    per_article_max_tokens: int = Field(300, ge=1, description="Token budget for a per-article summary")
    per_article_repair_tokens: int = Field(120, ge=1, description="Token budget for a per-article repair call")
    final_max_tokens: int = Field(2200, ge=1, description="Token budget for the merge call")
    final_repair_tokens: int = Field(1200, ge=1, description="Token budget for the merge repair call")
    cache_max_age_hours: float = Field(
        168.0, ge=0.0, description="Reuse a stored report for the same company younger than this"
    )


__all__ = ["BriefingConfig"]
