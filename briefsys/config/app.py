"""Application-level configuration models."""

from __future__ import annotations

from pathlib import Path

from pydantic import Field

from briefsys.config.base import BaseConfig
from briefsys.config.briefing import BriefingConfig
from briefsys.config.llm import LLMConfig
from briefsys.config.news import NewsConfig
from briefsys.config.storage import StorageConfig
from briefsys.config.web import WebConfig


class AppConfig(BaseConfig):
    """Top-level runtime configuration for the entire application."""

    data_root: Path | None = Field(None, description="Base directory for relative storage paths")
    logging_level: str = Field("INFO", description="Log level: DEBUG, INFO, WARNING, ERROR")

    briefing: BriefingConfig | None = Field(None, description="Summarise-and-merge pipeline configuration")
    news: NewsConfig | None = Field(None, description="News source configuration")
    storage: StorageConfig = Field(default_factory=StorageConfig, description="Report storage configuration")
    web: WebConfig | None = Field(None, description="HTTP API configuration")
    llms: list[LLMConfig] = Field(default_factory=list, description="Available LLM configurations")

    def resolve_llm(self, alias: str) -> LLMConfig:
        for llm in self.llms:
            if llm.alias == alias:
                return llm
        raise ValueError(f"LLM alias '{alias}' not found in configuration")


__all__ = ["AppConfig"]
