"""Configuration namespace for briefsys."""

from __future__ import annotations

from .app import AppConfig
from .base import BaseConfig, load_config, resolve_env_reference
from .briefing import BriefingConfig
from .llm import LLMConfig
from .news import NewsConfig
from .storage import StorageConfig
from .web import WebAuthConfig, WebConfig

__all__ = [
    "BaseConfig",
    "AppConfig",
    "load_config",
    "BriefingConfig",
    "LLMConfig",
    "NewsConfig",
    "StorageConfig",
    "WebAuthConfig",
    "WebConfig",
    "resolve_env_reference",
]
