"""Report storage configuration models."""

from __future__ import annotations

from pathlib import Path

from pydantic import Field

from briefsys.config.base import BaseConfig


class StorageConfig(BaseConfig):
    """Filesystem locations for persisted reports and token usage logs."""

    reports_dir: Path = Field(Path("reports"), description="Directory holding one JSON document per report")
    usage_log: Path = Field(Path("reports/token_usage.jsonl"), description="JSONL file receiving usage records")


__all__ = ["StorageConfig"]
