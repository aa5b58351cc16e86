"""News source configuration models."""

from __future__ import annotations

from pydantic import Field

from briefsys.config.base import BaseConfig, resolve_env_reference


class NewsConfig(BaseConfig):
    """Settings for the NewsAPI article source."""

    api_key: str = Field("", description="NewsAPI key, can use 'env:VAR_NAME'; empty disables the source")
    endpoint: str = Field("https://newsapi.org/v2/everything", description="NewsAPI search endpoint")
    language: str = Field("en", min_length=2, description="Article language requested from the API")
    page_size: int = Field(12, ge=1, le=100, description="Articles requested per query")
    timeout: float = Field(12.0, gt=0.0, description="Request timeout in seconds")

    @property
    def api_key_secret(self) -> str | None:
        return resolve_env_reference(self.api_key or None, required=False)


__all__ = ["NewsConfig"]
