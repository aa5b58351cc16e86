"""LLM configuration models."""

from __future__ import annotations

from pydantic import Field

from briefsys.config.base import BaseConfig, resolve_env_reference


class LLMConfig(BaseConfig):
    """Configuration for a single chat-completion endpoint."""

    alias: str = Field(..., description="Model alias for reference")
    name: str = Field(..., description="Model name/identifier for API calls (LiteLLM format)")
    base_url: str = Field("", description="API base URL; 'stub://' selects the offline client")
    api_key: str = Field(..., description="API key, can use 'env:VAR_NAME' format")
    temperature: float | None = Field(None, ge=0.0, le=2.0, description="Sampling temperature, omitted when unset")
    reasoning_effort: str | None = Field(
        "minimal", description="Generation effort level sent with every request"
    )
    timeout: float = Field(60.0, gt=0.0, description="Request timeout in seconds")
    json_mode: bool = Field(True, description="Request JSON-object output when the provider supports it")

    @property
    def api_key_secret(self) -> str:
        """Return the resolved API key, expanding any ``env:VAR`` references."""

        resolved = resolve_env_reference(self.api_key)
        assert resolved is not None  # guarded by resolve_env_reference
        return resolved

    @property
    def is_stub(self) -> bool:
        return self.base_url.strip().lower().startswith("stub://")


__all__ = ["LLMConfig"]
