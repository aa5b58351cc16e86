"""HTTP API configuration models."""

from __future__ import annotations

from pydantic import Field, field_validator, model_validator

from briefsys.config.base import BaseConfig, resolve_env_reference


class WebAuthConfig(BaseConfig):
    """Shared-token protection for the ``/api/research`` routes.

    ``/health`` stays open so load balancers can probe the service.
    """

    enabled: bool = Field(False, description="Require a token on every research request.")
    header_name: str = Field(
        "X-Api-Token",
        description="Request header carrying the research API token.",
        min_length=1,
    )
    token: str | None = Field(
        default=None,
        description="API token, or an env:VAR reference resolved when the app is built.",
        min_length=1,
    )

    @field_validator("token")
    @classmethod
    def _strip_token(cls, token: str | None) -> str | None:
        if token is None:
            return None
        stripped = token.strip()
        return stripped if stripped else None

    @model_validator(mode="after")
    def _ensure_token_when_enabled(self) -> "WebAuthConfig":
        if self.enabled and not self.token:
            raise ValueError("web.auth.token is required when research API auth is enabled.")
        return self

    @property
    def token_secret(self) -> str | None:
        return resolve_env_reference(self.token)


class WebConfig(BaseConfig):
    """Settings for the research API served by ``briefsys serve``."""

    title: str = Field(
        "Sales Briefing API",
        description="Title reported in the OpenAPI document.",
        min_length=1,
    )
    host: str = Field("127.0.0.1", description="Default bind address for `briefsys serve`.", min_length=1)
    port: int = Field(8000, description="Default bind port for `briefsys serve`.", ge=1, le=65535)
    auth: WebAuthConfig | None = Field(
        default=None,
        description="Token authentication for the research endpoints.",
    )


__all__ = ["WebAuthConfig", "WebConfig"]
