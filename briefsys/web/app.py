"""FastAPI application factory and routing definitions."""

from __future__ import annotations

import secrets
from typing import Any, Callable

from fastapi import Depends, FastAPI, Header, HTTPException, status
from loguru import logger
from pydantic import BaseModel, ConfigDict, Field

from briefsys.briefing.pipeline import BriefingPipeline
from briefsys.config.app import AppConfig
from briefsys.config.web import WebAuthConfig
from briefsys.storage.reports import ReportStoreError


class ResearchRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    company_name: str | None = Field(default=None, alias="companyName")
    force: bool = False


def create_app(pipeline: BriefingPipeline, config: AppConfig | None = None) -> FastAPI:
    """Creates and configures a FastAPI application exposing the research endpoints."""
    web_config = config.web if config and config.web else None
    auth_config = web_config.auth if web_config and web_config.auth else None
    auth_dependency = _build_auth_dependency(auth_config)

    app = FastAPI(
        title=web_config.title if web_config else "Sales Briefing API",
        description="Research a company and return a sales-oriented briefing.",
        version="0.1.0",
    )

    @app.get("/health", summary="Health Check", tags=["Monitoring"])
    async def health_check() -> dict[str, str]:
        """Check if the API is running."""
        return {"status": "ok"}

    @app.post("/api/research", summary="Research a Company", tags=["Research"])
    def research(payload: ResearchRequest, _: None = Depends(auth_dependency)) -> dict[str, Any]:
        """
        Run the briefing pipeline for ``companyName``, reusing a recent report unless ``force`` is set.
        """
        company_name = (payload.company_name or "").strip()
        if not company_name:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="companyName is required")

        logger.info("Research request received for {} (force={})", company_name, payload.force)
        try:
            report = pipeline.run(company_name, force=payload.force)
        except ValueError as exc:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
        except ReportStoreError as exc:
            logger.error("Failed to store report for {}: {}", company_name, exc)
            raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Report storage failed") from exc

        body = report.to_dict()
        return {"cached": body["cached"], "reportId": body["report_id"], "report": body["report"]}

    @app.get("/api/research/{report_id}", summary="Fetch a Stored Report", tags=["Research"])
    def get_report(report_id: str, _: None = Depends(auth_dependency)) -> dict[str, Any]:
        """Return a previously stored report."""
        try:
            stored = pipeline.store.get_report(report_id)
        except ReportStoreError as exc:
            logger.warning("Rejected report lookup {}: {}", report_id, exc)
            stored = None
        if stored is None:
            raise HTTPException(status_code=404, detail=f"Report '{report_id}' not found.")
        return {"reportId": stored.report_id, "report": stored.data}

    return app


def _build_auth_dependency(auth_config: WebAuthConfig | None) -> Callable[..., Any]:
    """Return a dependency that validates the configured auth token."""

    if not auth_config or not auth_config.enabled:
        async def _no_auth() -> None:
            return None

        return _no_auth

    expected_token = auth_config.token_secret or ""
    header_alias = auth_config.header_name

    async def _verify_token(
        provided_token: str | None = Header(default=None, alias=header_alias),
    ) -> None:
        if provided_token is None:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Missing authentication token.",
            )

        if not secrets.compare_digest(provided_token, expected_token):
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid authentication token.",
            )

    return _verify_token
