"""Command line interface for the briefsys toolkit."""

from __future__ import annotations

import json
import sys
from contextlib import suppress
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import typer
import uvicorn
from loguru import logger

from .briefing.pipeline import BriefingPipeline
from .config import AppConfig, WebConfig, load_config
from .config.inspector import check_config, explain_config
from .news import FileArticleSource
from .storage import ReportStoreError
from .web import create_app

# Loguru registers its default stderr handler under id 0.
_log_sink_id: int | None = 0


@dataclass(slots=True)
class CLIState:
    """Holds shared state between Typer commands."""

    config_path: Path
    _config: AppConfig | None = None

    def ensure_config(self) -> AppConfig:
        if self._config is None:
            logger.info("Loading configuration from {}", self.config_path)
            self._config = load_config(AppConfig, self.config_path)
            _configure_logging(self._config.logging_level)
        return self._config

    def base_path(self) -> Path:
        config = self.ensure_config()
        data_root = config.data_root
        if data_root is None:
            return self.config_path.parent
        if data_root.is_absolute():
            return data_root
        return (self.config_path.parent / data_root).resolve()


app = typer.Typer(help="Sales briefing research helpers")
config_app = typer.Typer(help="Validate and document configuration files")
app.add_typer(config_app, name="config")


def _default_config_path() -> Path:
    repo_root = Path(__file__).resolve().parents[1]
    return repo_root / "config" / "example.toml"


def _normalize_format(value: str) -> str:
    return value.lower()


def _get_state(ctx: typer.Context) -> CLIState:
    state = ctx.obj
    if not isinstance(state, CLIState):  # pragma: no cover
        raise RuntimeError("CLI context is not initialised")
    return state


def _exit(code: int) -> None:
    raise typer.Exit(code)


def _stderr_sink(message: Any) -> None:
    sys.stderr.write(str(message))


def _configure_logging(level: str) -> None:
    global _log_sink_id
    if _log_sink_id is not None:
        with suppress(ValueError):
            logger.remove(_log_sink_id)
    _log_sink_id = logger.add(_stderr_sink, level=level.upper())


def _build_pipeline(state: CLIState) -> BriefingPipeline:
    config = state.ensure_config()
    if config.briefing is None:
        logger.error("Briefing pipeline is not configured")
        raise typer.Exit(1)
    try:
        return BriefingPipeline(config, base_path=state.base_path())
    except (ValueError, EnvironmentError) as exc:
        logger.error("Cannot initialise briefing pipeline: {}", exc)
        raise typer.Exit(1) from exc


@app.callback(invoke_without_command=True)
def main_callback(
    ctx: typer.Context,
    config: Path = typer.Option(
        _default_config_path(),
        help="Path to the TOML configuration file",
    ),
) -> None:
    """Initialise CLI state."""

    ctx.obj = CLIState(config_path=config.resolve())

    if ctx.invoked_subcommand is None:
        logger.warning("No command provided. Try 'research COMPANY' or 'status'.")
        _exit(0)


@app.command(help="Build a sales briefing for a company")
def research(
    ctx: typer.Context,
    company: str = typer.Argument(..., help="Company to research"),
    articles: Path | None = typer.Option(
        None,
        "--articles",
        help="Candidate articles (JSON, JSONL or Parquet) used instead of the news source",
    ),
    force: bool = typer.Option(False, "--force", help="Ignore cached reports and run the pipeline"),
    output: Path | None = typer.Option(None, "--output", help="Write the report JSON to this file"),
) -> None:
    state = _get_state(ctx)
    pipeline = _build_pipeline(state)
    config = state.ensure_config()
    assert config.briefing is not None

    candidates = None
    if articles is not None:
        try:
            candidates = FileArticleSource(articles).fetch_ranked_articles(company, config.briefing.fetch_limit)
        except (FileNotFoundError, ValueError) as exc:
            logger.error("Failed to load articles from {}: {}", articles, exc)
            _exit(1)
            return
        logger.info("Loaded {} ranked article(s) from {}", len(candidates), articles)

    try:
        report = pipeline.run(company, articles=candidates, force=force)
    except ValueError as exc:
        logger.error("Invalid research request: {}", exc)
        _exit(1)
        return
    except ReportStoreError as exc:
        logger.error("Failed to store report: {}", exc)
        _exit(1)
        return

    payload = json.dumps(report.to_dict(), indent=2, ensure_ascii=False, default=str)
    if output is not None:
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_text(payload, encoding="utf-8")
        logger.info("Report {} written to {}", report.report_id, output)
    else:
        print(payload)

    if report.cached:
        logger.info("Served cached report {}", report.report_id)
    elif report.result is not None and report.result.used_fallback:
        logger.warning("Report {} was synthesised locally ({})", report.report_id, report.result.error)


@app.command(help="Show configuration and subsystem status")
def status(ctx: typer.Context) -> None:
    state = _get_state(ctx)
    config = state.ensure_config()
    _report_system_status(config, state.base_path())


@app.command(help="Run the research API server")
def serve(
    ctx: typer.Context,
    host: str | None = typer.Option(None, help="Host to bind the API server to (defaults to web.host)"),
    port: int | None = typer.Option(None, help="Port to bind the API server to (defaults to web.port)"),
    dry_run: bool = typer.Option(
        False,
        help="Build the application and report status without running the server",
    ),
) -> None:
    state = _get_state(ctx)
    config = state.ensure_config()
    web_config = config.web or WebConfig()
    pipeline = _build_pipeline(state)
    try:
        app_instance = create_app(pipeline, config)
    except EnvironmentError as exc:
        logger.error("Failed to configure API authentication: {}", exc)
        raise typer.Exit(code=1) from exc

    if dry_run:
        logger.info("[Dry Run] Server will not be started.")
        return

    uvicorn.run(app_instance, host=host or web_config.host, port=port or web_config.port)


@config_app.command(help="Validate the configuration file")
def check(
    ctx: typer.Context,
    format: str = typer.Option(  # noqa: A002 - match CLI option name
        "text",
        "--format",
        case_sensitive=False,
        help="Output format for validation results",
        callback=_normalize_format,
    ),
) -> None:
    state = _get_state(ctx)
    result, exit_code, _ = check_config(state.config_path)

    if format == "json":
        print(json.dumps(result, indent=2, ensure_ascii=False, default=str))
        _exit(exit_code)

    if result["status"] == "ok":
        logger.info("Configuration OK: {}", result["config_path"])
        for warning in result["warnings"]:
            logger.warning(warning)
    else:
        error: dict[str, Any] = result["error"]
        logger.error(
            "Configuration error ({}) for {}: {}",
            error["type"],
            result["config_path"],
            error["message"],
        )
        for detail in error.get("details", []):
            location = detail["loc"] or "<root>"
            logger.error("  - {}: {} ({})", location, detail["message"], detail["type"])

    _exit(exit_code)


@config_app.command(help="Describe available configuration fields")
def explain(
    format: str = typer.Option(  # noqa: A002 - match CLI option name
        "text",
        "--format",
        case_sensitive=False,
        help="Output format for configuration schema",
        callback=_normalize_format,
    ),
) -> None:
    fields = explain_config()

    if format == "json":
        print(json.dumps({"fields": fields}, indent=2, ensure_ascii=False, default=str))
        return

    logger.info("Configuration schema ({} fields):", len(fields))
    for field in fields:
        default_value = field["default"]
        if isinstance(default_value, (dict, list)):
            default_repr = json.dumps(default_value, ensure_ascii=False, default=str)
        elif default_value is None:
            default_repr = "None"
        else:
            default_repr = str(default_value)
        logger.info(
            "  - {name}: type={type}, required={required}, default={default}, description={description}",
            name=field["name"],
            type=field["type"],
            required="yes" if field["required"] else "no",
            default=default_repr,
            description=field["description"] or "(no description)",
        )


def _report_system_status(config: AppConfig, base_path: Path) -> None:
    """Print a summary of the configuration and storage locations."""
    logger.info("=== General Configuration ===")
    logger.info("Data root: {}", base_path)
    logger.info("Logging level: {}", config.logging_level)

    logger.info("=== Briefing Pipeline ===")
    if config.briefing:
        bc = config.briefing
        logger.info("Model alias: {}", bc.model)
        logger.info("Top K: {}, fetch limit: {}", bc.top_k, bc.fetch_limit)
        logger.info(
            "Token budgets: article={}/{}, merge={}/{}",
            bc.per_article_max_tokens,
            bc.per_article_repair_tokens,
            bc.final_max_tokens,
            bc.final_repair_tokens,
        )
        logger.info("Cache max age: {}h", bc.cache_max_age_hours)
    else:
        logger.info("Not configured")

    logger.info("=== News Source ===")
    if config.news:
        logger.info("Endpoint: {} (language={})", config.news.endpoint, config.news.language)
        logger.info("API key configured: {}", bool(config.news.api_key_secret))
    else:
        logger.info("Not configured")

    logger.info("=== Storage ===")
    for label, fragment in (("Reports", config.storage.reports_dir), ("Usage log", config.storage.usage_log)):
        path = fragment if fragment.is_absolute() else (base_path / fragment)
        logger.info("{}: {} (exists={})", label, path, path.exists())

    logger.info("=== LLM Configurations ===")
    if config.llms:
        logger.info("Available LLMs: {}", len(config.llms))
        for llm in config.llms:
            logger.info("  - {}: {}{}", llm.alias, llm.name, " (stub)" if llm.is_stub else "")
    else:
        logger.info("No LLMs configured")


def main(argv: list[str] | None = None) -> int:
    """Entry point compatible with setuptools console scripts."""

    try:
        result = app(args=argv, standalone_mode=False)
    except typer.Exit as exc:
        return exc.exit_code
    if isinstance(result, int):
        return result
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
