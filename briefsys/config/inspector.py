"""Utilities for inspecting and validating configuration files."""

from __future__ import annotations

from pathlib import Path
from types import UnionType
from typing import Any, Iterable, Union, get_args, get_origin

from pydantic import BaseModel, ValidationError
from pydantic.fields import FieldInfo

from .app import AppConfig
from .base import load_config


class ConfigInspectionError(RuntimeError):
    """Raised when configuration inspection fails unexpectedly."""


# Exit codes and error tags for the failures ``load_config`` can raise.
_LOAD_FAILURES: tuple[tuple[type[Exception], str, int], ...] = (
    (FileNotFoundError, "missing_file", 2),
    (PermissionError, "permission_error", 2),
    (ValueError, "invalid_format", 1),
)


def check_config(path: Path, *, config_cls: type[AppConfig] = AppConfig) -> tuple[dict[str, Any], int, AppConfig | None]:
    """Validate the configuration file and collect warnings.

    Returns a tuple of ``(result_dict, exit_code, config_instance_or_None)``.
    """

    try:
        config = load_config(config_cls, path)
    except ValidationError as exc:
        error = {
            "type": "validation_error",
            "message": "Configuration validation failed",
            "details": [
                {
                    "loc": ".".join(str(part) for part in err["loc"]),
                    "message": err["msg"],
                    "type": err["type"],
                }
                for err in exc.errors()
            ],
        }
        return {"status": "error", "config_path": str(path), "error": error}, 3, None
    except Exception as exc:
        for exc_type, tag, code in _LOAD_FAILURES:
            if isinstance(exc, exc_type):
                error = {"type": tag, "message": str(exc)}
                return {"status": "error", "config_path": str(path), "error": error}, code, None
        raise ConfigInspectionError("Unexpected configuration inspection error") from exc

    result = {
        "status": "ok",
        "config_path": str(path),
        "warnings": _collect_warnings(config),
    }
    return result, 0, config


def explain_config(*, config_cls: type[AppConfig] = AppConfig) -> list[dict[str, Any]]:
    """Describe configuration fields for documentation purposes."""

    documentation: list[dict[str, Any]] = []
    visited: set[type[BaseModel]] = set()

    def _walk(model_cls: type[BaseModel], prefix: str = "") -> None:
        if model_cls in visited:
            return
        visited.add(model_cls)

        for field_name, field in model_cls.model_fields.items():
            name = f"{prefix}{field_name}"
            documentation.append(
                {
                    "name": name,
                    "type": _format_annotation(field.annotation),
                    "required": field.is_required(),
                    "default": _format_default(field),
                    "description": field.description or "",
                }
            )
            for nested_cls, suffix in _nested_models(field.annotation):
                _walk(nested_cls, f"{name}{suffix}")

    _walk(config_cls)
    return documentation


def _collect_warnings(config: AppConfig) -> list[str]:
    warnings: list[str] = []

    if not config.llms:
        warnings.append("No LLM configurations defined; the briefing pipeline cannot run")
    if config.briefing is None:
        warnings.append("No [briefing] block configured; research commands are unavailable")
    elif all(llm.alias != config.briefing.model for llm in config.llms):
        warnings.append(f"Briefing model alias '{config.briefing.model}' does not match any [[llms]] entry")
    if config.news is None or not config.news.api_key:
        warnings.append("No NewsAPI key configured; articles must be supplied explicitly")
    if config.web and config.web.auth is None:
        warnings.append("HTTP API is configured without authentication")

    return warnings


def _format_annotation(annotation: Any) -> str:
    origin = get_origin(annotation)
    if origin is None:
        if isinstance(annotation, type):
            return annotation.__name__
        return repr(annotation).replace("typing.", "")

    args = get_args(annotation)
    if origin in {Union, UnionType}:
        non_none = [arg for arg in args if arg is not type(None)]  # noqa: E721
        if len(non_none) == 1 and len(args) == 2:
            return f"Optional[{_format_annotation(non_none[0])}]"
        return f"Union[{', '.join(_format_annotation(arg) for arg in args)}]"

    origin_name = getattr(origin, "__name__", repr(origin).replace("typing.", ""))
    if args:
        return f"{origin_name}[{', '.join(_format_annotation(arg) for arg in args)}]"
    return origin_name


def _format_default(field: FieldInfo) -> Any:
    if field.is_required():
        return None
    value = field.default_factory() if field.default_factory is not None else field.default  # type: ignore[call-arg]
    return _stringify_default(value)


def _stringify_default(value: Any) -> Any:
    if isinstance(value, Path):
        return str(value)
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json")
    if isinstance(value, (list, tuple)):
        return [_stringify_default(item) for item in value]
    return value


def _nested_models(annotation: Any) -> Iterable[tuple[type[BaseModel], str]]:
    if isinstance(annotation, type) and issubclass(annotation, BaseModel):
        yield annotation, "."
        return

    origin = get_origin(annotation)
    args = get_args(annotation)
    if origin in {Union, UnionType}:
        for arg in args:
            yield from _nested_models(arg)
    elif origin in {list, tuple, set} and args:
        for nested_cls, _ in _nested_models(args[0]):
            yield nested_cls, "[]."


__all__ = ["check_config", "explain_config", "ConfigInspectionError"]
