from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from briefsys.config import AppConfig, BaseConfig, load_config, resolve_env_reference


class ExampleConfig(BaseConfig):
    data_root: Path
    feature_enabled: bool


def test_load_config_success(tmp_path: Path) -> None:
    sample = tmp_path / "config.toml"
    sample.write_text(
        """
        data_root = "./cache"
        feature_enabled = true
        """.strip(),
        encoding="utf-8",
    )

    cfg = load_config(ExampleConfig, sample)

    assert cfg.data_root == Path("./cache")
    assert cfg.feature_enabled is True


def test_load_config_missing_file(tmp_path: Path) -> None:
    missing = tmp_path / "missing.toml"
    with pytest.raises(FileNotFoundError):
        load_config(ExampleConfig, missing)


def test_load_config_rejects_unknown_keys(tmp_path: Path) -> None:
    sample = tmp_path / "config.toml"
    sample.write_text('data_root = "."\nfeature_enabled = false\nsurprise = 1\n', encoding="utf-8")

    with pytest.raises(ValidationError):
        load_config(ExampleConfig, sample)


def test_app_config_example_file() -> None:
    config_path = Path(__file__).resolve().parents[2] / "config" / "example.toml"
    cfg = load_config(AppConfig, config_path)

    assert cfg.data_root == Path("../data")
    assert cfg.logging_level == "INFO"

    assert cfg.briefing is not None
    assert cfg.briefing.model == "briefing-llm"
    assert cfg.briefing.top_k == 3
    assert cfg.briefing.fetch_limit == 12
    assert cfg.briefing.per_article_max_tokens == 300
    assert cfg.briefing.per_article_repair_tokens == 120
    assert cfg.briefing.final_max_tokens == 2200
    assert cfg.briefing.final_repair_tokens == 1200
    assert cfg.briefing.cache_max_age_hours == 168

    assert cfg.news is not None
    assert cfg.news.api_key == "env:NEWSAPI_KEY"
    assert cfg.storage.reports_dir == Path("reports")

    llm = cfg.resolve_llm("briefing-llm")
    assert llm.is_stub is True
    assert llm.reasoning_effort == "minimal"


def test_resolve_llm_unknown_alias() -> None:
    with pytest.raises(ValueError, match="not found"):
        AppConfig().resolve_llm("missing")


def test_resolve_env_reference(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("BRIEFSYS_TEST_KEY", "secret")
    monkeypatch.delenv("BRIEFSYS_MISSING_KEY", raising=False)

    assert resolve_env_reference("plain-value") == "plain-value"
    assert resolve_env_reference(None) is None
    assert resolve_env_reference("env:BRIEFSYS_TEST_KEY") == "secret"
    assert resolve_env_reference("env:BRIEFSYS_MISSING_KEY", required=False) is None
    with pytest.raises(EnvironmentError):
        resolve_env_reference("env:BRIEFSYS_MISSING_KEY")
