from __future__ import annotations

from pathlib import Path

from briefsys.config.inspector import check_config, explain_config

VALID_CONFIG = """
[briefing]
model = "briefing-llm"

[news]
api_key = "newsapi-key"

[[llms]]
alias = "briefing-llm"
name = "openai/gpt-5-mini"
api_key = "dummy"
"""


def test_check_config_ok(tmp_path: Path) -> None:
    config_file = tmp_path / "config.toml"
    config_file.write_text(VALID_CONFIG, encoding="utf-8")

    result, exit_code, config = check_config(config_file)

    assert exit_code == 0
    assert result["status"] == "ok"
    assert result["warnings"] == []
    assert config is not None
    assert config.briefing is not None
    assert config.briefing.model == "briefing-llm"


def test_check_config_warns_about_unknown_alias_and_missing_news(tmp_path: Path) -> None:
    config_file = tmp_path / "config.toml"
    config_file.write_text(
        """
[briefing]
model = "other-llm"

[[llms]]
alias = "briefing-llm"
name = "openai/gpt-5-mini"
api_key = "dummy"
""",
        encoding="utf-8",
    )

    result, exit_code, _ = check_config(config_file)

    assert exit_code == 0
    assert any("other-llm" in warning for warning in result["warnings"])
    assert any("NewsAPI" in warning for warning in result["warnings"])


def test_check_config_missing_file(tmp_path: Path) -> None:
    result, exit_code, config = check_config(tmp_path / "absent.toml")

    assert exit_code == 2
    assert config is None
    assert result["error"]["type"] == "missing_file"


def test_check_config_invalid_toml(tmp_path: Path) -> None:
    config_file = tmp_path / "broken.toml"
    config_file.write_text("[briefing\nmodel = ", encoding="utf-8")

    result, exit_code, _ = check_config(config_file)

    assert exit_code == 1
    assert result["error"]["type"] == "invalid_format"


def test_check_config_validation_error(tmp_path: Path) -> None:
    config_file = tmp_path / "config.toml"
    config_file.write_text("[briefing]\nmodel = \"m\"\ntop_k = 0\n", encoding="utf-8")

    result, exit_code, _ = check_config(config_file)

    assert exit_code == 3
    assert result["error"]["type"] == "validation_error"
    assert any(detail["loc"] == "briefing.top_k" for detail in result["error"]["details"])


def test_explain_config_walks_nested_models() -> None:
    fields = {field["name"]: field for field in explain_config()}

    assert fields["briefing.top_k"]["default"] == 3
    assert fields["briefing.model"]["required"] is True
    assert fields["llms[].reasoning_effort"]["default"] == "minimal"
    assert fields["web.auth.header_name"]["default"] == "X-Api-Token"
    assert fields["storage.reports_dir"]["default"] == "reports"
