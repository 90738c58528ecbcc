"""Tests for the config loader module."""

from pathlib import Path

import pytest
import yaml

from chatrelay.config_loader import (
    _substitute_env_vars,
    load_config,
    load_env_values,
    resolve_config_path,
    resolve_env_path,
)


def _write_yaml(path: Path, data: dict) -> Path:
    path.write_text(yaml.safe_dump(data), encoding="utf-8")
    return path


class TestLoadConfig:
    """Tests for loading configuration from YAML files."""

    def test_loads_simple_config(self, tmp_path: Path):
        """Test loading a simple configuration."""
        config_file = _write_yaml(tmp_path / "config.yaml", {"models": {"gpt-4o-mini": "25865"}})
        assert load_config(str(config_file)) == {"models": {"gpt-4o-mini": "25865"}}

    def test_raises_error_for_missing_explicit_config(self):
        """Test that error is raised for a missing config file that was asked for."""
        with pytest.raises(RuntimeError, match="Config file not found"):
            load_config("/nonexistent/path/config.yaml")

    def test_raises_error_for_missing_env_selected_config(self, monkeypatch):
        monkeypatch.setenv("CHATRELAY_CONFIG", "/nonexistent/path/config.yaml")
        with pytest.raises(RuntimeError, match="Config file not found"):
            load_config()

    def test_env_var_selects_config(self, tmp_path: Path, monkeypatch):
        config_file = _write_yaml(tmp_path / "picked.yaml", {"debug": True})
        monkeypatch.setenv("CHATRELAY_CONFIG", str(config_file))
        assert load_config() == {"debug": True}

    def test_empty_file_is_empty_config(self, tmp_path: Path):
        config_file = tmp_path / "empty.yaml"
        config_file.write_text("", encoding="utf-8")
        assert load_config(str(config_file)) == {}

    def test_shipped_default_config(self, monkeypatch):
        """Test that the bundled default config parses with secrets unset."""
        monkeypatch.delenv("CHATRELAY_CONFIG", raising=False)
        for name in ("API_KEY", "COOKIE", "AJAX_NONCE", "SESSION_ID", "POST_ID"):
            monkeypatch.delenv(name, raising=False)

        config = load_config()
        assert config["api_key"] == ""
        assert config["site"]["cookie"] == ""
        assert len(config["models"]) == 8
        assert config["relay"]["virtual_models"]["kimi-for-coding-thinking"]["flags"] == {"thinking": True}

    def test_substitutes_environment_variables(self, tmp_path: Path, monkeypatch):
        """Test that environment variables are substituted."""
        monkeypatch.setenv("TEST_COOKIE", "wordpress_logged_in=xyz")
        config_file = _write_yaml(tmp_path / "config.yaml", {"site": {"cookie": "${TEST_COOKIE}"}})
        assert load_config(str(config_file))["site"]["cookie"] == "wordpress_logged_in=xyz"

    def test_skips_substitution_when_disabled(self, tmp_path: Path, monkeypatch):
        monkeypatch.setenv("TEST_COOKIE", "value")
        config_file = _write_yaml(tmp_path / "config.yaml", {"site": {"cookie": "${TEST_COOKIE}"}})
        assert load_config(str(config_file), substitute_env=False)["site"]["cookie"] == "${TEST_COOKIE}"

    def test_env_file_beside_config(self, tmp_path: Path, monkeypatch):
        """Test that config_<name>.yaml picks up .env_<name> values."""
        monkeypatch.delenv("TEST_NONCE", raising=False)
        config_file = _write_yaml(tmp_path / "config_local.yaml", {"site": {"ajax_nonce": "${TEST_NONCE}"}})
        (tmp_path / ".env_local").write_text("TEST_NONCE=from-dotenv\n", encoding="utf-8")
        assert load_config(str(config_file))["site"]["ajax_nonce"] == "from-dotenv"

    def test_env_file_wins_over_process_env(self, tmp_path: Path, monkeypatch):
        monkeypatch.setenv("TEST_NONCE", "from-process")
        config_file = _write_yaml(tmp_path / "config.yaml", {"nonce": "${TEST_NONCE}"})
        (tmp_path / ".env").write_text("TEST_NONCE=from-dotenv\n", encoding="utf-8")
        assert load_config(str(config_file))["nonce"] == "from-dotenv"


class TestEnvPaths:
    """Tests for config and env file path resolution."""

    def test_absolute_path_is_kept(self, tmp_path: Path):
        assert resolve_config_path(str(tmp_path / "x.yaml")) == tmp_path / "x.yaml"

    def test_relative_path_is_project_relative(self):
        resolved = resolve_config_path("configs/config_default.yaml")
        assert resolved.is_absolute()
        assert resolved.parts[-2:] == ("configs", "config_default.yaml")

    def test_env_path_follows_config_suffix(self, tmp_path: Path):
        assert resolve_env_path(tmp_path / "config_prod.yaml") == tmp_path / ".env_prod"
        assert resolve_env_path(tmp_path / "settings.yaml") == tmp_path / ".env"

    def test_explicit_env_path(self, tmp_path: Path):
        assert resolve_env_path(tmp_path / "config.yaml", str(tmp_path / "custom.env")) == tmp_path / "custom.env"

    def test_missing_env_file_is_empty(self, tmp_path: Path):
        assert load_env_values(tmp_path / ".env_missing") == {}


class TestSubstituteEnvVars:
    """Tests for environment variable substitution."""

    def test_braced_and_simple_syntax(self, monkeypatch):
        monkeypatch.setenv("CR_HOST", "example.com")
        monkeypatch.setenv("CR_PORT", "8443")
        assert _substitute_env_vars("https://${CR_HOST}:$CR_PORT/") == "https://example.com:8443/"

    def test_unset_variable_becomes_empty(self, monkeypatch):
        monkeypatch.delenv("CR_UNSET", raising=False)
        assert _substitute_env_vars("${CR_UNSET}") == ""

    def test_recurses_into_nested_structures(self, monkeypatch):
        monkeypatch.setenv("CR_MODEL", "25865")
        data = {"models": {"gpt-4o-mini": "${CR_MODEL}"}, "relay": {"models": ["${CR_MODEL}", 3]}}
        assert _substitute_env_vars(data) == {
            "models": {"gpt-4o-mini": "25865"},
            "relay": {"models": ["25865", 3]},
        }

    def test_explicit_values_take_priority(self, monkeypatch):
        monkeypatch.setenv("CR_KEY", "process")
        assert _substitute_env_vars("${CR_KEY}", {"CR_KEY": "dotenv"}) == "dotenv"
