"""
Unit tests for configuration loading, saving and path resolution.
"""

from pathlib import Path

import pytest
import yaml

from config_manager import DEFAULT_CONFIG, get_budget_setting, load_config, save_config
from exceptions import ConfigError
from utils import DB_URL_ENV_VAR, resolve_connection_string, resolve_log_path


class TestLoadConfig:
    """Tests for load_config."""

    def test_missing_file_returns_defaults(self, tmp_path):
        config = load_config(tmp_path / "missing.yaml")

        assert config == DEFAULT_CONFIG
        assert config is not DEFAULT_CONFIG

    def test_values_are_merged_over_defaults(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text(yaml.safe_dump({"budget": {"complete_month_threshold": 3}, "logging": {"level": "DEBUG"}}))

        config = load_config(path)

        assert config["budget"]["complete_month_threshold"] == 3
        assert config["budget"]["cc_payment_group_name"] == "Credit Card Payments"
        assert config["logging"]["level"] == "DEBUG"
        assert "format" in config["logging"]

    def test_empty_file_returns_defaults(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("")

        assert load_config(path) == DEFAULT_CONFIG

    def test_invalid_yaml_raises(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("budget: [unclosed")

        with pytest.raises(ConfigError) as exc_info:
            load_config(path)
        assert isinstance(exc_info.value.original_error, yaml.YAMLError)

    def test_non_mapping_root_raises(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("- just\n- a list\n")

        with pytest.raises(ConfigError, match="mapping"):
            load_config(path)


class TestSaveConfig:
    """Tests for save_config."""

    def test_save_preserves_existing_keys(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text(yaml.safe_dump({"database": {"path": "other.db"}, "custom": {"keep": True}}))

        assert save_config({"budget": {"reconcile_tolerance": 50}}, path)

        saved = yaml.safe_load(path.read_text())
        assert saved["custom"] == {"keep": True}
        assert saved["database"]["path"] == "other.db"
        assert saved["budget"]["reconcile_tolerance"] == 50

    def test_save_failure_returns_false(self, tmp_path):
        assert save_config({"a": 1}, tmp_path / "missing_dir" / "config.yaml") is False


class TestBudgetSettings:
    """Tests for get_budget_setting."""

    def test_falls_back_to_defaults(self):
        assert get_budget_setting(None, "complete_month_threshold") == 10
        assert get_budget_setting({"budget": None}, "reconcile_tolerance") == 10

    def test_reads_configured_value(self):
        assert get_budget_setting({"budget": {"cc_payment_group_name": "Cards"}}, "cc_payment_group_name") == "Cards"


class TestResolveConnectionString:
    """Tests for database connection string resolution."""

    def test_environment_variable_wins(self, monkeypatch, tmp_path):
        env_url = f"sqlite:///{(tmp_path / 'env' / 'budget.db').as_posix()}"
        monkeypatch.setenv(DB_URL_ENV_VAR, env_url)

        assert resolve_connection_string({"database": {"connection_string": "sqlite:///ignored.db"}}) == env_url
        assert (tmp_path / "env").is_dir()

    def test_configured_connection_string(self, monkeypatch):
        monkeypatch.delenv(DB_URL_ENV_VAR, raising=False)

        assert resolve_connection_string({"database": {"connection_string": "sqlite:///:memory:"}}) == "sqlite:///:memory:"

    def test_default_sqlite_file_in_data_dir(self, monkeypatch, tmp_path):
        monkeypatch.delenv(DB_URL_ENV_VAR, raising=False)

        url = resolve_connection_string({"database": {"data_dir": str(tmp_path / "data"), "path": "test.db"}})

        assert url == f"sqlite:///{(tmp_path / 'data' / 'test.db').as_posix()}"
        assert (tmp_path / "data").is_dir()


def test_resolve_log_path_creates_parent(tmp_path):
    log_path = resolve_log_path(str(tmp_path / "logs" / "budget.log"))

    assert log_path == Path(tmp_path / "logs" / "budget.log")
    assert log_path.parent.is_dir()
