"""
Tests for logging setup and the command line interface.
"""

import logging

import pytest

from main import main, setup_logging
from utils import DB_URL_ENV_VAR


@pytest.fixture(autouse=True)
def reset_root_logger():
    """Restore root logger handlers after each test."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers = handlers
    root.setLevel(level)


class TestSetupLogging:
    """Test setup_logging function."""

    def test_basic_logging_config(self):
        setup_logging({"logging": {"level": "WARNING"}})

        root = logging.getLogger()
        assert root.level == logging.WARNING
        assert any(isinstance(h, logging.StreamHandler) for h in root.handlers)

    def test_file_logging_enabled(self, tmp_path):
        log_file = tmp_path / "logs" / "budget.log"

        setup_logging({"logging": {"level": "INFO", "file": str(log_file)}})
        logging.getLogger("budget.test").info("hello file")

        file_handlers = [h for h in logging.getLogger().handlers if isinstance(h, logging.FileHandler)]
        assert len(file_handlers) == 1
        file_handlers[0].flush()
        assert "hello file" in log_file.read_text()

    def test_unknown_level_falls_back_to_info(self):
        setup_logging({"logging": {"level": "LOUD"}})

        assert logging.getLogger().level == logging.INFO

    def test_missing_section_uses_defaults(self):
        setup_logging({})

        assert logging.getLogger().level == logging.INFO


class TestCommandLine:
    """Tests for the main entry point."""

    @pytest.fixture
    def cli_env(self, monkeypatch, tmp_path):
        monkeypatch.setenv(DB_URL_ENV_VAR, f"sqlite:///{(tmp_path / 'cli.db').as_posix()}")
        config_path = tmp_path / "config.yaml"
        config_path.write_text(f"database:\n  data_dir: {tmp_path.as_posix()}\n")
        return ["--config", str(config_path)]

    def test_no_command_prints_help(self, capsys):
        assert main([]) == 1
        assert "usage" in capsys.readouterr().out

    def test_init_db(self, cli_env, capsys, tmp_path):
        assert main(cli_env + ["init-db"]) == 0
        assert "Database initialized" in capsys.readouterr().out
        assert (tmp_path / "cli.db").exists()

    def test_rta_on_empty_budget(self, cli_env, capsys):
        assert main(cli_env + ["rta", "2999-01"]) == 0
        assert "Ready to Assign (2999-01): 0.00" in capsys.readouterr().out

    def test_rta_breakdown(self, cli_env, capsys):
        assert main(cli_env + ["rta", "2999-01", "--breakdown"]) == 0
        assert "Left over from previous month" in capsys.readouterr().out

    def test_invalid_month_fails(self, cli_env, capsys):
        assert main(cli_env + ["move", "1", "2", "2024-13", "5"]) == 1
        assert "Invalid month" in capsys.readouterr().err

    def test_assign_unknown_category_fails(self, cli_env, capsys):
        assert main(cli_env + ["assign", "99", "2024-06", "12.50"]) == 1
        assert "Category not found" in capsys.readouterr().err

    def test_bad_config_fails(self, tmp_path, capsys):
        config_path = tmp_path / "config.yaml"
        config_path.write_text("database: [unclosed")

        assert main(["--config", str(config_path), "init-db"]) == 1
        assert "Error loading config" in capsys.readouterr().err
