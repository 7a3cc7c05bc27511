"""Tests for configuration loading and logging setup."""

import logging

import pytest

from famledger.config import DEFAULT_CONFIG, ConfigError, load_config, save_config, setup_logging


def test_missing_file_yields_defaults(tmp_path):
    config = load_config(tmp_path / "nope.yaml")
    assert config == DEFAULT_CONFIG
    config["currency"]["symbol"] = "$"
    assert DEFAULT_CONFIG["currency"]["symbol"] == "€"


def test_env_var_points_at_config(tmp_path, monkeypatch):
    path = tmp_path / "custom.yaml"
    path.write_text("recurring:\n  max_days_overdue: 3\n", encoding="utf-8")
    monkeypatch.setenv("FAMLEDGER_CONFIG", str(path))

    config = load_config()
    assert config["recurring"]["max_days_overdue"] == 3


def test_file_values_merge_over_defaults(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("logging:\n  level: DEBUG\ndatabase:\n  path: /tmp/family.db\n", encoding="utf-8")

    config = load_config(path)

    assert config["logging"]["level"] == "DEBUG"
    assert config["logging"]["format"] == DEFAULT_CONFIG["logging"]["format"]
    assert config["database"]["path"] == "/tmp/family.db"
    assert config["currency"]["symbol"] == "€"


def test_save_then_load(tmp_path):
    path = tmp_path / "nested" / "config.yaml"
    config = load_config(path)
    config["currency"]["symbol"] = "CHF"
    save_config(config, path)
    assert load_config(path)["currency"]["symbol"] == "CHF"


@pytest.mark.parametrize("content", ["logging: [unclosed", "- just\n- a list\n"])
def test_invalid_file_raises_config_error(tmp_path, content):
    path = tmp_path / "config.yaml"
    path.write_text(content, encoding="utf-8")
    with pytest.raises(ConfigError, match="Invalid configuration file"):
        load_config(path)


def test_setup_logging_sets_level_and_file(tmp_path):
    log_file = tmp_path / "logs" / "famledger.log"
    setup_logging({"logging": {"level": "debug", "file": str(log_file)}})
    try:
        root = logging.getLogger()
        assert root.level == logging.DEBUG
        assert any(isinstance(h, logging.FileHandler) for h in root.handlers)
        assert log_file.parent.is_dir()
    finally:
        setup_logging(DEFAULT_CONFIG)


def test_setup_logging_rejects_unknown_level():
    with pytest.raises(ConfigError, match="Unknown log level"):
        setup_logging({"logging": {"level": "chatty"}})
