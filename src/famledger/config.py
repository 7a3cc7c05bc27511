"""Configuration loading and logging setup for famledger.

Configuration lives in a YAML file (``~/.famledger/config.yaml`` unless
FAMLEDGER_CONFIG points elsewhere). Values from the file are merged over
DEFAULT_CONFIG, so a missing file simply yields the defaults.
"""

import copy
import logging
import os
import sys
from pathlib import Path
from typing import Any, Optional

import yaml

logger = logging.getLogger(__name__)

DEFAULT_CONFIG: dict[str, Any] = {
    "database": {
        "path": None,
    },
    "logging": {
        "level": "WARNING",
        "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        "file": None,
    },
    "currency": {
        "symbol": "€",
        "locale": "it",
    },
    "recurring": {
        "max_days_overdue": 7,
    },
}

CONFIG_ENV_VAR = "FAMLEDGER_CONFIG"


class ConfigError(ValueError):
    """Configuration file could not be read or is invalid."""


def default_config_path() -> Path:
    """Return the config file path, honoring FAMLEDGER_CONFIG."""
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        return Path(env_path).expanduser()
    return Path.home() / ".famledger" / "config.yaml"


def _merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_config(config_path: Optional[str | Path] = None) -> dict[str, Any]:
    """Load configuration from a YAML file.

    Args:
        config_path: Path to the YAML file. If None, uses default_config_path().

    Returns:
        Configuration dictionary with defaults for missing values

    Raises:
        ConfigError: If the file exists but is not a valid YAML mapping
    """
    path = Path(config_path).expanduser() if config_path is not None else default_config_path()
    if not path.exists():
        logger.debug("No config file at %s, using defaults", path)
        return copy.deepcopy(DEFAULT_CONFIG)

    try:
        with open(path, "r", encoding="utf-8") as f:
            loaded = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid configuration file '{path}': {e}") from e

    if not isinstance(loaded, dict):
        raise ConfigError(f"Invalid configuration file '{path}': expected a mapping")

    logger.info("Configuration loaded from %s", path)
    return _merge(DEFAULT_CONFIG, loaded)


def save_config(config: dict[str, Any], config_path: Optional[str | Path] = None) -> Path:
    """Write configuration back to YAML, creating the parent directory."""
    path = Path(config_path).expanduser() if config_path is not None else default_config_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        yaml.safe_dump(config, f, default_flow_style=False, allow_unicode=True)
    logger.info("Configuration saved to %s", path)
    return path


def setup_logging(config: dict[str, Any]) -> None:
    """Configure logging based on config settings.

    Args:
        config: Configuration dictionary with logging settings
    """
    log_config = config.get("logging", {})
    level_name = str(log_config.get("level") or "WARNING").upper()
    log_level = getattr(logging, level_name, None)
    if not isinstance(log_level, int):
        raise ConfigError(f"Unknown log level '{level_name}'")
    log_format = log_config.get("format") or DEFAULT_CONFIG["logging"]["format"]
    log_file = log_config.get("file")

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if log_file:
        log_path = Path(log_file).expanduser()
        try:
            log_path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise ConfigError(f"Unable to prepare log file path '{log_file}': {exc}") from exc
        handlers.append(logging.FileHandler(log_path))

    logging.basicConfig(level=log_level, format=log_format, handlers=handlers, force=True)
