"""Configuration loading for tangerine-report.

Configuration lives in ``tangerine-report.yaml``. It is loaded once into a
module-level singleton; tests reset it with ``_reset_config()``.

Usage:
    from tangerine_report.core.config import load_config, get_config

    load_config(Path("tangerine-report.yaml"))
    config = get_config()
"""

import logging
from pathlib import Path
from threading import Lock
from typing import Any

import yaml
from pydantic import ValidationError

from tangerine_report.core.config.models import (
    ChangesConfig,
    DatabaseConfig,
    EngineConfig,
    ReportConfig,
    ServerConfig,
    ValidationWindowConfig,
)
from tangerine_report.core.exceptions import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = "tangerine-report.yaml"

_config: ReportConfig | None = None
_config_lock = Lock()


def _read_yaml(path: Path) -> dict[str, Any]:
    try:
        with path.open(encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except OSError as e:
        raise ConfigError(f"Cannot read config file {path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a mapping at top level")
    return data


def load_config(source: Path | dict[str, Any] | None = None) -> ReportConfig:
    """Load configuration and install it as the process-wide config.

    Args:
        source: Path to a YAML file, an already-parsed mapping, or None to
            use ``tangerine-report.yaml`` in the working directory when
            present and defaults otherwise.

    Returns:
        The loaded ReportConfig.

    Raises:
        ConfigError: If the file cannot be read or fails validation.

    """
    global _config

    if source is None:
        default_path = Path(DEFAULT_CONFIG_FILE)
        data = _read_yaml(default_path) if default_path.is_file() else {}
    elif isinstance(source, Path):
        if not source.is_file():
            raise ConfigError(f"Config file not found: {source}")
        data = _read_yaml(source)
    else:
        data = source

    try:
        config = ReportConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration: {e}") from e

    with _config_lock:
        _config = config
    logger.debug("Loaded config: base_db=%s result_db=%s", config.database.base_db, config.database.result_db)
    return config


def get_config() -> ReportConfig:
    """Return the loaded config, loading defaults on first access."""
    with _config_lock:
        if _config is not None:
            return _config
    return load_config()


def _reset_config() -> None:
    """Forget the loaded config. Used by tests for isolation."""
    global _config
    with _config_lock:
        _config = None


__all__ = [
    "DEFAULT_CONFIG_FILE",
    "ChangesConfig",
    "DatabaseConfig",
    "EngineConfig",
    "ReportConfig",
    "ServerConfig",
    "ValidationWindowConfig",
    "_reset_config",
    "get_config",
    "load_config",
]
