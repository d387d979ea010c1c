"""Core infrastructure: exceptions and configuration."""

from tangerine_report.core.config import get_config, load_config
from tangerine_report.core.exceptions import (
    ConfigError,
    DocumentNotFoundError,
    MalformedInputError,
    StoreError,
    TangerineReportError,
    UnknownPrototypeError,
)

__all__ = [
    "ConfigError",
    "DocumentNotFoundError",
    "MalformedInputError",
    "StoreError",
    "TangerineReportError",
    "UnknownPrototypeError",
    "get_config",
    "load_config",
]
