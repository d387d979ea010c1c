"""Pydantic configuration models for tangerine-report.

Usage:
    from tangerine_report.core.config import get_config

    config = get_config()
    print(config.database.base_db)
    print(config.validation.earliest_start)
"""

import logging
from datetime import time
from pathlib import Path
from typing import Any, Self
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

logger = logging.getLogger(__name__)


class DatabaseConfig(BaseModel):
    """CouchDB connection settings.

    Attributes:
        base_db: URL of the database holding assessments, workflows and results.
        result_db: URL of the database receiving header sets and processed results.
        timeout: HTTP timeout in seconds for store requests.

    """

    model_config = ConfigDict(frozen=True)

    base_db: str = Field(
        default="http://localhost:5984/tangerine",
        description="Source database URL",
    )
    result_db: str = Field(
        default="http://localhost:5984/tangerine_results",
        description="Result database URL",
    )
    timeout: float = Field(default=30.0, gt=0, description="HTTP timeout in seconds")


class EngineConfig(BaseModel):
    """Flattening engine settings.

    Attributes:
        time_zone: Default IANA time zone for results without ``groupTimeZone``.
        time_format: strftime format for timestamp cell values.
        strict_prototypes: Raise on unknown prototype tags instead of skipping.

    """

    model_config = ConfigDict(frozen=True)

    time_zone: str = Field(default="UTC", description="Default IANA time zone")
    time_format: str = Field(default="%H:%M", description="Timestamp cell format")
    strict_prototypes: bool = Field(
        default=False,
        description="Reject unknown prototype tags instead of skipping them",
    )

    @field_validator("time_zone")
    @classmethod
    def validate_time_zone(cls, v: str) -> str:
        """Ensure the configured zone is known to the zoneinfo database."""
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"Unknown time zone: {v}") from e
        return v


class ValidationWindowConfig(BaseModel):
    """Time window a result must fall within to be flagged valid.

    Attributes:
        earliest_start: Earliest local time the first subtest may start.
        latest_end: Latest local time the last subtest may end.
        weekdays_only: Reject results captured on Saturday or Sunday.
        min_duration_minutes: Minimum minutes between first and last timestamp.

    """

    model_config = ConfigDict(frozen=True)

    earliest_start: time = Field(default=time(7, 0))
    latest_end: time = Field(default=time(15, 15))
    weekdays_only: bool = True
    min_duration_minutes: int = Field(default=20, ge=0)

    @field_validator("earliest_start", "latest_end", mode="before")
    @classmethod
    def coerce_sexagesimal(cls, v: Any) -> Any:
        """PyYAML reads unquoted ``15:15`` as the base-60 integer 915."""
        if isinstance(v, int) and not isinstance(v, bool):
            hours, minutes = divmod(v, 60)
            return time(hours, minutes)
        return v

    @model_validator(mode="after")
    def validate_window(self) -> Self:
        """Window must not be inverted."""
        if self.latest_end <= self.earliest_start:
            raise ValueError(
                f"latest_end ({self.latest_end}) must be after "
                f"earliest_start ({self.earliest_start})"
            )
        return self


class ServerConfig(BaseModel):
    """HTTP server settings.

    Attributes:
        host: Bind address.
        port: Bind port.
        export_dir: Directory /generate_csv writes into; request paths are
            resolved relative to it.

    """

    model_config = ConfigDict(frozen=True)

    host: str = "127.0.0.1"
    port: int = Field(default=5555, ge=1, le=65535)
    export_dir: Path = Path("exports")


class ChangesConfig(BaseModel):
    """Change-feed follower settings.

    Attributes:
        since: Sequence to start from ("now" skips history).
        poll_timeout_ms: Long-poll timeout passed to CouchDB.
        retry_delay: Seconds to wait after a failed poll.

    """

    model_config = ConfigDict(frozen=True)

    since: str = "now"
    poll_timeout_ms: int = Field(default=60000, ge=1000)
    retry_delay: float = Field(default=5.0, ge=0)


class ReportConfig(BaseModel):
    """Root configuration for tangerine-report."""

    model_config = ConfigDict(frozen=True)

    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    engine: EngineConfig = Field(default_factory=EngineConfig)
    validation: ValidationWindowConfig = Field(default_factory=ValidationWindowConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    changes: ChangesConfig = Field(default_factory=ChangesConfig)

    @field_validator("database", "engine", "validation", "server", "changes", mode="before")
    @classmethod
    def coerce_none_to_defaults(cls, v: Any) -> Any:
        """YAML parses empty sections as None."""
        if v is None:
            return {}
        return v
