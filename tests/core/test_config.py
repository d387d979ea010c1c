"""Tests for configuration models and the config singleton."""

from datetime import time
from pathlib import Path

import pytest
from pydantic import ValidationError

from tangerine_report.core.config import (
    DEFAULT_CONFIG_FILE,
    ReportConfig,
    _reset_config,
    get_config,
    load_config,
)
from tangerine_report.core.config.models import (
    ChangesConfig,
    EngineConfig,
    ValidationWindowConfig,
)
from tangerine_report.core.exceptions import ConfigError


class TestDefaults:
    """Default values of every section."""

    def test_report_config_defaults(self) -> None:
        """All sections are populated with defaults."""
        config = ReportConfig()
        assert config.database.base_db == "http://localhost:5984/tangerine"
        assert config.database.result_db == "http://localhost:5984/tangerine_results"
        assert config.engine.time_zone == "UTC"
        assert config.engine.time_format == "%H:%M"
        assert config.engine.strict_prototypes is False
        assert config.server.port == 5555
        assert config.server.export_dir == Path("exports")
        assert config.changes.since == "now"

    def test_validation_window_defaults(self) -> None:
        """School hours default to 07:00-15:15 on weekdays, 20 minutes minimum."""
        window = ValidationWindowConfig()
        assert window.earliest_start == time(7, 0)
        assert window.latest_end == time(15, 15)
        assert window.weekdays_only is True
        assert window.min_duration_minutes == 20

    def test_models_are_frozen(self) -> None:
        """Config models reject mutation."""
        config = ReportConfig()
        with pytest.raises(ValidationError):
            config.engine.time_zone = "Africa/Nairobi"  # type: ignore[misc]


class TestValidators:
    """Field and model validators."""

    def test_unknown_time_zone_rejected(self) -> None:
        """Time zones must exist in the zoneinfo database."""
        with pytest.raises(ValidationError, match="Unknown time zone"):
            EngineConfig(time_zone="Mars/Olympus_Mons")

    def test_known_time_zone_accepted(self) -> None:
        """IANA zone names validate."""
        assert EngineConfig(time_zone="Africa/Nairobi").time_zone == "Africa/Nairobi"

    def test_sexagesimal_yaml_time_coerced(self) -> None:
        """YAML reads unquoted 15:15 as 915; it becomes 15:15 again."""
        window = ValidationWindowConfig(earliest_start=420, latest_end=915)
        assert window.earliest_start == time(7, 0)
        assert window.latest_end == time(15, 15)

    def test_string_times_accepted(self) -> None:
        """Quoted HH:MM strings parse as times."""
        window = ValidationWindowConfig(earliest_start="06:30", latest_end="13:00")
        assert window.earliest_start == time(6, 30)

    def test_inverted_window_rejected(self) -> None:
        """latest_end must be after earliest_start."""
        with pytest.raises(ValidationError, match="must be after"):
            ValidationWindowConfig(earliest_start=time(12, 0), latest_end=time(8, 0))

    def test_poll_timeout_lower_bound(self) -> None:
        """Long-poll timeouts below one second are rejected."""
        with pytest.raises(ValidationError):
            ChangesConfig(poll_timeout_ms=10)

    def test_none_section_uses_defaults(self) -> None:
        """An empty YAML section (None) falls back to defaults."""
        config = ReportConfig.model_validate({"engine": None})
        assert config.engine == EngineConfig()


class TestLoadConfig:
    """load_config / get_config / _reset_config."""

    def test_load_from_dict(self) -> None:
        """A mapping is validated and installed as the singleton."""
        config = load_config({"engine": {"time_zone": "Africa/Nairobi"}})
        assert config.engine.time_zone == "Africa/Nairobi"
        assert get_config() is config

    def test_load_from_yaml_file(self, tmp_path: Path) -> None:
        """YAML files are parsed, unquoted times included."""
        path = tmp_path / "config.yaml"
        path.write_text(
            "database:\n"
            "  base_db: http://couch:5984/group-a\n"
            "validation:\n"
            "  earliest_start: 8:00\n"
            "  latest_end: 15:15\n",
            encoding="utf-8",
        )
        config = load_config(path)
        assert config.database.base_db == "http://couch:5984/group-a"
        assert config.validation.earliest_start == time(8, 0)
        assert config.validation.latest_end == time(15, 15)

    def test_missing_file_raises_config_error(self, tmp_path: Path) -> None:
        """An explicit path that does not exist is a ConfigError."""
        with pytest.raises(ConfigError, match="not found"):
            load_config(tmp_path / "missing.yaml")

    def test_invalid_yaml_raises_config_error(self, tmp_path: Path) -> None:
        """Broken YAML is reported as ConfigError."""
        path = tmp_path / "broken.yaml"
        path.write_text("engine: [unclosed\n", encoding="utf-8")
        with pytest.raises(ConfigError, match="Invalid YAML"):
            load_config(path)

    def test_non_mapping_raises_config_error(self, tmp_path: Path) -> None:
        """Top-level YAML must be a mapping."""
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n", encoding="utf-8")
        with pytest.raises(ConfigError, match="mapping"):
            load_config(path)

    def test_invalid_values_raise_config_error(self) -> None:
        """Validation errors are wrapped in ConfigError."""
        with pytest.raises(ConfigError, match="Invalid configuration"):
            load_config({"server": {"port": 0}})

    def test_default_file_in_working_directory(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Without a source, ./tangerine-report.yaml is used when present."""
        (tmp_path / DEFAULT_CONFIG_FILE).write_text("server:\n  port: 8080\n", encoding="utf-8")
        monkeypatch.chdir(tmp_path)
        assert load_config().server.port == 8080

    def test_defaults_without_file(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """Without a source or default file, defaults are loaded."""
        monkeypatch.chdir(tmp_path)
        assert get_config() == ReportConfig()

    def test_reset_forgets_config(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """_reset_config makes the next get_config reload."""
        monkeypatch.chdir(tmp_path)
        loaded = load_config({"server": {"port": 9000}})
        _reset_config()
        assert get_config() is not loaded
        assert get_config().server.port == 5555
