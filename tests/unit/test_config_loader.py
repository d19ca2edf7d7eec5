"""Unit tests for planning_engine.config_loader."""

import json
from pathlib import Path

import pytest

from planning_engine.config_loader import Config, env_overrides, load_config, read_document
from planning_engine.exceptions import ConfigError

pytestmark = pytest.mark.unit


class TestConfigFromDict:
    """Tests for Config.from_dict."""

    def test_from_dict_when_empty_then_defaults(self) -> None:
        """Test default values."""
        cfg = Config.from_dict({})

        assert cfg == Config()
        assert cfg.max_expansion_iterations == 10_000
        assert cfg.week_start == "MO"
        assert cfg.include_cancelled is False
        assert cfg.default_window_days == 42
        assert cfg.log_level == "INFO"

    def test_from_dict_when_strings_then_coerced(self) -> None:
        """Test string values from env or files are coerced."""
        cfg = Config.from_dict(
            {
                "max_expansion_iterations": "500",
                "week_start": "su",
                "include_cancelled": "yes",
                "default_window_days": 7,
                "log_level": "debug",
            }
        )

        assert cfg.max_expansion_iterations == 500
        assert cfg.week_start == "SU"
        assert cfg.week_start_index == 6
        assert cfg.include_cancelled is True
        assert cfg.default_window_days == 7
        assert cfg.log_level == "DEBUG"

    @pytest.mark.parametrize(
        "data,field,expected",
        [
            ({"max_expansion_iterations": "lots"}, "max_expansion_iterations", 10_000),
            ({"max_expansion_iterations": 0}, "max_expansion_iterations", 10_000),
            ({"default_window_days": -3}, "default_window_days", 42),
            ({"week_start": "monday"}, "week_start", "MO"),
            ({"include_cancelled": "maybe"}, "include_cancelled", False),
        ],
    )
    def test_from_dict_when_invalid_then_default_and_warning(
        self, caplog: pytest.LogCaptureFixture, data, field: str, expected
    ) -> None:
        """Test bad values fall back to defaults with a warning."""
        cfg = Config.from_dict(data)

        assert getattr(cfg, field) == expected
        assert any(record.levelname == "WARNING" for record in caplog.records)

    def test_from_dict_when_unknown_keys_then_warns(self, caplog: pytest.LogCaptureFixture) -> None:
        """Test unknown keys are reported."""
        Config.from_dict({"sources": []})

        assert "sources" in caplog.text

    def test_to_dict_round_trips(self) -> None:
        """Test to_dict feeds back into from_dict."""
        cfg = Config(week_start="SU", include_cancelled=True)

        assert Config.from_dict(cfg.to_dict()) == cfg


class TestLoadConfig:
    """Tests for load_config."""

    def test_load_config_when_default_file_missing_then_defaults(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Test a missing ./planning_engine.yaml is not an error."""
        monkeypatch.chdir(tmp_path)

        assert load_config(environ={}) == Config()

    def test_load_config_when_explicit_file_missing_then_config_error(self, tmp_path: Path) -> None:
        """Test a named file that does not exist is rejected."""
        with pytest.raises(ConfigError, match="not found"):
            load_config(tmp_path / "absent.yaml", environ={})

    def test_load_config_when_default_file_present_then_read(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Test the working-directory file is picked up."""
        (tmp_path / "planning_engine.yaml").write_text("default_window_days: 14\n")
        monkeypatch.chdir(tmp_path)

        assert load_config(environ={}).default_window_days == 14

    def test_load_config_when_yaml_then_values_read(self, tmp_path: Path) -> None:
        """Test YAML configuration."""
        path = tmp_path / "planning.yaml"
        path.write_text("max_expansion_iterations: 250\ninclude_cancelled: true\n")

        cfg = load_config(path, environ={})

        assert cfg.max_expansion_iterations == 250
        assert cfg.include_cancelled is True

    def test_load_config_when_json_then_values_read(self, tmp_path: Path) -> None:
        """Test JSON configuration."""
        path = tmp_path / "planning.json"
        path.write_text(json.dumps({"week_start": "SU"}))

        assert load_config(str(path), environ={}).week_start == "SU"

    def test_load_config_when_empty_yaml_then_defaults(self, tmp_path: Path) -> None:
        """Test an empty file behaves like an empty mapping."""
        path = tmp_path / "empty.yaml"
        path.write_text("")

        assert load_config(path, environ={}) == Config()

    def test_load_config_when_top_level_list_then_config_error(self, tmp_path: Path) -> None:
        """Test a non-mapping document is rejected."""
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n")

        with pytest.raises(ConfigError):
            load_config(path, environ={})

    def test_load_config_when_unparseable_then_config_error(self, tmp_path: Path) -> None:
        """Test syntax errors surface as ConfigError."""
        path = tmp_path / "broken.json"
        path.write_text("{not json")

        with pytest.raises(ConfigError):
            load_config(path, environ={})

    def test_load_config_when_env_set_then_env_wins(self, tmp_path: Path) -> None:
        """Test environment overrides beat file values."""
        path = tmp_path / "planning.yaml"
        path.write_text("max_expansion_iterations: 250\nweek_start: MO\n")
        environ = {
            "PLANNING_MAX_EXPANSION_ITERATIONS": "99",
            "PLANNING_WEEK_START": "SU",
            "PLANNING_INCLUDE_CANCELLED": "1",
            "PLANNING_LOG_LEVEL": "warning",
        }

        cfg = load_config(path, environ=environ)

        assert cfg.max_expansion_iterations == 99
        assert cfg.week_start == "SU"
        assert cfg.include_cancelled is True
        assert cfg.log_level == "WARNING"

    def test_load_config_when_os_environ_then_used_by_default(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Test os.environ is read when no mapping is passed."""
        monkeypatch.setenv("PLANNING_INCLUDE_CANCELLED", "true")
        monkeypatch.chdir(tmp_path)

        assert load_config().include_cancelled is True


class TestHelpers:
    """Tests for env_overrides and read_document."""

    def test_env_overrides_when_empty_values_then_ignored(self) -> None:
        """Test blank variables do not override."""
        assert env_overrides({"PLANNING_WEEK_START": "", "OTHER": "x"}) == {}

    def test_read_document_when_yaml_list_then_returned(self, tmp_path: Path) -> None:
        """Test read_document returns any YAML value."""
        path = tmp_path / "events.yml"
        path.write_text("- id: a\n")

        assert read_document(path) == [{"id": "a"}]
