"""planning_engine.config_loader

Config loader for planning_engine.

- Reads YAML (PyYAML) or JSON, chosen by file suffix.
- Exposes a typed dataclass `Config`, a `load_config()` helper that accepts an
  optional path override, and `PLANNING_*` environment overrides.
"""

from __future__ import annotations

import json
import logging
import os
from collections.abc import Mapping
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any

import yaml

from .calendar.models import Weekday
from .calendar.recurrence_expander import DEFAULT_MAX_ITERATIONS
from .exceptions import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path("planning_engine.yaml")

_TRUTHY = ("1", "true", "yes", "on")
_FALSY = ("0", "false", "no", "off")

# env var -> config key
ENV_OVERRIDES = {
    "PLANNING_MAX_EXPANSION_ITERATIONS": "max_expansion_iterations",
    "PLANNING_WEEK_START": "week_start",
    "PLANNING_INCLUDE_CANCELLED": "include_cancelled",
    "PLANNING_LOG_LEVEL": "log_level",
}


@dataclass
class Config:
    """Typed configuration for planning_engine.

    Fields:
        max_expansion_iterations: period cap for one recurrence expansion
        week_start: two-letter weekday code the calendar grid starts on
        include_cancelled: project cancelled events instead of suppressing them
        default_window_days: window length the CLI uses when no end is given
        log_level: logging level name
    """

    max_expansion_iterations: int = DEFAULT_MAX_ITERATIONS
    week_start: str = Weekday.MO.value
    include_cancelled: bool = False
    default_window_days: int = 42
    log_level: str = "INFO"

    @property
    def week_start_index(self) -> int:
        return Weekday.from_code(self.week_start).iso_index

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> Config:
        """Create Config from a plain mapping, applying defaults and validation.

        Numeric-like values are coerced to int and booleans accept the usual
        string spellings. Invalid values fall back to defaults with a warning.
        """
        if data is None:
            data = {}

        unknown = sorted(set(data) - set(cls.__dataclass_fields__))
        if unknown:
            logger.warning("Ignoring unknown config keys: %s", ", ".join(unknown))

        def _coerce_int(key: str, default: int, minimum: int = 1) -> int:
            raw = data.get(key, default)
            try:
                value = int(raw)
            except (TypeError, ValueError):
                logger.warning("Config %s=%r is not an int; using default %d", key, raw, default)
                return default
            if value < minimum:
                logger.warning("Config %s=%d below minimum %d; using default %d", key, value, minimum, default)
                return default
            return value

        max_iterations = _coerce_int("max_expansion_iterations", DEFAULT_MAX_ITERATIONS)
        window_days = _coerce_int("default_window_days", 42)

        week_start = str(data.get("week_start", Weekday.MO.value)).strip().upper()
        try:
            Weekday.from_code(week_start)
        except ValueError:
            logger.warning("Config week_start=%r is not a weekday code; using MO", week_start)
            week_start = Weekday.MO.value

        include_cancelled = _coerce_bool(data.get("include_cancelled", False), "include_cancelled")

        log_level = data.get("log_level", "INFO")
        log_level = str(log_level).upper() if log_level is not None else "INFO"

        return cls(
            max_expansion_iterations=max_iterations,
            week_start=week_start,
            include_cancelled=include_cancelled,
            default_window_days=window_days,
            log_level=log_level,
        )


def _coerce_bool(raw: Any, key: str) -> bool:
    if isinstance(raw, bool):
        return raw
    text = str(raw).strip().lower()
    if text in _TRUTHY:
        return True
    if text in _FALSY:
        return False
    logger.warning("Config %s=%r is not a boolean; using False", key, raw)
    return False


def env_overrides(environ: Mapping[str, str] | None = None) -> dict[str, str]:
    """Collect config values from PLANNING_* environment variables."""
    environ = os.environ if environ is None else environ
    overrides = {}
    for env_key, config_key in ENV_OVERRIDES.items():
        value = environ.get(env_key)
        if value:
            overrides[config_key] = value
    if overrides:
        logger.debug("Config overrides from environment: %s", ", ".join(sorted(overrides)))
    return overrides


def read_document(path: Path) -> Any:
    """Load a YAML or JSON document; ``.json`` files are parsed as JSON."""
    text = path.read_text(encoding="utf-8")
    try:
        if path.suffix.lower() == ".json":
            return json.loads(text) if text.strip() else {}
        loaded = yaml.safe_load(text)
    except (json.JSONDecodeError, yaml.YAMLError) as exc:
        raise ConfigError(f"Unable to parse {path}: {exc}") from exc
    # safe_load returns None for empty files
    return {} if loaded is None else loaded


def load_config(
    path: str | Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> Config:
    """Load configuration from a YAML/JSON file and return a Config instance.

    Args:
        path: Optional path to the config file. Defaults to
              ./planning_engine.yaml (relative to current working dir).
        environ: Environment mapping for overrides (defaults to os.environ)

    Returns:
        Config dataclass instance with values from file, environment or defaults.

    Raises:
        ConfigError: If an explicitly given file does not exist, or the file
                     cannot be parsed or its top level is not a mapping
    """
    p = Path(path) if path else Path.cwd() / DEFAULT_CONFIG_PATH
    logger.debug("Attempting to load config from %s", p)

    raw: dict[str, Any] = {}
    if not p.exists():
        if path:
            raise ConfigError(f"Config file {p} not found")
        logger.info("Config file %s not found; using defaults", p)
    else:
        loaded = read_document(p)
        if not isinstance(loaded, dict):
            logger.warning("Config file %s parsed but top-level is not a mapping: %r", p, loaded)
            raise ConfigError("Config file must contain a mapping at top level")
        raw.update(loaded)
        logger.info("Loaded configuration from %s", p)

    raw.update(env_overrides(environ))
    cfg = Config.from_dict(raw)
    logger.debug("Configuration values: %s", cfg)
    return cfg
