"""
Central logging configuration for planning_engine.

Sets package logger levels so expansion traces stay quiet in normal runs while
warnings about skipped events and ignored exceptions remain visible.
"""

import logging
import os
from typing import Optional

ENGINE_LOGGERS = [
    "planning_engine",
    "planning_engine.calendar.rrule_parser",
    "planning_engine.calendar.recurrence_expander",
    "planning_engine.domain.event_filter",
    "planning_engine.domain.event_projector",
    "planning_engine.domain.calendar_aggregator",
    "planning_engine.config_loader",
]

_VALID_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


def configure_engine_logging(
    debug_mode: bool = False,
    force_debug: Optional[bool] = None,
    default_level: str = "INFO",
) -> None:
    """
    Configure logging levels for planning_engine modules.

    Args:
        debug_mode: Whether to enable debug logging for planning_engine modules
        force_debug: Override debug mode setting (None to use env var detection)
        default_level: Root level name used when debug is off (e.g. from config)

    Environment Variables:
        PLANNING_DEBUG: Set to '1', 'true', 'yes' to force debug logging
        PLANNING_LOG_LEVEL: Override root log level (DEBUG, INFO, WARNING, ERROR)
    """
    env_debug = os.getenv("PLANNING_DEBUG", "").lower() in ("1", "true", "yes")
    env_log_level = os.getenv("PLANNING_LOG_LEVEL", "").upper()

    if force_debug is not None:
        final_debug = force_debug
    elif env_debug:
        final_debug = True
    else:
        final_debug = debug_mode

    root_level = logging.DEBUG if final_debug else logging.INFO
    if not final_debug and default_level.upper() in _VALID_LEVELS:
        root_level = getattr(logging, default_level.upper())
    if env_log_level in _VALID_LEVELS:
        root_level = getattr(logging, env_log_level)

    # Keep any colorlog handler installed by _init_logging
    root_logger = logging.getLogger()
    root_logger.setLevel(root_level)
    if not root_logger.handlers:
        handler = logging.StreamHandler()
        handler.setLevel(root_level)
        handler.setFormatter(
            logging.Formatter("[%(asctime)s] %(levelname)s - %(name)s - %(message)s")
        )
        root_logger.addHandler(handler)

    engine_level = logging.DEBUG if final_debug else max(logging.INFO, root_level)
    for name in ENGINE_LOGGERS:
        logging.getLogger(name).setLevel(engine_level)

    if final_debug:
        root_logger.debug("Debug logging enabled for planning_engine modules")
    else:
        root_logger.debug("Standard logging configuration applied to planning_engine")


def get_logging_status() -> dict[str, str]:
    """
    Get current logging configuration status.

    Returns:
        Dictionary mapping logger names to their current levels
    """
    status = {"root": logging.getLevelName(logging.getLogger().level)}
    for name in ENGINE_LOGGERS:
        status[name] = logging.getLevelName(logging.getLogger(name).level)
    return status
