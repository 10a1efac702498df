"""Centralized logging configuration using Loguru.

Usage:
    from codemodeler.utils.logging import logger
    logger.info("Message")
    logger.debug("Debug message")  # Only shows if CODEMODELER_LOG_LEVEL=DEBUG

Environment Variables:
    CODEMODELER_LOG_LEVEL: DEBUG|INFO|WARNING|ERROR (default: WARNING)
    CODEMODELER_LOG_JSON: 0|1 (default: 0, human-readable)
    CODEMODELER_LOG_FILE: path to an NDJSON log file (optional)
"""

import json
import os
import sys

from loguru import logger

from .constants import ENV_LOG_FILE, ENV_LOG_JSON, ENV_LOG_LEVEL

# Remove default handler
logger.remove()

# Numeric levels for machine-readable records
NUMERIC_LEVELS = {
    "TRACE": 10,
    "DEBUG": 20,
    "INFO": 30,
    "SUCCESS": 30,
    "WARNING": 40,
    "ERROR": 50,
    "CRITICAL": 60,
}

_log_level = os.environ.get(ENV_LOG_LEVEL, "WARNING").upper()
_json_mode = os.environ.get(ENV_LOG_JSON, "0") == "1"
_log_file = os.environ.get(ENV_LOG_FILE)


def _json_record(message) -> str:
    record = message.record
    entry = {
        "level": NUMERIC_LEVELS.get(record["level"].name, 30),
        "time": int(record["time"].timestamp() * 1000),
        "msg": record["message"],
        "pid": record["process"].id,
    }
    for key, value in record["extra"].items():
        entry[key] = value
    if record["exception"]:
        entry["err"] = {
            "type": record["exception"].type.__name__ if record["exception"].type else "Error",
            "message": str(record["exception"].value) if record["exception"].value else "",
        }
    return json.dumps(entry, default=str)


def json_sink(message):
    """Write one NDJSON record per log call to stderr.

    stdout is reserved for command output (`cmod inspect` prints artifacts there).
    CRITICAL: Never call logger.* inside a sink - causes infinite recursion
    """
    sys.stderr.write(_json_record(message) + "\n")
    sys.stderr.flush()


# Human-readable format (no emojis - Windows CP1252 compatibility)
_human_format = (
    "<green>{time:HH:mm:ss}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}:{function}:{line}</cyan> - "
    "<level>{message}</level>"
)

logger.level("DEBUG", color="<blue>")
logger.level("INFO", color="<white>")
logger.level("WARNING", color="<yellow>")
logger.level("ERROR", color="<red>")
logger.level("CRITICAL", color="<red><bold>")

if _json_mode:
    logger.add(
        json_sink,
        level=_log_level,
        colorize=False,
    )
else:
    logger.add(
        sys.stderr,
        level=_log_level,
        format=_human_format,
        colorize=None,  # Auto-detect: colors if TTY, plain if piped
    )

if _log_file:
    def _file_sink(message):
        """Append NDJSON records to the configured log file."""
        with open(_log_file, "a", encoding="utf-8") as f:
            f.write(_json_record(message) + "\n")

    logger.add(
        _file_sink,
        level="DEBUG",  # File always captures everything
    )


__all__ = [
    "logger",
    "json_sink",
]
