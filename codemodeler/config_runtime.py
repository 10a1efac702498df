"""Runtime configuration for codemodeler - centralized configuration management."""

import copy
import json
import os
from pathlib import Path
from typing import Any

from codemodeler.utils.constants import (
    CONFIG_FILE,
    DEFAULT_MAX_DEPTH,
    DEFAULT_MAX_FILE_SIZE,
    DEFAULT_OUTPUT_FILE,
    DEFAULT_WORKERS,
    ENV_PREFIX,
    ERROR_LOG_FILE,
)
from codemodeler.utils.logging import logger

DEFAULTS = {
    "analysis": {
        "anonymize_scope": "locals",
        "failure_policy": "continue",
        "max_depth": DEFAULT_MAX_DEPTH,
    },
    "limits": {
        "max_file_size": DEFAULT_MAX_FILE_SIZE,
        "workers": DEFAULT_WORKERS,
    },
    "paths": {
        "output": str(DEFAULT_OUTPUT_FILE),
        "error_log": str(ERROR_LOG_FILE),
    },
}


def load_runtime_config(root: str | Path = ".") -> dict[str, Any]:
    """
    Load runtime configuration from .cm/config.json and environment variables.

    Config priority (highest to lowest):
    1. Environment variables (CODEMODELER_<SECTION>_<KEY>)
    2. .cm/config.json file
    3. Built-in defaults

    Values whose type differs from the default are ignored with a warning.

    Args:
        root: Root directory to look for config file

    Returns:
        Configuration dictionary with merged values
    """
    cfg = copy.deepcopy(DEFAULTS)

    path = Path(root) / CONFIG_FILE
    try:
        if path.exists():
            with open(path, encoding="utf-8") as f:
                user = json.load(f)

            if isinstance(user, dict):
                for section in cfg:
                    if section in user and isinstance(user[section], dict):
                        for key, value in user[section].items():
                            if key not in cfg[section]:
                                continue
                            if isinstance(value, type(cfg[section][key])):
                                cfg[section][key] = value
                            else:
                                logger.warning(
                                    f"Ignoring {section}.{key}={value!r} from {path}: "
                                    f"expected {type(cfg[section][key]).__name__}"
                                )
    except (json.JSONDecodeError, OSError) as e:
        logger.warning(f"Could not load config file from {path}: {e}")
        logger.info("Continuing with default configuration")

    for section in cfg:
        for key in cfg[section]:
            env_var = f"{ENV_PREFIX}{section.upper()}_{key.upper()}"
            if env_var in os.environ:
                value = os.environ[env_var]
                try:
                    default_value = cfg[section][key]
                    if isinstance(default_value, int):
                        cfg[section][key] = int(value)
                    else:
                        cfg[section][key] = value
                except ValueError as e:
                    logger.warning(f"Invalid value for environment variable {env_var}: '{value}' - {e}")
                    logger.info(f"Using default value: {cfg[section][key]}")

    return cfg
