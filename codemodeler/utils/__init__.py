"""codemodeler utilities package."""

from .constants import (
    CM_DIR,
    CONFIG_FILE,
    DEFAULT_EXTENSIONS,
    DEFAULT_MAX_DEPTH,
    DEFAULT_MAX_FILE_SIZE,
    DEFAULT_WORKERS,
    ERROR_LOG_FILE,
    EXCLUDED_DIRS,
)
from .error_handler import handle_exceptions
from .exit_codes import ExitCodes
from .helpers import (
    canonical_json,
    compute_text_hash,
    read_source_text,
)
from .logging import logger

__all__ = [
    "CM_DIR",
    "CONFIG_FILE",
    "ERROR_LOG_FILE",
    "DEFAULT_EXTENSIONS",
    "DEFAULT_MAX_DEPTH",
    "DEFAULT_MAX_FILE_SIZE",
    "DEFAULT_WORKERS",
    "EXCLUDED_DIRS",
    "handle_exceptions",
    "ExitCodes",
    "canonical_json",
    "compute_text_hash",
    "read_source_text",
    "logger",
]
