"""Centralized constants for the codemodeler package.

Single source of truth for paths, limits and environment variable names.
"""

from pathlib import Path

# ============================================================================
# OUTPUT DIRECTORIES
# ============================================================================

# Working directory for codemodeler artifacts
CM_DIR = Path("./.cm")

CONFIG_FILE = CM_DIR / "config.json"
ERROR_LOG_FILE = CM_DIR / "error.log"
DEFAULT_OUTPUT_FILE = CM_DIR / "analysis.ndjson"

# ============================================================================
# ANALYSIS LIMITS
# ============================================================================

# Statement nesting bound for CFG construction
DEFAULT_MAX_DEPTH = 200

# Files above this size are skipped by the batch runner (default: 1MB)
DEFAULT_MAX_FILE_SIZE = 1024 * 1024

DEFAULT_WORKERS = 4

# ============================================================================
# FILE DISCOVERY
# ============================================================================

DEFAULT_EXTENSIONS = (".py", ".pyi", ".cs")

EXCLUDED_DIRS = frozenset(
    {
        ".git",
        ".hg",
        ".svn",
        ".cm",
        ".venv",
        "venv",
        "env",
        "__pycache__",
        "node_modules",
        "bin",
        "obj",
        "build",
        "dist",
        ".tox",
        ".mypy_cache",
        ".pytest_cache",
    }
)

# ============================================================================
# ENVIRONMENT VARIABLES
# ============================================================================

ENV_PREFIX = "CODEMODELER_"
ENV_LOG_LEVEL = "CODEMODELER_LOG_LEVEL"
ENV_LOG_JSON = "CODEMODELER_LOG_JSON"
ENV_LOG_FILE = "CODEMODELER_LOG_FILE"
