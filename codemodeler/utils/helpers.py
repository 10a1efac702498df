"""Helper utility functions for codemodeler."""

import hashlib
import json
from pathlib import Path
from typing import Any


def compute_text_hash(text: str) -> str:
    """SHA256 hex digest of text encoded as UTF-8."""
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


def read_source_text(file_path: Path) -> str:
    """
    Read a source file as UTF-8.

    Undecodable bytes are replaced and line endings are kept as they are,
    so spans computed from the text match the file.

    Args:
        file_path: Path to the source file

    Returns:
        File contents
    """
    with open(file_path, encoding="utf-8", errors="replace", newline="") as f:
        return f.read()


def canonical_json(data: Any) -> str:
    """Deterministic JSON encoding (sorted keys, compact separators)."""
    return json.dumps(data, sort_keys=True, separators=(",", ":"), ensure_ascii=False)
