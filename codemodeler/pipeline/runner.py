"""Local batch runner: discover source files, analyze them concurrently, write NDJSON.

Records are yielded in input order regardless of which worker finishes first.
"""

import fnmatch
import json
import os
from collections.abc import Iterable, Iterator
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from codemodeler.analysis.analyzer import CodeAnalyzer
from codemodeler.analysis.result import CodeAnalysisResult
from codemodeler.syntax.model import Document
from codemodeler.utils.constants import (
    DEFAULT_EXTENSIONS,
    DEFAULT_MAX_FILE_SIZE,
    DEFAULT_WORKERS,
    EXCLUDED_DIRS,
)
from codemodeler.utils.helpers import compute_text_hash, read_source_text
from codemodeler.utils.logging import logger


@dataclass(frozen=True)
class AnalysisRecord:
    path: str
    sha256: str | None
    language: str | None
    result: CodeAnalysisResult
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None and not self.result.failures and not self.result.is_empty

    def to_dict(self) -> dict[str, Any]:
        data = {
            "path": self.path,
            "sha256": self.sha256,
            "language": self.language,
            "error": self.error,
        }
        data.update(self.result.to_dict())
        return data


def _excluded(relative: str, patterns: Iterable[str]) -> bool:
    name = relative.rsplit("/", 1)[-1]
    return any(fnmatch.fnmatch(relative, p) or fnmatch.fnmatch(name, p) for p in patterns)


def collect_source_files(
    root: str | Path,
    extensions: Iterable[str] = DEFAULT_EXTENSIONS,
    max_file_size: int = DEFAULT_MAX_FILE_SIZE,
    exclude: Iterable[str] = (),
) -> list[Path]:
    """Source files under root, sorted by path.

    Args:
        root: directory to walk, or a single file (returned as is when its
            extension matches)
        extensions: file suffixes to keep (case-insensitive)
        max_file_size: files larger than this many bytes are skipped
        exclude: glob patterns matched against the root-relative path and the file name

    Returns:
        Sorted list of paths
    """
    root = Path(root)
    wanted = {ext.lower() for ext in extensions}
    patterns = list(exclude)

    if root.is_file():
        return [root] if root.suffix.lower() in wanted else []

    files = []
    skipped_large = 0
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames[:] = sorted(d for d in dirnames if d not in EXCLUDED_DIRS and not d.endswith(".egg-info"))
        for filename in filenames:
            path = Path(dirpath) / filename
            if path.suffix.lower() not in wanted:
                continue
            relative = path.relative_to(root).as_posix()
            if patterns and _excluded(relative, patterns):
                continue
            try:
                size = path.stat().st_size
            except OSError as e:
                logger.debug(f"Cannot stat {path}: {e}")
                continue
            if size > max_file_size:
                skipped_large += 1
                continue
            files.append(path)

    if skipped_large:
        logger.info(f"Skipped {skipped_large} files larger than {max_file_size} bytes")
    files.sort()
    return files


def _analyze_file(path: Path, analyzer: CodeAnalyzer) -> AnalysisRecord:
    provider = analyzer.registry.for_path(str(path))
    language = provider.language if provider else None
    try:
        text = read_source_text(path)
    except OSError as e:
        logger.warning(f"Cannot read {path}: {e}")
        return AnalysisRecord(str(path), None, language, CodeAnalysisResult.empty(), error=str(e))
    result = analyzer.analyze(Document(path=str(path), text=text, language=language))
    return AnalysisRecord(str(path), compute_text_hash(text), language, result)


def analyze_paths(
    paths: Iterable[Path],
    analyzer: CodeAnalyzer,
    workers: int = DEFAULT_WORKERS,
) -> Iterator[AnalysisRecord]:
    """Analyze files on a thread pool, yielding one record per path in input order."""
    paths = list(paths)
    if not paths:
        return
    with ThreadPoolExecutor(max_workers=max(1, workers)) as executor:
        yield from executor.map(lambda p: _analyze_file(p, analyzer), paths)


def write_ndjson(records: Iterable[AnalysisRecord], path: str | Path) -> int:
    """Write one JSON object per line. Returns the number of records written."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    count = 0
    with open(path, "w", encoding="utf-8") as f:
        for record in records:
            f.write(json.dumps(record.to_dict(), sort_keys=True, ensure_ascii=False) + "\n")
            count += 1
    return count
