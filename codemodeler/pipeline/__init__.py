"""Batch analysis pipeline and console output."""

from .runner import AnalysisRecord, analyze_paths, collect_source_files, write_ndjson

__all__ = ["AnalysisRecord", "analyze_paths", "collect_source_files", "write_ndjson"]
