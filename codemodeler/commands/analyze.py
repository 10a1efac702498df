"""Batch analysis of a directory tree to NDJSON."""

import sys
from pathlib import Path

import click
from rich.table import Table

from codemodeler.analysis.analyzer import CodeAnalyzer
from codemodeler.commands._options import anonymize_scope_option, build_config, failure_policy_option
from codemodeler.pipeline.runner import analyze_paths, collect_source_files, write_ndjson
from codemodeler.pipeline.ui import console, print_error, print_header, print_success, print_warning
from codemodeler.utils.error_handler import handle_exceptions
from codemodeler.utils.exit_codes import ExitCodes
from codemodeler.utils.logging import logger


class _Tally:
    """Counts records as they stream into the NDJSON writer."""

    def __init__(self):
        self.files = 0
        self.analyzed = 0
        self.empty = 0
        self.errors = 0
        self.step_failures: dict[str, int] = {}
        self.languages: dict[str, int] = {}

    def watch(self, records):
        for record in records:
            self.files += 1
            if record.language:
                self.languages[record.language] = self.languages.get(record.language, 0) + 1
            if record.error:
                self.errors += 1
            elif record.result.is_empty:
                self.empty += 1
            else:
                self.analyzed += 1
            for step in record.result.failures:
                self.step_failures[step] = self.step_failures.get(step, 0) + 1
            yield record

    @property
    def clean(self) -> bool:
        return not self.errors and not self.step_failures


def _summary_table(tally: _Tally) -> Table:
    table = Table(title="Analysis summary", show_header=True, header_style="bold")
    table.add_column("Metric")
    table.add_column("Count", justify="right")
    table.add_row("Files", str(tally.files))
    table.add_row("Analyzed", str(tally.analyzed))
    table.add_row("Empty or unparseable", str(tally.empty))
    table.add_row("Read errors", str(tally.errors))
    for language, count in sorted(tally.languages.items()):
        table.add_row(f"  {language}", str(count))
    for step, count in sorted(tally.step_failures.items()):
        table.add_row(f"[warning]Failed step: {step}[/warning]", str(count))
    return table


@click.command("analyze")
@click.argument("path", type=click.Path(exists=True, file_okay=True, dir_okay=True))
@click.option("--output", "-o", default=None, help="NDJSON output file (default: .cm/analysis.ndjson)")
@click.option("--workers", "-w", type=click.IntRange(min=1), default=None, help="Concurrent workers")
@click.option("--max-file-size", type=click.IntRange(min=1), default=None, help="Skip files larger than BYTES")
@click.option("--exclude", multiple=True, help="Glob pattern to skip (repeatable)")
@anonymize_scope_option
@failure_policy_option
@handle_exceptions
def analyze(path, output, workers, max_file_size, exclude, anonymize_scope, failure_policy):
    """Analyze every Python and C# file under PATH.

    Each file yields one NDJSON record holding its path, sha256, language and
    the analysis artifacts (AST digest, CFG, DFG, metrics, normalized code and
    anonymization map). A summary table is printed when the run completes.

    EXAMPLES:
      cmod analyze src/
      cmod analyze src/ --output out.ndjson --workers 8
      cmod analyze . --anonymize-scope declarations --exclude "tests/*"

    EXIT CODES:
      0  every file analyzed
      1  some steps failed or files could not be read
      3  no matching files under PATH
    """
    cfg, config = build_config(anonymize_scope, failure_policy)
    output_path = Path(output or cfg["paths"]["output"])
    workers = workers or cfg["limits"]["workers"]
    max_file_size = max_file_size or cfg["limits"]["max_file_size"]

    analyzer = CodeAnalyzer(config)
    files = collect_source_files(
        path,
        extensions=analyzer.registry.extensions,
        max_file_size=max_file_size,
        exclude=exclude,
    )
    if not files:
        print_error(f"No source files found under {path}")
        sys.exit(ExitCodes.TASK_INCOMPLETE)

    logger.info(f"Analyzing {len(files)} files with {workers} workers")
    tally = _Tally()
    written = write_ndjson(tally.watch(analyze_paths(files, analyzer, workers)), output_path)

    print_header("CODEMODELER ANALYSIS")
    console.print(_summary_table(tally))
    console.print(f"Wrote {written} records to [path]{output_path}[/path]", highlight=False)

    if tally.clean:
        exit_code = ExitCodes.SUCCESS
        print_success(f"{tally.analyzed} files analyzed")
    else:
        exit_code = ExitCodes.PARTIAL_FAILURE
        print_warning(ExitCodes.get_description(exit_code))
    sys.exit(exit_code)
