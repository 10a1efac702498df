"""Analyze one file and print a single artifact."""

import json
import sys
from pathlib import Path

import click

from codemodeler.analysis.analyzer import CodeAnalyzer
from codemodeler.commands._options import anonymize_scope_option, build_config, failure_policy_option
from codemodeler.pipeline.ui import print_error
from codemodeler.syntax.model import Document
from codemodeler.utils.error_handler import handle_exceptions
from codemodeler.utils.exit_codes import ExitCodes
from codemodeler.utils.helpers import read_source_text

PARTS = {
    "digest": "ast_json",
    "cfg": "cfg_json",
    "dfg": "dfg_json",
    "metrics": "metrics_json",
    "normalized": "normalized_code",
    "map": "anonymization_map_json",
}


@click.command("inspect")
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
@click.option("--part", type=click.Choice(list(PARTS)), default="metrics", help="Artifact to print")
@click.option("--language", default=None, help="Override language detection (python, csharp)")
@anonymize_scope_option
@failure_policy_option
@handle_exceptions
def inspect_command(file, part, language, anonymize_scope, failure_policy):
    """Print one analysis artifact of FILE to stdout.

    JSON artifacts are pretty-printed; `normalized` prints the anonymized
    source as is.

    EXAMPLES:
      cmod inspect app.py --part cfg
      cmod inspect Program.cs --part normalized --anonymize-scope declarations
    """
    _, config = build_config(anonymize_scope, failure_policy)
    analyzer = CodeAnalyzer(config)

    text = read_source_text(Path(file))
    result = analyzer.analyze(Document(path=file, text=text, language=language))
    value = getattr(result, PARTS[part])

    if value is None:
        reason = f"step failed: {', '.join(result.failures)}" if result.failures else "empty or unparseable input"
        print_error(f"No {part} output for {file} ({reason})")
        sys.exit(ExitCodes.PARTIAL_FAILURE)

    if part == "normalized":
        click.echo(value, nl=not value.endswith("\n"))
    else:
        click.echo(json.dumps(json.loads(value), indent=2, sort_keys=True))
