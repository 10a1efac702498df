"""Options shared by several commands."""

import click

from codemodeler.analysis.analyzer import AnalyzerConfig, FailurePolicy
from codemodeler.analysis.anonymizer import AnonymizationScope
from codemodeler.config_runtime import load_runtime_config

anonymize_scope_option = click.option(
    "--anonymize-scope",
    type=click.Choice(AnonymizationScope.ALL, case_sensitive=False),
    default=None,
    help="Symbols to anonymize (default from config: locals)",
)

failure_policy_option = click.option(
    "--failure-policy",
    type=click.Choice(FailurePolicy.ALL, case_sensitive=False),
    default=None,
    help="continue: keep other artifacts when a step fails; abort: drop the whole result",
)


def build_config(anonymize_scope: str | None = None, failure_policy: str | None = None,
                 root: str = ".") -> tuple[dict, AnalyzerConfig]:
    """Runtime config with command line overrides applied."""
    cfg = load_runtime_config(root)
    if anonymize_scope:
        cfg["analysis"]["anonymize_scope"] = anonymize_scope.lower()
    if failure_policy:
        cfg["analysis"]["failure_policy"] = failure_policy.lower()
    try:
        return cfg, AnalyzerConfig.from_runtime(cfg)
    except ValueError as e:
        raise click.ClickException(f"Invalid configuration: {e}") from e
