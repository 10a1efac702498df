"""Central UI handler for codemodeler.

Single source of truth for Rich console styling. Import this instead of
instantiating Console() in every command file.

Usage:
    from codemodeler.pipeline.ui import console, print_header, print_error

    console.print("[success]All files analyzed[/success]")
    print_header("ANALYSIS SUMMARY")
"""

import sys

from rich.console import Console
from rich.theme import Theme

CODEMODELER_THEME = Theme({
    "info": "bold cyan",
    "warning": "bold yellow",
    "error": "bold red",
    "success": "bold green",
    "path": "bold cyan",
    "dim": "dim white",
})

# Single console instance - import this, don't create your own
console = Console(
    theme=CODEMODELER_THEME,
    force_terminal=sys.stdout.isatty()
)


def print_header(title: str) -> None:
    """Print a styled section header with horizontal rules."""
    console.rule(f"[bold]{title}[/bold]")


def print_error(msg: str) -> None:
    """Print an error message in red."""
    console.print(f"[error]ERROR:[/error] {msg}", highlight=False)


def print_warning(msg: str) -> None:
    """Print a warning message in yellow."""
    console.print(f"[warning]WARNING:[/warning] {msg}", highlight=False)


def print_success(msg: str) -> None:
    """Print a success message in green."""
    console.print(f"[success]OK:[/success] {msg}", highlight=False)
