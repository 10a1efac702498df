"""cmod CLI - main entry point and command registration hub."""
# ruff: noqa: E402 - commands imported after the group definition

import click

from codemodeler import __version__


@click.group()
@click.version_option(version=__version__, prog_name="cmod")
@click.help_option("-h", "--help")
def main():
    """codemodeler - static analysis and anonymization of source files

    \b
    QUICK START:
      cmod analyze src/                  # Analyze a tree to .cm/analysis.ndjson
      cmod inspect app.py --part cfg     # Print one artifact for one file

    For detailed options: cmod <command> --help"""
    pass


from codemodeler.commands.analyze import analyze
from codemodeler.commands.inspect import inspect_command

main.add_command(analyze)
main.add_command(inspect_command)


if __name__ == "__main__":
    main()
