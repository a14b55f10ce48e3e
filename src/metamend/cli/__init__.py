# ABOUTME: CLI package for metamend, built on Click.
# ABOUTME: Defines the root command group and registers subcommands.

import click

from metamend.cli.commands import fix_cmd, inspect_cmd


@click.group()
@click.version_option(package_name="metamend")
def cli() -> None:
    """metamend - repair a reading device's library database from its EPUB files."""


cli.add_command(fix_cmd.fix)
cli.add_command(inspect_cmd.inspect)
