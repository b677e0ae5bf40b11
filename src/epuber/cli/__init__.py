# ABOUTME: CLI package for Epuber, built on Click.
# ABOUTME: Defines the root command group, logging setup, and registers subcommands.

import logging

import click
from rich.logging import RichHandler

from epuber.cli.commands import convert_cmd, cover_cmd, dupes_cmd, inspect_cmd


@click.group()
@click.version_option(package_name="epuber")
@click.option("-v", "--verbose", is_flag=True, help="Show debug logging.")
def cli(verbose: bool) -> None:
    """Epuber - fixed-layout EPUB conversion and EPUB introspection."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(show_path=False)],
        force=True,
    )


cli.add_command(convert_cmd.convert)
cli.add_command(inspect_cmd.inspect)
cli.add_command(cover_cmd.cover)
cli.add_command(dupes_cmd.dupes)
