"""
Click-based CLI for reprogistry.

This module provides the main Click command group and serves as the
entry point for the reprogistry CLI.

Usage:
    from reprogistry.cli import cli
    cli()  # Invokes the CLI
"""

from __future__ import annotations

from pathlib import Path

import click

from .. import __version__
from ..core.bootstrap import bootstrap
from .context import ReprogistryContext
from .decorators import handle_errors


@click.group(invoke_without_command=True)
@click.version_option(version=__version__, prog_name="reprogistry")
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="Config file (default: nearest .reprogistry/config.toml)",
)
@click.option("-v", "--verbose", is_flag=True, help="Log debug output to stderr")
@click.pass_context
@handle_errors
def cli(ctx: click.Context, config_path: Path | None, verbose: bool) -> None:
    """reprogistry - npm package reproducibility checks

    Rebuilds published npm package versions from their declared source
    commit and records how closely the rebuild matches what was published.

    \b
    Commands:
        reprogistry run <package> [range]     Reproduce versions and store results
        reprogistry compare <pub> <rebuilt>   Compare two tarballs or directories
        reprogistry stale <package>           List versions needing a new run
    """
    ctx.ensure_object(dict)

    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())
        ctx.exit(0)
    else:
        obj = ReprogistryContext.create(config_path=config_path, verbose=verbose)
        if obj.settings.config_error:
            obj.presenter.print_warning(obj.settings.config_error)
        bootstrap(obj.settings)
        ctx.obj = obj


def register_commands() -> None:
    """Register all CLI commands with the main group."""
    from .commands import COMMANDS

    for cmd in COMMANDS:
        cli.add_command(cmd)


register_commands()


__all__ = [
    "ReprogistryContext",
    "cli",
    "register_commands",
]
