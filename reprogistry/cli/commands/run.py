"""
Native Click implementation of the run command.

Usage: reprogistry run <package> [versions]
"""

from __future__ import annotations

import asyncio

import click

from ...services.orchestrator import RunSummary, build_orchestrator
from ..context import ReprogistryContext
from ..decorators import handle_errors


@click.command("run")
@click.argument("package", envvar="PACKAGE")
@click.argument("versions", envvar="VERSIONS", default="*", required=False)
@click.pass_obj
@handle_errors
def run(ctx: ReprogistryContext, package: str, versions: str) -> None:
    """Reproduce published versions of PACKAGE and store the results.

    \b
    VERSIONS is an npm version or range (default: every version).
    Both arguments can also come from the PACKAGE and VERSIONS
    environment variables.

    \b
    Exit status is 1 when any version failed; results obtained for
    the other versions are kept.

    \b
    Examples:
        reprogistry run qs
        reprogistry run qs '>=6.11 <7'
        PACKAGE=@scope/name VERSIONS=1.2.3 reprogistry run
    """
    summary = asyncio.run(_run(ctx, package, versions or "*"))
    ctx.presenter.print_run(summary)
    if not summary.ok:
        raise SystemExit(1)


async def _run(ctx: ReprogistryContext, package: str, versions: str) -> RunSummary:
    orchestrator = build_orchestrator(ctx.settings)
    try:
        return await orchestrator.run(package, versions)
    finally:
        await orchestrator.aclose()
