"""
Native Click implementation of the stale command.

Usage: reprogistry stale <package>
"""

from __future__ import annotations

import asyncio
import json

import click

from ... import __version__
from ...core.di import resolve_or_default
from ...core.interfaces.store import IHistoryStore
from ...services.cache.history import find_stale_versions
from ...services.cache.store import JsonFileHistoryStore
from ...services.comparison.fingerprint import comparison_hash
from ...services.registry.npm_client import NpmRegistryClient
from ..context import ReprogistryContext
from ..decorators import handle_errors


@click.command("stale")
@click.argument("package", envvar="PACKAGE")
@click.option("--json", "as_json", is_flag=True, help="Print versions as a JSON array")
@click.pass_obj
@handle_errors
def stale(ctx: ReprogistryContext, package: str, as_json: bool) -> None:
    """List versions of PACKAGE whose stored results need a new run.

    \b
    A version is stale when it has no result from this reprogistry
    version, or that result has no comparison data, or it was compared
    by different comparison logic.
    """
    versions = asyncio.run(_published_versions(ctx, package))
    store = resolve_or_default(  # type: ignore[type-abstract]
        IHistoryStore, lambda: JsonFileHistoryStore(ctx.settings.paths.results_dir)
    )
    stale_versions = find_stale_versions(
        store, package, versions, __version__, comparison_hash()
    )

    if as_json:
        click.echo(json.dumps(stale_versions))
        return
    for version in stale_versions:
        ctx.presenter.print(version)


async def _published_versions(ctx: ReprogistryContext, package: str) -> list[str]:
    async with NpmRegistryClient(
        ctx.settings.registry.url, timeout=ctx.settings.registry.timeout
    ) as client:
        packument = await client.get_packument(package)
    return list(packument.get("versions") or {})
