"""
Native Click implementation of the compare command.

Usage: reprogistry compare <published> <rebuilt>
"""

from __future__ import annotations

import json
import tempfile
from pathlib import Path

import click

from ...services.comparison.engine import filter_non_matching
from ...services.comparison.service import ComparisonService
from ..context import ReprogistryContext
from ..decorators import handle_errors


@click.command("compare")
@click.argument("published", type=click.Path(exists=True, path_type=Path))
@click.argument("rebuilt", type=click.Path(exists=True, path_type=Path))
@click.option("--json", "as_json", is_flag=True, help="Print the comparison as JSON")
@click.option("--all", "show_all", is_flag=True, help="Include matching files")
@click.pass_obj
@handle_errors
def compare(
    ctx: ReprogistryContext,
    published: Path,
    rebuilt: Path,
    as_json: bool,
    show_all: bool,
) -> None:
    """Compare a published package with a rebuild, file by file.

    \b
    PUBLISHED and REBUILT may each be a .tgz tarball or a directory.

    \b
    Examples:
        reprogistry compare qs-6.11.0.tgz ./rebuilt/qs-6.11.0.tgz
        reprogistry compare ./published ./rebuilt --json
    """
    cfg = ctx.settings.comparison
    service = ComparisonService(
        hash_algorithm=cfg.hash_algorithm,
        max_diff_lines=cfg.max_diff_lines,
        binary_sniff_bytes=cfg.binary_sniff_bytes,
    )
    with tempfile.TemporaryDirectory(prefix="reprogistry-compare-") as tmp:
        result = service.compare_paths(published, rebuilt, Path(tmp))

    if not show_all:
        result = filter_non_matching(result)

    if as_json:
        click.echo(json.dumps(result.to_json_dict(), indent=2))
        return

    ctx.presenter.print_comparison(result, include_matching=show_all)
