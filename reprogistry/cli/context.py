"""
Click context extension for reprogistry CLI.

Provides ReprogistryContext dataclass that holds reprogistry-specific data
passed through the Click command chain via ctx.obj.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from ..core.interfaces.presenter import IPresenter
from ..core.settings import ReprogistrySettings, load_settings
from ..presenters.console import ConsolePresenter


@dataclass
class ReprogistryContext:
    """Extended context passed through Click command chain.

    Created once at CLI startup and passed to commands via Click's
    ctx.obj mechanism.

    Attributes:
        settings: Frozen settings for this invocation
        cwd: Current working directory
        presenter: User-facing output
    """

    settings: ReprogistrySettings
    cwd: Path
    presenter: IPresenter = field(default_factory=ConsolePresenter)

    @classmethod
    def create(
        cls,
        cwd: Path | None = None,
        config_path: Path | None = None,
        verbose: bool = False,
    ) -> ReprogistryContext:
        """Create a ReprogistryContext for the current environment.

        Args:
            cwd: Working directory override (defaults to Path.cwd())
            config_path: Explicit config file
            verbose: Send debug logging to stderr

        Returns:
            Configured ReprogistryContext instance
        """
        if cwd is None:
            cwd = Path.cwd()

        overrides = {}
        if verbose:
            overrides["logging"] = {"level": "debug", "console": True}

        settings = load_settings(config_path=config_path, start_dir=str(cwd), **overrides)
        return cls(settings=settings, cwd=cwd)
