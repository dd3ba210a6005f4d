"""
Configuration models.

Provides Pydantic models for reprogistry configuration with validation.
Sections are frozen: a settings object is built once per invocation and
passed explicitly to the services that need it.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path
from typing import Annotated, Literal

from pydantic import ConfigDict, Field, field_validator

from .base import ReprogistryBaseModel

# Type aliases
HashAlgorithm = Literal["sha256", "blake3"]
LogLevel = Literal["debug", "info", "warning", "error"]


def default_cache_dir() -> Path:
    """Platform cache directory used for repository clones."""
    home = Path.home()
    if sys.platform == "darwin":
        return home / "Library" / "Caches" / "reprogistry"
    if sys.platform == "win32":
        return home / "AppData" / "Local" / "reprogistry" / "Cache"
    xdg = os.environ.get("XDG_CACHE_HOME")
    return (Path(xdg) if xdg else home / ".cache") / "reprogistry"


class ConfigBaseModel(ReprogistryBaseModel):
    """Base model for config sections with relaxed strict mode for TOML loading."""

    model_config = ConfigDict(
        strict=False,  # Allow coercion from TOML and env types
        frozen=True,
        extra="ignore",  # Ignore unknown fields in config files
        populate_by_name=True,
        use_enum_values=True,
        revalidate_instances="never",
    )


class PathsConfig(ConfigBaseModel):
    """Where clones, results and queue files live."""

    cache_dir: Path = Field(default_factory=default_cache_dir)
    results_dir: Path = Path("data") / "results"
    queue_dir: Path = Path("data") / "queue"
    work_dir: Path | None = None  # None: system temp directory


class RegistryConfig(ConfigBaseModel):
    """Package registry connection settings."""

    url: Annotated[str, Field(max_length=2048)] = "https://registry.npmjs.org"
    timeout: float = 30.0

    @field_validator("url", mode="before")
    @classmethod
    def validate_url(cls, v: str) -> str:
        """Validate and normalize the registry URL."""
        if not v:
            raise ValueError("Registry URL must not be empty")
        if not str(v).startswith(("http://", "https://")):
            raise ValueError("Registry URL must start with http:// or https://")
        return str(v).rstrip("/")


class SourceConfig(ConfigBaseModel):
    """Source repository resolution settings."""

    forge_host: str = "github.com"
    probe_timeout: float = 30.0
    tag_lookup_timeout: float = 30.0


class ToolchainConfig(ConfigBaseModel):
    """Node.js provisioning through nvm."""

    enabled: bool = True
    nvm_dir: Path | None = None  # None: $NVM_DIR or ~/.nvm
    min_node_version: str = "0.8.0"

    @property
    def nvm_script(self) -> Path:
        base = self.nvm_dir or Path(os.environ.get("NVM_DIR") or Path.home() / ".nvm")
        return Path(base) / "nvm.sh"


class BuildConfig(ConfigBaseModel):
    """Constrained install and pack settings."""

    min_before_npm_version: str = "5.0.0"
    max_dependency_retries: int = Field(default=3, ge=0)
    install_flags: list[str] = Field(
        default_factory=lambda: [
            "--ignore-scripts",
            "--no-audit",
            "--no-fund",
            "--legacy-peer-deps",
            "--force",
        ]
    )


class ComparisonConfig(ConfigBaseModel):
    """File-level comparison settings."""

    hash_algorithm: HashAlgorithm = "sha256"
    max_diff_lines: int = Field(default=200, ge=0)
    binary_sniff_bytes: int = Field(default=8192, gt=0)
    store_matching: bool = False
    download_timeout: float = 120.0


class PipelineConfig(ConfigBaseModel):
    """Orchestration policy."""

    record_uncompared: bool = False
    write_dependency_queue: bool = True


class LoggingConfig(ConfigBaseModel):
    """Logging configuration section."""

    level: LogLevel = "warning"
    console: bool = False
    file: bool = True
