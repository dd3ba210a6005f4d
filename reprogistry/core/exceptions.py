"""
Custom exception hierarchy for reprogistry.

Every failure inside a version's pipeline is raised as one of these typed
exceptions so the orchestrator can decide whether the version is skipped,
failed, or partially recorded.
"""

from __future__ import annotations


class ReprogistryException(Exception):
    """
    Base exception for all reprogistry errors.

    Attributes:
        message: Human-readable error description
        context: Additional debugging context (package, version, URLs, etc.)
        stage: Pipeline stage the error belongs to (resolve, toolchain,
            fetch, build, compare, persist, registry)
        exit_code: Suggested exit code for CLI (default: 1)
        recoverable: Whether retry/recovery may be possible
    """

    exit_code: int = 1
    recoverable: bool = True
    stage: str | None = None

    def __init__(
        self,
        message: str,
        *,
        context: dict | None = None,
        cause: Exception | None = None,
    ) -> None:
        self.message = message
        self.context = context or {}
        if cause is not None:
            self.__cause__ = cause
        super().__init__(message)

    def __str__(self) -> str:
        if self.context:
            ctx_str = ", ".join(f"{k}={v!r}" for k, v in self.context.items())
            return f"{self.message} ({ctx_str})"
        return self.message


# =============================================================================
# Configuration Errors
# =============================================================================


class ConfigFileError(ReprogistryException):
    """
    Error reading or parsing a configuration file.

    Raised for TOML parsing errors, permission errors, etc.
    """

    def __init__(
        self,
        message: str,
        *,
        file_path: str | None = None,
        context: dict | None = None,
        cause: Exception | None = None,
    ) -> None:
        ctx = context or {}
        if file_path:
            ctx["file_path"] = file_path
        super().__init__(message, context=ctx, cause=cause)


# =============================================================================
# Not-applicable conditions (recorded as skipped, never as failures)
# =============================================================================


class NotApplicableError(ReprogistryException):
    """Reproduction cannot be attempted for this version; not a failure."""

    stage = "resolve"


class NoRepositoryDeclared(NotApplicableError):
    """The published manifest does not declare a source repository."""


class UnsupportedSourceHost(NotApplicableError):
    """The declared repository is not hosted on the supported forge."""

    def __init__(
        self,
        message: str,
        *,
        url: str | None = None,
        host: str | None = None,
        context: dict | None = None,
        cause: Exception | None = None,
    ) -> None:
        ctx = context or {}
        if url:
            ctx["url"] = url
        if host:
            ctx["host"] = host
        super().__init__(message, context=ctx, cause=cause)


# =============================================================================
# Registry Errors
# =============================================================================


class RegistryError(ReprogistryException):
    """Transient or unexpected failure talking to the package registry."""

    stage = "registry"

    def __init__(
        self,
        message: str,
        *,
        url: str | None = None,
        status_code: int | None = None,
        context: dict | None = None,
        cause: Exception | None = None,
    ) -> None:
        ctx = context or {}
        if url:
            ctx["url"] = url
        if status_code:
            ctx["status_code"] = status_code
        super().__init__(message, context=ctx, cause=cause)
        self.status_code = status_code


class PackageNotFoundError(RegistryError):
    """The registry confirmed that the package (or version) does not exist."""

    recoverable = False


# =============================================================================
# Process Errors
# =============================================================================


class CommandError(ReprogistryException):
    """
    An external command exited unsuccessfully.

    Carries the command line and captured output for diagnostics.
    """

    def __init__(
        self,
        message: str,
        *,
        command: str | None = None,
        exit_code: int | None = None,
        stderr: str | None = None,
        context: dict | None = None,
        cause: Exception | None = None,
    ) -> None:
        ctx = context or {}
        if command:
            ctx["command"] = command
        if exit_code is not None:
            ctx["exit_code"] = exit_code
        super().__init__(message, context=ctx, cause=cause)
        self.stderr = stderr or ""


# =============================================================================
# Source resolution Errors
# =============================================================================


class SourceResolutionError(ReprogistryException):
    """Base class for failures locating or checking out the source."""

    stage = "fetch"


class CloneError(SourceResolutionError):
    """Cloning a repository URL failed (shallow and full)."""


class NoReachableRepository(SourceResolutionError):
    """Neither the primary URL nor any fallback candidate could be cloned."""

    recoverable = False


class RefCheckoutError(SourceResolutionError):
    """The resolved ref (and every fallback) could not be checked out."""


# =============================================================================
# Build Errors
# =============================================================================


class BuildError(ReprogistryException):
    """Base class for failures while installing or packing the project."""

    stage = "build"


class ConstraintError(BuildError):
    """Time-bounded dependency resolution cannot be guaranteed."""

    recoverable = False


class MissingPublishTime(ConstraintError):
    """The registry metadata has no publish timestamp for the version."""


class TimeBoundedInstallUnsupported(ConstraintError):
    """No available npm release supports `--before`."""


class ManifestError(BuildError):
    """package.json is missing or unreadable in the package directory."""


class DependencyInstallError(BuildError):
    """Dependency installation failed and could not be recovered by retries."""

    def __init__(
        self,
        message: str,
        *,
        output: str | None = None,
        removed: list[str] | None = None,
        context: dict | None = None,
        cause: Exception | None = None,
    ) -> None:
        ctx = context or {}
        if removed:
            ctx["removed"] = removed
        super().__init__(message, context=ctx, cause=cause)
        self.output = output or ""


class PackError(BuildError):
    """npm pack failed or produced no recognizable artifact."""


# =============================================================================
# Comparison Errors
# =============================================================================


class ComparisonError(ReprogistryException):
    """Downloading, verifying or extracting artifacts for comparison failed."""

    stage = "compare"


# =============================================================================
# Persistence Errors
# =============================================================================


class HistoryStoreError(ReprogistryException):
    """Writing a result history failed."""

    stage = "persist"


class StageFailedError(ReprogistryException):
    """
    Wraps any failure inside a version's pipeline with its stage.

    The message always names the package, version and stage so an operator
    can re-run just that piece.
    """

    def __init__(
        self,
        stage: str,
        *,
        package: str,
        version: str,
        cause: Exception,
    ) -> None:
        self.stage = stage
        self.package = package
        self.version = version
        detail = str(cause) or type(cause).__name__
        super().__init__(
            f"{package}@{version} failed during {stage}: {detail}",
            cause=cause,
        )
