"""
reprogistry - rebuild published npm packages from source and score them.

Given a package name and a version range, reprogistry resolves each version's
declared source repository, rebuilds it under a toolchain and dependency graph
matched to the original publish time, and compares the rebuilt tarball against
the published one file by file.
"""

try:
    from importlib.metadata import version

    __version__ = version("reprogistry")
except Exception:
    __version__ = "0.3.0"

__all__ = ["__version__"]
