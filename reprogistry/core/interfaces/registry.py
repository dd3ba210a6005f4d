"""
Package registry interface.

The registry is an external collaborator: reprogistry only needs the full
metadata document (packument) for a package name.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any


class IRegistryClient(ABC):
    """Interface for fetching package metadata from a registry."""

    @abstractmethod
    async def get_packument(self, name: str) -> dict[str, Any]:
        """
        Fetch the full metadata document for a package.

        Raises:
            PackageNotFoundError: The registry confirms the package is absent
            RegistryError: Any other (possibly transient) failure
        """
        pass

    @abstractmethod
    async def download(self, url: str, dest: Any) -> int:
        """
        Stream a published artifact to a local path.

        Returns:
            Number of bytes written
        """
        pass

    async def aclose(self) -> None:
        """Release network resources."""
        return None
