"""
Hash algorithm strategies for file comparison.

Each strategy encapsulates one algorithm so the comparison engine can switch
between them from configuration.
"""

import hashlib
from abc import ABC, abstractmethod
from typing import Any, ClassVar

import blake3


class HashStrategy(ABC):
    """
    Abstract base class for hash algorithm strategies.

    Implementations provide:
    - algorithm_name: Unique identifier for the algorithm
    - create_hasher(): Factory method for hasher instances
    """

    @property
    @abstractmethod
    def algorithm_name(self) -> str:
        """Return algorithm identifier (e.g., 'blake3', 'sha256')."""
        pass

    @abstractmethod
    def create_hasher(self) -> Any:
        """Create a new hasher instance."""
        pass

    def digest(self, data: bytes) -> str:
        """Hex digest of a complete buffer."""
        hasher = self.create_hasher()
        hasher.update(data)
        return hasher.hexdigest()


class SHA256Strategy(HashStrategy):
    """SHA-256 hashing strategy - widely compatible."""

    @property
    def algorithm_name(self) -> str:
        return "sha256"

    def create_hasher(self) -> Any:
        return hashlib.sha256()


class Blake3Strategy(HashStrategy):
    """BLAKE3 hashing strategy - fast cryptographic hash."""

    @property
    def algorithm_name(self) -> str:
        return "blake3"

    def create_hasher(self) -> Any:
        return blake3.blake3()


class HashAlgorithmRegistry:
    """Lookup of hash strategies by name."""

    _strategies: ClassVar[dict[str, HashStrategy]] = {
        "sha256": SHA256Strategy(),
        "blake3": Blake3Strategy(),
    }

    @classmethod
    def get(cls, name: str) -> HashStrategy:
        try:
            return cls._strategies[name.lower()]
        except KeyError:
            raise ValueError(
                f"Unknown hash algorithm {name!r}; expected one of {cls.names()}"
            ) from None

    @classmethod
    def names(cls) -> list[str]:
        return sorted(cls._strategies)
