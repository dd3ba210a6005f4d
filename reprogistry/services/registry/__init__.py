"""npm registry access and packument helpers."""

from .npm_client import NpmRegistryClient
from .packument import fallback_repository_urls, publish_record, versions_in_range

__all__ = [
    "NpmRegistryClient",
    "fallback_repository_urls",
    "publish_record",
    "versions_in_range",
]
