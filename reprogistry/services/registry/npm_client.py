"""
Async npm registry client.

Fetches full package metadata documents and streams published tarballs.
A 404 from the registry is reported as PackageNotFoundError so callers can
tell a package that does not exist apart from a flaky network.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any
from urllib.parse import quote

import httpx

from ...core.di import resolve_or_default
from ...core.exceptions import PackageNotFoundError, RegistryError
from ...core.interfaces.logger import ILogger
from ...core.interfaces.registry import IRegistryClient
from ..logging import NullLogger

_ACCEPT_FULL_METADATA = "application/json"


def packument_path(name: str) -> str:
    """URL path for a package; the scope separator is percent-encoded."""
    if name.startswith("@") and "/" in name:
        scope, _, bare = name.partition("/")
        return f"{quote(scope, safe='@')}%2f{quote(bare, safe='')}"
    return quote(name, safe="")


class NpmRegistryClient(IRegistryClient):
    """
    Registry client over a shared httpx.AsyncClient.

    Usage:
        async with NpmRegistryClient("https://registry.npmjs.org") as client:
            packument = await client.get_packument("qs")
    """

    def __init__(
        self,
        base_url: str = "https://registry.npmjs.org",
        *,
        timeout: float = 30.0,
        download_timeout: float = 120.0,
        transport: httpx.AsyncBaseTransport | None = None,
        logger: ILogger | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._download_timeout = download_timeout
        self._client = httpx.AsyncClient(
            timeout=timeout,
            follow_redirects=True,
            transport=transport,
            headers={"Accept": _ACCEPT_FULL_METADATA},
        )
        self._logger = logger or resolve_or_default(ILogger, NullLogger)

    async def __aenter__(self) -> NpmRegistryClient:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if not self._client.is_closed:
            await self._client.aclose()

    async def get_packument(self, name: str) -> dict[str, Any]:
        url = f"{self._base_url}/{packument_path(name)}"
        self._logger.debug("GET %s", url)
        try:
            response = await self._client.get(url)
        except httpx.HTTPError as e:
            raise RegistryError(
                f"Registry request for {name} failed: {e}", url=url, cause=e
            ) from e

        if response.status_code == 404:
            raise PackageNotFoundError(f"Package not found: {name}", url=url, status_code=404)
        if response.status_code >= 400:
            raise RegistryError(
                f"Registry returned {response.status_code} for {name}",
                url=url,
                status_code=response.status_code,
            )

        try:
            data = response.json()
        except ValueError as e:
            raise RegistryError(f"Registry returned invalid JSON for {name}", url=url, cause=e) from e
        if not isinstance(data, dict):
            raise RegistryError(f"Unexpected registry document for {name}", url=url)
        return data

    async def download(self, url: str, dest: Path) -> int:
        """Stream `url` to `dest`; returns the number of bytes written."""
        written = 0
        self._logger.debug("Downloading %s -> %s", url, dest)
        try:
            async with self._client.stream(
                "GET", url, timeout=self._download_timeout
            ) as response:
                if response.status_code >= 400:
                    raise RegistryError(
                        f"Download failed with status {response.status_code}",
                        url=url,
                        status_code=response.status_code,
                    )
                with open(dest, "wb") as f:
                    async for chunk in response.aiter_bytes():
                        f.write(chunk)
                        written += len(chunk)
        except httpx.HTTPError as e:
            raise RegistryError(f"Download failed: {e}", url=url, cause=e) from e
        return written
