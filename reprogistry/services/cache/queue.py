"""
Dependency queue.

After a version is processed, its dependencies are written out so an
external scheduler can enqueue those packages for reproduction too.
"""

from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path

from ...core.exceptions import HistoryStoreError
from .store import history_filename


class DependencyQueue:
    """Writes `<queue_dir>/<package>/v<version>.json`."""

    def __init__(self, queue_dir: Path) -> None:
        self._queue_dir = Path(queue_dir)

    def path_for(self, package: str, version: str) -> Path:
        return self._queue_dir / package / f"{history_filename(version)}.json"

    def write(
        self,
        package: str,
        version: str,
        dependencies: dict[str, str],
        transitive: list[str] | None = None,
    ) -> Path:
        path = self.path_for(package, version)
        document = {
            "package": package,
            "version": version,
            "dependencies": dict(sorted(dependencies.items())),
            "transitiveDependencies": transitive,
        }
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=path.parent, suffix=".tmp")
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(json.dumps(document, indent="\t") + "\n")
            os.replace(tmp_name, path)
        except OSError as e:
            raise HistoryStoreError(f"Cannot write dependency queue for {package}@{version}: {e}", cause=e) from e
        return path
