"""
Result history stores.

JsonFileHistoryStore keeps one JSON array per package version under
`<results_dir>/<package>/v<version>`; InMemoryHistoryStore backs tests and
dry runs.
"""

from __future__ import annotations

import json
import os
import shutil
import tempfile
from pathlib import Path

from pydantic import ValidationError

from ...core.di import LazyService
from ...core.exceptions import HistoryStoreError
from ...core.interfaces.logger import ILogger
from ...core.interfaces.store import HistoryKey, IHistoryStore
from ...core.models.result import EnhancedResult
from ..logging import NullLogger


def history_filename(version: str) -> str:
    """File name of a version's history (`1.2.3` and `v1.2.3` both give `v1.2.3`)."""
    return "v" + version.removeprefix("v")


def serialize_history(history: list[EnhancedResult]) -> str:
    """Tab-indented JSON array with a trailing newline."""
    return json.dumps([entry.to_json_dict() for entry in history], indent="\t", ensure_ascii=False) + "\n"


class JsonFileHistoryStore(IHistoryStore):
    """
    File-per-version history store.

    Every write replaces the whole file atomically. A file that cannot be
    parsed is moved aside to `<name>.corrupt` and treated as empty.
    """

    logger = LazyService(ILogger, NullLogger)

    def __init__(self, results_dir: Path, logger: ILogger | None = None) -> None:
        self._results_dir = Path(results_dir)
        if logger is not None:
            self.logger = logger

    @property
    def results_dir(self) -> Path:
        return self._results_dir

    def path_for(self, key: HistoryKey) -> Path:
        return self._results_dir / key.package / history_filename(key.version)

    def get(self, key: HistoryKey) -> list[EnhancedResult]:
        path = self.path_for(key)
        try:
            with open(path, encoding="utf-8") as f:
                raw = json.load(f)
        except FileNotFoundError:
            return []
        except (OSError, ValueError) as e:
            self._quarantine(path, e)
            return []

        if not isinstance(raw, list):
            self._quarantine(path, ValueError("history is not a JSON array"))
            return []
        try:
            return [EnhancedResult.model_validate(entry) for entry in raw]
        except ValidationError as e:
            self._quarantine(path, e)
            return []

    def put(self, key: HistoryKey, history: list[EnhancedResult]) -> None:
        path = self.path_for(key)
        content = serialize_history(history)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    f.write(content)
                os.replace(tmp_name, path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as e:
            raise HistoryStoreError(f"Cannot write history for {key}: {e}", cause=e) from e
        self.logger.debug("Wrote %d entries to %s", len(history), path)

    def _quarantine(self, path: Path, error: Exception) -> None:
        self.logger.warning("Corrupt history file %s: %s", path, error)
        try:
            shutil.copyfile(path, path.with_name(path.name + ".corrupt"))
        except OSError as e:
            self.logger.warning("Could not back up %s: %s", path, e)


class InMemoryHistoryStore(IHistoryStore):
    """Dictionary-backed store."""

    def __init__(self, initial: dict[HistoryKey, list[EnhancedResult]] | None = None) -> None:
        self._data: dict[HistoryKey, list[EnhancedResult]] = dict(initial or {})

    def get(self, key: HistoryKey) -> list[EnhancedResult]:
        return list(self._data.get(key, []))

    def put(self, key: HistoryKey, history: list[EnhancedResult]) -> None:
        self._data[key] = list(history)

    def keys(self) -> list[HistoryKey]:
        return list(self._data)
