"""
Unit tests for result history rules and stores.
"""

import json

import pytest

from reprogistry.core.exceptions import HistoryStoreError
from reprogistry.core.interfaces.store import HistoryKey
from reprogistry.services.cache.history import (
    dedupe_history,
    find_stale_versions,
    is_stale,
    merge_history,
    sort_history,
)
from reprogistry.services.cache.queue import DependencyQueue
from reprogistry.services.cache.store import (
    InMemoryHistoryStore,
    JsonFileHistoryStore,
    history_filename,
)


class TestDedupe:
    """Tests for one-entry-per-tool-version histories."""

    def test_one_entry_per_reproduce_version(self, make_result):
        history = dedupe_history(
            [
                make_result(reproduce_version="0.2.0", timestamp="2024-01-01T00:00:00.000Z"),
                make_result(reproduce_version="0.3.0", timestamp="2024-02-01T00:00:00.000Z"),
                make_result(reproduce_version="0.3.0", timestamp="2024-03-01T00:00:00.000Z"),
            ]
        )
        assert [(e.reproduce_version, e.timestamp) for e in history] == [
            ("0.2.0", "2024-01-01T00:00:00.000Z"),
            ("0.3.0", "2024-03-01T00:00:00.000Z"),
        ]

    def test_compared_entry_beats_newer_uncompared(self, make_result):
        compared = make_result(timestamp="2024-01-01T00:00:00.000Z", compared=True)
        uncompared = make_result(timestamp="2024-05-01T00:00:00.000Z", compared=False)

        assert dedupe_history([compared, uncompared]) == [compared]
        assert dedupe_history([uncompared, compared]) == [compared]

    def test_idempotent(self, make_result):
        entries = [
            make_result(reproduce_version="0.3.0", timestamp="2024-03-01T00:00:00.000Z"),
            make_result(reproduce_version="0.1.0", timestamp="2024-01-01T00:00:00.000Z", compared=False),
            make_result(reproduce_version="0.3.0", timestamp="2024-02-01T00:00:00.000Z"),
        ]
        once = dedupe_history(entries)
        assert dedupe_history(once) == once

    def test_appending_the_same_result_twice(self, make_result):
        history = [
            make_result(reproduce_version="0.2.0", timestamp="2024-01-01T00:00:00.000Z"),
            make_result(reproduce_version="0.3.0", timestamp="2024-02-01T00:00:00.000Z", compared=False),
        ]
        entry = make_result(reproduce_version="0.3.0", timestamp="2024-03-01T00:00:00.000Z")

        appended_once = merge_history(history, entry)
        appended_twice = merge_history(appended_once, entry)

        assert appended_twice == appended_once
        assert merge_history(history, [entry, entry]) == appended_once
        assert appended_once[-1] == entry


class TestSortHistory:
    """Tests for history ordering."""

    def test_by_timestamp(self, make_result):
        late = make_result(reproduce_version="0.1.0", timestamp="2024-06-01T00:00:00.000Z")
        early = make_result(reproduce_version="0.2.0", timestamp="2024-01-01T00:00:00.000Z")
        assert sort_history([late, early]) == [early, late]

    def test_ties_broken_by_semver(self, make_result):
        ts = "2024-01-01T00:00:00.000Z"
        newer = make_result(reproduce_version="0.10.0", timestamp=ts)
        older = make_result(reproduce_version="0.9.0", timestamp=ts)
        assert sort_history([newer, older]) == [older, newer]

    def test_unparseable_timestamp_sorts_first(self, make_result):
        bad = make_result(reproduce_version="0.1.0", timestamp="yesterday")
        good = make_result(reproduce_version="0.2.0", timestamp="2024-01-01T00:00:00.000Z")
        assert sort_history([good, bad]) == [bad, good]

    def test_merge_appends_and_normalizes(self, make_result):
        existing = [make_result(reproduce_version="0.2.0", timestamp="2024-01-01T00:00:00.000Z")]
        new = make_result(reproduce_version="0.3.0", timestamp="2024-02-01T00:00:00.000Z")

        merged = merge_history(existing, new)
        assert [e.reproduce_version for e in merged] == ["0.2.0", "0.3.0"]
        assert merged[-1] is new


class TestStaleness:
    """Tests for is_stale and find_stale_versions."""

    def test_empty_history_is_stale(self):
        assert is_stale([], "0.3.0", "hash-1") is True

    def test_other_tool_version_only(self, make_result):
        assert is_stale([make_result(reproduce_version="0.2.0")], "0.3.0", "hash-1") is True

    def test_fresh(self, make_result):
        assert is_stale([make_result()], "0.3.0", "hash-1") is False

    def test_missing_comparison(self, make_result):
        assert is_stale([make_result(compared=False)], "0.3.0", "hash-1") is True

    def test_comparison_logic_changed(self, make_result):
        assert is_stale([make_result(comparison_hash="old")], "0.3.0", "hash-1") is True

    def test_find_stale_versions(self, make_result):
        store = InMemoryHistoryStore(
            {
                HistoryKey("demo", "1.0.0"): [make_result(version="1.0.0")],
                HistoryKey("demo", "1.1.0"): [make_result(version="1.1.0", comparison_hash="old")],
            }
        )
        stale = find_stale_versions(store, "demo", ["1.0.0", "1.1.0", "2.0.0"], "0.3.0", "hash-1")
        assert stale == ["1.1.0", "2.0.0"]


class TestJsonFileHistoryStore:
    """Tests for the file-per-version store."""

    def test_file_layout(self, tmp_path):
        store = JsonFileHistoryStore(tmp_path)
        assert store.path_for(HistoryKey("demo", "1.2.3")) == tmp_path / "demo" / "v1.2.3"
        assert store.path_for(HistoryKey("@scope/demo", "1.0.0")) == tmp_path / "@scope" / "demo" / "v1.0.0"

    def test_history_filename(self):
        assert history_filename("1.2.3") == "v1.2.3"
        assert history_filename("v1.2.3") == "v1.2.3"

    def test_missing_file_is_empty(self, tmp_path):
        assert JsonFileHistoryStore(tmp_path).get(HistoryKey("demo", "1.0.0")) == []

    def test_put_then_get(self, tmp_path, make_result):
        store = JsonFileHistoryStore(tmp_path)
        key = HistoryKey("demo", "1.0.0")
        history = [make_result(reproduce_version="0.2.0"), make_result()]

        store.put(key, history)
        assert store.get(key) == history

    def test_written_format(self, tmp_path, make_result):
        store = JsonFileHistoryStore(tmp_path)
        key = HistoryKey("demo", "1.0.0")
        store.put(key, [make_result()])

        text = store.path_for(key).read_text()
        assert text.endswith("\n")
        assert '\n\t{\n\t\t"reproduceVersion": "0.3.0"' in text
        assert list(tmp_path.joinpath("demo").iterdir()) == [store.path_for(key)]

    def test_unknown_fields_survive_rewrite(self, tmp_path, make_result):
        store = JsonFileHistoryStore(tmp_path)
        key = HistoryKey("demo", "1.0.0")
        path = store.path_for(key)
        path.parent.mkdir(parents=True)
        entry = make_result().to_json_dict()
        entry["futureField"] = {"kept": True}
        path.write_text(json.dumps([entry]))

        store.put(key, store.get(key))
        assert json.loads(path.read_text())[0]["futureField"] == {"kept": True}

    @pytest.mark.parametrize("content", ["{not json", '{"an": "object"}', '[{"timestamp": 1}]'])
    def test_corrupt_file_is_quarantined(self, tmp_path, content):
        store = JsonFileHistoryStore(tmp_path)
        key = HistoryKey("demo", "1.0.0")
        path = store.path_for(key)
        path.parent.mkdir(parents=True)
        path.write_text(content)

        assert store.get(key) == []
        assert path.with_name("v1.0.0.corrupt").read_text() == content

    def test_write_failure(self, tmp_path, make_result):
        blocker = tmp_path / "demo"
        blocker.write_text("a file where a directory should be")

        with pytest.raises(HistoryStoreError):
            JsonFileHistoryStore(tmp_path).put(HistoryKey("demo", "1.0.0"), [make_result()])


class TestDependencyQueue:
    """Tests for dependency queue files."""

    def test_write(self, tmp_path):
        queue = DependencyQueue(tmp_path)
        path = queue.write("demo", "1.0.0", {"b": "^2", "a": "^1"}, ["a@1.0.1", "b@2.3.0"])

        assert path == tmp_path / "demo" / "v1.0.0.json"
        assert json.loads(path.read_text()) == {
            "package": "demo",
            "version": "1.0.0",
            "dependencies": {"a": "^1", "b": "^2"},
            "transitiveDependencies": ["a@1.0.1", "b@2.3.0"],
        }
