"""Tests for the durable invalid-key record."""

import json
import os
from pathlib import Path

import pytest

from imagen_gateway.core.invalid_keys import InvalidKeyStore


class TestInvalidKeyStore:
    """Tests for InvalidKeyStore loading and persistence."""

    def test_missing_file_starts_empty(self, tmp_path: Path):
        store = InvalidKeyStore(tmp_path / "absent.json")

        assert len(store) == 0
        assert store.get_all() == set()

    def test_loads_existing_record(self, tmp_path: Path):
        path = tmp_path / "invalid.json"
        path.write_text(json.dumps(["key-1", "key-2"]))

        store = InvalidKeyStore(path)

        assert store.has("key-1")
        assert "key-2" in store
        assert not store.has("key-3")

    @pytest.mark.parametrize(
        "content",
        ["{not json", '{"keys": ["a"]}', "", '"just-a-string"'],
    )
    def test_corrupt_record_is_treated_as_empty(self, tmp_path: Path, content: str):
        path = tmp_path / "invalid.json"
        path.write_text(content)

        store = InvalidKeyStore(path)

        assert len(store) == 0

    def test_non_string_entries_are_ignored(self, tmp_path: Path):
        path = tmp_path / "invalid.json"
        path.write_text(json.dumps(["key-1", 42, None, ""]))

        store = InvalidKeyStore(path)

        assert store.get_all() == {"key-1"}

    def test_add_persists_full_record(self, tmp_path: Path):
        path = tmp_path / "nested" / "invalid.json"
        store = InvalidKeyStore(path)

        assert store.add("key-b") is True
        assert store.add("key-a") is True

        assert json.loads(path.read_text()) == ["key-a", "key-b"]
        assert InvalidKeyStore(path).get_all() == {"key-a", "key-b"}

    def test_add_existing_key_is_noop(self, tmp_path: Path):
        path = tmp_path / "invalid.json"
        store = InvalidKeyStore(path)
        store.add("key-1")
        mtime = path.stat().st_mtime_ns

        assert store.add("key-1") is False
        assert len(store) == 1
        assert path.stat().st_mtime_ns == mtime

    def test_get_all_returns_copy(self, tmp_path: Path):
        store = InvalidKeyStore(tmp_path / "invalid.json")
        store.add("key-1")

        snapshot = store.get_all()
        snapshot.add("intruder")

        assert not store.has("intruder")

    def test_persist_failure_does_not_raise(self, tmp_path: Path, monkeypatch):
        """A failed write keeps the key in memory and lets serving continue."""
        path = tmp_path / "invalid.json"
        store = InvalidKeyStore(path)

        def failing_replace(src, dst):
            raise OSError("disk full")

        monkeypatch.setattr(os, "replace", failing_replace)

        assert store.add("key-1") is True
        assert store.has("key-1")
        assert not path.exists()
