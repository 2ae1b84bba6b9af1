"""Tests for the key-value storage backends."""

from __future__ import annotations

import os
from pathlib import Path

import pytest

from bijo.storage import FileStorage, MemoryStorage


@pytest.fixture()
def fs(tmp_path: Path) -> FileStorage:
    return FileStorage(tmp_path / "data")


# ---- FileStorage.set ----


def test_set_creates_file(fs):
    fs.set("bijo-storage", b"{}")
    assert fs.path_for("bijo-storage").exists()


def test_set_creates_parent_dirs(tmp_path):
    deep = FileStorage(tmp_path / "a" / "b" / "c")
    deep.set("k", b"x")
    assert (tmp_path / "a" / "b" / "c" / "k.json").exists()


def test_set_is_atomic_no_tmp_left(fs):
    fs.set("k", b"1")
    path = fs.path_for("k")
    assert not path.with_name(path.name + ".tmp").exists()


def test_set_sets_permissions(fs):
    fs.set("k", b"1")
    mode = oct(os.stat(fs.path_for("k")).st_mode & 0o777)
    assert mode == "0o600"


def test_set_overwrites(fs):
    fs.set("k", b"first")
    fs.set("k", b"second")
    assert fs.get("k") == b"second"


# ---- FileStorage.get / delete ----


def test_get_missing_returns_none(fs):
    assert fs.get("nope") is None


def test_get_returns_bytes_written(fs):
    payload = '{"entries": {}, "note": "ünïcode"}'.encode("utf-8")
    fs.set("k", payload)
    assert fs.get("k") == payload


def test_delete_removes(fs):
    fs.set("k", b"1")
    fs.delete("k")
    assert fs.get("k") is None


def test_delete_missing_is_noop(fs):
    fs.delete("never-written")


@pytest.mark.parametrize("key", ["", "../escape", "a/b", ".hidden"])
def test_bad_keys_rejected(fs, key):
    with pytest.raises(ValueError):
        fs.get(key)


# ---- MemoryStorage ----


def test_memory_roundtrip():
    m = MemoryStorage()
    assert m.get("k") is None
    m.set("k", b"v")
    assert m.get("k") == b"v"
    m.delete("k")
    assert m.get("k") is None
    m.delete("k")


def test_memory_keys_sorted():
    m = MemoryStorage()
    m.set("b", b"")
    m.set("a", b"")
    assert m.keys() == ["a", "b"]
