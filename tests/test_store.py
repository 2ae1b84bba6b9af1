"""Tests for JournalStore: merging, persistence, and recovery."""

from __future__ import annotations

import json
from datetime import date

import pytest

from bijo import dates
from bijo.models import Dataset, EveningOutcome, LogEntry, parse_snapshot
from bijo.storage import FileStorage, MemoryStorage
from bijo.store import STORAGE_KEY, JournalStore


class FlakyStorage(MemoryStorage):
    def __init__(self) -> None:
        super().__init__()
        self.fail = False

    def set(self, key: str, value: bytes) -> None:
        if self.fail:
            raise OSError("disk full")
        super().set(key, value)


@pytest.fixture()
def storage() -> MemoryStorage:
    return MemoryStorage()


@pytest.fixture()
def store(storage) -> JournalStore:
    s = JournalStore(storage)
    s.initialize_new_user()
    return s


# ---- initialization ----


def test_starts_absent(storage):
    s = JournalStore(storage)
    assert s.dataset is None
    assert not s.has_dataset
    assert s.export_snapshot() == "null"
    assert s.entries() == []


def test_initialize_new_user(storage):
    s = JournalStore(storage)
    ds = s.initialize_new_user()
    assert ds.entries == {}
    assert ds.user_id
    assert s.dataset == ds
    assert storage.get(STORAGE_KEY) is not None


def test_initialize_overwrites(store):
    store.log_morning("2024-01-15", 1)
    old_id = store.dataset.user_id
    store.initialize_new_user()
    assert store.dataset.user_id != old_id
    assert store.dataset.entries == {}


# ---- logging ----


def test_log_without_dataset_is_noop(storage):
    s = JournalStore(storage)
    s.log_morning("2024-01-15", 1)
    s.log_midday("2024-01-15", 1)
    s.log_evening("2024-01-15", "stable_high")
    assert s.dataset is None
    assert storage.get(STORAGE_KEY) is None


def test_fields_merge_across_slots(store):
    store.log_morning("2024-01-15", -1)
    store.log_midday("2024-01-15", 2)
    store.log_evening("2024-01-15", "volatile_high")
    assert store.get_entry("2024-01-15") == LogEntry(
        date="2024-01-15", morning=-1, midday=2, evening=EveningOutcome.VOLATILE_HIGH
    )


def test_merge_is_order_independent(store):
    store.log_evening("2024-01-15", "stable_low")
    store.log_morning("2024-01-15", 0)
    entry = store.get_entry("2024-01-15")
    assert entry.morning == 0
    assert entry.midday is None
    assert entry.evening == "stable_low"


def test_last_write_wins_per_field(store):
    store.log_morning("2024-01-15", 1)
    store.log_midday("2024-01-15", 1)
    store.log_morning("2024-01-15", -2)
    entry = store.get_entry("2024-01-15")
    assert entry.morning == -2
    assert entry.midday == 1


def test_dates_are_independent(store):
    store.log_morning("2024-01-15", 1)
    store.log_morning("2024-01-16", 2)
    assert [e.date for e in store.entries()] == ["2024-01-15", "2024-01-16"]


def test_invalid_level_rejected(store):
    with pytest.raises(ValueError):
        store.log_morning("2024-01-15", 5)
    assert store.get_entry("2024-01-15") is None


def test_todays_entry(store, monkeypatch):
    monkeypatch.setattr(dates, "_local_today", lambda: date(2024, 1, 15))
    assert store.get_todays_entry() is None
    store.log_midday("2024-01-15", 0)
    assert store.get_todays_entry() == LogEntry(date="2024-01-15", midday=0)


def test_todays_entry_without_dataset(storage):
    assert JournalStore(storage).get_todays_entry() is None


# ---- persistence ----


def test_every_mutation_writes_through(store, storage):
    store.log_morning("2024-01-15", 1)
    persisted = parse_snapshot(storage.get(STORAGE_KEY).decode("utf-8"))
    assert persisted == store.dataset


def test_restart_reconstructs_dataset(tmp_path):
    s1 = JournalStore(FileStorage(tmp_path))
    s1.initialize_new_user()
    s1.log_morning("2024-01-15", -1)
    s1.log_evening("2024-01-15", "stable_neutral")

    s2 = JournalStore(FileStorage(tmp_path))
    assert s2.dataset == s1.dataset


def test_export_snapshot_is_indented_json(store):
    store.log_midday("2024-01-15", 2)
    text = store.export_snapshot()
    assert text.count("\n") > 3
    data = json.loads(text)
    assert data["user"]["id"] == store.dataset.user_id
    assert data["entries"]["2024-01-15"] == {"date": "2024-01-15", "midday": 2}


def test_export_roundtrip(store):
    store.log_morning("2024-01-14", 2)
    store.log_evening("2024-01-15", "volatile_low")
    assert parse_snapshot(store.export_snapshot()) == store.dataset


def test_storage_failure_propagates_and_keeps_state():
    storage = FlakyStorage()
    s = JournalStore(storage)
    s.initialize_new_user()
    s.log_morning("2024-01-15", 1)
    before = s.dataset

    storage.fail = True
    with pytest.raises(OSError):
        s.log_midday("2024-01-15", 2)
    assert s.dataset == before
    assert s.get_entry("2024-01-15").midday is None


# ---- corruption guard ----


def test_corrupt_bytes_backed_up_and_reset(storage):
    storage.set(STORAGE_KEY, b"not valid json {{{{")
    s = JournalStore(storage)
    assert s.dataset is None
    assert storage.get(STORAGE_KEY) is None
    backups = [k for k in storage.keys() if k.startswith(STORAGE_KEY + ".corrupt-")]
    assert len(backups) == 1
    assert storage.get(backups[0]) == b"not valid json {{{{"


def test_wrong_shape_treated_as_corrupt(storage):
    storage.set(STORAGE_KEY, json.dumps([1, 2, 3]).encode())
    s = JournalStore(storage)
    assert s.dataset is None


def test_persisted_null_is_absent(storage):
    storage.set(STORAGE_KEY, b"null")
    assert JournalStore(storage).dataset is None


def test_custom_key(storage):
    s = JournalStore(storage, key="other")
    s.initialize_new_user()
    assert storage.get("other") is not None
    assert storage.get(STORAGE_KEY) is None
    assert isinstance(JournalStore(storage, key="other").dataset, Dataset)


def test_unknown_fields_survive_logging(storage):
    raw = {
        "user": {"id": "u1", "device": "phone"},
        "entries": {"2024-01-15": {"date": "2024-01-15", "morning": 1, "note": "coffee"}},
        "version": 2,
    }
    storage.set(STORAGE_KEY, json.dumps(raw).encode())
    s = JournalStore(storage)
    s.log_midday("2024-01-15", -1)

    persisted = json.loads(storage.get(STORAGE_KEY))
    assert persisted["version"] == 2
    assert persisted["user"] == {"id": "u1", "device": "phone"}
    assert persisted["entries"]["2024-01-15"] == {
        "date": "2024-01-15",
        "morning": 1,
        "midday": -1,
        "note": "coffee",
    }


def test_mismatched_entry_key_treated_as_corrupt(storage):
    raw = {"user": {"id": "u1"}, "entries": {"2024-01-15": {"date": "2024-01-16"}}}
    storage.set(STORAGE_KEY, json.dumps(raw).encode())
    s = JournalStore(storage)
    assert s.dataset is None
    assert any(k.startswith(STORAGE_KEY + ".corrupt-") for k in storage.keys())
