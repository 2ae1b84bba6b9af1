"""
The journal store: single owner of the live Dataset.

Every mutation is read-merge-write on one entry, written through to the
storage backend under a fixed key before the in-memory dataset is swapped.
"""

from __future__ import annotations

import json
import logging
import time
import uuid
from dataclasses import replace
from typing import Any, Protocol

from . import dates
from .models import Dataset, LogEntry, Slot, dump_snapshot

log = logging.getLogger("bijo.store")

STORAGE_KEY = "bijo-storage"


class KeyValueStorage(Protocol):
    def get(self, key: str) -> bytes | None: ...

    def set(self, key: str, value: bytes) -> None: ...

    def delete(self, key: str) -> None: ...


def _new_user_id() -> str:
    return str(uuid.uuid4())


class JournalStore:
    def __init__(self, storage: KeyValueStorage, key: str = STORAGE_KEY):
        self.storage = storage
        self.key = key
        self._dataset: Dataset | None = None
        self.load()

    # -------- persistence --------

    def load(self) -> Dataset | None:
        """
        Rebuild state from storage.
        - missing -> absent
        - corrupt -> back up raw bytes under <key>.corrupt-<ts>, delete, absent
        """
        raw = self.storage.get(self.key)
        if raw is None:
            self._dataset = None
            return None

        try:
            payload = json.loads(raw.decode("utf-8"))
            self._dataset = Dataset.from_dict(payload) if payload is not None else None
        except (UnicodeDecodeError, ValueError) as e:
            backup = f"{self.key}.corrupt-{int(time.time())}"
            log.warning("stored dataset under %r is unreadable (%s); moved to %r", self.key, e, backup)
            self.storage.set(backup, raw)
            self.storage.delete(self.key)
            self._dataset = None
        return self._dataset

    def _commit(self, dataset: Dataset) -> None:
        # write first: a failed write must not leave memory ahead of storage
        self.storage.set(self.key, (dump_snapshot(dataset) + "\n").encode("utf-8"))
        self._dataset = dataset

    # -------- state --------

    @property
    def dataset(self) -> Dataset | None:
        return self._dataset

    @property
    def has_dataset(self) -> bool:
        return self._dataset is not None

    def entries(self) -> list[LogEntry]:
        """Snapshot of all entries, oldest first."""
        if self._dataset is None:
            return []
        return [self._dataset.entries[k] for k in sorted(self._dataset.entries)]

    def get_entry(self, date: str) -> LogEntry | None:
        if self._dataset is None:
            return None
        return self._dataset.entries.get(date)

    def get_todays_entry(self) -> LogEntry | None:
        return self.get_entry(dates.today())

    def export_snapshot(self) -> str:
        return dump_snapshot(self._dataset)

    # -------- mutators --------

    def initialize_new_user(self) -> Dataset:
        """Create a fresh dataset. Overwrites any existing one; callers check first."""
        dataset = Dataset(user_id=_new_user_id(), entries={})
        self._commit(dataset)
        log.info("initialized new journal for user %s", dataset.user_id)
        return dataset

    def _log_slot(self, date: str, slot: Slot, value: Any) -> None:
        current = self._dataset
        if current is None:
            log.debug("no dataset; ignoring %s log for %s", slot.value, date)
            return

        entry = current.entries.get(date) or LogEntry(date=date)
        entries = dict(current.entries)
        entries[date] = entry.with_slot(slot, value)
        self._commit(replace(current, entries=entries))

    def log_morning(self, date: str, level: int) -> None:
        self._log_slot(date, Slot.MORNING, level)

    def log_midday(self, date: str, level: int) -> None:
        self._log_slot(date, Slot.MIDDAY, level)

    def log_evening(self, date: str, outcome: str) -> None:
        self._log_slot(date, Slot.EVENING, outcome)
