"""Byte-level key-value backends the journal store persists through."""

from __future__ import annotations

import logging
import os
import re
from pathlib import Path

log = logging.getLogger("bijo.storage")

_KEY_RE = re.compile(r"[A-Za-z0-9._-]+")


def _check_key(key: str) -> str:
    if not _KEY_RE.fullmatch(key) or key.startswith("."):
        raise ValueError(f"invalid storage key {key!r}")
    return key


class MemoryStorage:
    def __init__(self) -> None:
        self._items: dict[str, bytes] = {}

    def get(self, key: str) -> bytes | None:
        return self._items.get(key)

    def set(self, key: str, value: bytes) -> None:
        self._items[key] = bytes(value)

    def delete(self, key: str) -> None:
        self._items.pop(key, None)

    def keys(self) -> list[str]:
        return sorted(self._items)


class FileStorage:
    """One file per key under a root directory: <root>/<key>.json."""

    def __init__(self, root: Path):
        self.root = Path(root)

    def path_for(self, key: str) -> Path:
        return self.root / f"{_check_key(key)}.json"

    def get(self, key: str) -> bytes | None:
        path = self.path_for(key)
        try:
            return path.read_bytes()
        except FileNotFoundError:
            return None

    def set(self, key: str, value: bytes) -> None:
        """
        Atomic-ish write:
        - write to temp file in same directory
        - flush + fsync
        - os.replace to target
        - chmod 0600 best-effort
        """
        path = self.path_for(key)
        path.parent.mkdir(parents=True, exist_ok=True)

        tmp = path.with_name(path.name + ".tmp")
        with open(tmp, "wb") as f:
            f.write(value)
            f.flush()
            os.fsync(f.fileno())

        os.replace(tmp, path)

        try:
            os.chmod(path, 0o600)
        except OSError:
            pass
        log.debug("wrote %d bytes to %s", len(value), path)

    def delete(self, key: str) -> None:
        try:
            self.path_for(key).unlink()
        except FileNotFoundError:
            pass
