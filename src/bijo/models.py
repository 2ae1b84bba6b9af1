"""Domain types for the journal: energy levels, evening outcomes, entries, dataset."""

from __future__ import annotations

import json
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any

ENERGY_LEVELS = (-2, -1, 0, 1, 2)


class Slot(str, Enum):
    MORNING = "morning"
    MIDDAY = "midday"
    EVENING = "evening"


class EveningOutcome(str, Enum):
    # Declaration order is the canonical enumeration order (histograms, tie-breaks).
    VOLATILE_HIGH = "volatile_high"
    STABLE_HIGH = "stable_high"
    STABLE_NEUTRAL = "stable_neutral"
    VOLATILE_LOW = "volatile_low"
    STABLE_LOW = "stable_low"


# Fixed lookup, not a formula: "volatile"/"stable" does not order the values.
OUTCOME_NUMERIC: dict[EveningOutcome, int] = {
    EveningOutcome.STABLE_LOW: -2,
    EveningOutcome.VOLATILE_LOW: -1,
    EveningOutcome.STABLE_NEUTRAL: 0,
    EveningOutcome.VOLATILE_HIGH: 1,
    EveningOutcome.STABLE_HIGH: 2,
}


def energy_level(value: Any) -> int:
    """Validate an energy level (-2..2). Raises ValueError otherwise."""
    if isinstance(value, bool) or not isinstance(value, int) or value not in ENERGY_LEVELS:
        raise ValueError(f"energy level must be one of {ENERGY_LEVELS}, got {value!r}")
    return value


def evening_outcome(value: Any) -> EveningOutcome:
    try:
        return EveningOutcome(value)
    except ValueError:
        tags = ", ".join(o.value for o in EveningOutcome)
        raise ValueError(f"evening outcome must be one of: {tags} (got {value!r})") from None


@dataclass(frozen=True)
class LogEntry:
    date: str
    morning: int | None = None
    midday: int | None = None
    evening: EveningOutcome | None = None
    # fields written by newer versions; carried through untouched
    extra: dict[str, Any] = field(default_factory=dict, compare=False, hash=False, repr=False)

    def get(self, slot: Slot | str) -> Any:
        return getattr(self, Slot(slot).value)

    def with_slot(self, slot: Slot | str, value: Any) -> LogEntry:
        """Copy of this entry with a single slot replaced; the other slots are kept."""
        slot = Slot(slot)
        if slot is Slot.EVENING:
            value = evening_outcome(value)
        else:
            value = energy_level(value)
        return replace(self, **{slot.value: value})

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = dict(self.extra)
        d["date"] = self.date
        if self.morning is not None:
            d["morning"] = self.morning
        if self.midday is not None:
            d["midday"] = self.midday
        if self.evening is not None:
            d["evening"] = EveningOutcome(self.evening).value
        return d

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> LogEntry:
        if not isinstance(d, dict) or not isinstance(d.get("date"), str):
            raise ValueError(f"not a log entry: {d!r}")
        morning = d.get("morning")
        midday = d.get("midday")
        evening = d.get("evening")
        return cls(
            date=d["date"],
            morning=energy_level(morning) if morning is not None else None,
            midday=energy_level(midday) if midday is not None else None,
            evening=evening_outcome(evening) if evening is not None else None,
            extra={k: v for k, v in d.items() if k not in _ENTRY_KEYS},
        )


_ENTRY_KEYS = ("date", "morning", "midday", "evening")


@dataclass(frozen=True)
class WaveformPoint:
    x: float  # 0 = morning, 1 = midday, 2 = evening
    y: float  # energy, -2..2


@dataclass
class Dataset:
    user_id: str
    entries: dict[str, LogEntry] = field(default_factory=dict)
    # unknown keys under "user" and at the top level, kept for the next write
    user_extra: dict[str, Any] = field(default_factory=dict, compare=False, repr=False)
    extra: dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = dict(self.extra)
        d["user"] = {**self.user_extra, "id": self.user_id}
        d["entries"] = {k: e.to_dict() for k, e in self.entries.items()}
        return d

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> Dataset:
        if not isinstance(d, dict):
            raise ValueError("dataset must be a JSON object")
        user = d.get("user")
        if not isinstance(user, dict) or not isinstance(user.get("id"), str):
            raise ValueError("dataset is missing user.id")
        raw_entries = d.get("entries") or {}
        if not isinstance(raw_entries, dict):
            raise ValueError("dataset entries must be an object keyed by date")

        entries: dict[str, LogEntry] = {}
        for k, v in raw_entries.items():
            entry = LogEntry.from_dict(v)
            if entry.date != k:
                raise ValueError(f"entry keyed {k!r} has date {entry.date!r}")
            entries[k] = entry

        return cls(
            user_id=user["id"],
            entries=entries,
            user_extra={k: v for k, v in user.items() if k != "id"},
            extra={k: v for k, v in d.items() if k not in ("user", "entries")},
        )


def dump_snapshot(dataset: Dataset | None) -> str:
    """Indented JSON export; the literal ``null`` when there is no dataset."""
    if dataset is None:
        return "null"
    return json.dumps(dataset.to_dict(), indent=2, sort_keys=True, ensure_ascii=False)


def parse_snapshot(text: str) -> Dataset | None:
    """Inverse of dump_snapshot. Raises ValueError on malformed text."""
    try:
        raw = json.loads(text)
    except json.JSONDecodeError as e:
        raise ValueError(f"snapshot is not valid JSON: {e}") from e
    if raw is None:
        return None
    return Dataset.from_dict(raw)
