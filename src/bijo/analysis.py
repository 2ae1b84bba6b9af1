"""
Pure analysis over entry snapshots: averages, variance, outcome counts,
trends, completion, and per-day waveforms.

Nothing here mutates its input. Missing slots are skipped, never counted as 0.
"""

from __future__ import annotations

from collections.abc import Sequence
from enum import Enum

from .dates import last_n_days
from .models import OUTCOME_NUMERIC, EveningOutcome, LogEntry, Slot, WaveformPoint

TREND_THRESHOLD = 0.6


class Trend(str, Enum):
    INCREASING = "increasing"
    DECREASING = "decreasing"
    STABLE = "stable"


def _energy_slot(slot: Slot | str) -> Slot:
    try:
        s = Slot(slot)
    except ValueError:
        s = None
    if s not in (Slot.MORNING, Slot.MIDDAY):
        raise ValueError(f"energy slot must be 'morning' or 'midday', got {slot!r}")
    return s


def _present(entries: Sequence[LogEntry], slot: Slot) -> list[int]:
    return [v for v in (e.get(slot) for e in entries) if v is not None]


def average_energy(entries: Sequence[LogEntry], slot: Slot | str) -> float | None:
    values = _present(entries, _energy_slot(slot))
    if not values:
        return None
    return sum(values) / len(values)


def energy_variance(entries: Sequence[LogEntry], slot: Slot | str) -> float | None:
    """Population variance; needs at least two logged values."""
    values = _present(entries, _energy_slot(slot))
    n = len(values)
    if n < 2:
        return None
    mean = sum(values) / n
    return sum((v - mean) ** 2 for v in values) / n


def outcome_histogram(entries: Sequence[LogEntry]) -> dict[EveningOutcome, int]:
    counts: dict[EveningOutcome, int] = {o: 0 for o in EveningOutcome}
    for e in entries:
        if e.evening is not None:
            counts[EveningOutcome(e.evening)] += 1
    return counts


def most_common_outcome(entries: Sequence[LogEntry]) -> EveningOutcome | None:
    """Ties go to the outcome declared first in EveningOutcome."""
    best: EveningOutcome | None = None
    best_count = 0
    for outcome, count in outcome_histogram(entries).items():
        if count > best_count:
            best, best_count = outcome, count
    return best


def outcome_to_numeric(outcome: EveningOutcome | str) -> int:
    return OUTCOME_NUMERIC[EveningOutcome(outcome)]


def waveform_points(entry: LogEntry) -> list[WaveformPoint]:
    points: list[WaveformPoint] = []
    if entry.morning is not None:
        points.append(WaveformPoint(x=0, y=entry.morning))
    if entry.midday is not None:
        points.append(WaveformPoint(x=1, y=entry.midday))
    if entry.evening is not None:
        points.append(WaveformPoint(x=2, y=outcome_to_numeric(entry.evening)))
    return points


def _interpolate_y(points: list[WaveformPoint], x: float) -> float:
    left: WaveformPoint | None = None
    right: WaveformPoint | None = None
    for p in points:
        if p.x <= x and (left is None or p.x > left.x):
            left = p
        if p.x >= x and (right is None or p.x < right.x):
            right = p

    # flat extrapolation past either end
    if left is None:
        return right.y
    if right is None:
        return left.y
    if left.x == right.x:
        return left.y

    t = (x - left.x) / (right.x - left.x)
    return left.y + t * (right.y - left.y)


def smooth_waveform(entry: LogEntry, resolution: int = 10) -> list[WaveformPoint]:
    """
    Sample `resolution` evenly spaced x-values over [0, 2] and linearly
    interpolate between the logged slots. Fewer than two logged slots
    returns the base points unchanged.
    """
    base = waveform_points(entry)
    if len(base) < 2:
        return base
    if resolution < 2:
        raise ValueError(f"resolution must be at least 2, got {resolution}")

    out: list[WaveformPoint] = []
    for i in range(resolution):
        x = 2 * i / (resolution - 1)
        out.append(WaveformPoint(x=x, y=_interpolate_y(base, x)))
    return out


def detect_trend(entries: Sequence[LogEntry], slot: Slot | str) -> Trend | None:
    """
    Classify a slot over date order. Needs 3+ logged values.
    increasing/decreasing when >= 60% of consecutive steps go that way.
    """
    s = _energy_slot(slot)
    logged = sorted((e for e in entries if e.get(s) is not None), key=lambda e: e.date)
    if len(logged) < 3:
        return None

    ups = downs = 0
    for prev, cur in zip(logged, logged[1:]):
        if cur.get(s) > prev.get(s):
            ups += 1
        elif cur.get(s) < prev.get(s):
            downs += 1

    threshold = TREND_THRESHOLD * (len(logged) - 1)
    if ups >= threshold:
        return Trend.INCREASING
    if downs >= threshold:
        return Trend.DECREASING
    return Trend.STABLE


def completion_rate(entries: Sequence[LogEntry]) -> dict[str, float]:
    n = len(entries)
    if n == 0:
        return {"morning": 0.0, "midday": 0.0, "evening": 0.0, "overall": 0.0}

    morning = sum(1 for e in entries if e.morning is not None)
    midday = sum(1 for e in entries if e.midday is not None)
    evening = sum(1 for e in entries if e.evening is not None)
    return {
        "morning": morning / n,
        "midday": midday / n,
        "evening": evening / n,
        "overall": (morning + midday + evening) / (3 * n),
    }


def entries_in_window(entries: Sequence[LogEntry], days: int) -> list[LogEntry]:
    """Entries dated within the last `days` calendar days (today included)."""
    window = set(last_n_days(days))
    return [e for e in entries if e.date in window]
