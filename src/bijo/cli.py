from __future__ import annotations

import argparse
import logging
import os
import stat
from pathlib import Path

from . import analysis
from .dates import format_for_display, last_n_days, parse_day
from .models import EveningOutcome, LogEntry
from .paths import ENV_VAR, resolve_data_dir
from .safety import assert_safe_data_dir
from .storage import FileStorage
from .store import STORAGE_KEY, JournalStore

log = logging.getLogger("bijo.cli")


# -------------------------
# Parsing helpers
# -------------------------

# a bare "--" is argparse's end-of-options marker, so -2 has no symbol form
LEVEL_SYMBOLS = {"-": -1, "0": 0, "+": 1, "++": 2}
LEVEL_WORDS = {"vlow": -2, "low": -1, "ok": 0, "high": 1, "vhigh": 2}


def _parse_level(value: str) -> int:
    """
    Accepts:
      - "-2" .. "2"
      - "-", "0", "+", "++"
      - "vlow", "low", "ok", "high", "vhigh"
    Raises SystemExit on anything else.
    """
    s = str(value).strip()
    if s in LEVEL_SYMBOLS:
        return LEVEL_SYMBOLS[s]
    if s.lower() in LEVEL_WORDS:
        return LEVEL_WORDS[s.lower()]
    try:
        n = int(s)
    except ValueError:
        n = None
    if n is None or not (-2 <= n <= 2):
        raise SystemExit(f"energy level must be -2..2 or one of {', '.join([*LEVEL_SYMBOLS, *LEVEL_WORDS])} (got {value!r})")
    return n


def _parse_outcome(value: str) -> EveningOutcome:
    s = str(value).strip().lower().replace("-", "_")
    try:
        return EveningOutcome(s)
    except ValueError:
        tags = ", ".join(o.value for o in EveningOutcome)
        raise SystemExit(f"evening outcome must be one of: {tags} (got {value!r})") from None


def _parse_day(value: str | None) -> str:
    try:
        return parse_day(value)
    except ValueError as e:
        raise SystemExit(str(e)) from None


def _window_days(window: str) -> tuple[int | None, str]:
    if window == "7":
        return 7, "last 7 days"
    if window == "30":
        return 30, "last 30 days"
    return None, "all time"


# -------------------------
# Formatting helpers
# -------------------------

def _fmt_level(v: int | float | None) -> str:
    if v is None:
        return "—"
    if v == 0:
        return "0"
    return f"{v:+d}" if isinstance(v, int) else f"{v:+.2f}"


def _fmt_outcome(o: EveningOutcome | str | None) -> str:
    if o is None:
        return "—"
    return EveningOutcome(o).value.replace("_", " ")


def _fmt_pct(x: float) -> str:
    return f"{x * 100:.0f}%"


def _sparkline(values: list[float], vmin: float = -2.0, vmax: float = 2.0) -> str:
    if not values:
        return ""
    blocks = "▁▂▃▄▅▆▇█"
    span = max(1e-9, vmax - vmin)
    out = []
    for v in values:
        x = (v - vmin) / span
        idx = int(round(x * (len(blocks) - 1)))
        idx = max(0, min(len(blocks) - 1, idx))
        out.append(blocks[idx])
    return "".join(out)


def _print_entry_block(entry: LogEntry) -> None:
    print("```")
    print("📒 Energy Log")
    print(f"- 📅 Date: {format_for_display(entry.date)}")
    print(f"- 🌅 Morning: {_fmt_level(entry.morning)}")
    print(f"- 🌤️ Mid-day: {_fmt_level(entry.midday)}")
    print(f"- 🌙 End of day: {_fmt_outcome(entry.evening)}")
    curve = analysis.smooth_waveform(entry)
    if len(curve) >= 2:
        print(f"- 〰️ Waveform: {_sparkline([p.y for p in curve])}")
    print("```")


def _entry_line(entry: LogEntry) -> str:
    return (
        f"{entry.date} — morning {_fmt_level(entry.morning)}, "
        f"mid-day {_fmt_level(entry.midday)}, "
        f"evening {_fmt_outcome(entry.evening)}"
    )


def _open_store(args: argparse.Namespace) -> JournalStore:
    return JournalStore(FileStorage(args.data_dir))


def _require_dataset(store: JournalStore) -> None:
    if not store.has_dataset:
        raise SystemExit("No journal yet, nothing recorded. Run `bijo init` first.")


# -------------------------
# Logging commands
# -------------------------

def _after_log(store: JournalStore, date: str, what: str, args: argparse.Namespace) -> None:
    entry = store.get_entry(date)
    if entry is None:
        return
    if args.format == "block":
        _print_entry_block(entry)
    else:
        print(f"✅ Logged {what} for {date}")


def cmd_morning(args: argparse.Namespace) -> None:
    level = _parse_level(args.level)
    date = _parse_day(args.date)
    store = _open_store(args)
    _require_dataset(store)
    store.log_morning(date, level)
    _after_log(store, date, f"morning {_fmt_level(level)}", args)


def cmd_midday(args: argparse.Namespace) -> None:
    level = _parse_level(args.level)
    date = _parse_day(args.date)
    store = _open_store(args)
    _require_dataset(store)
    store.log_midday(date, level)
    _after_log(store, date, f"mid-day {_fmt_level(level)}", args)


def cmd_evening(args: argparse.Namespace) -> None:
    outcome = _parse_outcome(args.outcome)
    date = _parse_day(args.date)
    store = _open_store(args)
    _require_dataset(store)
    store.log_evening(date, outcome)
    _after_log(store, date, f"evening {_fmt_outcome(outcome)}", args)


# -------------------------
# Views
# -------------------------

def cmd_today(args: argparse.Namespace) -> None:
    store = _open_store(args)
    entry = store.get_todays_entry()
    if entry is None:
        print("Nothing logged today yet.")
        return
    if args.format == "block":
        _print_entry_block(entry)
    else:
        print(_entry_line(entry))


def cmd_history(args: argparse.Namespace) -> None:
    store = _open_store(args)
    if not store.has_dataset:
        print("No journal yet. Run `bijo init` first.")
        return

    print(f"=== Last {args.days} days ===")
    for d in last_n_days(args.days):
        entry = store.get_entry(d)
        label = format_for_display(d)
        if entry is None:
            print(f"- {label}: ·")
            continue
        spark = _sparkline([p.y for p in analysis.smooth_waveform(entry, resolution=5)])
        print(
            f"- {label}: M {_fmt_level(entry.morning)} · D {_fmt_level(entry.midday)} · "
            f"E {_fmt_outcome(entry.evening)} {spark}".rstrip()
        )


def cmd_waveform(args: argparse.Namespace) -> None:
    date = _parse_day(args.date)
    store = _open_store(args)
    entry = store.get_entry(date)
    if entry is None:
        print(f"No entry for {date}.")
        return

    base = analysis.waveform_points(entry)
    if not base:
        print(f"No signals logged for {date}.")
        return

    print(f"=== Waveform ({format_for_display(date)}) ===")
    print("\n[Logged points]")
    for p in base:
        print(f"- x={p.x:g}  y={p.y:+g}")

    try:
        curve = analysis.smooth_waveform(entry, resolution=args.resolution)
    except ValueError as e:
        raise SystemExit(str(e)) from None
    if len(curve) < 2:
        print("\n(only one signal logged; nothing to interpolate)")
        return

    print(f"\n[Smoothed, resolution={args.resolution}]")
    for p in curve:
        print(f"- x={p.x:.2f}  y={p.y:+.2f}")
    print(f"- sparkline: {_sparkline([p.y for p in curve])}")


def cmd_stats(args: argparse.Namespace) -> None:
    store = _open_store(args)
    entries = store.entries()
    days, label = _window_days(args.window)
    if days is not None:
        entries = analysis.entries_in_window(entries, days)

    if not entries:
        print(f"No entries found for {label}.")
        return

    print(f"=== Energy Stats ({label}) ===")
    print(f"- days logged: {len(entries)}")

    for slot in ("morning", "midday"):
        avg = analysis.average_energy(entries, slot)
        var = analysis.energy_variance(entries, slot)
        trend = analysis.detect_trend(entries, slot)
        print(f"\n[{slot.upper()}]")
        print(f"- average: {'—' if avg is None else f'{avg:+.2f}'}")
        print(f"- variance: {'—' if var is None else f'{var:.2f}'}")
        print(f"- trend: {trend.value if trend else '— (need 3+ days)'}")
        values = [e.get(slot) for e in entries if e.get(slot) is not None]
        if values:
            print(f"- sparkline: {_sparkline(values)}")

    print("\n[EVENING]")
    hist = analysis.outcome_histogram(entries)
    for outcome, count in hist.items():
        bar = "▇" * min(count, 30)
        print(f"{_fmt_outcome(outcome):>14}: {count:>3} {bar}")
    common = analysis.most_common_outcome(entries)
    print(f"- most common: {_fmt_outcome(common)}")

    rates = analysis.completion_rate(entries)
    print("\n[COMPLETION]")
    print(
        f"- morning {_fmt_pct(rates['morning'])} · mid-day {_fmt_pct(rates['midday'])} · "
        f"evening {_fmt_pct(rates['evening'])} · overall {_fmt_pct(rates['overall'])}"
    )


def cmd_export(args: argparse.Namespace) -> None:
    store = _open_store(args)
    text = store.export_snapshot()
    if not args.out:
        print(text)
        return

    out_path = Path(args.out).expanduser().resolve()
    out_path.parent.mkdir(parents=True, exist_ok=True)
    out_path.write_text(text + "\n", encoding="utf-8")
    n = len(store.dataset.entries) if store.dataset else 0
    print(f"📄 Exported {n} entries → {out_path}")


# -------------------------
# Core commands
# -------------------------

def cmd_init(args: argparse.Namespace) -> None:
    store = _open_store(args)
    if store.has_dataset:
        print(f"✅ Journal already initialized: {args.data_dir}")
        return
    store.initialize_new_user()
    print(f"✅ Initialized journal: {args.data_dir}")


def cmd_where(args: argparse.Namespace) -> None:
    env = os.environ.get(ENV_VAR)
    if args.data_arg:
        reason = "because you passed --data"
    elif env:
        reason = f"because {ENV_VAR} is set"
    elif args.profile:
        reason = f"because you used --profile {args.profile!r}"
    else:
        reason = "default XDG config location"

    print(args.data_dir)
    print(f"↳ using {reason}")


def cmd_doctor(args: argparse.Namespace) -> None:
    print("=== Bijo Doctor ===")

    assert_safe_data_dir(args.data_dir, args.allow_repo_data_path)
    print("✅ Data path safety guard: OK")

    storage = FileStorage(args.data_dir)
    store = JournalStore(storage)
    if store.has_dataset:
        print(f"✅ Journal readable: OK ({len(store.dataset.entries)} entries)")
    else:
        print("⚠️ No journal found (run `bijo init`)")

    try:
        mode = storage.path_for(STORAGE_KEY).stat().st_mode
        perms = stat.S_IMODE(mode)
        print(f"🔐 File permissions: {oct(perms)} (target 0o600)")
    except FileNotFoundError:
        pass

    print("=== Done ===")


def main(argv=None) -> None:
    p = argparse.ArgumentParser(prog="bijo", description="Bijo daily energy journal")
    p.add_argument("--data", default=None, help="Data directory (overrides env/default)")
    p.add_argument("--profile", default=None, help="Profile name (e.g. dev/test)")
    p.add_argument("--allow-repo-data-path", action="store_true", help="Override safety guard (not recommended)")
    p.add_argument("-v", "--verbose", action="store_true", help="Debug logging on stderr")

    sub = p.add_subparsers(dest="cmd", required=True)
    sub.add_parser("init", help="Create the journal on first run").set_defaults(func=cmd_init)
    sub.add_parser("where", help="Show which data directory is active and why").set_defaults(func=cmd_where)
    sub.add_parser("doctor", help="Run safety + health checks").set_defaults(func=cmd_doctor)

    # ---- signals ----
    for name, func, what in (
        ("morning", cmd_morning, "Morning signal"),
        ("midday", cmd_midday, "Mid-day signal"),
    ):
        sp = sub.add_parser(name, help=f"Log {what.lower()} (-2..2)")
        sp.add_argument("level", help="-2..2, one of -, 0, +, ++, or vlow, low, ok, high, vhigh")
        sp.add_argument("--date", default=None, help="YYYY-MM-DD, today, yesterday, or 'N days ago'")
        sp.add_argument("--format", choices=["line", "block"], default="line")
        sp.set_defaults(func=func)

    ev = sub.add_parser("evening", help="Log end-of-day outcome")
    ev.add_argument("outcome", help=", ".join(o.value for o in EveningOutcome))
    ev.add_argument("--date", default=None, help="YYYY-MM-DD, today, yesterday, or 'N days ago'")
    ev.add_argument("--format", choices=["line", "block"], default="line")
    ev.set_defaults(func=cmd_evening)

    # ---- views ----
    today = sub.add_parser("today", help="Show today's entry")
    today.add_argument("--format", choices=["line", "block"], default="block")
    today.set_defaults(func=cmd_today)

    history = sub.add_parser("history", help="Show the last N days")
    history.add_argument("--days", type=int, default=7)
    history.set_defaults(func=cmd_history)

    wave = sub.add_parser("waveform", help="Waveform for one day")
    wave.add_argument("--date", default=None, help="YYYY-MM-DD, today, yesterday, or 'N days ago'")
    wave.add_argument("--resolution", type=int, default=10)
    wave.set_defaults(func=cmd_waveform)

    stats = sub.add_parser("stats", help="Averages, variance, trends, outcomes, completion")
    stats.add_argument("--window", choices=["7", "30", "all"], default="30",
                       help="Time window for analysis: 7, 30, or all")
    stats.set_defaults(func=cmd_stats)

    export = sub.add_parser("export", help="Export the whole journal as JSON")
    export.add_argument("--out", default=None, help="Output path (prints to stdout if omitted)")
    export.set_defaults(func=cmd_export)

    args = p.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    args.data_arg = args.data
    try:
        args.data_dir = resolve_data_dir(args.data, args.profile)
    except ValueError as e:
        raise SystemExit(str(e)) from None
    log.debug("data dir: %s", args.data_dir)

    assert_safe_data_dir(args.data_dir, args.allow_repo_data_path)

    args.func(args)


if __name__ == "__main__":
    main()
