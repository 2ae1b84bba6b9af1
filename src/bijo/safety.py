from __future__ import annotations

import logging
import sys
from pathlib import Path

log = logging.getLogger("bijo.safety")


def find_git_root(start: Path) -> Path | None:
    cur = start
    for _ in range(200):
        if (cur / ".git").exists():
            return cur
        if cur.parent == cur:
            return None
        cur = cur.parent
    return None


def assert_safe_data_dir(data_dir: Path, allow_repo_data_path: bool) -> None:
    # journal data is personal; keep it out of anything that might get pushed
    git_root = find_git_root(data_dir)
    if git_root is None:
        return
    if allow_repo_data_path:
        log.warning("using data directory inside git repo %s (override active)", git_root)
        return

    print("🚫 Refusing to keep journal data inside a git repo.", file=sys.stderr)
    print(f"   data dir:  {data_dir}", file=sys.stderr)
    print(f"   repo root: {git_root}", file=sys.stderr)
    print(
        "   Fix: use ~/.config/bijo/, set BIJO_DATA, or pass --allow-repo-data-path",
        file=sys.stderr,
    )
    raise SystemExit(2)
