"""Where the journal lives: --data, then $BIJO_DATA, then the XDG config dir."""

from __future__ import annotations

import os
import re
from pathlib import Path

ENV_VAR = "BIJO_DATA"

_PROFILE_RE = re.compile(r"[A-Za-z0-9][A-Za-z0-9._-]*")


def config_home() -> Path:
    # XDG says a relative $XDG_CONFIG_HOME is invalid and must be ignored
    xdg = os.environ.get("XDG_CONFIG_HOME", "").strip()
    if xdg and Path(xdg).is_absolute():
        return Path(xdg)
    return Path.home() / ".config"


def check_profile(profile: str) -> str:
    """Profiles become a directory name; no separators, no leading dot."""
    if not _PROFILE_RE.fullmatch(profile):
        raise ValueError(f"profile must be a plain name like 'dev' or 'test' (got {profile!r})")
    return profile


def default_data_dir(profile: str | None = None) -> Path:
    base = config_home() / "bijo"
    return base / check_profile(profile) if profile else base


def resolve_data_dir(data_arg: str | None, profile: str | None) -> Path:
    if data_arg:
        return Path(data_arg).expanduser().resolve()
    env = os.environ.get(ENV_VAR, "").strip()
    if env:
        return Path(env).expanduser().resolve()
    return default_data_dir(profile).resolve()
