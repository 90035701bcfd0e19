from __future__ import annotations

import os
import re
from pathlib import Path

from twhelix.errors import ConfigurationError

_LINE = re.compile(r"^(?:export\s+)?(?P<key>[A-Za-z_][A-Za-z0-9_]*)\s*=\s*(?P<value>.*)$")


def load_env_file_if_present(path: str | Path = ".env", override: bool = False) -> dict[str, str]:
    """Load ``KEY=VALUE`` pairs from a .env file into ``os.environ``.

    Blank lines, ``#`` comments and malformed lines are skipped; an optional
    ``export`` prefix and surrounding quotes are stripped. Existing environment
    variables win unless ``override`` is set.

    Returns the pairs found in the file.
    """
    env_path = Path(path)
    if not env_path.exists():
        return {}

    loaded: dict[str, str] = {}
    for raw in env_path.read_text(encoding="utf-8").splitlines():
        match = _LINE.match(raw.strip())
        if raw.strip().startswith("#") or not match:
            continue
        key = match["key"]
        value = match["value"].strip()
        if len(value) >= 2 and value[0] == value[-1] and value[0] in "\"'":
            value = value[1:-1]
        loaded[key] = value
        if override or key not in os.environ:
            os.environ[key] = value
    return loaded


def get_env(key: str, required: bool = False) -> str | None:
    """Return a non-empty environment value, or None."""
    value = os.getenv(key, "").strip()
    if not value:
        if required:
            raise ConfigurationError(f"Missing {key}. Set it in the environment or .env")
        return None
    return value


def get_env_list(key: str) -> list[str]:
    """Split a space- or comma-separated environment value."""
    value = get_env(key) or ""
    return [part for part in re.split(r"[\s,]+", value) if part]
