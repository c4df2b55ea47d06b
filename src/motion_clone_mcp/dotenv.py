"""Load defaults from ``~/.config/motion-clone-mcp/.env``.

The MCP host usually launches the server with a sparse environment, so the
Gemini key and scratch location can live in one shared file instead.
Values already present in the process environment always win.
"""

from __future__ import annotations

import os
from pathlib import Path

DEFAULT_ENV_PATH = Path.home() / ".config" / "motion-clone-mcp" / ".env"


def _strip_quotes(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] and value[0] in ('"', "'"):
        return value[1:-1]
    return value


def _needs_value(key: str, current: str | None) -> bool:
    """True when *current* is missing, blank, or an unexpanded ``$KEY`` placeholder."""
    if current is None:
        return True
    current = _strip_quotes(current.strip()).strip()
    return current in {"", f"${key}", f"${{{key}}}"}


def read_env_file(path: Path) -> dict[str, str]:
    """Parse ``KEY=VALUE`` lines; ``export`` prefixes, quotes and ``#`` comments allowed."""
    values: dict[str, str] = {}
    if not path.is_file():
        return values

    for raw in path.read_text().splitlines():
        line = raw.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        if line.startswith("export "):
            line = line[len("export "):]
        key, _, value = line.partition("=")
        key = key.strip()
        if key:
            values[key] = _strip_quotes(value.strip())
    return values


def load_dotenv(path: Path | None = None) -> dict[str, str]:
    """Copy unset variables from the env file into ``os.environ``.

    Returns:
        The variables that were injected.
    """
    injected: dict[str, str] = {}
    for key, value in read_env_file(path or DEFAULT_ENV_PATH).items():
        if _needs_value(key, os.environ.get(key)):
            os.environ[key] = value
            injected[key] = value
    return injected
