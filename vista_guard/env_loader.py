"""vista_guard.env_loader

Loads GUARD_*, DB_* and DATABASE_URL settings from a .env file using python-dotenv.

Lookup order: explicit path, then VISTA_GUARD_ENV_FILE, then the nearest .env
above the working directory. Variables already set in the process win unless
`override` is passed.

Usage:
    from vista_guard.env_loader import load_env
    load_env()
"""

from __future__ import annotations

import os
from pathlib import Path

from dotenv import find_dotenv, load_dotenv

ENV_FILE_VAR = "VISTA_GUARD_ENV_FILE"


def resolve_env_file(dotenv_path: str | None = None) -> Path | None:
    candidate = dotenv_path or os.getenv(ENV_FILE_VAR) or find_dotenv(usecwd=True)
    if not candidate:
        return None
    path = Path(candidate).expanduser()
    return path if path.is_file() else None


def load_env(dotenv_path: str | None = None, override: bool = False) -> str | None:
    """Load the resolved .env file; return its path, or None when there is none."""
    path = resolve_env_file(dotenv_path)
    if path is None:
        return None
    load_dotenv(dotenv_path=path, override=override)
    return str(path)
