"""Helpers for locating the ledger database."""

from __future__ import annotations

import os
from pathlib import Path

from platformdirs import PlatformDirs


APP_NAME = "UsageLedger"
APP_AUTHOR = "UsageLedger"
DB_PATH_ENV = "USAGE_LEDGER_DB"


def get_data_dir() -> Path:
    """Return the per-user directory that holds the ledger."""
    dirs = PlatformDirs(appname=APP_NAME, appauthor=APP_AUTHOR, roaming=True)
    path = Path(dirs.user_data_path)
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_db_path() -> Path:
    """Return the database location, honouring ``USAGE_LEDGER_DB`` if set."""
    override = os.environ.get(DB_PATH_ENV)
    if override:
        return Path(override).expanduser()
    return get_data_dir() / "usage.sqlite3"
