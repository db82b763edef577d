"""Helpers to launch the local signal and query API."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import uvicorn

from .config import TrackerSettings
from .paths import get_db_path
from .webapp import create_app


def run_server(
    *,
    host: str = "127.0.0.1",
    port: int = 8766,
    db_path: Optional[Path] = None,
    settings: Optional[TrackerSettings] = None,
    log_level: str = "info",
) -> None:
    """Serve the API until interrupted; the open focus is flushed on exit."""
    app = create_app(
        db_path=db_path or get_db_path(),
        settings=settings or TrackerSettings(),
    )
    logging.getLogger("uvicorn.error").setLevel(log_level.upper())
    uvicorn.run(app, host=host, port=port, log_level=log_level)
