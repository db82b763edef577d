"""FastAPI application that accepts focus signals and serves usage queries."""

from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Literal, Optional

from fastapi import FastAPI, HTTPException, Query, Request
from pydantic import BaseModel, ConfigDict

from .config import TrackerSettings
from .models import (
    FocusGained,
    OpenFocus,
    ProcessTerminating,
    Signal,
    SystemResumed,
    SystemSuspending,
    as_utc,
)
from .normalization import resolve_application
from .paths import get_db_path
from .reporting import start_of_local_day, total_seconds
from .service import Clock, UsageService
from .store import PersistenceError, RecordStore, SQLiteRecordStore

logger = logging.getLogger(__name__)

SignalKind = Literal[
    "focus_gained",
    "system_suspending",
    "system_resumed",
    "process_terminating",
]


class SignalPayload(BaseModel):
    kind: SignalKind
    identifier: Optional[str] = None
    display_name: Optional[str] = None
    at: Optional[datetime] = None

    model_config = ConfigDict(extra="forbid")


def create_app(
    *,
    db_path: Optional[Path] = None,
    settings: Optional[TrackerSettings] = None,
    clock: Optional[Clock] = None,
    store: Optional[RecordStore] = None,
) -> FastAPI:
    """Instantiate the FastAPI application.

    ``store`` replaces the SQLite store opened at ``db_path`` when given.
    """
    resolved_db_path = Path(db_path or get_db_path())
    resolved_settings = settings or TrackerSettings()

    app = FastAPI(title="Usage Ledger", version="0.1.0")
    app.state.db_path = resolved_db_path
    app.state.service = None

    @app.on_event("startup")
    async def _startup() -> None:
        service = UsageService(
            store or SQLiteRecordStore(resolved_db_path),
            settings=resolved_settings,
            clock=clock,
        )
        service.start()
        app.state.service = service

    @app.on_event("shutdown")
    async def _shutdown() -> None:
        service: Optional[UsageService] = app.state.service
        app.state.service = None
        if service is not None:
            service.shutdown()

    @app.get("/api/status")
    def status(request: Request) -> Dict[str, Any]:
        service = _service(request)
        return {
            "database_path": str(request.app.state.db_path),
            "ignored_identifiers": sorted(resolved_settings.ignored_identifiers),
            "focus": _focus_payload(service.current_focus()),
        }

    @app.post("/api/signals")
    def receive_signal(payload: SignalPayload, request: Request) -> Dict[str, Any]:
        service = _service(request)
        at = as_utc(payload.at) if payload.at else service.clock()
        signal = _build_signal(payload, at)
        try:
            closed = service.handle(signal)
        except PersistenceError as exc:
            logger.exception("Failed to persist interval for signal %s", payload.kind)
            raise HTTPException(status_code=503, detail=str(exc)) from exc
        return {
            "closed": None
            if closed is None
            else {
                "identifier": closed.application_identifier,
                "start_time": closed.start_time.isoformat(),
                "seconds": closed.duration_seconds,
            },
            "focus": _focus_payload(service.current_focus()),
        }

    @app.get("/api/usage")
    def usage(
        request: Request,
        since: Optional[datetime] = Query(
            default=None,
            description="Window start (ISO 8601). Defaults to the start of today.",
        ),
        to: Optional[datetime] = Query(
            default=None,
            description="Window end (ISO 8601, exclusive). Defaults to now.",
        ),
    ) -> Dict[str, Any]:
        service = _service(request)
        now = as_utc(service.clock())
        window_end = as_utc(to) if to else now
        if since:
            window_start = as_utc(since)
        else:
            window_start = start_of_local_day(now.astimezone().date())
        if window_end < window_start:
            raise HTTPException(status_code=400, detail="to must be on or after since")

        entries = service.query(window_start, window_end)
        return {
            "since": window_start.isoformat(),
            "to": window_end.isoformat(),
            "entries": [
                {"display_name": entry.display_name, "seconds": entry.duration_seconds}
                for entry in entries
            ],
            "total_seconds": total_seconds(entries),
        }

    return app


def _service(request: Request) -> UsageService:
    service: Optional[UsageService] = request.app.state.service
    if service is None:
        raise HTTPException(status_code=503, detail="Usage service is not running")
    return service


def _build_signal(payload: SignalPayload, at: datetime) -> Signal:
    if payload.kind == "focus_gained":
        return FocusGained(
            identifier=payload.identifier, display_name=payload.display_name, at=at
        )
    if payload.kind == "system_resumed":
        return SystemResumed(
            focused_application=resolve_application(
                payload.identifier, payload.display_name
            ),
            at=at,
        )
    if payload.kind == "system_suspending":
        return SystemSuspending(at=at)
    return ProcessTerminating(at=at)


def _focus_payload(focus: Optional[OpenFocus]) -> Optional[Dict[str, Any]]:
    if focus is None:
        return None
    return {
        "identifier": focus.application_identifier,
        "display_name": focus.display_name,
        "since": focus.since.isoformat(),
    }
