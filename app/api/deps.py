"""Request-scoped dependencies resolved from application state."""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Iterator, Optional

from fastapi import Request
from sqlalchemy.orm import Session

from app.config.database import Database
from app.errors import ValidationError
from app.orchestrator_poll import RepositoryPoller
from app.services.commit_history import CommitHistoryReconstructor
from app.utils.helpers import parse_iso_datetime


def get_database(request: Request) -> Database:
    return request.app.state.database


def get_db(request: Request) -> Iterator[Session]:
    with request.app.state.database.session_scope() as db:
        yield db


def get_github(request: Request):
    return request.app.state.github


def get_poller(request: Request) -> RepositoryPoller:
    return request.app.state.poller


def get_reconstructor(request: Request) -> CommitHistoryReconstructor:
    return request.app.state.reconstructor


def parse_period(
    since: Optional[str],
    until: Optional[str],
    interval_minutes: Optional[int],
    default_interval: int,
    max_points: Optional[int] = None,
) -> tuple[datetime, Optional[datetime], int]:
    """Validate ``since``/``until``/``interval`` query values"""
    if not since:
        raise ValidationError("since parameter is required (ISO 8601 format)")

    start = parse_iso_datetime(since)
    if start is None:
        raise ValidationError("Invalid since date format. Use ISO 8601 format")

    end = None
    if until:
        end = parse_iso_datetime(until)
        if end is None:
            raise ValidationError("Invalid until date format. Use ISO 8601 format")
        if end < start:
            raise ValidationError("until must not be earlier than since")

    interval = default_interval if interval_minutes is None else interval_minutes
    if interval <= 0:
        raise ValidationError("interval must be a positive integer")

    if max_points is not None and end is not None:
        size = (end - start) // timedelta(minutes=interval) + 1
        if size > max_points:
            raise ValidationError(f"Period too long for a {interval} minute interval (limit {max_points} points)")

    return start, end, interval


def get_settings(request: Request):
    return request.app.state.settings
