"""Commit-history progress endpoints"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.api.deps import get_db, get_reconstructor, get_settings, parse_period
from app.api.schemas import ComparePayload
from app.errors import ValidationError
from app.services.progress import compare_progress, team_progress
from app.utils.helpers import is_valid_repo_segment

router = APIRouter(prefix="/progress", tags=["progress"])


@router.get("/repository/{owner}/{repo}")
async def repository_progress(
    owner: str,
    repo: str,
    since: Optional[str] = None,
    until: Optional[str] = None,
    interval: Optional[int] = Query(default=None),
    reconstructor=Depends(get_reconstructor),
    settings=Depends(get_settings),
):
    if not is_valid_repo_segment(owner) or not is_valid_repo_segment(repo):
        raise ValidationError("Invalid repository owner or name")
    start, end, interval_minutes = parse_period(
        since, until, interval, settings.DEFAULT_INTERVAL_MINUTES, settings.MAX_TIME_SERIES_POINTS
    )
    progress = await reconstructor.history(owner, repo, start, end, interval_minutes)
    return progress.to_dict()


@router.get("/team/{team_id}")
async def get_team_progress(
    team_id: int,
    since: Optional[str] = None,
    until: Optional[str] = None,
    interval: Optional[int] = Query(default=None),
    db: Session = Depends(get_db),
    reconstructor=Depends(get_reconstructor),
    settings=Depends(get_settings),
):
    start, end, interval_minutes = parse_period(
        since, until, interval, settings.DEFAULT_INTERVAL_MINUTES, settings.MAX_TIME_SERIES_POINTS
    )
    return await team_progress(db, reconstructor, team_id, since=start, until=end, interval_minutes=interval_minutes)


@router.post("/compare")
async def compare(
    payload: ComparePayload,
    reconstructor=Depends(get_reconstructor),
    settings=Depends(get_settings),
):
    if not payload.repositories:
        raise ValidationError("repositories array is required")
    start, end, interval_minutes = parse_period(
        payload.since,
        payload.until,
        payload.interval_minutes,
        settings.DEFAULT_INTERVAL_MINUTES,
        settings.MAX_TIME_SERIES_POINTS,
    )
    refs = [(item.owner, item.repo) for item in payload.repositories]
    return await compare_progress(reconstructor, refs, since=start, until=end, interval_minutes=interval_minutes)
