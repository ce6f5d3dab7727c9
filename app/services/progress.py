"""Team progress and repository comparison over reconstructed commit history."""

from __future__ import annotations

from datetime import datetime
import logging
from typing import Any, Iterable, Optional

from sqlalchemy.orm import Session

from app.crawlers.github.client import sanitize_for_log, sanitize_log_extra
from app.errors import AppError, NotFoundError
from app.models.team import Team
from app.services.commit_history import CommitHistoryReconstructor
from app.services.teams import team_to_dict
from app.utils.helpers import to_iso_z, utcnow

logger = logging.getLogger(__name__)


async def collect_progress(
    reconstructor: CommitHistoryReconstructor,
    repositories: Iterable[tuple[str, str]],
    *,
    since: datetime,
    until: Optional[datetime] = None,
    interval_minutes: int = 5,
) -> list[dict[str, Any]]:
    """
    Reconstruct every repository in turn

    A repository that fails is reported as ``{"repository", "error"}`` and
    the rest are still processed.
    """
    results: list[dict[str, Any]] = []
    for owner, repo in repositories:
        full_name = f"{owner}/{repo}"
        try:
            progress = await reconstructor.history(owner, repo, since, until, interval_minutes)
        except AppError as exc:
            logger.warning("Progress reconstruction failed", extra=sanitize_log_extra(repo=full_name, error=exc.message))
            results.append({"repository": full_name, "error": exc.message})
            continue
        except Exception as exc:
            error = sanitize_for_log(str(exc) or type(exc).__name__, key="error")
            logger.exception("Progress reconstruction raised", extra=sanitize_log_extra(repo=full_name, error=error))
            results.append({"repository": full_name, "error": error})
            continue
        results.append(progress.to_dict())
    return results


def _period(since: datetime, until: Optional[datetime]) -> dict[str, str]:
    return {"start": to_iso_z(since), "end": to_iso_z(until or utcnow())}


async def team_progress(
    db: Session,
    reconstructor: CommitHistoryReconstructor,
    team_id: int,
    *,
    since: datetime,
    until: Optional[datetime] = None,
    interval_minutes: int = 5,
) -> dict[str, Any]:
    team = db.get(Team, team_id)
    if team is None:
        raise NotFoundError("Team not found")

    refs = [(repo.owner, repo.name) for repo in team.repositories]
    payload: dict[str, Any] = {
        "team": team_to_dict(team),
        "period": _period(since, until),
        "intervalMinutes": interval_minutes,
        "repositories": [],
    }
    if not refs:
        payload["message"] = "No repositories found for this team"
        return payload

    payload["repositories"] = await collect_progress(
        reconstructor, refs, since=since, until=until, interval_minutes=interval_minutes
    )
    return payload


async def compare_progress(
    reconstructor: CommitHistoryReconstructor,
    repositories: Iterable[tuple[str, str]],
    *,
    since: datetime,
    until: Optional[datetime] = None,
    interval_minutes: int = 5,
) -> dict[str, Any]:
    return {
        "period": _period(since, until),
        "intervalMinutes": interval_minutes,
        "comparisons": await collect_progress(
            reconstructor, repositories, since=since, until=until, interval_minutes=interval_minutes
        ),
    }
