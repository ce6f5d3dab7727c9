"""Commit-history progress reconstruction from GitHub commit stats."""

from __future__ import annotations

import asyncio
from bisect import bisect_right
from dataclasses import dataclass, field
from datetime import datetime, timedelta
import logging
from typing import Any, Awaitable, Callable, Optional

from app.config.settings import settings
from app.crawlers.github.client import sanitize_log_extra
from app.errors import ValidationError, upstream_error_from_result
from app.utils.helpers import floor_to_interval, parse_iso_datetime, to_iso_z, utcnow
from app.utils.pacing import paced

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class CommitStat:
    sha: str
    date: datetime
    author: str
    message: str
    additions: int
    deletions: int
    cumulative_additions: int
    cumulative_deletions: int

    @property
    def total_changes(self) -> int:
        return self.additions + self.deletions

    @property
    def net_code_size(self) -> int:
        return self.cumulative_additions - self.cumulative_deletions

    def to_dict(self) -> dict[str, Any]:
        return {
            "sha": self.sha,
            "date": to_iso_z(self.date),
            "author": self.author,
            "message": self.message,
            "additions": self.additions,
            "deletions": self.deletions,
            "totalChanges": self.total_changes,
            "cumulativeAdditions": self.cumulative_additions,
            "cumulativeDeletions": self.cumulative_deletions,
            "netCodeSize": self.net_code_size,
        }


@dataclass(slots=True)
class TimeSeriesPoint:
    timestamp: datetime
    cumulative_additions: int = 0
    cumulative_deletions: int = 0
    commit_count: int = 0

    @property
    def net_code_size(self) -> int:
        return self.cumulative_additions - self.cumulative_deletions

    def to_dict(self) -> dict[str, Any]:
        return {
            "timestamp": to_iso_z(self.timestamp),
            "cumulativeAdditions": self.cumulative_additions,
            "cumulativeDeletions": self.cumulative_deletions,
            "netCodeSize": self.net_code_size,
            "commitCount": self.commit_count,
        }


@dataclass(slots=True)
class ProgressSummary:
    total_commits: int = 0
    total_additions: int = 0
    total_deletions: int = 0
    final_code_size: int = 0

    @classmethod
    def from_commits(cls, commits: list[CommitStat]) -> "ProgressSummary":
        if not commits:
            return cls()
        last = commits[-1]
        return cls(
            total_commits=len(commits),
            total_additions=last.cumulative_additions,
            total_deletions=last.cumulative_deletions,
            final_code_size=last.net_code_size,
        )

    def to_dict(self) -> dict[str, int]:
        return {
            "totalCommits": self.total_commits,
            "totalAdditions": self.total_additions,
            "totalDeletions": self.total_deletions,
            "finalCodeSize": self.final_code_size,
        }


@dataclass(slots=True)
class RepositoryProgress:
    repository: str
    start: datetime
    end: datetime
    interval_minutes: int
    commits: list[CommitStat] = field(default_factory=list)
    time_series: list[TimeSeriesPoint] = field(default_factory=list)
    summary: ProgressSummary = field(default_factory=ProgressSummary)

    def to_dict(self) -> dict[str, Any]:
        return {
            "repository": self.repository,
            "period": {"start": to_iso_z(self.start), "end": to_iso_z(self.end)},
            "intervalMinutes": self.interval_minutes,
            "commits": [commit.to_dict() for commit in self.commits],
            "timeSeries": [point.to_dict() for point in self.time_series],
            "summary": self.summary.to_dict(),
        }


def generate_time_series(
    commits: list[CommitStat],
    interval_minutes: int,
    *,
    until: Optional[datetime] = None,
    max_points: Optional[int] = None,
) -> list[TimeSeriesPoint]:
    """
    Resample cumulative commit values onto a fixed grid

    The grid starts at the first commit rounded down to an interval
    boundary and ends at the first grid point at or after the last commit,
    or at or after ``until`` when that is later. Each point carries the
    cumulative values of the last commit at or before it (a step function,
    zero before the first commit) and counts the commits in
    ``(point - interval, point]``.

    Raises ValidationError when the grid would exceed ``max_points``.
    """
    if not commits:
        return []
    if interval_minutes <= 0:
        raise ValidationError("interval must be a positive number of minutes")

    limit = max_points if max_points is not None else settings.MAX_TIME_SERIES_POINTS
    step = timedelta(minutes=interval_minutes)
    dates = [commit.date for commit in commits]
    current = floor_to_interval(dates[0], interval_minutes)
    end = dates[-1]
    if until is not None and until > end:
        end = until

    # ceil division: the grid's last point is the first one at or after end
    size = -((current - end) // step) + 1
    if size > limit:
        raise ValidationError(
            f"Period too long for a {interval_minutes} minute interval "
            f"({size} points, limit {limit}); use a larger interval or a shorter period"
        )

    points: list[TimeSeriesPoint] = []
    while True:
        reached = bisect_right(dates, current)
        point = TimeSeriesPoint(
            timestamp=current,
            commit_count=reached - bisect_right(dates, current - step),
        )
        if reached:
            point.cumulative_additions = commits[reached - 1].cumulative_additions
            point.cumulative_deletions = commits[reached - 1].cumulative_deletions
        points.append(point)
        if current >= end:
            break
        current += step

    return points


class CommitHistoryReconstructor:
    """
    Rebuilds a repository's net-lines-of-code curve from its commit history

    Commit listing is capped at ``max_pages`` pages of ``per_page`` commits
    (1000 commits with the defaults); it is a hard ceiling, not a cursor.
    Each commit costs one extra request, issued sequentially with a small
    delay between calls.
    """

    def __init__(
        self,
        client: Any,
        *,
        max_pages: Optional[int] = None,
        per_page: Optional[int] = None,
        request_delay_seconds: Optional[float] = None,
        max_points: Optional[int] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._client = client
        self._max_pages = max_pages if max_pages is not None else settings.COMMIT_HISTORY_MAX_PAGES
        self._per_page = per_page if per_page is not None else settings.COMMIT_HISTORY_PER_PAGE
        self._delay = (
            request_delay_seconds if request_delay_seconds is not None else settings.COMMIT_REQUEST_DELAY_SECONDS
        )
        self._max_points = max_points if max_points is not None else settings.MAX_TIME_SERIES_POINTS
        self._sleep = sleep

    async def history(
        self,
        owner: str,
        repo: str,
        since: datetime,
        until: Optional[datetime] = None,
        interval_minutes: int = 5,
    ) -> RepositoryProgress:
        if interval_minutes <= 0:
            raise ValidationError("interval must be a positive number of minutes")

        commits = await self.fetch_commit_history(owner, repo, since, until)
        return RepositoryProgress(
            repository=f"{owner}/{repo}",
            start=since,
            end=until or utcnow(),
            interval_minutes=interval_minutes,
            commits=commits,
            time_series=generate_time_series(commits, interval_minutes, until=until, max_points=self._max_points),
            summary=ProgressSummary.from_commits(commits),
        )

    async def fetch_commit_history(
        self,
        owner: str,
        repo: str,
        since: datetime,
        until: Optional[datetime] = None,
    ) -> list[CommitStat]:
        listed = await self._list_commits(owner, repo, since, until)
        logger.info(f"Found {len(listed)} commits for {owner}/{repo}")

        # API order is newest first; reverse, then stable-sort so cumulative
        # totals grow in time order even when author dates are out of order.
        dated: list[tuple[datetime, dict[str, Any]]] = []
        for item in reversed(listed):
            commit_date = self._commit_date(item)
            if commit_date is None:
                logger.warning(f"Skipping commit without a date in {owner}/{repo}: {item.get('sha')}")
                continue
            dated.append((commit_date, item))
        dated.sort(key=lambda pair: pair[0])

        stats: list[CommitStat] = []
        cumulative_additions = 0
        cumulative_deletions = 0

        async for commit_date, item in paced(dated, self._delay, sleep=self._sleep):
            sha = str(item.get("sha") or "")
            detail = await self._client.get_commit(owner, repo, sha)
            if detail.is_failed or not isinstance(detail.data, dict):
                logger.warning(
                    "Commit detail fetch failed, skipping commit",
                    extra=sanitize_log_extra(repo=f"{owner}/{repo}", sha=sha, error=detail.error),
                )
                continue

            commit_stats = detail.data.get("stats") or {}
            additions = int(commit_stats.get("additions") or 0)
            deletions = int(commit_stats.get("deletions") or 0)
            cumulative_additions += additions
            cumulative_deletions += deletions

            commit = item.get("commit") or {}
            stats.append(
                CommitStat(
                    sha=sha,
                    date=commit_date,
                    author=(commit.get("author") or {}).get("name") or "Unknown",
                    message=str(commit.get("message") or "").split("\n", 1)[0],
                    additions=additions,
                    deletions=deletions,
                    cumulative_additions=cumulative_additions,
                    cumulative_deletions=cumulative_deletions,
                )
            )

        logger.info(f"Processed {len(stats)} commits with stats for {owner}/{repo}")
        return stats

    async def _list_commits(
        self,
        owner: str,
        repo: str,
        since: datetime,
        until: Optional[datetime],
    ) -> list[dict[str, Any]]:
        commits: list[dict[str, Any]] = []
        for page in range(1, self._max_pages + 1):
            result = await self._client.list_commits(
                owner,
                repo,
                since=to_iso_z(since),
                until=to_iso_z(until) if until else None,
                page=page,
                per_page=self._per_page,
            )
            if result.is_failed:
                raise upstream_error_from_result(result, "Repository")

            items = [item for item in (result.data or []) if isinstance(item, dict)]
            if not items:
                break
            commits.extend(items)
            if len(items) < self._per_page:
                break
        return commits

    @staticmethod
    def _commit_date(item: dict[str, Any]) -> Optional[datetime]:
        commit = item.get("commit") or {}
        raw = (commit.get("author") or {}).get("date") or (commit.get("committer") or {}).get("date")
        return parse_iso_datetime(raw)
