"""Per-team chart series built from stored metric rows."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.errors import NotFoundError
from app.models.metric import Metric
from app.models.repository import Repository
from app.models.team import Team
from app.utils.helpers import floor_to_minute, to_iso_z, to_naive_utc


@dataclass(slots=True)
class SizeTotals:
    bytes: int = 0
    lines: int = 0

    def add(self, size: int, lines: int) -> None:
        self.bytes += int(size)
        self.lines += int(lines)

    def to_dict(self) -> dict[str, int]:
        return {"bytes": self.bytes, "lines": self.lines}


@dataclass(slots=True)
class ChartBucket:
    """One chart point: every metric row sharing a minute-rounded timestamp."""

    timestamp: datetime
    languages: dict[str, SizeTotals] = field(default_factory=dict)
    total: SizeTotals = field(default_factory=SizeTotals)

    def add(self, language: str, size: int, lines: int) -> None:
        self.languages.setdefault(language, SizeTotals()).add(size, lines)
        self.total.add(size, lines)

    def to_dict(self) -> dict[str, Any]:
        return {
            "timestamp": to_iso_z(self.timestamp),
            "languages": {language: totals.to_dict() for language, totals in self.languages.items()},
            "total": self.total.to_dict(),
        }


@dataclass(slots=True)
class ChartData:
    team_id: int
    team_name: str
    series: list[ChartBucket] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "teamId": self.team_id,
            "teamName": self.team_name,
            "series": [bucket.to_dict() for bucket in self.series],
        }


def build_chart(db: Session, team_id: int) -> ChartData:
    """
    Aggregate a team's metrics into an ascending, minute-bucketed series

    Bytes and lines are summed per language and in total across every
    repository the team owns. A team without metrics gets an empty series.
    """
    team = db.get(Team, team_id)
    if team is None:
        raise NotFoundError("Team not found")

    rows = db.execute(
        select(Metric.timestamp, Metric.language, Metric.bytes, Metric.lines)
        .join(Repository, Metric.repository_id == Repository.id)
        .where(Repository.team_id == team_id)
    ).all()

    buckets: dict[datetime, ChartBucket] = {}
    for timestamp, language, size, lines in rows:
        key = floor_to_minute(to_naive_utc(timestamp))
        bucket = buckets.get(key)
        if bucket is None:
            bucket = buckets[key] = ChartBucket(timestamp=key)
        bucket.add(language, size, lines)

    return ChartData(
        team_id=team.id,
        team_name=team.name,
        series=[buckets[key] for key in sorted(buckets)],
    )


def build_all_charts(db: Session) -> list[ChartData]:
    """Charts for every team, oldest team first."""
    team_ids = db.scalars(select(Team.id).order_by(Team.id)).all()
    return [build_chart(db, team_id) for team_id in team_ids]
