"""Metric listing and chart endpoints"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.api.deps import get_db
from app.services.chart_aggregator import build_chart
from app.services.teams import list_metrics, metric_to_dict

router = APIRouter(prefix="/metrics", tags=["metrics"])


@router.get("")
def get_metrics(
    team_id: Optional[int] = Query(default=None, alias="teamId"),
    repository_id: Optional[int] = Query(default=None, alias="repositoryId"),
    limit: int = Query(default=100),
    db: Session = Depends(get_db),
):
    rows = list_metrics(db, team_id=team_id, repository_id=repository_id, limit=limit)
    return [metric_to_dict(row) for row in rows]


@router.get("/chart/{team_id}")
def get_chart(team_id: int, db: Session = Depends(get_db)):
    return build_chart(db, team_id).to_dict()
