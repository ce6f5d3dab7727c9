"""Atomic persistence of one repository's language snapshot."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
import logging
from typing import Mapping, Optional

from sqlalchemy import delete, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.errors import NotFoundError, StorageError
from app.models.metric import Metric
from app.models.repository import Repository
from app.utils.helpers import floor_to_minute, to_naive_utc, utcnow

logger = logging.getLogger(__name__)

BYTES_PER_LINE = 50


def estimate_lines(size: int) -> int:
    """Crude line estimate: bytes / 50, rounded half up."""
    return (int(size) + BYTES_PER_LINE // 2) // BYTES_PER_LINE


def snapshot_timestamp(value: Optional[datetime] = None) -> datetime:
    """Canonical snapshot timestamp: naive UTC rounded down to the minute."""
    return floor_to_minute(to_naive_utc(value or utcnow()))


@dataclass(slots=True)
class PersistResult:
    """Outcome of one persist call."""

    repository_id: int
    timestamp: datetime
    written: int = 0
    skipped: bool = False


class MetricPersister:
    """
    Writes one Metric row per language for a snapshot, all or nothing

    With the dedup guard enabled a second snapshot for the same
    (repository, minute) is skipped instead of duplicated.
    """

    def __init__(self, *, skip_existing: bool = True) -> None:
        self.skip_existing = skip_existing

    def persist(
        self,
        db: Session,
        *,
        repository_id: int,
        languages: Mapping[str, int],
        timestamp: Optional[datetime] = None,
        skip_existing: Optional[bool] = None,
    ) -> PersistResult:
        guard = self.skip_existing if skip_existing is None else skip_existing
        ts = snapshot_timestamp(timestamp)
        result = PersistResult(repository_id=repository_id, timestamp=ts)

        try:
            if db.get(Repository, repository_id) is None:
                raise NotFoundError(f"Repository {repository_id} not found")

            if guard and self._snapshot_exists(db, repository_id, ts):
                db.rollback()
                result.skipped = True
                logger.info(f"Skipping repository {repository_id}: snapshot already stored for {ts.isoformat()}")
                return result

            rows = [
                Metric(
                    repository_id=repository_id,
                    language=language,
                    bytes=int(size),
                    lines=estimate_lines(size),
                    timestamp=ts,
                )
                for language, size in languages.items()
            ]
            db.add_all(rows)
            db.commit()
        except SQLAlchemyError as exc:
            db.rollback()
            logger.error(f"Snapshot write rolled back for repository {repository_id}: {exc}")
            raise StorageError(f"Failed to store metrics for repository {repository_id}") from exc
        except Exception:
            db.rollback()
            raise

        result.written = len(rows)
        return result

    @staticmethod
    def _snapshot_exists(db: Session, repository_id: int, ts: datetime) -> bool:
        count = db.scalar(
            select(func.count(Metric.id)).where(Metric.repository_id == repository_id, Metric.timestamp == ts)
        )
        return bool(count)


def prune_old_metrics(db: Session, days: int, now: Optional[datetime] = None) -> int:
    """Delete metrics older than ``days``; returns the number of rows removed."""
    if days <= 0:
        return 0

    cutoff = to_naive_utc(now or utcnow()) - timedelta(days=days)
    try:
        outcome = db.execute(delete(Metric).where(Metric.timestamp < cutoff))
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        raise StorageError("Failed to prune old metrics") from exc

    removed = outcome.rowcount or 0
    if removed:
        logger.info(f"Pruned {removed} metric rows older than {days} days")
    return removed
