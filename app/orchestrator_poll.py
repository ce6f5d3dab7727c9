"""Repository poller: periodic language snapshot cycles with per-repository isolation."""

from __future__ import annotations

import asyncio
import contextlib
from dataclasses import dataclass
import logging
from typing import Any, Callable, Optional

from app.config.settings import settings
from app.crawlers.github.client import sanitize_for_log, sanitize_log_extra
from app.crawlers.language_stage import (
    STATE_EMPTY,
    STATE_FAILED,
    STATE_SKIPPED,
    STATE_UPDATED,
    LanguageSnapshotStage,
)
from app.models.repository import Repository
from app.services.events import METRICS_UPDATED, MetricsEventBus
from app.services.metric_persister import MetricPersister, prune_old_metrics
from app.utils.helpers import to_iso_z, utcnow

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class RepositoryRef:
    """Minimal repository reference detached from the loading session."""

    id: int
    owner: str
    name: str

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.name}"


class RepositoryPoller:
    """
    Runs poll cycles over every tracked repository

    Cycles never interleave: a request that arrives while a cycle is in
    flight queues one re-run (later requests coalesce into it) and waits
    for it to complete.
    """

    def __init__(
        self,
        *,
        session_factory: Callable[[], Any],
        stage: Any | None = None,
        github_client: Any | None = None,
        event_bus: MetricsEventBus | None = None,
        interval_seconds: Optional[float] = None,
        retention_days: Optional[int] = None,
        dedup: Optional[bool] = None,
    ) -> None:
        if stage is None:
            if github_client is None:
                raise ValueError("RepositoryPoller needs a stage or a github_client")
            skip_existing = settings.METRICS_DEDUP_ENABLED if dedup is None else dedup
            stage = LanguageSnapshotStage(github_client, MetricPersister(skip_existing=skip_existing))

        self._session_factory = session_factory
        self._stage = stage
        self._event_bus = event_bus or MetricsEventBus()
        self._interval = float(interval_seconds if interval_seconds is not None else settings.POLL_INTERVAL_SECONDS)
        self._retention_days = int(retention_days if retention_days is not None else settings.METRICS_RETENTION_DAYS)

        self._running = False
        self._rerun_requested = False
        self._idle = asyncio.Event()
        self._idle.set()
        self._last_stats: dict[str, Any] | None = None
        self._task: asyncio.Task | None = None

    @property
    def event_bus(self) -> MetricsEventBus:
        return self._event_bus

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def last_stats(self) -> dict[str, Any] | None:
        return self._last_stats

    async def poll_now(self) -> dict[str, Any]:
        """Run a cycle now, or queue a single re-run behind the cycle in flight."""
        if self._running:
            self._rerun_requested = True
            logger.info("Poll cycle already running, queued one re-run")
            await self._idle.wait()
            return {**(self._last_stats or {}), "queued": True}

        self._running = True
        self._idle.clear()
        try:
            stats = await self._run_cycle()
            while self._rerun_requested:
                self._rerun_requested = False
                stats = await self._run_cycle()
            return stats
        finally:
            self._running = False
            self._idle.set()

    def start(self) -> None:
        if self._task is not None and not self._task.done():
            return
        self._task = asyncio.get_running_loop().create_task(self._loop(), name="repository-poller")

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task
        logger.info("GitHub polling stopped")

    async def _loop(self) -> None:
        logger.info(f"GitHub polling started with {self._interval:.0f}s interval")
        while True:
            try:
                await self.poll_now()
            except Exception:
                logger.exception("Poll cycle raised unexpectedly")
            await asyncio.sleep(self._interval)

    async def _run_cycle(self) -> dict[str, Any]:
        stats: dict[str, Any] = {
            "started_at": to_iso_z(utcnow()),
            "repositories": 0,
            STATE_UPDATED: 0,
            STATE_SKIPPED: 0,
            STATE_EMPTY: 0,
            STATE_FAILED: 0,
            "failures": [],
            "pruned": 0,
        }
        logger.info("Repository poll cycle started")

        db = self._session_factory()
        try:
            repositories = self._load_repositories(db)
            stats["repositories"] = len(repositories)

            for repository in repositories:
                try:
                    result = await self._stage.ingest_repository(db, repository, timestamp=utcnow())
                except Exception as exc:
                    db.rollback()
                    error = sanitize_for_log(str(exc) or type(exc).__name__, key="error")
                    stats[STATE_FAILED] += 1
                    stats["failures"].append({"repository": repository.full_name, "error": error})
                    logger.warning(
                        "Repository poll failed",
                        extra=sanitize_log_extra(repo=repository.full_name, error=error),
                    )
                    continue

                stats[result.state] = stats.get(result.state, 0) + 1
                if result.state == STATE_FAILED:
                    stats["failures"].append(
                        {"repository": result.repository, "error": sanitize_for_log(result.error, key="error")}
                    )

            if self._retention_days > 0:
                try:
                    stats["pruned"] = prune_old_metrics(db, self._retention_days)
                except Exception as exc:
                    logger.warning("Metric pruning failed", extra=sanitize_log_extra(error=str(exc)))
        except Exception as exc:
            db.rollback()
            stats["error"] = sanitize_for_log(str(exc), key="error")
            logger.exception("Repository poll cycle aborted", extra=sanitize_log_extra(error=str(exc)))
        finally:
            db.close()

        stats["completed_at"] = to_iso_z(utcnow())
        stats["success"] = stats[STATE_FAILED] == 0 and "error" not in stats
        self._last_stats = stats

        self._event_bus.emit(METRICS_UPDATED, {"completed_at": stats["completed_at"]})
        logger.info(
            "Repository poll cycle completed",
            extra=sanitize_log_extra(
                repositories=stats["repositories"],
                updated=stats[STATE_UPDATED],
                failed=stats[STATE_FAILED],
            ),
        )
        return stats

    @staticmethod
    def _load_repositories(db: Any) -> list[RepositoryRef]:
        rows = db.query(Repository).order_by(Repository.id).all()
        return [RepositoryRef(id=row.id, owner=row.owner, name=row.name) for row in rows]
