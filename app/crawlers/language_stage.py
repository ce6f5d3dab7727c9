"""Language snapshot stage: fetch a repository's language bytes and persist them."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
import logging
from typing import Any, Optional, Protocol

from app.crawlers.github.client import sanitize_log_extra
from app.crawlers.github.contracts import LanguagesContract
from app.services.metric_persister import MetricPersister
from app.utils.helpers import utcnow

logger = logging.getLogger(__name__)

STATE_UPDATED = "updated"
STATE_SKIPPED = "skipped"
STATE_EMPTY = "empty"
STATE_FAILED = "failed"


class LanguagesClient(Protocol):
    async def list_languages(self, owner: str, repo: str) -> LanguagesContract: ...


@dataclass(slots=True)
class RepositoryPollResult:
    """Outcome of one repository's pass in a poll cycle."""

    repository: str
    state: str
    written: int = 0
    status_code: Optional[int] = None
    error: Optional[str] = None


class LanguageSnapshotStage:
    """Fetch → persist for a single tracked repository."""

    def __init__(self, client: LanguagesClient, persister: Optional[MetricPersister] = None) -> None:
        self._client = client
        self._persister = persister or MetricPersister()

    async def fetch_snapshot(self, owner: str, name: str) -> LanguagesContract:
        """
        Fetch the language → bytes mapping for one repository

        One outbound call and no retries; a failed result means "skip this
        repository until the next cycle".
        """
        result = await self._client.list_languages(owner, name)
        if result.is_failed:
            logger.warning(
                "Language snapshot fetch failed",
                extra=sanitize_log_extra(repo=f"{owner}/{name}", status_code=result.status_code, error=result.error),
            )
        return result

    async def ingest_repository(
        self,
        db: Any,
        repository: Any,
        *,
        timestamp: Optional[datetime] = None,
    ) -> RepositoryPollResult:
        full_name = f"{repository.owner}/{repository.name}"
        fetched = await self.fetch_snapshot(repository.owner, repository.name)

        if fetched.is_failed:
            return RepositoryPollResult(
                repository=full_name,
                state=STATE_FAILED,
                status_code=fetched.status_code,
                error=fetched.error or "language fetch failed",
            )

        languages = fetched.data or {}
        if not languages:
            logger.info(f"No languages found for {full_name}")
            return RepositoryPollResult(repository=full_name, state=STATE_EMPTY)

        persisted = self._persister.persist(
            db,
            repository_id=repository.id,
            languages=languages,
            timestamp=timestamp or utcnow(),
        )
        if persisted.skipped:
            return RepositoryPollResult(repository=full_name, state=STATE_SKIPPED)

        logger.info(f"Updated metrics for {full_name} ({persisted.written} languages)")
        return RepositoryPollResult(repository=full_name, state=STATE_UPDATED, written=persisted.written)
