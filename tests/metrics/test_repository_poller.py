from __future__ import annotations

import asyncio
from datetime import timedelta
from typing import Any

import pytest
from sqlalchemy import func, select

from app.crawlers.language_stage import STATE_UPDATED, RepositoryPollResult
from app.models import Metric
from app.orchestrator_poll import RepositoryPoller
from app.services.events import METRICS_UPDATED
from app.services.metric_persister import MetricPersister
from app.utils.helpers import utcnow


class ExplodingGitHubClient:
    """Raises for one repository, serves languages for the rest."""

    def __init__(self, fake: Any, explode_for: str) -> None:
        self._fake = fake
        self._explode_for = explode_for

    async def list_languages(self, owner: str, repo: str):
        if f"{owner}/{repo}" == self._explode_for:
            raise RuntimeError("connection reset token=abc123")
        return await self._fake.list_languages(owner, repo)


class GatedStage:
    def __init__(self) -> None:
        self.gate = asyncio.Event()
        self.entered = asyncio.Event()
        self.active = 0
        self.max_active = 0
        self.calls = 0

    async def ingest_repository(self, db: Any, repository: Any, *, timestamp: Any = None) -> RepositoryPollResult:
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        self.entered.set()
        await self.gate.wait()
        self.active -= 1
        self.calls += 1
        return RepositoryPollResult(repository=repository.full_name, state=STATE_UPDATED, written=1)


def _metric_count(session) -> int:
    return session.scalar(select(func.count(Metric.id)))


@pytest.mark.asyncio
async def test_one_failing_repository_does_not_stop_the_cycle(
    database, session, fake_github, make_team, make_repository
) -> None:
    team = make_team("Alpha")
    make_repository(team, "alpha", "api")
    make_repository(team, "alpha", "web")
    fake_github.add_repository("alpha/web", {"TypeScript": 5000, "CSS": 100})

    poller = RepositoryPoller(
        session_factory=database.session,
        github_client=ExplodingGitHubClient(fake_github, explode_for="alpha/api"),
        retention_days=0,
    )
    stats = await poller.poll_now()

    assert stats["repositories"] == 2
    assert stats["updated"] == 1
    assert stats["failed"] == 1
    assert stats["failures"][0]["repository"] == "alpha/api"
    assert "abc123" not in stats["failures"][0]["error"]
    assert stats["success"] is False
    assert _metric_count(session) == 2


@pytest.mark.asyncio
async def test_failed_and_empty_fetches_write_nothing(
    database, session, fake_github, make_team, make_repository
) -> None:
    team = make_team("Alpha")
    make_repository(team, "alpha", "gone")
    make_repository(team, "alpha", "empty")
    fake_github.add_repository("alpha/empty", {})

    poller = RepositoryPoller(session_factory=database.session, github_client=fake_github, retention_days=0)
    stats = await poller.poll_now()

    assert stats["failed"] == 1
    assert stats["empty"] == 1
    assert _metric_count(session) == 0


@pytest.mark.asyncio
async def test_cycle_emits_metrics_updated_exactly_once(database, fake_github, make_team, make_repository) -> None:
    team = make_team("Alpha")
    for name in ("api", "web", "docs"):
        make_repository(team, "alpha", name)
        fake_github.add_repository(f"alpha/{name}", {"Python": 100})

    poller = RepositoryPoller(session_factory=database.session, github_client=fake_github, retention_days=0)
    queue = poller.event_bus.subscribe()

    await poller.poll_now()

    assert queue.qsize() == 1
    assert queue.get_nowait()["event"] == METRICS_UPDATED


@pytest.mark.asyncio
async def test_cycle_prunes_expired_metrics(database, session, fake_github, make_team, make_repository) -> None:
    team = make_team("Alpha")
    repo = make_repository(team, "alpha", "api")
    MetricPersister().persist(session, repository_id=repo.id, languages={"Python": 1}, timestamp=utcnow() - timedelta(days=45))
    fake_github.add_repository("alpha/api", {"Python": 100})

    poller = RepositoryPoller(session_factory=database.session, github_client=fake_github, retention_days=30)
    stats = await poller.poll_now()

    assert stats["pruned"] == 1
    assert session.scalars(select(Metric.bytes)).all() == [100]


@pytest.mark.asyncio
async def test_poll_requests_during_a_cycle_coalesce_into_one_rerun(database, make_team, make_repository) -> None:
    make_repository(make_team("Alpha"), "alpha", "api")
    stage = GatedStage()
    poller = RepositoryPoller(session_factory=database.session, stage=stage, retention_days=0)
    queue = poller.event_bus.subscribe()

    first = asyncio.create_task(poller.poll_now())
    await stage.entered.wait()
    second = asyncio.create_task(poller.poll_now())
    third = asyncio.create_task(poller.poll_now())
    await asyncio.sleep(0)
    assert poller.is_running is True

    stage.gate.set()
    results = await asyncio.gather(first, second, third)

    assert stage.calls == 2
    assert stage.max_active == 1
    assert "queued" not in results[0]
    assert results[1]["queued"] is True
    assert results[2]["queued"] is True
    assert queue.qsize() == 2
    assert poller.is_running is False


def test_poller_requires_stage_or_client(database) -> None:
    with pytest.raises(ValueError):
        RepositoryPoller(session_factory=database.session)
