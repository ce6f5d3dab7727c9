from datetime import datetime

import pytest
from sqlalchemy import func, select

from app.errors import ConflictError, NotFoundError, UnauthorizedError, ValidationError
from app.models import Metric, Repository
from app.services.metric_persister import MetricPersister
from app.services.teams import RepositoryService, TeamService, database_stats, list_metrics, repository_to_dict


def test_create_team_trims_and_requires_name(session) -> None:
    service = TeamService(session)

    team = service.create_team("  Alpha ")

    assert team.name == "Alpha"
    with pytest.raises(ValidationError):
        service.create_team("   ")
    with pytest.raises(ValidationError):
        service.create_team(None)


def test_team_names_are_unique(session) -> None:
    service = TeamService(session)
    service.create_team("Alpha")

    with pytest.raises(ConflictError):
        service.create_team("Alpha")
    assert [team.name for team in service.list_teams()] == ["Alpha"]


def test_rename_and_missing_team(session) -> None:
    service = TeamService(session)
    team = service.create_team("Alpha")

    assert service.rename_team(team.id, "Omega").name == "Omega"
    with pytest.raises(NotFoundError):
        service.rename_team(999, "Nope")


def test_delete_team_cascades_to_repositories_and_metrics(session, make_team, make_repository) -> None:
    team = make_team("Alpha")
    repo = make_repository(team, "alpha", "api")
    MetricPersister().persist(session, repository_id=repo.id, languages={"Python": 100})

    TeamService(session).delete_team(team.id)

    assert session.scalar(select(func.count(Repository.id))) == 0
    assert session.scalar(select(func.count(Metric.id))) == 0


@pytest.mark.asyncio
async def test_create_repository_after_verification(session, make_team, fake_github) -> None:
    team = make_team("Alpha")
    fake_github.add_repository("octocat/Hello-World", {"C": 100})

    repository = await RepositoryService(session, fake_github).create_repository(team.id, "octocat", "Hello-World")

    data = repository_to_dict(repository)
    assert data["teamId"] == team.id
    assert data["url"] == "https://github.com/octocat/Hello-World"
    assert ("get_repo", "octocat/Hello-World") in fake_github.calls
    assert ("list_languages", "octocat/Hello-World") in fake_github.calls


@pytest.mark.asyncio
async def test_create_repository_keeps_supplied_url(session, make_team, fake_github) -> None:
    team = make_team("Alpha")
    fake_github.add_repository("octocat/Hello-World", {"C": 100})

    repository = await RepositoryService(session, fake_github).create_repository(
        team.id, "octocat", "Hello-World", url="http://github.com/octocat/Hello-World/"
    )

    assert repository.url == "https://github.com/octocat/Hello-World"


@pytest.mark.asyncio
async def test_private_repository_is_rejected(session, make_team, fake_github) -> None:
    team = make_team("Alpha")
    fake_github.add_repository("acme/secret", {"Go": 1}, private=True)

    with pytest.raises(ValidationError):
        await RepositoryService(session, fake_github).create_repository(team.id, "acme", "secret")
    assert session.scalar(select(func.count(Repository.id))) == 0


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "team_id,owner,name",
    [
        (None, "octocat", "Hello-World"),
        (1, "", "Hello-World"),
        (1, "octocat", None),
        (1, "octo cat", "Hello-World"),
        (1, "octocat", "../etc"),
    ],
)
async def test_create_repository_validates_input(session, make_team, fake_github, team_id, owner, name) -> None:
    make_team("Alpha")

    with pytest.raises(ValidationError):
        await RepositoryService(session, fake_github).create_repository(team_id, owner, name)
    assert fake_github.calls == []


@pytest.mark.asyncio
async def test_create_repository_maps_verification_failures(session, make_team, fake_github) -> None:
    team = make_team("Alpha")
    service = RepositoryService(session, fake_github)

    with pytest.raises(NotFoundError):
        await service.create_repository(team.id, "octocat", "missing")

    fake_github.fail("octocat/private-token", 401)
    with pytest.raises(UnauthorizedError):
        await service.create_repository(team.id, "octocat", "private-token")

    with pytest.raises(NotFoundError):
        await service.create_repository(999, "octocat", "Hello-World")


@pytest.mark.asyncio
async def test_duplicate_repository_conflicts(session, make_team, fake_github) -> None:
    team = make_team("Alpha")
    fake_github.add_repository("octocat/Hello-World", {"C": 100})
    service = RepositoryService(session, fake_github)
    await service.create_repository(team.id, "octocat", "Hello-World")

    with pytest.raises(ConflictError):
        await service.create_repository(team.id, "octocat", "Hello-World")


def test_list_metrics_filters_and_orders_newest_first(session, make_team, make_repository) -> None:
    alpha = make_team("Alpha")
    beta = make_team("Beta")
    repo_a = make_repository(alpha, "alpha", "api")
    repo_b = make_repository(beta, "beta", "api")
    persister = MetricPersister()
    persister.persist(session, repository_id=repo_a.id, languages={"Python": 1}, timestamp=datetime(2025, 1, 1, 10, 0))
    persister.persist(session, repository_id=repo_a.id, languages={"Python": 2}, timestamp=datetime(2025, 1, 1, 11, 0))
    persister.persist(session, repository_id=repo_b.id, languages={"Rust": 3}, timestamp=datetime(2025, 1, 1, 12, 0))

    assert [m.bytes for m in list_metrics(session, team_id=alpha.id)] == [2, 1]
    assert [m.bytes for m in list_metrics(session, repository_id=repo_b.id)] == [3]
    assert [m.bytes for m in list_metrics(session, limit=2)] == [3, 2]
    assert database_stats(session) == {"teams": 2, "repositories": 2, "metrics": 3}
