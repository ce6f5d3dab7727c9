from __future__ import annotations

from typing import Any, Optional

import pytest

from app.config.database import Database
from app.crawlers.github.contracts import FetchResult, FetchState
from app.models import Repository, Team


class FakeGitHubClient:
    """In-memory stand-in for GitHubClient keyed by "owner/name"."""

    def __init__(self) -> None:
        self.repos: dict[str, dict[str, Any]] = {}
        self.languages: dict[str, dict[str, int]] = {}
        self.commits: dict[str, list[dict[str, Any]]] = {}
        self.commit_stats: dict[str, dict[str, int]] = {}
        self.failures: dict[str, FetchResult[Any]] = {}
        self.failing_shas: set[str] = set()
        self.calls: list[tuple[str, str]] = []

    def add_repository(self, full_name: str, languages: dict[str, int], private: bool = False) -> None:
        self.repos[full_name] = {"full_name": full_name, "private": private}
        self.languages[full_name] = dict(languages)

    def add_commit(
        self,
        full_name: str,
        sha: str,
        date: str,
        additions: int,
        deletions: int,
        message: str = "commit",
        author: Optional[str] = "dev",
    ) -> None:
        """Record commits oldest first; they are served newest first like the API."""
        item = {
            "sha": sha,
            "commit": {
                "message": message,
                "author": {"name": author, "date": date} if author else {"date": date},
                "committer": {"date": date},
            },
        }
        self.commits.setdefault(full_name, []).insert(0, item)
        self.commit_stats[sha] = {"additions": additions, "deletions": deletions}

    def fail(self, full_name: str, status_code: Optional[int], error: str = "boom") -> None:
        self.failures[full_name] = FetchResult(
            state=FetchState.FAILED,
            status_code=status_code,
            error=error,
            rate_limited=status_code == 429,
        )

    async def get_repo(self, owner: str, repo: str) -> FetchResult[Any]:
        key = f"{owner}/{repo}"
        self.calls.append(("get_repo", key))
        if key in self.failures:
            return self.failures[key]
        if key not in self.repos:
            return FetchResult(state=FetchState.FAILED, status_code=404, error="HTTP 404: Not Found")
        return FetchResult(state=FetchState.OK, data=self.repos[key], status_code=200)

    async def list_languages(self, owner: str, repo: str) -> FetchResult[Any]:
        key = f"{owner}/{repo}"
        self.calls.append(("list_languages", key))
        if key in self.failures:
            return self.failures[key]
        if key not in self.languages:
            return FetchResult(state=FetchState.FAILED, status_code=404, error="HTTP 404: Not Found")
        data = dict(self.languages[key])
        return FetchResult(state=FetchState.OK if data else FetchState.EMPTY, data=data, status_code=200)

    async def list_commits(
        self,
        owner: str,
        repo: str,
        *,
        since: str,
        until: Optional[str] = None,
        page: int = 1,
        per_page: int = 100,
    ) -> FetchResult[Any]:
        key = f"{owner}/{repo}"
        self.calls.append(("list_commits", key))
        if key in self.failures:
            return self.failures[key]
        items = self.commits.get(key, [])
        chunk = items[(page - 1) * per_page : page * per_page]
        return FetchResult(state=FetchState.OK if chunk else FetchState.EMPTY, data=chunk, status_code=200)

    async def get_commit(self, owner: str, repo: str, sha: str) -> FetchResult[Any]:
        self.calls.append(("get_commit", sha))
        if sha in self.failing_shas:
            return FetchResult(state=FetchState.FAILED, status_code=500, error="HTTP 500")
        stats = self.commit_stats.get(sha, {"additions": 0, "deletions": 0})
        return FetchResult(state=FetchState.OK, data={"sha": sha, "stats": stats}, status_code=200)


async def no_sleep(_: float) -> None:
    return None


@pytest.fixture
def database():
    db = Database("sqlite://").open()
    yield db
    db.close()


@pytest.fixture
def session(database):
    with database.session_scope() as db:
        yield db


@pytest.fixture
def fake_github() -> FakeGitHubClient:
    return FakeGitHubClient()


@pytest.fixture
def fast_sleep():
    return no_sleep


@pytest.fixture
def make_team(session):
    def _make(name: str) -> Team:
        team = Team(name=name)
        session.add(team)
        session.commit()
        return team

    return _make


@pytest.fixture
def make_repository(session):
    def _make(team: Team, owner: str, name: str) -> Repository:
        repository = Repository(team_id=team.id, owner=owner, name=name, url=f"https://github.com/{owner}/{name}")
        session.add(repository)
        session.commit()
        return repository

    return _make
