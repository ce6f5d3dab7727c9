"""Team, repository and metric management on top of the store."""

from __future__ import annotations

import logging
from typing import Any, Optional

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.crawlers.github.client import sanitize_log_extra
from app.errors import ConflictError, NotFoundError, StorageError, ValidationError, upstream_error_from_result
from app.models.metric import Metric
from app.models.repository import Repository
from app.models.team import Team
from app.utils.helpers import canonical_repo_url, is_valid_repo_segment, sanitize_url, to_iso_z

logger = logging.getLogger(__name__)

MAX_METRICS_LIMIT = 1000


def team_to_dict(team: Team, include_repositories: bool = False) -> dict[str, Any]:
    data: dict[str, Any] = {
        "id": team.id,
        "name": team.name,
        "createdAt": to_iso_z(team.created_at),
    }
    if include_repositories:
        data["repositories"] = [repository_to_dict(repo) for repo in team.repositories]
    return data


def repository_to_dict(repository: Repository) -> dict[str, Any]:
    return {
        "id": repository.id,
        "teamId": repository.team_id,
        "owner": repository.owner,
        "name": repository.name,
        "url": repository.url,
        "createdAt": to_iso_z(repository.created_at),
    }


def metric_to_dict(metric: Metric) -> dict[str, Any]:
    return {
        "id": metric.id,
        "repositoryId": metric.repository_id,
        "language": metric.language,
        "bytes": metric.bytes,
        "lines": metric.lines,
        "timestamp": to_iso_z(metric.timestamp),
    }


class TeamService:
    """CRUD for teams"""

    def __init__(self, db: Session):
        self.db = db

    def list_teams(self) -> list[Team]:
        """All teams, newest first"""
        return self.db.query(Team).order_by(Team.created_at.desc(), Team.id.desc()).all()

    def get_team(self, team_id: int) -> Team:
        team = self.db.get(Team, team_id)
        if team is None:
            raise NotFoundError("Team not found")
        return team

    def create_team(self, name: Optional[str]) -> Team:
        team = Team(name=self._clean_name(name))
        self._commit(team, conflict=f"Team '{team.name}' already exists")
        logger.info(f"Created team {team.name}")
        return team

    def rename_team(self, team_id: int, name: Optional[str]) -> Team:
        team = self.get_team(team_id)
        team.name = self._clean_name(name)
        self._commit(team, conflict=f"Team '{team.name}' already exists")
        return team

    def delete_team(self, team_id: int) -> None:
        """Delete a team; its repositories and their metrics go with it"""
        team = self.get_team(team_id)
        self.db.delete(team)
        self._commit()
        logger.info(f"Deleted team {team_id}")

    @staticmethod
    def _clean_name(name: Optional[str]) -> str:
        if not isinstance(name, str) or not name.strip():
            raise ValidationError("Team name is required")
        return name.strip()

    def _commit(self, instance: Any = None, conflict: str = "Already exists") -> None:
        try:
            if instance is not None:
                self.db.add(instance)
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            raise ConflictError(conflict) from exc
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise StorageError() from exc


class RepositoryService:
    """
    Tracked repository management

    A repository is only stored after GitHub confirms it exists, is public
    and exposes its language breakdown; otherwise polling it could never
    produce metrics.
    """

    def __init__(self, db: Session, github_client: Any = None):
        self.db = db
        self.github = github_client

    def list_repositories(self, team_id: Optional[int] = None) -> list[Repository]:
        query = self.db.query(Repository)
        if team_id is not None:
            query = query.filter(Repository.team_id == team_id)
        return query.order_by(Repository.created_at.desc(), Repository.id.desc()).all()

    def get_repository(self, repository_id: int) -> Repository:
        repository = self.db.get(Repository, repository_id)
        if repository is None:
            raise NotFoundError("Repository not found")
        return repository

    async def create_repository(
        self,
        team_id: Any,
        owner: Any,
        name: Any,
        url: Optional[str] = None,
    ) -> Repository:
        if team_id is None or not owner or not name:
            raise ValidationError("teamId, owner, and name are required")
        if not isinstance(owner, str) or not isinstance(name, str):
            raise ValidationError("owner and name must be strings")

        owner, name = owner.strip(), name.strip()
        if not is_valid_repo_segment(owner) or not is_valid_repo_segment(name):
            raise ValidationError("owner and name may only contain letters, digits, '-', '_' and '.'")

        if self.db.get(Team, team_id) is None:
            raise NotFoundError("Team not found")
        if self._find(owner, name) is not None:
            raise ConflictError(f"Repository {owner}/{name} is already tracked")

        await self.verify_repository(owner, name)

        repository = Repository(
            team_id=team_id,
            owner=owner,
            name=name,
            url=sanitize_url(url) if url else canonical_repo_url(owner, name),
        )
        try:
            self.db.add(repository)
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            raise ConflictError(f"Repository {owner}/{name} is already tracked") from exc
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise StorageError() from exc

        logger.info(f"Added repository {owner}/{name} to team {team_id}")
        return repository

    async def verify_repository(self, owner: str, name: str) -> None:
        """Raise the matching error unless the repository is public and readable"""
        if self.github is None:
            raise RuntimeError("RepositoryService needs a GitHub client to verify repositories")

        full_name = f"{owner}/{name}"
        repo = await self.github.get_repo(owner, name)
        if repo.is_failed:
            logger.warning(
                "Repository verification failed",
                extra=sanitize_log_extra(repo=full_name, status_code=repo.status_code, error=repo.error),
            )
            raise upstream_error_from_result(repo, "Repository")
        if isinstance(repo.data, dict) and repo.data.get("private"):
            raise ValidationError(f"Repository {full_name} is private")

        languages = await self.github.list_languages(owner, name)
        if languages.is_failed:
            raise upstream_error_from_result(languages, "Repository languages")

    def delete_repository(self, repository_id: int) -> None:
        repository = self.get_repository(repository_id)
        try:
            self.db.delete(repository)
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise StorageError() from exc
        logger.info(f"Deleted repository {repository_id}")

    def _find(self, owner: str, name: str) -> Optional[Repository]:
        return self.db.query(Repository).filter(Repository.owner == owner, Repository.name == name).first()


def list_metrics(
    db: Session,
    *,
    team_id: Optional[int] = None,
    repository_id: Optional[int] = None,
    limit: int = 100,
) -> list[Metric]:
    """Metric rows, newest first, filtered by repository or team"""
    limit = max(1, min(int(limit), MAX_METRICS_LIMIT))
    statement = select(Metric)
    if repository_id is not None:
        statement = statement.where(Metric.repository_id == repository_id)
    elif team_id is not None:
        statement = statement.join(Repository, Metric.repository_id == Repository.id).where(
            Repository.team_id == team_id
        )
    statement = statement.order_by(Metric.timestamp.desc(), Metric.id.desc()).limit(limit)
    return list(db.scalars(statement).all())


def database_stats(db: Session) -> dict[str, int]:
    return {
        "teams": db.scalar(select(func.count(Team.id))) or 0,
        "repositories": db.scalar(select(func.count(Repository.id))) or 0,
        "metrics": db.scalar(select(func.count(Metric.id))) or 0,
    }
