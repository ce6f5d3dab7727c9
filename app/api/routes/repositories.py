"""Tracked repository endpoints"""

from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query
from sqlalchemy.orm import Session

from app.api.deps import get_db, get_github, get_poller, get_settings
from app.api.schemas import RepositoryPayload
from app.services.teams import RepositoryService, repository_to_dict

router = APIRouter(prefix="/repos", tags=["repositories"])


@router.get("")
def list_repositories(team_id: Optional[int] = Query(default=None, alias="teamId"), db: Session = Depends(get_db)):
    return [repository_to_dict(repo) for repo in RepositoryService(db).list_repositories(team_id)]


@router.get("/{repository_id}")
def get_repository(repository_id: int, db: Session = Depends(get_db)):
    return repository_to_dict(RepositoryService(db).get_repository(repository_id))


@router.post("", status_code=201)
async def create_repository(
    payload: RepositoryPayload,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    github=Depends(get_github),
    poller=Depends(get_poller),
    settings=Depends(get_settings),
):
    repository = await RepositoryService(db, github).create_repository(
        payload.team_id, payload.owner, payload.name, payload.url
    )
    # First snapshot right away instead of waiting for the next tick
    if settings.POLL_ON_REPOSITORY_CREATE:
        background_tasks.add_task(poller.poll_now)
    return repository_to_dict(repository)


@router.delete("/{repository_id}")
def delete_repository(repository_id: int, db: Session = Depends(get_db)):
    RepositoryService(db).delete_repository(repository_id)
    return {"message": "Repository deleted successfully"}
