"""Team endpoints"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.api.deps import get_db
from app.api.schemas import TeamPayload
from app.services.teams import TeamService, team_to_dict

router = APIRouter(prefix="/teams", tags=["teams"])


@router.get("")
def list_teams(db: Session = Depends(get_db)):
    return [team_to_dict(team) for team in TeamService(db).list_teams()]


@router.post("", status_code=201)
def create_team(payload: TeamPayload, db: Session = Depends(get_db)):
    return team_to_dict(TeamService(db).create_team(payload.name))


@router.get("/{team_id}")
def get_team(team_id: int, db: Session = Depends(get_db)):
    return team_to_dict(TeamService(db).get_team(team_id), include_repositories=True)


@router.put("/{team_id}")
def rename_team(team_id: int, payload: TeamPayload, db: Session = Depends(get_db)):
    return team_to_dict(TeamService(db).rename_team(team_id, payload.name))


@router.delete("/{team_id}")
def delete_team(team_id: int, db: Session = Depends(get_db)):
    TeamService(db).delete_team(team_id)
    return {"message": "Team deleted successfully"}
