"""Request bodies for the HTTP API (camelCase on the wire)."""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class TeamPayload(BaseModel):
    name: Optional[str] = None


class RepositoryPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    team_id: Optional[int] = Field(default=None, alias="teamId")
    owner: Optional[str] = None
    name: Optional[str] = None
    url: Optional[str] = None


class RepositoryRefPayload(BaseModel):
    owner: str
    repo: str


class ComparePayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    repositories: List[RepositoryRefPayload] = Field(default_factory=list)
    since: Optional[str] = None
    until: Optional[str] = None
    interval_minutes: Optional[int] = Field(default=None, alias="intervalMinutes")
