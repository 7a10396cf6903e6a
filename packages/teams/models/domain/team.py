from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict


class Team(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    owner_user_id: int
    usage_quota: Optional[int] = None
    usage_count: int = 0
    created_at: datetime
    updated_at: datetime


class TeamWithMembers(Team):
    """Team plus its live member count, as the quota engine needs it."""

    member_count: int = 0


class TeamCreateModel(BaseModel):
    name: str
    owner_user_id: int
    usage_quota: Optional[int] = None


class TeamMember(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    team_id: int
    user_id: int
    role: str
    created_at: datetime


class TeamMemberCreateModel(BaseModel):
    team_id: int
    user_id: int
    role: str = "member"
