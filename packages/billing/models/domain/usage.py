"""
Domain models for the usage ledger and quota decisions.
"""

from datetime import datetime
from typing import Any, Dict, Optional
from pydantic import BaseModel, ConfigDict, Field, model_validator

from packages.billing.models.domain.enums import ActorType, UsageAction


class ActorRef(BaseModel):
    """A user or a team whose actions are metered."""

    model_config = ConfigDict(frozen=True)

    actor_type: ActorType
    actor_id: int

    @classmethod
    def user(cls, user_id: int) -> "ActorRef":
        return cls(actor_type=ActorType.USER, actor_id=user_id)

    @classmethod
    def team(cls, team_id: int) -> "ActorRef":
        return cls(actor_type=ActorType.TEAM, actor_id=team_id)


class QuotaDecision(BaseModel):
    """
    Result of a quota check. Denials are ordinary values, never exceptions.

    Unlimited and unmetered actions come back as a bare `allowed=True` with
    no usage figures.
    """

    allowed: bool
    reason: Optional[str] = None
    current_usage: Optional[int] = None
    limit: Optional[int] = None
    remaining: Optional[int] = None

    @classmethod
    def allow(cls) -> "QuotaDecision":
        return cls(allowed=True)

    @classmethod
    def deny(cls, reason: str, **kwargs) -> "QuotaDecision":
        return cls(allowed=False, reason=reason, **kwargs)


class UsageLogEntry(BaseModel):
    """Immutable ledger row for one metered action."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: Optional[int] = None
    team_id: Optional[int] = None
    action: UsageAction
    event_metadata: Dict[str, Any] = Field(default_factory=dict)
    storage_bytes: Optional[int] = None
    created_at: datetime


class UsageLogEntryCreateModel(BaseModel):
    """Model for appending a usage log entry."""

    model_config = ConfigDict(use_enum_values=True)

    user_id: Optional[int] = None
    team_id: Optional[int] = None
    action: UsageAction
    event_metadata: Dict[str, Any] = Field(default_factory=dict)
    storage_bytes: Optional[int] = None

    @model_validator(mode="after")
    def require_actor(self):
        if self.user_id is None and self.team_id is None:
            raise ValueError("A usage log entry needs a user_id or a team_id")
        return self


class UsageCounts(BaseModel):
    """Period-to-date usage per dimension for one actor."""

    specifications: int = 0
    ai_generations: int = 0
    team_members: int = 0
    storage_mb: int = 0
    api_calls: int = 0


class UsagePercentages(BaseModel):
    """Rounded percentage of each limit used; 0 when the limit is unlimited."""

    specifications: int = 0
    ai_generations: int = 0
    team_members: int = 0
    storage: int = 0
    api_calls: int = 0


class UsagePeriod(BaseModel):
    start: datetime
    end: datetime


class UsageStats(BaseModel):
    """Usage statistics for a user or team over a period."""

    actor_type: ActorType
    actor_id: int
    tier: str
    period: UsagePeriod
    usage: UsageCounts
    quota: Dict[str, int]
    percentages: UsagePercentages


class UsageSummary(BaseModel):
    """System-wide usage summary for administrators."""

    total_users: int
    active_users: int
    total_specifications: int
    total_ai_generations: int
    period: UsagePeriod
