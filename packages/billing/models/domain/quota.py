"""
Quota table: tier -> limits per metered dimension, and the closed mapping from
usage actions to the dimension they consume.
"""

from types import MappingProxyType
from typing import Mapping, Optional

from pydantic import BaseModel, ConfigDict

from packages.billing.models.domain.enums import (
    ActorType,
    QuotaDimension,
    SubscriptionTier,
    UsageAction,
)

UNLIMITED = -1


def is_unlimited(limit: int) -> bool:
    return limit == UNLIMITED


class Quota(BaseModel):
    """Immutable set of monthly limits for one tier. -1 means unlimited."""

    model_config = ConfigDict(frozen=True)

    specifications: int
    ai_generations: int
    team_members: int
    storage_mb: int
    api_calls: int

    def limit_for(self, dimension: QuotaDimension) -> int:
        return getattr(self, dimension.value)


QUOTA_TABLE: Mapping[SubscriptionTier, Quota] = MappingProxyType(
    {
        SubscriptionTier.FREE: Quota(
            specifications=5,
            ai_generations=20,
            team_members=3,
            storage_mb=100,
            api_calls=1_000,
        ),
        SubscriptionTier.STARTER: Quota(
            specifications=50,
            ai_generations=200,
            team_members=10,
            storage_mb=1_000,
            api_calls=10_000,
        ),
        SubscriptionTier.PROFESSIONAL: Quota(
            specifications=500,
            ai_generations=2_000,
            team_members=50,
            storage_mb=10_000,
            api_calls=100_000,
        ),
        SubscriptionTier.ENTERPRISE: Quota(
            specifications=UNLIMITED,
            ai_generations=UNLIMITED,
            team_members=UNLIMITED,
            storage_mb=UNLIMITED,
            api_calls=UNLIMITED,
        ),
    }
)


# Every UsageAction has an entry; None means the action is never quota-checked.
ACTION_DIMENSIONS: Mapping[UsageAction, Optional[QuotaDimension]] = MappingProxyType(
    {
        UsageAction.SPEC_GENERATED: QuotaDimension.SPECIFICATIONS,
        UsageAction.AI_GENERATION: QuotaDimension.AI_GENERATIONS,
        UsageAction.VIEW_GENERATED: QuotaDimension.AI_GENERATIONS,
        UsageAction.API_CALL: QuotaDimension.API_CALLS,
        UsageAction.TEAM_MEMBER_ADDED: QuotaDimension.TEAM_MEMBERS,
        UsageAction.VECTOR_STORED: None,
        UsageAction.VECTOR_SEARCH: None,
        UsageAction.FILE_UPLOADED: None,
    }
)

# Ledger actions counted toward each ledger-backed dimension. TEAM_MEMBERS is
# computed from live membership and STORAGE_MB from summed upload bytes.
DIMENSION_ACTIONS: Mapping[QuotaDimension, tuple] = MappingProxyType(
    {
        QuotaDimension.SPECIFICATIONS: (UsageAction.SPEC_GENERATED,),
        QuotaDimension.AI_GENERATIONS: (
            UsageAction.AI_GENERATION,
            UsageAction.VIEW_GENERATED,
        ),
        QuotaDimension.API_CALLS: (UsageAction.API_CALL,),
    }
)

_USER_DENIAL_REASONS = {
    QuotaDimension.SPECIFICATIONS: "Monthly specification limit reached",
    QuotaDimension.AI_GENERATIONS: "Monthly AI generation limit reached",
    QuotaDimension.API_CALLS: "Monthly API call limit reached",
    QuotaDimension.TEAM_MEMBERS: "Team member limit reached",
    QuotaDimension.STORAGE_MB: "Storage limit reached",
}

_TEAM_DENIAL_REASONS = {
    **_USER_DENIAL_REASONS,
    QuotaDimension.SPECIFICATIONS: "Team monthly specification limit reached",
}


def get_quota(tier: SubscriptionTier) -> Quota:
    return QUOTA_TABLE[tier]


def dimension_for(action: UsageAction) -> Optional[QuotaDimension]:
    return ACTION_DIMENSIONS[action]


def denial_reason(actor_type: ActorType, dimension: QuotaDimension) -> str:
    if actor_type is ActorType.TEAM:
        return _TEAM_DENIAL_REASONS[dimension]
    return _USER_DENIAL_REASONS[dimension]


def not_found_reason(actor_type: ActorType) -> str:
    return f"{actor_type.value.capitalize()} not found"
