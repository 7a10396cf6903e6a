"""
Usage API routes.

Quota checks and usage statistics for users, teams and administrators.
"""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from packages.auth.dependencies import get_current_active_user, get_current_admin_user
from packages.auth.models.domain.authenticated_user import AuthenticatedUser
from packages.billing.models.domain.usage import (
    ActorRef,
    QuotaDecision,
    UsageStats,
    UsageSummary,
)
from packages.billing.models.schemas.usage import QuotaCheckRequest
from packages.billing.services.quota_service import QuotaService
from packages.billing.services.usage_service import UsageService
from packages.teams.repositories.team_repository import TeamRepository

router = APIRouter()


async def _require_team_member(team_id: int, user: AuthenticatedUser) -> None:
    if not await TeamRepository().is_member(team_id, user.user_id):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not a member of this team",
        )


@router.post("/check", response_model=QuotaDecision)
async def check_quota(
    check_request: QuotaCheckRequest,
    current_user: AuthenticatedUser = Depends(get_current_active_user),
):
    """
    Would this action be allowed right now? Nothing is recorded.

    Denials are returned in the body with 200, not raised.
    """
    if check_request.team_id is not None:
        await _require_team_member(check_request.team_id, current_user)
        actor = ActorRef.team(check_request.team_id)
    else:
        actor = ActorRef.user(current_user.user_id)
    return await QuotaService().check_quota(actor, check_request.action)


@router.get("/user/stats", response_model=UsageStats)
async def get_user_stats(
    start_date: Optional[datetime] = Query(default=None),
    end_date: Optional[datetime] = Query(default=None),
    current_user: AuthenticatedUser = Depends(get_current_active_user),
):
    return await UsageService().get_user_stats(
        current_user.user_id, start_date=start_date, end_date=end_date
    )


@router.get("/team/{team_id}/stats", response_model=UsageStats)
async def get_team_stats(
    team_id: int,
    start_date: Optional[datetime] = Query(default=None),
    end_date: Optional[datetime] = Query(default=None),
    current_user: AuthenticatedUser = Depends(get_current_active_user),
):
    """Team usage against the owner's tier; members only."""
    await _require_team_member(team_id, current_user)
    return await UsageService().get_team_stats(
        team_id, start_date=start_date, end_date=end_date
    )


@router.get("/summary", response_model=UsageSummary)
async def get_usage_summary(
    current_user: AuthenticatedUser = Depends(get_current_admin_user),
):
    return await UsageService().get_usage_summary()
