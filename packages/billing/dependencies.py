"""
Request-path quota enforcement for metered endpoints.

    @router.post("/specifications")
    async def generate(
        decision: QuotaDecision = Depends(MeteredAction(UsageAction.SPEC_GENERATED)),
    ):
        ...

A team id in the path or query string meters the team, otherwise the caller.
Denials become 403 with the decision's reason. Allowed requests record usage
in a background task, which FastAPI only runs once the endpoint returned a
response.
"""

from typing import Optional

from fastapi import BackgroundTasks, Depends, HTTPException, Request, status

from common.core.telemetry import get_logger
from packages.auth.dependencies import get_current_active_user
from packages.auth.models.domain.authenticated_user import AuthenticatedUser
from packages.billing.models.domain.enums import UsageAction
from packages.billing.models.domain.usage import ActorRef, QuotaDecision
from packages.billing.services.quota_service import QuotaService
from packages.billing.services.usage_service import UsageService
from packages.teams.repositories.team_repository import TeamRepository

logger = get_logger(__name__)


def resolve_team_id(request: Request, param: str = "team_id") -> Optional[int]:
    raw = request.path_params.get(param)
    if raw is None:
        raw = request.query_params.get(param)
    if raw is None or raw == "":
        return None
    try:
        return int(raw)
    except (TypeError, ValueError):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid team id"
        )


class MeteredAction:
    """FastAPI dependency gating one action kind.

    The team is taken from the path or query parameter named `team_param`;
    a team id sent in the request body is ignored, so routes that meter a
    team must expose it in the path or query string.
    """

    def __init__(self, action: UsageAction, team_param: str = "team_id"):
        self.action = action
        self.team_param = team_param

    async def __call__(
        self,
        request: Request,
        background_tasks: BackgroundTasks,
        current_user: AuthenticatedUser = Depends(get_current_active_user),
    ) -> QuotaDecision:
        team_id = resolve_team_id(request, self.team_param)

        if team_id is not None:
            if not await TeamRepository().is_member(team_id, current_user.user_id):
                raise HTTPException(
                    status_code=status.HTTP_403_FORBIDDEN,
                    detail="Not a member of this team",
                )
            actor = ActorRef.team(team_id)
        else:
            actor = ActorRef.user(current_user.user_id)

        decision = await QuotaService().check_quota(actor, self.action)
        if not decision.allowed:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN, detail=decision.reason
            )

        background_tasks.add_task(
            UsageService().record_usage,
            self.action,
            user_id=current_user.user_id,
            team_id=team_id,
            metadata={"path": request.url.path, "method": request.method},
        )
        return decision
