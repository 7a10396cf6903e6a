from fastapi import APIRouter, Depends

from api.v1.routes import (
    health,
)
from packages.auth.dependencies import get_current_active_user
from packages.billing.routes import billing, webhooks, plans, usage

api_router = APIRouter()

# Health check (no auth required)
api_router.include_router(health.router, prefix="/health", tags=["health"])

# Webhooks (no auth - signature verified internally)
api_router.include_router(webhooks.router, tags=["webhooks"])

# Plans (no auth - public pricing info)
api_router.include_router(plans.router, prefix="/billing/plans", tags=["billing"])

# Billing routes (require auth)
api_router.include_router(
    billing.router,
    prefix="/billing",
    tags=["billing"],
    dependencies=[Depends(get_current_active_user)],
)

# Usage and quota routes (require auth; admin checks per endpoint)
api_router.include_router(
    usage.router,
    prefix="/usage",
    tags=["usage"],
    dependencies=[Depends(get_current_active_user)],
)
