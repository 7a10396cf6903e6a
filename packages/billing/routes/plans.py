"""
Plans API routes.

Public endpoint for retrieving available subscription plans.
"""

from fastapi import APIRouter

from packages.billing.services.plans_service import PlansService
from packages.billing.models.domain.plans import PlansResponse

router = APIRouter()


@router.get("", response_model=PlansResponse)
async def get_plans():
    """
    Get all available subscription plans.

    Returns pricing, limits, features and configured price ids for each tier.
    This endpoint is public (no auth required) for pricing pages.
    """
    return await PlansService().get_all_plans()
