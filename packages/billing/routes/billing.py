"""
Billing API routes.

Protected endpoints for the caller's subscription.
"""

from fastapi import APIRouter, Depends, Request

from common.providers.rate_limiter.limiter import limiter
from packages.auth.dependencies import get_current_active_user
from packages.auth.models.domain.authenticated_user import AuthenticatedUser
from packages.billing.models.domain.subscription import SubscriptionDetails
from packages.billing.services.subscription_service import SubscriptionService
from packages.billing.models.schemas.billing import (
    CancelSubscriptionRequest,
    CheckoutSessionRequest,
    CheckoutSessionResponse,
    PortalSessionRequest,
    PortalSessionResponse,
    SubscriptionResponse,
    UpdateSubscriptionRequest,
)

router = APIRouter()


# ============================================================================
# Subscription Details
# ============================================================================


@router.get("/subscription", response_model=SubscriptionDetails)
async def get_subscription(
    current_user: AuthenticatedUser = Depends(get_current_active_user),
):
    """
    Current tier, status and the pricing catalog for the caller.

    Users without a subscription row are reported as FREE with status NONE.
    """
    return await SubscriptionService().get_subscription_details(current_user.user_id)


# ============================================================================
# Checkout / Portal
# ============================================================================


@router.post("/checkout", response_model=CheckoutSessionResponse)
@limiter.limit("10/minute")
async def create_checkout_session(
    request: Request,
    checkout_request: CheckoutSessionRequest,
    current_user: AuthenticatedUser = Depends(get_current_active_user),
):
    """
    Create a hosted checkout session for a paid tier.

    The subscription is only recorded once the processor confirms the
    checkout through the webhook.
    """
    checkout_url = await SubscriptionService().create_checkout(
        user_id=current_user.user_id,
        tier=checkout_request.tier,
        interval=checkout_request.interval,
        success_url=str(checkout_request.success_url),
        cancel_url=str(checkout_request.cancel_url),
    )
    return CheckoutSessionResponse(checkout_url=checkout_url)


@router.post("/portal", response_model=PortalSessionResponse)
async def create_portal_session(
    portal_request: PortalSessionRequest,
    current_user: AuthenticatedUser = Depends(get_current_active_user),
):
    portal_url = await SubscriptionService().create_billing_portal_session(
        user_id=current_user.user_id, return_url=str(portal_request.return_url)
    )
    return PortalSessionResponse(portal_url=portal_url)


# ============================================================================
# Plan Changes
# ============================================================================


@router.post("/subscription/update", response_model=SubscriptionResponse)
async def update_subscription(
    update_request: UpdateSubscriptionRequest,
    current_user: AuthenticatedUser = Depends(get_current_active_user),
):
    """
    Move to another tier or interval.

    Paid-to-paid changes apply immediately with proration. Moving to FREE
    cancels at the end of the current period.
    """
    subscription = await SubscriptionService().update_subscription(
        current_user.user_id, update_request.tier, update_request.interval
    )
    return SubscriptionResponse.from_subscription(
        subscription, message="Subscription updated"
    )


@router.post("/subscription/cancel", response_model=SubscriptionResponse)
async def cancel_subscription(
    cancel_request: CancelSubscriptionRequest = CancelSubscriptionRequest(),
    current_user: AuthenticatedUser = Depends(get_current_active_user),
):
    subscription = await SubscriptionService().cancel_subscription(
        current_user.user_id, immediately=cancel_request.immediately
    )
    message = (
        "Subscription cancelled"
        if cancel_request.immediately
        else "Subscription will be cancelled at the end of the billing period"
    )
    return SubscriptionResponse.from_subscription(subscription, message=message)
