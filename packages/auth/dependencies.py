from typing import Annotated, Optional
from fastapi import Depends, HTTPException, status, Header

from common.core.telemetry import trace_span, get_logger
from packages.auth.models.domain.authenticated_user import AuthenticatedUser
from packages.auth.services.token_service import TokenService
from packages.users.repositories.user_repository import UserRepository

logger = get_logger(__name__)


def get_token_service() -> TokenService:
    """Get TokenService instance."""
    return TokenService()


@trace_span
async def get_current_user(
    authorization: Annotated[Optional[str], Header()] = None,
    token_service: TokenService = Depends(get_token_service),
) -> AuthenticatedUser:
    """Get current authenticated user from a bearer JWT."""
    if not authorization or not authorization.startswith("Bearer "):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authorization header missing or invalid",
            headers={"WWW-Authenticate": "Bearer"},
        )

    token = authorization.split(" ")[1]
    return AuthenticatedUser(user_id=token_service.user_id_from_token(token))


@trace_span
async def get_current_active_user(
    current_user: AuthenticatedUser = Depends(get_current_user),
) -> AuthenticatedUser:
    """Resolve the token subject against the users table."""
    user = await UserRepository().get(current_user.user_id)
    if not user or not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Inactive or unknown user"
        )
    logger.info(f"Authenticated user_id={user.id}")
    return AuthenticatedUser(user_id=user.id, email=user.email, is_admin=user.is_admin)


@trace_span
async def get_current_admin_user(
    current_user: AuthenticatedUser = Depends(get_current_active_user),
) -> AuthenticatedUser:
    """Get current admin user."""
    if not current_user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN, detail="Not enough permissions"
        )
    return current_user
