from datetime import timedelta
from typing import Any, Dict, Optional

import jwt
from fastapi import HTTPException, status

from common.core.config import settings
from common.core.telemetry import get_logger
from common.db.base import utcnow

logger = get_logger(__name__)


class TokenService:
    """Issues and verifies the HS256 bearer tokens the API accepts.

    Tokens are minted by the identity front door; `sub` carries the numeric
    user id. issue_token exists for scripts and tests.
    """

    def __init__(
        self, secret: Optional[str] = None, algorithm: Optional[str] = None
    ):
        self.secret = secret or settings.auth_jwt_secret
        self.algorithm = algorithm or settings.auth_jwt_algorithm

    def issue_token(
        self, user_id: int, expires_in: timedelta = timedelta(hours=1), **claims: Any
    ) -> str:
        now = utcnow()
        payload = {"sub": str(user_id), "iat": now, "exp": now + expires_in, **claims}
        return jwt.encode(payload, self.secret, algorithm=self.algorithm)

    def decode_token(self, token: str) -> Dict[str, Any]:
        try:
            return jwt.decode(
                token,
                self.secret,
                algorithms=[self.algorithm],
                options={"require": ["exp", "sub"]},
            )
        except jwt.ExpiredSignatureError:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED, detail="Token has expired"
            )
        except jwt.InvalidTokenError as e:
            logger.warning(f"Rejected bearer token: {e}")
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid authentication token",
            )

    def user_id_from_token(self, token: str) -> int:
        claims = self.decode_token(token)
        try:
            return int(claims["sub"])
        except (TypeError, ValueError):
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid subject in authentication token",
            )
