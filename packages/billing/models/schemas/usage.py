"""
API schemas for usage and quota endpoints.
"""

from typing import Optional
from pydantic import BaseModel

from packages.billing.models.domain.enums import UsageAction


class QuotaCheckRequest(BaseModel):
    """Ask whether an action would be allowed, without recording it."""

    action: UsageAction
    team_id: Optional[int] = None
