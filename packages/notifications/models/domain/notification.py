from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional
from pydantic import BaseModel, Field

from common.db.base import utcnow


class NotificationType(str, Enum):
    """Template ids understood by the notification consumer."""

    SUBSCRIPTION_UPDATE = "SUBSCRIPTION_UPDATE"


class NotificationMessage(BaseModel):
    """Payload handed to the notification transport."""

    user_id: int
    type: NotificationType
    title: str
    content: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=utcnow)
