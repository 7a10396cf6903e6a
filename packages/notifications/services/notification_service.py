from typing import Any, Dict, Optional

from common.core.telemetry import trace_span, get_logger
from packages.notifications.models.domain.notification import (
    NotificationMessage,
    NotificationType,
)
from packages.notifications.providers.transport import (
    NotificationTransportInterface,
    get_notification_transport,
)

logger = get_logger(__name__)


class NotificationService:
    """Fire-and-forget outbound notifications.

    send() never raises: a lost notification must not fail the billing
    operation that triggered it.
    """

    def __init__(self, transport: Optional[NotificationTransportInterface] = None):
        self.transport = transport or get_notification_transport()

    @trace_span
    async def send(
        self,
        user_id: int,
        notification_type: NotificationType,
        title: str,
        content: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> bool:
        message = NotificationMessage(
            user_id=user_id,
            type=notification_type,
            title=title,
            content=content,
            metadata=metadata or {},
        )
        try:
            delivered = await self.transport.deliver(message)
        except Exception as e:
            logger.error(
                f"Failed to send notification to user {user_id}: {e}",
                extra={"user_id": user_id, "notification_title": title},
            )
            return False

        if not delivered:
            logger.warning(
                f"Notification for user {user_id} was not accepted",
                extra={"user_id": user_id, "notification_title": title},
            )
        return delivered
