from common.core.telemetry import get_logger
from packages.notifications.models.domain.notification import NotificationMessage
from .interface import NotificationTransportInterface

logger = get_logger(__name__)


class LogTransport(NotificationTransportInterface):
    """Writes notifications to the log. Used in development and tests."""

    async def deliver(self, message: NotificationMessage) -> bool:
        logger.info(
            f"Notification for user {message.user_id}: {message.title}",
            extra={
                "user_id": message.user_id,
                "notification_type": message.type.value,
                "notification_title": message.title,
            },
        )
        return True
