from typing import Optional

from common.core.config import settings
from common.core.telemetry import get_logger
from common.providers.messaging import MessageQueueInterface, get_message_queue
from packages.notifications.models.domain.notification import NotificationMessage
from .interface import NotificationTransportInterface

logger = get_logger(__name__)


class QueueTransport(NotificationTransportInterface):
    """Publishes notifications to the message queue for the delivery worker."""

    def __init__(
        self,
        queue: Optional[MessageQueueInterface] = None,
        queue_name: Optional[str] = None,
    ):
        self.queue = queue or get_message_queue()
        self.queue_name = queue_name or settings.notification_queue
        self._connected = False

    async def _ensure_connected(self) -> bool:
        if not self._connected:
            self._connected = await self.queue.connect()
            if self._connected:
                await self.queue.declare_queue(self.queue_name, durable=True)
        return self._connected

    async def deliver(self, message: NotificationMessage) -> bool:
        if not await self._ensure_connected():
            logger.error("Notification queue unavailable")
            return False
        return await self.queue.publish(
            self.queue_name, message.model_dump(mode="json")
        )

    async def close(self) -> None:
        if self._connected:
            await self.queue.disconnect()
            self._connected = False
