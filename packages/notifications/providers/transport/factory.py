from typing import Optional

from common.core.config import settings
from common.core.constants import NotificationTransport
from common.core.telemetry import get_logger

from .interface import NotificationTransportInterface
from .log_transport import LogTransport
from .queue_transport import QueueTransport

logger = get_logger(__name__)

# Global instance
_transport: Optional[NotificationTransportInterface] = None


def get_notification_transport() -> NotificationTransportInterface:
    """Get the transport selected by settings.notification_transport."""
    global _transport

    if _transport is None:
        if settings.notification_transport == NotificationTransport.RABBITMQ:
            _transport = QueueTransport()
        else:
            _transport = LogTransport()
        logger.info(
            f"Initialized {settings.notification_transport.value} notification transport"
        )

    return _transport


async def close_notification_transport() -> None:
    global _transport

    if _transport is not None:
        await _transport.close()
        _transport = None
