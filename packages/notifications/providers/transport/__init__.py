from .interface import NotificationTransportInterface
from .factory import get_notification_transport, close_notification_transport
from .log_transport import LogTransport
from .queue_transport import QueueTransport

__all__ = [
    "NotificationTransportInterface",
    "get_notification_transport",
    "close_notification_transport",
    "LogTransport",
    "QueueTransport",
]
