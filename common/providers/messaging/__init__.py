from .interface import MessageQueueInterface
from .factory import get_message_queue

__all__ = ["MessageQueueInterface", "get_message_queue"]
