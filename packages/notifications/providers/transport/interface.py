from abc import ABC, abstractmethod

from packages.notifications.models.domain.notification import NotificationMessage


class NotificationTransportInterface(ABC):
    @abstractmethod
    async def deliver(self, message: NotificationMessage) -> bool:
        """Hand the message off. Returns False when it could not be accepted."""
        pass

    async def close(self) -> None:
        pass
