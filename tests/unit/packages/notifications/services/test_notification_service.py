import pytest
from unittest.mock import AsyncMock

from packages.notifications.models.domain.notification import (
    NotificationMessage,
    NotificationType,
)
from packages.notifications.providers.transport import LogTransport, QueueTransport
from packages.notifications.services.notification_service import NotificationService


class TestNotificationService:
    """NotificationService.send never raises."""

    async def test_send_builds_message(self):
        transport = AsyncMock()
        transport.deliver = AsyncMock(return_value=True)
        service = NotificationService(transport=transport)

        delivered = await service.send(
            7,
            NotificationType.SUBSCRIPTION_UPDATE,
            title="Subscription Updated",
            content="Your subscription has been updated to Starter",
            metadata={"tier": "STARTER"},
        )

        assert delivered is True
        message = transport.deliver.call_args.args[0]
        assert isinstance(message, NotificationMessage)
        assert message.user_id == 7
        assert message.type == NotificationType.SUBSCRIPTION_UPDATE
        assert message.metadata == {"tier": "STARTER"}

    async def test_transport_error_is_swallowed(self):
        transport = AsyncMock()
        transport.deliver = AsyncMock(side_effect=ConnectionError("broker down"))
        service = NotificationService(transport=transport)

        delivered = await service.send(
            7, NotificationType.SUBSCRIPTION_UPDATE, title="Payment Failed"
        )

        assert delivered is False

    async def test_rejected_delivery(self):
        transport = AsyncMock()
        transport.deliver = AsyncMock(return_value=False)
        service = NotificationService(transport=transport)

        assert (
            await service.send(7, NotificationType.SUBSCRIPTION_UPDATE, title="x")
            is False
        )


class TestTransports:
    @pytest.fixture
    def message(self):
        return NotificationMessage(
            user_id=3,
            type=NotificationType.SUBSCRIPTION_UPDATE,
            title="Subscription Activated",
        )

    async def test_log_transport_accepts(self, message):
        assert await LogTransport().deliver(message) is True

    async def test_queue_transport_publishes_json(self, message):
        queue = AsyncMock()
        queue.connect = AsyncMock(return_value=True)
        queue.publish = AsyncMock(return_value=True)
        transport = QueueTransport(queue=queue, queue_name="notifications")

        assert await transport.deliver(message) is True
        assert await transport.deliver(message) is True

        queue.connect.assert_awaited_once()
        queue.declare_queue.assert_awaited_once_with("notifications", durable=True)
        queue_name, payload = queue.publish.call_args.args
        assert queue_name == "notifications"
        assert payload["user_id"] == 3
        assert payload["type"] == "SUBSCRIPTION_UPDATE"
        assert isinstance(payload["created_at"], str)

    async def test_queue_transport_unavailable(self, message):
        queue = AsyncMock()
        queue.connect = AsyncMock(return_value=False)
        transport = QueueTransport(queue=queue, queue_name="notifications")

        assert await transport.deliver(message) is False
        queue.publish.assert_not_called()

    async def test_queue_transport_close(self, message):
        queue = AsyncMock()
        queue.connect = AsyncMock(return_value=True)
        transport = QueueTransport(queue=queue, queue_name="notifications")
        await transport.deliver(message)

        await transport.close()

        queue.disconnect.assert_awaited_once()
