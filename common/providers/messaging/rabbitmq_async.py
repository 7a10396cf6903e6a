from typing import Dict, Any, Set
import json
import aio_pika
from aio_pika import connect_robust, Message
from urllib.parse import quote

from opentelemetry.trace.propagation.tracecontext import TraceContextTextMapPropagator

from common.core.config import settings
from .interface import MessageQueueInterface
from common.core.telemetry import get_logger

logger = get_logger(__name__)

propagator = TraceContextTextMapPropagator()


class RabbitMQClient(MessageQueueInterface):
    """Publisher over a robust aio-pika connection (auto-reconnects)."""

    def __init__(self):
        self.connection = None
        self.channel = None
        self._declared: Set[str] = set()

    async def connect(self) -> bool:
        try:
            url = (
                f"amqp://{quote(settings.rabbitmq_username)}:{quote(settings.rabbitmq_password)}"
                f"@{settings.rabbitmq_host}:{settings.rabbitmq_port}/{settings.rabbitmq_vhost}"
            )
            self.connection = await connect_robust(url)
            self.channel = await self.connection.channel(publisher_confirms=True)
            logger.info("Connected to RabbitMQ (async)")
            return True
        except Exception as e:
            logger.error(f"Failed to connect to RabbitMQ: {e}")
            return False

    async def disconnect(self) -> None:
        try:
            if self.channel and not self.channel.is_closed:
                await self.channel.close()
            if self.connection and not self.connection.is_closed:
                await self.connection.close()
            self._declared.clear()
            logger.info("Disconnected from RabbitMQ")
        except Exception as e:
            logger.error(f"Error disconnecting from RabbitMQ: {e}")

    async def declare_queue(self, queue: str, durable: bool = True) -> bool:
        if queue in self._declared:
            return True
        await self.channel.declare_queue(queue, durable=durable)
        self._declared.add(queue)
        return True

    async def publish(self, queue: str, message: Dict[str, Any]) -> bool:
        try:
            if not self.channel or self.channel.is_closed:
                if not await self.connect():
                    return False

            await self.declare_queue(queue, durable=True)

            # Carry the trace context to the consumer
            headers: Dict[str, Any] = {}
            propagator.inject(headers)

            msg = Message(
                body=json.dumps(message, default=str).encode(),
                delivery_mode=aio_pika.DeliveryMode.PERSISTENT,
                content_type="application/json",
                headers=headers,
            )
            await self.channel.default_exchange.publish(
                msg, routing_key=queue, mandatory=True
            )
            logger.info(f"Published message to queue {queue}")
            return True
        except Exception as e:
            logger.error(f"Failed to publish message: {e}")
            return False
