from __future__ import annotations

import datetime as dt
import json

import pika

from .schemas import OrderDetailOut


class EventPublisher:
    """Publishes JSON events to a durable topic exchange on RabbitMQ."""

    def __init__(self, url: str, exchange: str = "storefront.events"):
        self.url = url
        self.exchange = exchange

    def _connect(self) -> pika.BlockingConnection:
        params = pika.URLParameters(self.url)
        params.heartbeat = 30
        params.blocked_connection_timeout = 30
        return pika.BlockingConnection(params)

    def publish(self, routing_key: str, payload: dict) -> None:
        connection = self._connect()
        try:
            ch = connection.channel()
            ch.exchange_declare(exchange=self.exchange, exchange_type="topic", durable=True)
            body = json.dumps(payload, ensure_ascii=False).encode("utf-8")
            ch.basic_publish(
                exchange=self.exchange,
                routing_key=routing_key,
                body=body,
                properties=pika.BasicProperties(
                    content_type="application/json",
                    delivery_mode=2,  # persistent
                ),
            )
        finally:
            connection.close()


def order_placed_event(order: OrderDetailOut) -> dict:
    return {
        "event": "order.placed",
        "occurred_at": dt.datetime.now(dt.timezone.utc).isoformat().replace("+00:00", "Z"),
        "order_id": order.id,
        "user_id": order.user_id,
        "total_amount": str(order.total_amount),
        "items": [{"product_id": i.product_id, "quantity": i.quantity} for i in order.items],
    }
