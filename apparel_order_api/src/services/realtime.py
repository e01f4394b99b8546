from __future__ import annotations

import asyncio

import logging
from typing import Any, Dict, Optional, Set
from uuid import UUID

from starlette.websockets import WebSocket, WebSocketState

from src.core.logging import actor_var
from src.schemas.realtime import WsEnvelope

logger = logging.getLogger(__name__)

ORDERS_TOPIC = "orders"


class BroadcastManager:
    """
    Simple in-process pub-sub manager for WebSocket topics.

    Topics:
      - orders                every order event
      - orders:{order_id}     events of a single order

    A topic exists only while it has subscribers.
    """

    def __init__(self) -> None:
        self._topics: Dict[str, Set[WebSocket]] = {}
        self._locks: Dict[str, asyncio.Lock] = {}

    def _topic_lock(self, topic: str) -> asyncio.Lock:
        if topic not in self._locks:
            self._locks[topic] = asyncio.Lock()
        return self._locks[topic]

    # PUBLIC_INTERFACE
    def order_topic(self, order_id: UUID | str | None = None) -> str:
        """Return the topic for one order, or the all-orders topic."""
        if order_id:
            return f"{ORDERS_TOPIC}:{order_id}"
        return ORDERS_TOPIC

    def subscriber_count(self, topic: str) -> int:
        return len(self._topics.get(topic, ()))

    def topic_count(self) -> int:
        return len(self._topics)

    def _drop_if_empty(self, topic: str) -> None:
        # caller holds the topic lock
        if not self._topics.get(topic):
            self._topics.pop(topic, None)
            self._locks.pop(topic, None)

    # PUBLIC_INTERFACE
    async def connect(self, topic: str, websocket: WebSocket) -> None:
        """Add an accepted websocket to the topic subscribers."""
        async with self._topic_lock(topic):
            subscribers = self._topics.setdefault(topic, set())
            subscribers.add(websocket)
            logger.info("WebSocket connected to topic=%s; subscribers=%d", topic, len(subscribers))

    # PUBLIC_INTERFACE
    async def disconnect(self, topic: str, websocket: WebSocket) -> None:
        """Remove websocket from topic subscribers."""
        if topic not in self._topics:
            return
        async with self._topic_lock(topic):
            subscribers = self._topics.get(topic, set())
            subscribers.discard(websocket)
            logger.info("WebSocket disconnected from topic=%s; subscribers=%d", topic, len(subscribers))
            self._drop_if_empty(topic)

    # PUBLIC_INTERFACE
    async def broadcast(self, topic: str, message: dict, exclude: Optional[WebSocket] = None) -> None:
        """
        Broadcast a JSON-ready dict to all subscribers in the topic.

        Subscribers that are gone or fail to receive are dropped.
        """
        if not self._topics.get(topic):
            return
        async with self._topic_lock(topic):
            to_drop: list[WebSocket] = []
            for ws in list(self._topics.get(topic, ())):
                if exclude is not None and ws is exclude:
                    continue
                try:
                    if ws.application_state == WebSocketState.DISCONNECTED or ws.client_state == WebSocketState.DISCONNECTED:
                        to_drop.append(ws)
                        continue
                    await ws.send_json(message)
                except Exception:
                    logger.exception("Failed to send message to websocket; scheduling drop")
                    to_drop.append(ws)
            for ws in to_drop:
                self._topics.get(topic, set()).discard(ws)
            self._drop_if_empty(topic)

    # PUBLIC_INTERFACE
    async def publish_order_event(
        self,
        event_type: str,
        order_id: UUID | str,
        payload: Dict[str, Any],
        actor: Optional[str] = None,
    ) -> None:
        """
        Publish an order event to the all-orders topic and the order's own topic.

        Parameters:
            event_type: e.g. 'order.status_changed', 'gate.updated', 'qc.recorded'
            order_id: order the event belongs to
            payload: JSON-serialisable event data
            actor: operator that caused the event; defaults to the request actor
        """
        for topic in (self.order_topic(), self.order_topic(order_id)):
            env = WsEnvelope(
                type=event_type,
                payload=payload,
                actor=actor or actor_var.get(),
                channel=topic,
            )
            await self.broadcast(topic, env.model_dump(mode="json"))


# Singleton instance
broadcast_manager = BroadcastManager()
