"""
Outbound notifications (game over, draw offers, chat).

Delivery is fire-and-forget: a failing subscriber is logged and skipped, never retried,
and never turns an accepted game transition into an error.
"""

import logging
from collections import defaultdict
from threading import Lock
from typing import Any, Callable, Protocol
from uuid import UUID

from pydantic import BaseModel

logger = logging.getLogger(__name__)

Payload = dict[str, Any]
Subscriber = Callable[[str, Payload], None]

DRAW_OFFERS_QUEUE = "/queue/draw-offers"


def game_topic(match_id: UUID) -> str:
    """Topic every participant (and spectator) of a match subscribes to."""
    return f"/topic/game-state/{match_id}"


def to_payload(event: BaseModel) -> Payload:
    return event.model_dump(mode="json", by_alias=True)


class NotificationPort(Protocol):
    def broadcast(self, topic: str, payload: Payload) -> None:
        """Send to every subscriber of the topic."""
        ...

    def unicast(self, player_id: str, topic: str, payload: Payload) -> None:
        """Send to a single player only."""
        ...


class InMemoryNotificationHub:
    """NotificationPort that hands events to in-process callbacks (a websocket layer registers its senders here)."""

    def __init__(self) -> None:
        self._lock = Lock()
        self._topic_subscribers: dict[str, list[Subscriber]] = defaultdict(list)
        self._player_subscribers: dict[str, list[Subscriber]] = defaultdict(list)
        self.delivered: list[tuple[str | None, str, Payload]] = []

    def subscribe(self, topic: str, callback: Subscriber) -> None:
        with self._lock:
            self._topic_subscribers[topic].append(callback)

    def subscribe_player(self, player_id: str, callback: Subscriber) -> None:
        with self._lock:
            self._player_subscribers[player_id].append(callback)

    def unsubscribe_player(self, player_id: str) -> None:
        with self._lock:
            self._player_subscribers.pop(player_id, None)

    def broadcast(self, topic: str, payload: Payload) -> None:
        with self._lock:
            subscribers = list(self._topic_subscribers.get(topic, []))
            self.delivered.append((None, topic, payload))
        self._dispatch(subscribers, topic, payload)

    def unicast(self, player_id: str, topic: str, payload: Payload) -> None:
        with self._lock:
            subscribers = list(self._player_subscribers.get(player_id, []))
            self.delivered.append((player_id, topic, payload))
        self._dispatch(subscribers, topic, payload)

    def events(self, event_type: str) -> list[Payload]:
        """Delivered payloads of one type (in delivery order)."""
        with self._lock:
            return [p for _, _, p in self.delivered if p.get("type") == event_type]

    def _dispatch(self, subscribers: list[Subscriber], topic: str, payload: Payload) -> None:
        for callback in subscribers:
            try:
                callback(topic, payload)
            except Exception as e:
                logger.warning("delivery on %s failed: %s", topic, e)
