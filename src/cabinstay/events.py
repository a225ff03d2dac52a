"""In-process domain events announcing booking lifecycle changes.

Delivery to guests and admins (email, SMS) is done by whoever subscribes;
the engine only publishes.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable

logger = logging.getLogger(__name__)


class EventType(str, Enum):
    BOOKING_CREATED = "booking_created"
    BOOKING_CANCELLED = "booking_cancelled"
    GUEST_MESSAGE_ATTACHED = "guest_message_attached"
    DATE_CHANGE_REQUESTED = "date_change_requested"
    PROMO_REDEEMED = "promo_redeemed"
    USER_MESSAGE_RECEIVED = "user_message_received"
    ADMIN_REPLY_SENT = "admin_reply_sent"
    CABIN_UPDATED = "cabin_updated"


@dataclass
class Event:
    event_type: EventType
    data: dict[str, Any]
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


Subscriber = Callable[[Event], None]


class EventBus:
    """Synchronous pub/sub. A failing subscriber never affects the publisher."""

    def __init__(self) -> None:
        self._subscribers: dict[EventType, list[Subscriber]] = defaultdict(list)

    def subscribe(self, event_type: EventType, callback: Subscriber) -> None:
        self._subscribers[event_type].append(callback)
        logger.debug("Subscribed %s to %s", callback.__name__, event_type.value)

    def subscribe_all(self, callback: Subscriber) -> None:
        """Register a callback for every event type."""
        for event_type in EventType:
            self.subscribe(event_type, callback)

    def unsubscribe(self, event_type: EventType, callback: Subscriber) -> None:
        if callback in self._subscribers.get(event_type, []):
            self._subscribers[event_type].remove(callback)

    def unsubscribe_all(self, callback: Subscriber) -> None:
        for event_type in EventType:
            self.unsubscribe(event_type, callback)

    def publish(self, event: Event) -> int:
        """Deliver an event; returns how many subscribers handled it cleanly."""
        delivered = 0
        for callback in list(self._subscribers.get(event.event_type, [])):
            try:
                callback(event)
                delivered += 1
            except Exception:
                logger.exception(
                    "Error in subscriber %s for event %s",
                    callback.__name__,
                    event.event_type.value,
                )
        return delivered


def log_event(event: Event) -> None:
    """Audit subscriber: one INFO line per domain event."""
    logger.info("%s %s", event.event_type.value, event.data)


# Global event bus instance
event_bus = EventBus()
