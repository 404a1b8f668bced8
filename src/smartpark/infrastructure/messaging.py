# File: src/smartpark/infrastructure/messaging.py
"""
Messaging Infrastructure for the SmartPark parking management system

This module implements event-driven communication around the parking core:
1. Domain Events - VEHICLE_PARKED and VEHICLE_EXITED with JSON serialisation
2. Event Bus - intra-process publish/subscribe
3. Redis Publisher - forwards events to a Redis Pub/Sub channel

The parking service publishes events only after it has released its lock,
so slow handlers never hold up other callers. Handler failures are logged
and never propagate back to the publisher.
"""

from abc import ABC, abstractmethod
from typing import Dict, List, Any, Optional
from datetime import datetime
from dataclasses import dataclass, field
from enum import Enum
from uuid import uuid4
import json
import logging
import threading

import redis


# ============================================================================
# EVENT TYPES AND MESSAGES
# ============================================================================

class EventType(str, Enum):
    """Domain event types"""
    VEHICLE_PARKED = "vehicle_parked"
    VEHICLE_EXITED = "vehicle_exited"


@dataclass
class DomainEvent:
    """Domain event message"""
    event_type: EventType
    data: Dict[str, Any] = field(default_factory=dict)
    event_id: str = field(default_factory=lambda: str(uuid4()))
    timestamp: datetime = field(default_factory=datetime.now)
    source: str = "smartpark"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event_id": self.event_id,
            "event_type": self.event_type.value,
            "timestamp": self.timestamp.isoformat(),
            "source": self.source,
            "data": self.data,
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), default=str)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'DomainEvent':
        return cls(
            event_type=EventType(data["event_type"]),
            data=dict(data.get("data") or {}),
            event_id=data["event_id"],
            timestamp=datetime.fromisoformat(data["timestamp"]),
            source=data.get("source", "smartpark"),
        )

    @classmethod
    def from_json(cls, json_str: str) -> 'DomainEvent':
        return cls.from_dict(json.loads(json_str))


# ============================================================================
# EVENT HANDLERS
# ============================================================================

class EventHandler(ABC):
    """Abstract base class for event handlers"""

    @abstractmethod
    def handle(self, event: DomainEvent) -> None:
        """Handle a domain event"""
        pass

    def can_handle(self, event: DomainEvent) -> bool:
        """Check if this handler can handle the event"""
        return True


# ============================================================================
# EVENT BUS (In-memory)
# ============================================================================

class EventBus:
    """
    In-memory event bus for intra-process event publishing

    Subscriptions may change while other threads publish; each publish works
    on a snapshot of the handler list.
    """

    def __init__(self):
        self._subscribers: Dict[EventType, List[EventHandler]] = {}
        self._lock = threading.Lock()
        self._logger = logging.getLogger(self.__class__.__name__)

    def subscribe(self, event_type: EventType, handler: EventHandler) -> None:
        """Subscribe to events of a specific type"""
        with self._lock:
            handlers = self._subscribers.setdefault(event_type, [])
            if handler not in handlers:
                handlers.append(handler)
                self._logger.debug(f"Subscribed {handler.__class__.__name__} to {event_type.value}")

    def unsubscribe(self, event_type: EventType, handler: EventHandler) -> None:
        """Unsubscribe handler from events"""
        with self._lock:
            handlers = self._subscribers.get(event_type, [])
            if handler in handlers:
                handlers.remove(handler)
                self._logger.debug(f"Unsubscribed {handler.__class__.__name__} from {event_type.value}")

    def publish(self, event: DomainEvent) -> None:
        """Publish an event to all subscribers"""
        with self._lock:
            handlers = list(self._subscribers.get(event.event_type, []))

        self._logger.debug(f"Publishing event: {event.event_type.value} (ID: {event.event_id})")
        for handler in handlers:
            if not handler.can_handle(event):
                continue
            try:
                handler.handle(event)
            except Exception as e:
                self._logger.error(
                    f"Error handling event {event.event_type.value} with {handler.__class__.__name__}: {e}",
                    exc_info=True
                )

    def subscriber_count(self, event_type: EventType) -> int:
        with self._lock:
            return len(self._subscribers.get(event_type, []))

    def clear_subscribers(self) -> None:
        """Clear all subscribers (for testing)"""
        with self._lock:
            self._subscribers.clear()


# ============================================================================
# REDIS PUBLISHER
# ============================================================================

class RedisEventPublisher(EventHandler):
    """
    Forwards domain events to a Redis Pub/Sub channel as JSON

    Redis being unreachable never fails a parking operation: errors are
    logged and the event is dropped.
    """

    DEFAULT_CHANNEL = "smartpark.events"

    def __init__(
        self,
        redis_url: str = "redis://localhost:6379",
        channel: str = DEFAULT_CHANNEL,
        client: Optional[redis.Redis] = None,
        **kwargs
    ):
        self.redis_url = redis_url
        self.channel = channel
        self._logger = logging.getLogger(self.__class__.__name__)
        self.redis_client = client if client is not None else redis.Redis.from_url(redis_url, **kwargs)

    def handle(self, event: DomainEvent) -> None:
        try:
            receivers = self.redis_client.publish(self.channel, event.to_json())
            self._logger.debug(f"Published {event.event_type.value} to {self.channel} ({receivers} receivers)")
        except redis.RedisError as e:
            self._logger.error(f"Error publishing to Redis: {e}")

    def close(self) -> None:
        self.redis_client.close()
        self._logger.info("Redis publisher closed")
