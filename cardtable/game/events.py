"""Game events and the publish/subscribe event channel."""

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Callable

logger = logging.getLogger(__name__)


class EventType(Enum):
    """The six notification kinds observers can subscribe to."""

    STATE_CHANGE = "state-change"
    TURN_CHANGE = "turn-change"
    GAME_OVER = "game-over"
    ACTIVITY_LOG = "activity-log"
    PARTICIPANT_UPDATE = "participant-update"
    DECK_UPDATE = "deck-update"


@dataclass(frozen=True)
class GameEvent:
    """
    Immutable game event.

    Events are the primary communication mechanism between the engine and
    its observers (service surface, persistence, automated agents).
    """

    event_type: EventType
    data: dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=datetime.now)

    def __str__(self) -> str:
        return f"{self.event_type.value}: {self.data}"


# Type alias for event handlers
EventHandler = Callable[[GameEvent], None]


@dataclass(frozen=True)
class _Subscription:
    handler: EventHandler
    event_type: EventType | None


class EventChannel:
    """
    Event channel for game events.

    Handlers subscribe to one event type or to all of them and are called
    synchronously, in registration order. One instance is created per
    table and passed to every component that publishes.
    """

    def __init__(self, history_limit: int = 1000) -> None:
        """Initialize the channel."""
        self._subscriptions: list[_Subscription] = []
        self._event_history: list[GameEvent] = []
        self._history_limit = history_limit

    def subscribe(
        self,
        handler: EventHandler,
        event_type: EventType | None = None,
    ) -> None:
        """
        Subscribe to events.

        Args:
            handler: Function to call when event occurs
            event_type: Specific event type to subscribe to, or None for all events
        """
        self._subscriptions.append(_Subscription(handler, event_type))

    def unsubscribe(
        self,
        handler: EventHandler,
        event_type: EventType | None = None,
    ) -> bool:
        """
        Unsubscribe from events.

        Returns:
            True if a matching subscription was removed
        """
        for i, sub in enumerate(self._subscriptions):
            if sub.handler == handler and sub.event_type == event_type:
                del self._subscriptions[i]
                return True
        return False

    def once(self, handler: EventHandler, event_type: EventType) -> None:
        """Subscribe a handler that is removed after its first delivery."""

        def wrapper(event: GameEvent) -> None:
            self.unsubscribe(wrapper, event_type)
            handler(event)

        self.subscribe(wrapper, event_type)

    def emit(self, event: GameEvent) -> None:
        """
        Emit an event to all matching subscribers.

        A handler that raises is logged and skipped; the remaining
        handlers still receive the event.
        """
        self._event_history.append(event)
        if len(self._event_history) > self._history_limit:
            del self._event_history[: len(self._event_history) - self._history_limit]

        logger.debug("emit %s", event)

        # Snapshot so handlers may (un)subscribe while we deliver
        for sub in list(self._subscriptions):
            if sub.event_type is not None and sub.event_type != event.event_type:
                continue
            try:
                sub.handler(event)
            except Exception:
                logger.exception("Event handler failed for %s", event.event_type.value)

    def emit_new(
        self,
        event_type: EventType,
        **data: Any,
    ) -> GameEvent:
        """
        Create and emit a new event.

        Args:
            event_type: Type of event
            **data: Event data

        Returns:
            The created event
        """
        event = GameEvent(event_type=event_type, data=data)
        self.emit(event)
        return event

    def log(self, message: str, participant_id: str | None = None) -> GameEvent:
        """Emit an activity-log entry."""
        logger.info(message)
        return self.emit_new(
            EventType.ACTIVITY_LOG,
            timestamp=int(time.time() * 1000),
            message=message,
            participant_id=participant_id,
        )

    @property
    def subscriber_count(self) -> int:
        return len(self._subscriptions)

    @property
    def history(self) -> list[GameEvent]:
        """Return the event history."""
        return self._event_history.copy()

    def clear_history(self) -> None:
        """Clear the event history."""
        self._event_history.clear()
