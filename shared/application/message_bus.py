"""
Message Bus

In-process fan-out of domain events. Apps subscribe in
AppConfig.ready(); the unit of work publishes after commit.
"""

from collections import defaultdict
from typing import Callable, DefaultDict, Iterable, List, Type
import logging

from shared.domain.base import DomainEvent

logger = logging.getLogger(__name__)

EventHandler = Callable[[DomainEvent], None]


class MessageBus:
    def __init__(self):
        self._subscribers: DefaultDict[Type[DomainEvent], List[EventHandler]] = defaultdict(list)

    def register_event_handler(self, event_type: Type[DomainEvent], handler: EventHandler):
        """Subscribe ``handler`` to ``event_type``; subscribing twice is a no-op."""
        subscribers = self._subscribers[event_type]
        if handler not in subscribers:
            subscribers.append(handler)

    def publish_events(self, events: Iterable[DomainEvent]):
        """
        Deliver each event to its subscribers in registration order

        A failing handler is logged and the remaining handlers still run.
        """
        for event in events:
            subscribers = self._subscribers.get(type(event), [])
            logger.debug(f"{event.name} {event.event_id} -> {len(subscribers)} handler(s)")
            for handler in subscribers:
                try:
                    handler(event)
                except Exception:
                    logger.exception(f"Handler {handler.__name__} failed on {event.name}")


message_bus = MessageBus()
