"""Event publisher that logs domain events and fans them out to handlers."""

import logging
from typing import Awaitable, Callable, Dict, List, Type

from ...application.interfaces.domain_event_publisher import DomainEventPublisher
from ...domain.aggregation.events.aggregation_events import (
    AggregationDomainEvent,
    AggregationFlagged,
)

logger = logging.getLogger(__name__)

EventHandler = Callable[[AggregationDomainEvent], Awaitable[None]]


class LoggingEventPublisher(DomainEventPublisher):
    """Publishes events to the log and to subscribed async handlers.

    Flagged aggregations are logged at warning level so that escalation is
    visible without any subscriber.
    """

    def __init__(self):
        self._handlers: Dict[Type[AggregationDomainEvent], List[EventHandler]] = {}

    def subscribe(self, event_type: Type[AggregationDomainEvent], handler: EventHandler) -> None:
        """Register a handler for an event type and its subclasses."""
        self._handlers.setdefault(event_type, []).append(handler)

    async def publish(self, event: AggregationDomainEvent) -> None:
        """Publish a single domain event."""
        name = type(event).__name__
        execution_id = getattr(event, "execution_id", None)
        version = getattr(event, "version", None)

        if isinstance(event, AggregationFlagged):
            logger.warning(
                f"{name}: execution {execution_id} v{version} "
                f"failed checks {event.failed_checks}, "
                f"{event.unresolved_conflicts} unresolved conflict(s)",
                extra={"review_tag": "flagged"},
            )
        else:
            logger.info(f"{name}: execution {execution_id} v{version}")

        for event_type, handlers in self._handlers.items():
            if isinstance(event, event_type):
                for handler in handlers:
                    await handler(event)

    async def publish_all(self, events: List[AggregationDomainEvent]) -> None:
        """Publish multiple domain events in order."""
        for event in events:
            await self.publish(event)
