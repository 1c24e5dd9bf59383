"""Domain event publisher interface for publishing domain events."""

from abc import ABC, abstractmethod
from typing import List

from ...domain.aggregation.events.aggregation_events import AggregationDomainEvent


class DomainEventPublisher(ABC):
    """Interface for publishing domain events."""

    @abstractmethod
    async def publish(self, event: AggregationDomainEvent) -> None:
        """Publish a single domain event."""
        pass

    @abstractmethod
    async def publish_all(self, events: List[AggregationDomainEvent]) -> None:
        """Publish multiple domain events."""
        pass
