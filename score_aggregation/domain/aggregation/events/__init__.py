"""Events for aggregation domain."""

from .aggregation_events import (
    AggregationCompleted,
    AggregationDomainEvent,
    AggregationFlagged,
    AggregationSuperseded,
)

__all__ = [
    "AggregationDomainEvent",
    "AggregationCompleted",
    "AggregationFlagged",
    "AggregationSuperseded",
]
