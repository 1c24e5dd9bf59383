"""Domain events for aggregation domain."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional
from uuid import UUID


@dataclass(frozen=True)
class AggregationDomainEvent:
    """Base class for aggregation domain events."""

    occurred_at: datetime
    event_id: UUID
    aggregate_id: UUID


@dataclass(frozen=True)
class AggregationCompleted(AggregationDomainEvent):
    """Event fired when an aggregated score passes quality validation."""

    execution_id: str
    version: int
    overall_score: str  # Decimal as string
    confidence: str  # Decimal as string
    confidence_tier: str
    judge_count: int


@dataclass(frozen=True)
class AggregationFlagged(AggregationDomainEvent):
    """Event fired when an aggregated score needs human attention."""

    execution_id: str
    version: int
    overall_score: str  # Decimal as string
    failed_checks: List[str] = field(default_factory=list)
    unresolved_conflicts: int = 0
    recommendations: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class AggregationSuperseded(AggregationDomainEvent):
    """Event fired when a newer version replaces an aggregated score."""

    execution_id: str
    version: int
    superseded_by_version: int
    reason: Optional[str] = None
