"""Aggregation status value object."""

from enum import Enum
from typing import Set


class AggregationStatus(Enum):
    """Aggregated score lifecycle status enumeration."""

    DRAFT = "DRAFT"
    COMPLETE = "COMPLETE"
    VALIDATED = "VALIDATED"
    FLAGGED = "FLAGGED"
    SUPERSEDED = "SUPERSEDED"

    def can_transition_to(self, target_status: "AggregationStatus") -> bool:
        """Check if transition to target status is allowed."""
        return target_status in self._get_valid_transitions()

    def _get_valid_transitions(self) -> Set["AggregationStatus"]:
        """Get valid transitions from current status."""
        transition_map = {
            AggregationStatus.DRAFT: {AggregationStatus.COMPLETE},
            AggregationStatus.COMPLETE: {AggregationStatus.VALIDATED, AggregationStatus.FLAGGED},
            AggregationStatus.VALIDATED: {AggregationStatus.SUPERSEDED},
            AggregationStatus.FLAGGED: {AggregationStatus.SUPERSEDED},
            AggregationStatus.SUPERSEDED: set(),  # Terminal state
        }
        return transition_map.get(self, set())

    def is_terminal(self) -> bool:
        """Check if this is a terminal status."""
        return self == AggregationStatus.SUPERSEDED

    def is_finalized(self) -> bool:
        """Check if the score has been through validation."""
        return self in {AggregationStatus.VALIDATED, AggregationStatus.FLAGGED}

    def __str__(self) -> str:
        """String representation of status."""
        return self.value

    def __repr__(self) -> str:
        """Detailed string representation."""
        return f"AggregationStatus.{self.name}"
