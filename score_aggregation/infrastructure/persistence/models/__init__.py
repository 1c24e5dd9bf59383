"""Database models for all domain entities."""

from .aggregation_models import (
    AggregatedScoreModel,
    AggregationSupersessionModel,
    JudgeScoreRecordModel,
)

__all__ = [
    "AggregatedScoreModel",
    "AggregationSupersessionModel",
    "JudgeScoreRecordModel",
]
