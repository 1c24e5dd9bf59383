"""Aggregation application services."""

from .aggregation_pipeline import AggregationPipeline
from .aggregation_service import AggregationService
from .trigger_debouncer import TriggerDebouncer

__all__ = [
    "AggregationPipeline",
    "AggregationService",
    "TriggerDebouncer",
]
