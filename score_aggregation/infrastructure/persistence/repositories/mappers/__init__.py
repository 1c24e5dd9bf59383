"""Domain-model mappers."""

from .aggregation_mapper import AggregationMapper

__all__ = ["AggregationMapper"]
