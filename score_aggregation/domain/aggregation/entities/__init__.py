"""Entities for aggregation domain."""

from .aggregated_score import AggregatedScore

__all__ = ["AggregatedScore"]
