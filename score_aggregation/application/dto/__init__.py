"""Data Transfer Objects for application layer."""

from .aggregation_dto import AggregationSummaryDTO, CriterionSummaryDTO

__all__ = ["AggregationSummaryDTO", "CriterionSummaryDTO"]
