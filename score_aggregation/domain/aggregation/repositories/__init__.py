"""Repository interfaces for aggregation domain."""

from .aggregation_repository import AggregationRepository, JudgeScoreRepository

__all__ = ["AggregationRepository", "JudgeScoreRepository"]
