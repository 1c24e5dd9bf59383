"""Repository implementations."""

from .aggregation_repository_impl import (
    SqlAlchemyAggregationRepository,
    SqlAlchemyJudgeScoreRepository,
)

__all__ = ["SqlAlchemyAggregationRepository", "SqlAlchemyJudgeScoreRepository"]
