"""Exceptions for aggregation domain."""

from typing import Dict, List, Optional, Sequence


class AggregationDomainError(Exception):
    """Base exception for aggregation domain."""

    pass


class ValidationError(AggregationDomainError):
    """Raised when a value fails validation."""

    pass


class InvalidConfigError(AggregationDomainError):
    """Raised when an aggregation configuration is malformed."""

    pass


class InsufficientJudgesError(AggregationDomainError):
    """Raised when the judge quorum is not met before aggregation."""

    def __init__(self, message: str, shortfalls: Optional[Dict[str, int]] = None):
        super().__init__(message)
        self.shortfalls = dict(shortfalls or {})


class OutlierExclusionViolatesMinimumError(AggregationDomainError):
    """Raised when excluding outliers would breach a judge minimum."""

    def __init__(self, message: str, judge_ids: Sequence[str] = ()):
        super().__init__(message)
        self.judge_ids: List[str] = list(judge_ids)


class InvalidStatusTransition(AggregationDomainError):
    """Raised when an aggregated score is moved to a status it cannot reach."""

    pass


class VersionConflictError(AggregationDomainError):
    """Raised when an aggregation version already exists for an execution."""

    pass


class ExecutionNotFoundError(AggregationDomainError):
    """Raised when no aggregation history exists for an execution."""

    pass


class ConflictUnresolvedWarning(UserWarning):
    """Issued when a judge conflict is left for human deliberation."""

    pass


class ValidationFailure(UserWarning):
    """Issued when an aggregated score fails quality validation."""

    pass
