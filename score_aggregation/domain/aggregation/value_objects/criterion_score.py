"""Aggregated criterion score value objects."""

from dataclasses import dataclass, replace
from decimal import Decimal
from typing import Any, Dict, Optional, Tuple

from ..exceptions import ValidationError
from .aggregation_config import OutlierAction
from .conflict import Conflict
from .judge_type import JudgeType
from .score_distribution import ScoreDistribution


@dataclass(frozen=True)
class JudgeContribution:
    """How much one judge moved one criterion's aggregate."""

    judge_id: str
    judge_type: JudgeType
    raw_score: Decimal
    normalized_score: Decimal
    weight: Decimal
    normalized_weight: Decimal
    contribution: Decimal
    excluded: bool = False
    downgraded: bool = False

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "judge_id": self.judge_id,
            "judge_type": self.judge_type.value,
            "raw_score": str(self.raw_score),
            "normalized_score": str(self.normalized_score),
            "weight": str(self.weight),
            "normalized_weight": str(self.normalized_weight),
            "contribution": str(self.contribution),
            "excluded": self.excluded,
            "downgraded": self.downgraded,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "JudgeContribution":
        """Create from dictionary representation."""
        return cls(
            judge_id=data["judge_id"],
            judge_type=JudgeType(data["judge_type"]),
            raw_score=Decimal(data["raw_score"]),
            normalized_score=Decimal(data["normalized_score"]),
            weight=Decimal(data["weight"]),
            normalized_weight=Decimal(data["normalized_weight"]),
            contribution=Decimal(data["contribution"]),
            excluded=bool(data.get("excluded", False)),
            downgraded=bool(data.get("downgraded", False)),
        )


@dataclass(frozen=True)
class OutlierRecord:
    """A score flagged as an outlier and what was done about it."""

    judge_id: str
    criterion_id: str
    score: Decimal
    z_score: Decimal
    method: str  # "z_score" or "iqr"
    action: OutlierAction

    def __post_init__(self):
        """Validate outlier record."""
        if self.method not in ("z_score", "iqr"):
            raise ValidationError(f"Invalid outlier detection method: {self.method}")

    def is_investigation(self) -> bool:
        """Check if the outlier is queued for investigation."""
        return self.action == OutlierAction.INVESTIGATE

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "judge_id": self.judge_id,
            "criterion_id": self.criterion_id,
            "score": str(self.score),
            "z_score": str(self.z_score),
            "method": self.method,
            "action": self.action.value,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "OutlierRecord":
        """Create from dictionary representation."""
        return cls(
            judge_id=data["judge_id"],
            criterion_id=data["criterion_id"],
            score=Decimal(data["score"]),
            z_score=Decimal(data["z_score"]),
            method=data["method"],
            action=OutlierAction(data["action"]),
        )


@dataclass(frozen=True)
class AggregatedCriterionScore:
    """Aggregate of all judge scores on one criterion."""

    criterion_id: str
    weight: Decimal
    aggregated_score: Decimal
    distribution: ScoreDistribution
    contributions: Tuple[JudgeContribution, ...] = ()
    outliers: Tuple[OutlierRecord, ...] = ()
    conflicts: Tuple[Conflict, ...] = ()
    pre_resolution_score: Optional[Decimal] = None

    def __post_init__(self):
        """Validate criterion score."""
        object.__setattr__(self, "contributions", tuple(self.contributions))
        object.__setattr__(self, "outliers", tuple(self.outliers))
        object.__setattr__(self, "conflicts", tuple(self.conflicts))

        if not (0 <= self.aggregated_score <= 100):
            raise ValidationError(
                f"Aggregated score for '{self.criterion_id}' must be between 0 and 100"
            )

        if not (0 <= self.weight <= 1):
            raise ValidationError(f"Weight for '{self.criterion_id}' must be between 0 and 1")

    @property
    def judge_count(self) -> int:
        """Number of judges retained in the aggregate."""
        return sum(1 for c in self.contributions if not c.excluded)

    @property
    def is_scored(self) -> bool:
        """Check if any judge contributed to this criterion."""
        return self.judge_count > 0

    def has_unresolved_conflicts(self) -> bool:
        """Check for conflicts still awaiting deliberation."""
        return any(not conflict.is_resolved() for conflict in self.conflicts)

    def investigation_queue(self) -> Tuple[OutlierRecord, ...]:
        """Outliers queued for investigation."""
        return tuple(outlier for outlier in self.outliers if outlier.is_investigation())

    def with_conflicts(self, conflicts: Tuple[Conflict, ...]) -> "AggregatedCriterionScore":
        """Attach conflicts, adopting the score of a resolved one."""
        resolved = [conflict for conflict in conflicts if conflict.is_resolved()]
        if not resolved:
            return replace(self, conflicts=tuple(conflicts))

        return replace(
            self,
            conflicts=tuple(conflicts),
            aggregated_score=resolved[-1].resolution.adjusted_score,
            pre_resolution_score=self.aggregated_score,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "criterion_id": self.criterion_id,
            "weight": str(self.weight),
            "aggregated_score": str(self.aggregated_score),
            "pre_resolution_score": (
                None if self.pre_resolution_score is None else str(self.pre_resolution_score)
            ),
            "distribution": self.distribution.to_dict(),
            "contributions": [c.to_dict() for c in self.contributions],
            "outliers": [o.to_dict() for o in self.outliers],
            "conflicts": [c.to_dict() for c in self.conflicts],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AggregatedCriterionScore":
        """Create from dictionary representation."""
        pre_resolution = data.get("pre_resolution_score")
        return cls(
            criterion_id=data["criterion_id"],
            weight=Decimal(data["weight"]),
            aggregated_score=Decimal(data["aggregated_score"]),
            pre_resolution_score=None if pre_resolution is None else Decimal(pre_resolution),
            distribution=ScoreDistribution.from_dict(data["distribution"]),
            contributions=tuple(JudgeContribution.from_dict(c) for c in data["contributions"]),
            outliers=tuple(OutlierRecord.from_dict(o) for o in data.get("outliers", [])),
            conflicts=tuple(Conflict.from_dict(c) for c in data.get("conflicts", [])),
        )
