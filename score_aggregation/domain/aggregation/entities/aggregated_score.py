"""Aggregated score entity."""

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple
from uuid import UUID, uuid4

from ..exceptions import InvalidStatusTransition, ValidationError
from ..value_objects.aggregation_config import AggregationConfig
from ..value_objects.aggregation_status import AggregationStatus
from ..value_objects.collection_result import SkippedRecord
from ..value_objects.confidence_metrics import ConfidenceMetrics
from ..value_objects.conflict import Conflict
from ..value_objects.consensus_metrics import ConsensusMetrics
from ..value_objects.criterion_score import AggregatedCriterionScore, OutlierRecord
from ..value_objects.validation_result import ValidationResult


@dataclass
class AggregatedScore:
    """Entity representing one version of the fused score of an execution."""

    id: UUID
    execution_id: str
    version: int
    overall_score: Decimal
    criteria: Tuple[AggregatedCriterionScore, ...]
    confidence: ConfidenceMetrics
    consensus: ConsensusMetrics
    config: AggregationConfig
    quality: ValidationResult = field(default_factory=ValidationResult.pending)
    status: AggregationStatus = AggregationStatus.DRAFT
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    judge_ids: Tuple[str, ...] = ()
    skipped_records: Tuple[SkippedRecord, ...] = ()
    previous_version: Optional[int] = None
    metadata: Dict[str, Any] = field(default_factory=dict)
    _domain_events: List[object] = field(
        default_factory=list, init=False, compare=False, repr=False
    )

    def __post_init__(self):
        """Validate aggregated score after creation."""
        if not self.id:
            self.id = uuid4()

        self.criteria = tuple(self.criteria)
        self.judge_ids = tuple(self.judge_ids)
        self.skipped_records = tuple(self.skipped_records)
        self._validate_score()

    def _validate_score(self) -> None:
        if not self.execution_id or not self.execution_id.strip():
            raise ValidationError("Execution ID cannot be empty")

        if self.version < 1:
            raise ValidationError("Version must be at least 1")

        if self.previous_version is not None and self.previous_version >= self.version:
            raise ValidationError("Previous version must precede the current version")

        if not (0 <= self.overall_score <= 100):
            raise ValidationError("Overall score must be between 0 and 100")

        criterion_ids = [criterion.criterion_id for criterion in self.criteria]
        if len(set(criterion_ids)) != len(criterion_ids):
            raise ValidationError("Criterion scores must be unique per criterion")

    @classmethod
    def create_draft(
        cls,
        execution_id: str,
        version: int,
        overall_score: Decimal,
        criteria: Tuple[AggregatedCriterionScore, ...],
        confidence: ConfidenceMetrics,
        consensus: ConsensusMetrics,
        config: AggregationConfig,
        judge_ids: Tuple[str, ...] = (),
        skipped_records: Tuple[SkippedRecord, ...] = (),
        previous_version: Optional[int] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> "AggregatedScore":
        """Factory method to create a draft aggregated score."""
        return cls(
            id=uuid4(),
            execution_id=execution_id,
            version=version,
            overall_score=overall_score,
            criteria=criteria,
            confidence=confidence,
            consensus=consensus,
            config=config,
            judge_ids=judge_ids,
            skipped_records=skipped_records,
            previous_version=previous_version,
            metadata=dict(metadata or {}),
        )

    # Lifecycle

    def _transition(self, target: AggregationStatus) -> None:
        if not self.status.can_transition_to(target):
            raise InvalidStatusTransition(
                f"Cannot move aggregated score from {self.status} to {target}"
            )
        self.status = target

    def complete(self) -> None:
        """Freeze the computed score."""
        self._transition(AggregationStatus.COMPLETE)

    def finalize(self, validation: ValidationResult) -> None:
        """Attach the validator's verdict and settle the status."""
        if self.status != AggregationStatus.COMPLETE:
            raise InvalidStatusTransition(
                f"Only a complete aggregated score can be validated, status is {self.status}"
            )

        self.quality = validation
        if validation.passed and not self.has_unresolved_conflicts():
            self._transition(AggregationStatus.VALIDATED)
            self._record_completed()
        else:
            self._transition(AggregationStatus.FLAGGED)
            self._record_flagged()

    def superseded_by(self, version: int, reason: Optional[str] = None) -> "AggregatedScore":
        """Copy of this score reported as replaced by a newer version."""
        if version <= self.version:
            raise ValidationError("A score can only be superseded by a later version")

        if not self.status.can_transition_to(AggregationStatus.SUPERSEDED):
            raise InvalidStatusTransition(f"Cannot supersede an aggregated score in {self.status}")

        copy = replace(self, status=AggregationStatus.SUPERSEDED)

        from ..events.aggregation_events import AggregationSuperseded

        copy._domain_events.append(
            AggregationSuperseded(
                occurred_at=datetime.now(timezone.utc),
                event_id=uuid4(),
                aggregate_id=self.id,
                execution_id=self.execution_id,
                version=self.version,
                superseded_by_version=version,
                reason=reason,
            )
        )
        return copy

    def _record_completed(self) -> None:
        from ..events.aggregation_events import AggregationCompleted

        self._domain_events.append(
            AggregationCompleted(
                occurred_at=datetime.now(timezone.utc),
                event_id=uuid4(),
                aggregate_id=self.id,
                execution_id=self.execution_id,
                version=self.version,
                overall_score=str(self.overall_score),
                confidence=str(self.confidence.overall_confidence),
                confidence_tier=self.confidence.tier.value,
                judge_count=len(self.judge_ids),
            )
        )

    def _record_flagged(self) -> None:
        from ..events.aggregation_events import AggregationFlagged

        self._domain_events.append(
            AggregationFlagged(
                occurred_at=datetime.now(timezone.utc),
                event_id=uuid4(),
                aggregate_id=self.id,
                execution_id=self.execution_id,
                version=self.version,
                overall_score=str(self.overall_score),
                failed_checks=[check.name for check in self.quality.failed_checks()],
                unresolved_conflicts=len(self.unresolved_conflicts()),
                recommendations=list(self.quality.recommendations),
            )
        )

    def get_domain_events(self) -> List[object]:
        """Get domain events raised by this score."""
        return self._domain_events.copy()

    def clear_domain_events(self) -> None:
        """Clear domain events once they are published."""
        self._domain_events.clear()

    # Queries

    def is_flagged(self) -> bool:
        return self.status == AggregationStatus.FLAGGED

    def is_validated(self) -> bool:
        return self.status == AggregationStatus.VALIDATED

    def get_criterion(self, criterion_id: str) -> Optional[AggregatedCriterionScore]:
        """Get criterion score by ID."""
        for criterion in self.criteria:
            if criterion.criterion_id == criterion_id:
                return criterion
        return None

    def conflicts(self) -> List[Conflict]:
        return [conflict for criterion in self.criteria for conflict in criterion.conflicts]

    def unresolved_conflicts(self) -> List[Conflict]:
        return [conflict for conflict in self.conflicts() if not conflict.is_resolved()]

    def has_unresolved_conflicts(self) -> bool:
        return bool(self.unresolved_conflicts())

    def outliers(self) -> List[OutlierRecord]:
        return [outlier for criterion in self.criteria for outlier in criterion.outliers]

    def investigation_queue(self) -> List[OutlierRecord]:
        """Outliers queued for investigation across all criteria."""
        return [
            outlier for criterion in self.criteria for outlier in criterion.investigation_queue()
        ]

    def is_relaxed(self) -> bool:
        """Check if the score was released from a relaxed recomputation."""
        return self.quality.relaxed_scope

    def applied_config(self) -> AggregationConfig:
        """Configuration the stored numbers were computed with."""
        return self.config.relaxed() if self.is_relaxed() else self.config

    # Serialization

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "id": str(self.id),
            "execution_id": self.execution_id,
            "version": self.version,
            "overall_score": str(self.overall_score),
            "criteria": [criterion.to_dict() for criterion in self.criteria],
            "confidence": self.confidence.to_dict(),
            "consensus": self.consensus.to_dict(),
            "quality": self.quality.to_dict(),
            "status": self.status.value,
            "created_at": self.created_at.isoformat(),
            "config": self.config.to_dict(),
            "judge_ids": list(self.judge_ids),
            "skipped_records": [record.to_dict() for record in self.skipped_records],
            "previous_version": self.previous_version,
            "metadata": self.metadata.copy(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AggregatedScore":
        """Create from dictionary representation."""
        return cls(
            id=UUID(data["id"]),
            execution_id=data["execution_id"],
            version=int(data["version"]),
            overall_score=Decimal(data["overall_score"]),
            criteria=tuple(AggregatedCriterionScore.from_dict(c) for c in data["criteria"]),
            confidence=ConfidenceMetrics.from_dict(data["confidence"]),
            consensus=ConsensusMetrics.from_dict(data["consensus"]),
            quality=ValidationResult.from_dict(data["quality"]),
            status=AggregationStatus(data["status"]),
            created_at=datetime.fromisoformat(data["created_at"]),
            config=AggregationConfig.from_dict(data["config"]),
            judge_ids=tuple(data.get("judge_ids", ())),
            skipped_records=tuple(
                SkippedRecord.from_dict(record) for record in data.get("skipped_records", ())
            ),
            previous_version=data.get("previous_version"),
            metadata=data.get("metadata", {}),
        )

    def __str__(self) -> str:
        """String representation."""
        return (
            f"AggregatedScore(execution={self.execution_id}, "
            f"version={self.version}, "
            f"score={self.overall_score}, "
            f"status={self.status})"
        )

    def __hash__(self) -> int:
        """Hash based on ID."""
        return hash(self.id)
