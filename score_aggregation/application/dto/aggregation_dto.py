"""DTOs for aggregated scores and related data structures."""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from ...domain.aggregation.entities.aggregated_score import AggregatedScore


@dataclass(frozen=True)
class CriterionSummaryDTO:
    """DTO for one criterion of an aggregated score."""

    criterion_id: str
    weight: Decimal
    aggregated_score: Decimal
    judge_count: int
    outlier_count: int
    conflict_count: int
    pre_resolution_score: Optional[Decimal] = None


@dataclass(frozen=True)
class AggregationSummaryDTO:
    """DTO for reporting one aggregated score version."""

    execution_id: str
    version: int
    status: str
    overall_score: Decimal
    confidence: Decimal
    confidence_tier: str
    consensus_level: Decimal
    consensus_strength: str
    judge_count: int
    skipped_count: int
    criteria: List[CriterionSummaryDTO]
    recommendations: List[str]
    relaxed_scope: bool
    created_at: datetime

    @classmethod
    def from_score(cls, score: AggregatedScore) -> "AggregationSummaryDTO":
        """Build summary from an aggregated score."""
        return cls(
            execution_id=score.execution_id,
            version=score.version,
            status=score.status.value,
            overall_score=score.overall_score,
            confidence=score.confidence.overall_confidence,
            confidence_tier=score.confidence.tier.value,
            consensus_level=score.consensus.consensus_level,
            consensus_strength=score.consensus.get_consensus_strength(),
            judge_count=len(score.judge_ids),
            skipped_count=len(score.skipped_records),
            criteria=[
                CriterionSummaryDTO(
                    criterion_id=criterion.criterion_id,
                    weight=criterion.weight,
                    aggregated_score=criterion.aggregated_score,
                    judge_count=criterion.judge_count,
                    outlier_count=len(criterion.outliers),
                    conflict_count=len(criterion.conflicts),
                    pre_resolution_score=criterion.pre_resolution_score,
                )
                for criterion in score.criteria
            ],
            recommendations=list(score.quality.recommendations),
            relaxed_scope=score.quality.relaxed_scope,
            created_at=score.created_at,
        )

    def to_row(self) -> Dict[str, Any]:
        """Flat representation for tabular output."""
        return {
            "execution_id": self.execution_id,
            "version": self.version,
            "status": self.status,
            "overall_score": str(self.overall_score),
            "confidence": f"{self.confidence} ({self.confidence_tier})",
            "consensus": f"{self.consensus_level} ({self.consensus_strength.lower()})",
            "judges": self.judge_count,
            "skipped": self.skipped_count,
            "created_at": self.created_at.isoformat(timespec="seconds"),
        }
