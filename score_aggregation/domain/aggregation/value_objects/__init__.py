"""Value objects for aggregation domain."""

from .aggregation_config import (
    AggregationConfig,
    AggregationMethod,
    ConfidenceFactorWeights,
    ConsensusMethod,
    CriterionDefinition,
    HybridWeights,
    JudgeTypePolicy,
    OutlierAction,
    QualityThresholds,
    ResolutionStrategy,
    WeightingMethod,
)
from .aggregation_status import AggregationStatus
from .collection_result import OVERALL_LEVEL, CollectionResult, SkippedRecord, WeightAssignment
from .confidence_metrics import ConfidenceInterval, ConfidenceMetrics, ConfidenceTier
from .conflict import (
    Conflict,
    ConflictParticipant,
    ConflictResolution,
    ConflictSeverity,
    JudgePosition,
)
from .consensus_metrics import ConsensusMetrics
from .criterion_score import AggregatedCriterionScore, JudgeContribution, OutlierRecord
from .judge_score import JudgeScore
from .judge_type import JudgeType
from .score_distribution import ScoreDistribution
from .score_entry import ScoreEntry
from .validation_result import QualityCheck, ValidationResult
from .weight_update import WeightUpdate

__all__ = [
    "AggregatedCriterionScore",
    "AggregationConfig",
    "AggregationMethod",
    "AggregationStatus",
    "CollectionResult",
    "ConfidenceFactorWeights",
    "ConfidenceInterval",
    "ConfidenceMetrics",
    "ConfidenceTier",
    "Conflict",
    "ConflictParticipant",
    "ConflictResolution",
    "ConflictSeverity",
    "ConsensusMethod",
    "ConsensusMetrics",
    "CriterionDefinition",
    "HybridWeights",
    "JudgeContribution",
    "JudgePosition",
    "JudgeScore",
    "JudgeType",
    "JudgeTypePolicy",
    "OVERALL_LEVEL",
    "OutlierAction",
    "OutlierRecord",
    "QualityCheck",
    "QualityThresholds",
    "ResolutionStrategy",
    "ScoreDistribution",
    "ScoreEntry",
    "SkippedRecord",
    "ValidationResult",
    "WeightAssignment",
    "WeightUpdate",
    "WeightingMethod",
]
