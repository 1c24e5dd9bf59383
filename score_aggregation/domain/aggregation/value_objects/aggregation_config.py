"""Aggregation configuration value objects."""

from dataclasses import dataclass, field, replace
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from ..exceptions import InvalidConfigError, ValidationError
from .judge_type import JudgeType
from .precision import SCORE_SCALE, parse_decimal

WEIGHT_SUM_TOLERANCE = Decimal("0.01")
QUALITY_CHECKS = ("judge_count", "confidence", "variance", "consensus")


class WeightingMethod(Enum):
    """How each judge score is weighted."""

    EQUAL = "equal"
    QUALITY_BASED = "quality_based"
    EXPERTISE_BASED = "expertise_based"
    REPUTATION_BASED = "reputation_based"
    HYBRID = "hybrid"


class AggregationMethod(Enum):
    """How weighted scores are combined per criterion."""

    WEIGHTED_AVERAGE = "weighted_average"
    MEDIAN = "median"
    BAYESIAN = "bayesian"


class OutlierAction(Enum):
    """What happens to a score flagged as an outlier."""

    EXCLUDE = "exclude"
    DOWNGRADE = "downgrade"
    FLAG_FOR_REVIEW = "flag_for_review"
    INVESTIGATE = "investigate"
    KEEP = "keep"


class ConsensusMethod(Enum):
    """How consensus is measured."""

    SIMPLE = "simple"
    ITERATIVE = "iterative"


class ResolutionStrategy(Enum):
    """How detected judge conflicts are resolved."""

    MAJORITY_RULE = "majority_rule"
    EXPERT_OVERRIDE = "expert_override"
    QUALITY_WEIGHTED = "quality_weighted"
    DELIBERATION_REQUIRED = "deliberation_required"
    AUTOMATED_RESOLUTION = "automated_resolution"


def _config_decimal(data: Dict[str, Any], key: str, default: Any) -> Decimal:
    value = data.get(key, default)
    try:
        return parse_decimal(value, key)
    except ValidationError as e:
        raise InvalidConfigError(str(e)) from e


def _config_enum(enum_cls, data: Dict[str, Any], key: str, default):
    value = data.get(key, default)
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(str(value).strip().lower())
    except ValueError as e:
        valid = ", ".join(member.value for member in enum_cls)
        raise InvalidConfigError(f"Invalid {key} '{value}', expected one of: {valid}") from e


@dataclass(frozen=True)
class CriterionDefinition:
    """One criterion of the scoring rubric."""

    criterion_id: str
    weight: Decimal
    name: str = ""
    max_score: Decimal = Decimal("100")

    def __post_init__(self):
        """Validate criterion definition."""
        if not self.criterion_id or not self.criterion_id.strip():
            raise InvalidConfigError("Criterion ID cannot be empty")

        if not (0 <= self.weight <= 1):
            raise InvalidConfigError(
                f"Weight for criterion '{self.criterion_id}' must be between 0 and 1"
            )

        if self.max_score <= 0:
            raise InvalidConfigError(
                f"Max score for criterion '{self.criterion_id}' must be positive"
            )

        if not self.name:
            object.__setattr__(self, "name", self.criterion_id)

    def normalize_score(self, raw_score: Decimal) -> float:
        """Convert a raw criterion score to the 0-100 scale."""
        return float(raw_score) / float(self.max_score) * SCORE_SCALE

    def is_valid_score(self, raw_score: Decimal) -> bool:
        """Check raw score is within the criterion range."""
        return 0 <= raw_score <= self.max_score

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "criterion_id": self.criterion_id,
            "name": self.name,
            "weight": str(self.weight),
            "max_score": str(self.max_score),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CriterionDefinition":
        """Create from dictionary representation."""
        if "criterion_id" not in data:
            raise InvalidConfigError("Criterion definition requires criterion_id")
        return cls(
            criterion_id=str(data["criterion_id"]),
            name=str(data.get("name") or ""),
            weight=_config_decimal(data, "weight", None),
            max_score=_config_decimal(data, "max_score", "100"),
        )


@dataclass(frozen=True)
class JudgeTypePolicy:
    """Collection policy for one enabled judge type."""

    judge_type: JudgeType
    minimum_count: int = 0
    maximum_count: Optional[int] = None
    quality_threshold: Decimal = Decimal("0")
    weight_multiplier: Decimal = Decimal("1")

    def __post_init__(self):
        """Validate judge type policy."""
        if self.minimum_count < 0:
            raise InvalidConfigError(f"Minimum count for {self.judge_type} cannot be negative")

        if self.maximum_count is not None and self.maximum_count < max(self.minimum_count, 1):
            raise InvalidConfigError(
                f"Maximum count for {self.judge_type} must be at least the minimum count"
            )

        if not (0 <= self.quality_threshold <= 1):
            raise InvalidConfigError(
                f"Quality threshold for {self.judge_type} must be between 0 and 1"
            )

        if self.weight_multiplier < 0:
            raise InvalidConfigError(f"Weight multiplier for {self.judge_type} cannot be negative")

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "judge_type": self.judge_type.value,
            "minimum_count": self.minimum_count,
            "maximum_count": self.maximum_count,
            "quality_threshold": str(self.quality_threshold),
            "weight_multiplier": str(self.weight_multiplier),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "JudgeTypePolicy":
        """Create from dictionary representation."""
        try:
            judge_type = JudgeType.from_value(data["judge_type"])
        except (KeyError, ValidationError) as e:
            raise InvalidConfigError(f"Invalid judge type policy: {e}") from e

        maximum = data.get("maximum_count")
        return cls(
            judge_type=judge_type,
            minimum_count=int(data.get("minimum_count", 0)),
            maximum_count=None if maximum is None else int(maximum),
            quality_threshold=_config_decimal(data, "quality_threshold", "0"),
            weight_multiplier=_config_decimal(data, "weight_multiplier", "1"),
        )


@dataclass(frozen=True)
class HybridWeights:
    """Sub-weights combined by the hybrid weighting method."""

    quality: Decimal = Decimal("0.4")
    expertise: Decimal = Decimal("0.3")
    reputation: Decimal = Decimal("0.3")

    def __post_init__(self):
        """Validate hybrid weights."""
        if min(self.quality, self.expertise, self.reputation) < 0:
            raise InvalidConfigError("Hybrid sub-weights cannot be negative")
        if self.total() <= 0:
            raise InvalidConfigError("Hybrid sub-weights must have a positive sum")

    def total(self) -> Decimal:
        """Sum of the sub-weights."""
        return self.quality + self.expertise + self.reputation

    def to_dict(self) -> Dict[str, str]:
        """Convert to dictionary representation."""
        return {
            "quality": str(self.quality),
            "expertise": str(self.expertise),
            "reputation": str(self.reputation),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "HybridWeights":
        """Create from dictionary representation."""
        defaults = cls()
        return cls(
            quality=_config_decimal(data, "quality", defaults.quality),
            expertise=_config_decimal(data, "expertise", defaults.expertise),
            reputation=_config_decimal(data, "reputation", defaults.reputation),
        )


@dataclass(frozen=True)
class ConfidenceFactorWeights:
    """Weights of the signals combined into a confidence value."""

    judge_count: Decimal = Decimal("0.2")
    judge_quality: Decimal = Decimal("0.2")
    score_variance: Decimal = Decimal("0.2")
    consensus: Decimal = Decimal("0.2")
    expertise: Decimal = Decimal("0.1")
    historical_accuracy: Decimal = Decimal("0.1")

    def __post_init__(self):
        """Validate factor weights."""
        weights = self.as_dict()
        if any(weight < 0 for weight in weights.values()):
            raise InvalidConfigError("Confidence factor weights cannot be negative")
        if sum(weights.values()) <= 0:
            raise InvalidConfigError("Confidence factor weights must have a positive sum")

    def as_dict(self) -> Dict[str, Decimal]:
        """Factor name to weight mapping."""
        return {
            "judge_count": self.judge_count,
            "judge_quality": self.judge_quality,
            "score_variance": self.score_variance,
            "consensus": self.consensus,
            "expertise": self.expertise,
            "historical_accuracy": self.historical_accuracy,
        }

    def to_dict(self) -> Dict[str, str]:
        """Convert to dictionary representation."""
        return {name: str(weight) for name, weight in self.as_dict().items()}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ConfidenceFactorWeights":
        """Create from dictionary representation."""
        defaults = cls().as_dict()
        return cls(**{name: _config_decimal(data, name, value) for name, value in defaults.items()})


@dataclass(frozen=True)
class QualityThresholds:
    """Thresholds the quality validator checks a finished result against."""

    minimum_judge_count: int = 3
    minimum_confidence: Decimal = Decimal("0.6")
    consensus_threshold: Decimal = Decimal("0.7")
    maximum_variance: Decimal = Decimal("400")
    required_checks: Tuple[str, ...] = QUALITY_CHECKS

    def __post_init__(self):
        """Validate quality thresholds."""
        object.__setattr__(self, "required_checks", tuple(self.required_checks))

        if self.minimum_judge_count < 1:
            raise InvalidConfigError("Minimum judge count must be at least 1")

        if not (0 <= self.minimum_confidence <= 1):
            raise InvalidConfigError("Minimum confidence must be between 0 and 1")

        if not (0 <= self.consensus_threshold <= 1):
            raise InvalidConfigError("Consensus threshold must be between 0 and 1")

        if not (0 <= self.maximum_variance <= 2500):
            raise InvalidConfigError("Maximum variance must be between 0 and 2500")

        unknown = [check for check in self.required_checks if check not in QUALITY_CHECKS]
        if unknown:
            raise InvalidConfigError(f"Unknown quality checks: {', '.join(unknown)}")

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "minimum_judge_count": self.minimum_judge_count,
            "minimum_confidence": str(self.minimum_confidence),
            "consensus_threshold": str(self.consensus_threshold),
            "maximum_variance": str(self.maximum_variance),
            "required_checks": list(self.required_checks),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "QualityThresholds":
        """Create from dictionary representation."""
        defaults = cls()
        return cls(
            minimum_judge_count=int(data.get("minimum_judge_count", defaults.minimum_judge_count)),
            minimum_confidence=_config_decimal(
                data, "minimum_confidence", defaults.minimum_confidence
            ),
            consensus_threshold=_config_decimal(
                data, "consensus_threshold", defaults.consensus_threshold
            ),
            maximum_variance=_config_decimal(data, "maximum_variance", defaults.maximum_variance),
            required_checks=tuple(data.get("required_checks", defaults.required_checks)),
        )


@dataclass(frozen=True)
class AggregationConfig:
    """Immutable configuration threaded through every aggregation stage."""

    criteria: Tuple[CriterionDefinition, ...]
    judge_types: Tuple[JudgeTypePolicy, ...]
    minimum_total_judges: int = 1
    weighting_method: WeightingMethod = WeightingMethod.EQUAL
    hybrid_weights: HybridWeights = field(default_factory=HybridWeights)
    judge_weight_overrides: Dict[str, Decimal] = field(default_factory=dict)
    aggregation_method: AggregationMethod = AggregationMethod.WEIGHTED_AVERAGE
    bayesian_shrinkage: Decimal = Decimal("0")
    historical_reference_means: Dict[str, Decimal] = field(default_factory=dict)
    default_reference_mean: Decimal = Decimal("50")
    outlier_threshold: Decimal = Decimal("2.0")
    outlier_action: OutlierAction = OutlierAction.EXCLUDE
    outlier_iqr_fallback: bool = True
    consensus_method: ConsensusMethod = ConsensusMethod.SIMPLE
    consensus_epsilon: Decimal = Decimal("0.001")
    consensus_max_iterations: int = 10
    conflict_threshold: Decimal = Decimal("2.5")
    resolution_strategy: ResolutionStrategy = ResolutionStrategy.DELIBERATION_REQUIRED
    smoothing_factor: Decimal = Decimal("0.5")
    confidence_weights: ConfidenceFactorWeights = field(default_factory=ConfidenceFactorWeights)
    confidence_level: Decimal = Decimal("0.95")
    judge_count_saturation: Decimal = Decimal("3")
    quality_thresholds: QualityThresholds = field(default_factory=QualityThresholds)
    histogram_bins: int = 10
    strict_validation: bool = False

    def __post_init__(self):
        """Validate aggregation configuration."""
        object.__setattr__(self, "criteria", tuple(self.criteria))
        object.__setattr__(self, "judge_types", tuple(self.judge_types))
        self._validate_rubric()
        self._validate_judge_types()
        self._validate_parameters()

    def _validate_rubric(self) -> None:
        if not self.criteria:
            raise InvalidConfigError("Scoring rubric requires at least one criterion")

        criterion_ids = [criterion.criterion_id for criterion in self.criteria]
        if len(set(criterion_ids)) != len(criterion_ids):
            raise InvalidConfigError("Criterion IDs must be unique")

        total_weight = self.total_criterion_weight()
        if abs(total_weight - Decimal("1")) > WEIGHT_SUM_TOLERANCE:
            raise InvalidConfigError(f"Criterion weights must sum to 1.0, got {total_weight}")

        unknown = set(self.historical_reference_means) - set(criterion_ids)
        if unknown:
            raise InvalidConfigError(
                f"Reference means given for unknown criteria: {', '.join(sorted(unknown))}"
            )

    def _validate_judge_types(self) -> None:
        if not self.judge_types:
            raise InvalidConfigError("At least one judge type must be enabled")

        types = [policy.judge_type for policy in self.judge_types]
        if len(set(types)) != len(types):
            raise InvalidConfigError("Judge type policies must be unique per judge type")

        if self.minimum_total_judges < 1:
            raise InvalidConfigError("Minimum total judges must be at least 1")

        for judge_id, multiplier in self.judge_weight_overrides.items():
            if multiplier < 0:
                raise InvalidConfigError(f"Weight override for judge '{judge_id}' is negative")

    def _validate_parameters(self) -> None:
        if self.outlier_threshold <= 0:
            raise InvalidConfigError("Outlier threshold must be positive")

        if self.conflict_threshold <= 0:
            raise InvalidConfigError("Conflict threshold must be positive")

        if not (0 <= self.bayesian_shrinkage <= 1):
            raise InvalidConfigError("Bayesian shrinkage must be between 0 and 1")

        if not (0 <= self.default_reference_mean <= 100) or any(
            not (0 <= mean <= 100) for mean in self.historical_reference_means.values()
        ):
            raise InvalidConfigError("Reference means must be between 0 and 100")

        if self.consensus_epsilon < 0:
            raise InvalidConfigError("Consensus epsilon cannot be negative")

        if self.consensus_max_iterations < 1:
            raise InvalidConfigError("Consensus iteration cap must be at least 1")

        if not (0 <= self.smoothing_factor <= 1):
            raise InvalidConfigError("Smoothing factor must be between 0 and 1")

        if not (0 < self.confidence_level < 1):
            raise InvalidConfigError("Confidence level must be between 0 and 1")

        if self.judge_count_saturation <= 0:
            raise InvalidConfigError("Judge count saturation must be positive")

        if self.histogram_bins < 1:
            raise InvalidConfigError("Histogram requires at least one bin")

    # Lookups

    def total_criterion_weight(self) -> Decimal:
        """Sum of the rubric's criterion weights."""
        return sum((criterion.weight for criterion in self.criteria), Decimal("0"))

    def criterion_ids(self) -> List[str]:
        """Criterion IDs in rubric order."""
        return [criterion.criterion_id for criterion in self.criteria]

    def get_criterion(self, criterion_id: str) -> Optional[CriterionDefinition]:
        """Get criterion definition by ID."""
        for criterion in self.criteria:
            if criterion.criterion_id == criterion_id:
                return criterion
        return None

    def policy_for(self, judge_type: JudgeType) -> Optional[JudgeTypePolicy]:
        """Get the collection policy of a judge type, None when not enabled."""
        for policy in self.judge_types:
            if policy.judge_type == judge_type:
                return policy
        return None

    def is_enabled(self, judge_type: JudgeType) -> bool:
        """Check if a judge type is enabled."""
        return self.policy_for(judge_type) is not None

    def reference_mean(self, criterion_id: str) -> Decimal:
        """Historical reference mean used by the shrinkage heuristic."""
        return self.historical_reference_means.get(criterion_id, self.default_reference_mean)

    # Derivations

    def relaxed(self) -> "AggregationConfig":
        """Configuration with relaxed collection scope for strict-mode recomputation."""
        return replace(
            self,
            judge_types=tuple(
                replace(policy, quality_threshold=Decimal("0")) for policy in self.judge_types
            ),
            outlier_action=OutlierAction.FLAG_FOR_REVIEW,
            strict_validation=False,
        )

    def apply_weight_update(self, update) -> "AggregationConfig":
        """Derive a new configuration with a weight update applied."""
        unknown = set(update.criterion_weights) - set(self.criterion_ids())
        if unknown:
            raise InvalidConfigError(
                f"Weight update names unknown criteria: {', '.join(sorted(unknown))}"
            )

        criteria = tuple(
            replace(criterion, weight=update.criterion_weights[criterion.criterion_id])
            if criterion.criterion_id in update.criterion_weights
            else criterion
            for criterion in self.criteria
        )

        judge_types = []
        for policy in self.judge_types:
            if policy.judge_type in update.judge_type_multipliers:
                policy = replace(
                    policy, weight_multiplier=update.judge_type_multipliers[policy.judge_type]
                )
            judge_types.append(policy)

        overrides = dict(self.judge_weight_overrides)
        overrides.update(update.judge_multipliers)

        return replace(
            self,
            criteria=criteria,
            judge_types=tuple(judge_types),
            judge_weight_overrides=overrides,
            weighting_method=update.weighting_method or self.weighting_method,
            hybrid_weights=update.hybrid_weights or self.hybrid_weights,
        )

    # Serialization

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "criteria": [criterion.to_dict() for criterion in self.criteria],
            "judge_types": [policy.to_dict() for policy in self.judge_types],
            "minimum_total_judges": self.minimum_total_judges,
            "weighting_method": self.weighting_method.value,
            "hybrid_weights": self.hybrid_weights.to_dict(),
            "judge_weight_overrides": {k: str(v) for k, v in self.judge_weight_overrides.items()},
            "aggregation_method": self.aggregation_method.value,
            "bayesian_shrinkage": str(self.bayesian_shrinkage),
            "historical_reference_means": {
                k: str(v) for k, v in self.historical_reference_means.items()
            },
            "default_reference_mean": str(self.default_reference_mean),
            "outlier_threshold": str(self.outlier_threshold),
            "outlier_action": self.outlier_action.value,
            "outlier_iqr_fallback": self.outlier_iqr_fallback,
            "consensus_method": self.consensus_method.value,
            "consensus_epsilon": str(self.consensus_epsilon),
            "consensus_max_iterations": self.consensus_max_iterations,
            "conflict_threshold": str(self.conflict_threshold),
            "resolution_strategy": self.resolution_strategy.value,
            "smoothing_factor": str(self.smoothing_factor),
            "confidence_weights": self.confidence_weights.to_dict(),
            "confidence_level": str(self.confidence_level),
            "judge_count_saturation": str(self.judge_count_saturation),
            "quality_thresholds": self.quality_thresholds.to_dict(),
            "histogram_bins": self.histogram_bins,
            "strict_validation": self.strict_validation,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AggregationConfig":
        """Create from dictionary representation.

        ``judge_types`` accepts either a list of policies or a mapping of
        judge type to policy fields.
        """
        if not isinstance(data, dict):
            raise InvalidConfigError("Aggregation config must be a mapping")

        raw_types = data.get("judge_types")
        if raw_types is None:
            raw_types = [{"judge_type": judge_type.value} for judge_type in JudgeType]
        elif isinstance(raw_types, dict):
            raw_types = [
                {"judge_type": judge_type, **(policy or {})}
                for judge_type, policy in raw_types.items()
            ]

        try:
            return cls(
                criteria=tuple(
                    CriterionDefinition.from_dict(item) for item in data.get("criteria", [])
                ),
                judge_types=tuple(JudgeTypePolicy.from_dict(item) for item in raw_types),
                minimum_total_judges=int(data.get("minimum_total_judges", 1)),
                weighting_method=_config_enum(
                    WeightingMethod, data, "weighting_method", WeightingMethod.EQUAL
                ),
                hybrid_weights=HybridWeights.from_dict(data.get("hybrid_weights") or {}),
                judge_weight_overrides={
                    str(k): _config_decimal({"v": v}, "v", None)
                    for k, v in (data.get("judge_weight_overrides") or {}).items()
                },
                aggregation_method=_config_enum(
                    AggregationMethod,
                    data,
                    "aggregation_method",
                    AggregationMethod.WEIGHTED_AVERAGE,
                ),
                bayesian_shrinkage=_config_decimal(data, "bayesian_shrinkage", "0"),
                historical_reference_means={
                    str(k): _config_decimal({"v": v}, "v", None)
                    for k, v in (data.get("historical_reference_means") or {}).items()
                },
                default_reference_mean=_config_decimal(data, "default_reference_mean", "50"),
                outlier_threshold=_config_decimal(data, "outlier_threshold", "2.0"),
                outlier_action=_config_enum(
                    OutlierAction, data, "outlier_action", OutlierAction.EXCLUDE
                ),
                outlier_iqr_fallback=bool(data.get("outlier_iqr_fallback", True)),
                consensus_method=_config_enum(
                    ConsensusMethod, data, "consensus_method", ConsensusMethod.SIMPLE
                ),
                consensus_epsilon=_config_decimal(data, "consensus_epsilon", "0.001"),
                consensus_max_iterations=int(data.get("consensus_max_iterations", 10)),
                conflict_threshold=_config_decimal(data, "conflict_threshold", "2.5"),
                resolution_strategy=_config_enum(
                    ResolutionStrategy,
                    data,
                    "resolution_strategy",
                    ResolutionStrategy.DELIBERATION_REQUIRED,
                ),
                smoothing_factor=_config_decimal(data, "smoothing_factor", "0.5"),
                confidence_weights=ConfidenceFactorWeights.from_dict(
                    data.get("confidence_weights") or {}
                ),
                confidence_level=_config_decimal(data, "confidence_level", "0.95"),
                judge_count_saturation=_config_decimal(data, "judge_count_saturation", "3"),
                quality_thresholds=QualityThresholds.from_dict(
                    data.get("quality_thresholds") or {}
                ),
                histogram_bins=int(data.get("histogram_bins", 10)),
                strict_validation=bool(data.get("strict_validation", False)),
            )
        except (TypeError, ValueError) as e:
            raise InvalidConfigError(f"Malformed aggregation config: {e}") from e
