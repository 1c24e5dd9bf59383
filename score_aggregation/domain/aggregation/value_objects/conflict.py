"""Judge conflict value objects."""

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from ..exceptions import ValidationError
from .aggregation_config import ResolutionStrategy
from .judge_type import JudgeType


class ConflictSeverity(Enum):
    """Severity tier of a judge disagreement."""

    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @classmethod
    def from_z_score(cls, z_score: float) -> "ConflictSeverity":
        """Tier by the largest deviation among the disputed judges."""
        if z_score > 3.5:
            return cls.CRITICAL
        if z_score > 3.0:
            return cls.HIGH
        return cls.MEDIUM


class JudgePosition(Enum):
    """Where a judge sits relative to the panel mean."""

    HIGHER = "higher"
    LOWER = "lower"
    NEUTRAL = "neutral"


@dataclass(frozen=True)
class ConflictParticipant:
    """One judge's stake in a conflict."""

    judge_id: str
    judge_type: JudgeType
    score: Decimal
    z_score: Decimal  # signed
    position: JudgePosition
    disputed: bool

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "judge_id": self.judge_id,
            "judge_type": self.judge_type.value,
            "score": str(self.score),
            "z_score": str(self.z_score),
            "position": self.position.value,
            "disputed": self.disputed,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ConflictParticipant":
        """Create from dictionary representation."""
        return cls(
            judge_id=data["judge_id"],
            judge_type=JudgeType(data["judge_type"]),
            score=Decimal(data["score"]),
            z_score=Decimal(data["z_score"]),
            position=JudgePosition(data["position"]),
            disputed=bool(data["disputed"]),
        )


@dataclass(frozen=True)
class ConflictResolution:
    """Outcome of applying a resolution strategy to a conflict."""

    strategy: ResolutionStrategy
    resolved: bool
    explanation: str
    confidence: Decimal
    adjusted_score: Optional[Decimal] = None
    adjusted_judge_scores: Dict[str, Decimal] = field(default_factory=dict)

    def __post_init__(self):
        """Validate resolution."""
        if not (0 <= self.confidence <= 1):
            raise ValidationError("Resolution confidence must be between 0 and 1")

        if self.resolved and self.adjusted_score is None:
            raise ValidationError("A resolved conflict requires an adjusted score")

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "strategy": self.strategy.value,
            "resolved": self.resolved,
            "explanation": self.explanation,
            "confidence": str(self.confidence),
            "adjusted_score": None if self.adjusted_score is None else str(self.adjusted_score),
            "adjusted_judge_scores": {k: str(v) for k, v in self.adjusted_judge_scores.items()},
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ConflictResolution":
        """Create from dictionary representation."""
        adjusted = data.get("adjusted_score")
        return cls(
            strategy=ResolutionStrategy(data["strategy"]),
            resolved=bool(data["resolved"]),
            explanation=data["explanation"],
            confidence=Decimal(data["confidence"]),
            adjusted_score=None if adjusted is None else Decimal(adjusted),
            adjusted_judge_scores={
                k: Decimal(v) for k, v in (data.get("adjusted_judge_scores") or {}).items()
            },
        )


@dataclass(frozen=True)
class Conflict:
    """Severe disagreement among judges on one criterion."""

    criterion_id: str
    severity: ConflictSeverity
    max_z_score: Decimal
    detection_confidence: Decimal
    mean_score: Decimal
    participants: Tuple[ConflictParticipant, ...]
    resolution: Optional[ConflictResolution] = None

    def __post_init__(self):
        """Validate conflict."""
        object.__setattr__(self, "participants", tuple(self.participants))

        if not (0 <= self.detection_confidence <= 1):
            raise ValidationError("Detection confidence must be between 0 and 1")

        if not any(participant.disputed for participant in self.participants):
            raise ValidationError("A conflict requires at least one disputed judge")

    @property
    def disputed_judges(self) -> Tuple[str, ...]:
        """Judges whose deviation triggered the conflict."""
        return tuple(p.judge_id for p in self.participants if p.disputed)

    @property
    def involved_judges(self) -> Tuple[str, ...]:
        """All judges that scored the criterion."""
        return tuple(p.judge_id for p in self.participants)

    def is_resolved(self) -> bool:
        """Check if a resolution settled the conflict."""
        return self.resolution is not None and self.resolution.resolved

    def requires_deliberation(self) -> bool:
        """Check if humans must sign off before the result is consumed."""
        return not self.is_resolved()

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "criterion_id": self.criterion_id,
            "severity": self.severity.value,
            "max_z_score": str(self.max_z_score),
            "detection_confidence": str(self.detection_confidence),
            "mean_score": str(self.mean_score),
            "participants": [p.to_dict() for p in self.participants],
            "resolution": self.resolution.to_dict() if self.resolution else None,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Conflict":
        """Create from dictionary representation."""
        resolution = data.get("resolution")
        return cls(
            criterion_id=data["criterion_id"],
            severity=ConflictSeverity(data["severity"]),
            max_z_score=Decimal(data["max_z_score"]),
            detection_confidence=Decimal(data["detection_confidence"]),
            mean_score=Decimal(data["mean_score"]),
            participants=tuple(ConflictParticipant.from_dict(p) for p in data["participants"]),
            resolution=ConflictResolution.from_dict(resolution) if resolution else None,
        )
