"""Judge score value object."""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Optional

from ..exceptions import ValidationError
from .judge_type import JudgeType
from .precision import parse_decimal


@dataclass(frozen=True)
class JudgeScore:
    """One judge's evaluation of one execution."""

    judge_id: str
    judge_type: JudgeType
    overall_score: Decimal  # 0-100
    criterion_scores: Dict[str, Decimal]  # criterion_id -> raw score (0..max_score)
    quality: Decimal  # externally supplied reliability signal (0-1)
    confidence: Decimal  # judge's own confidence (0-1)
    expertise: Optional[Decimal] = None  # alignment signal (0-1)
    reputation: Optional[Decimal] = None  # reputation signal (0-1)
    historical_accuracy: Optional[Decimal] = None  # past accuracy (0-1)
    submitted_at: Optional[datetime] = None
    metadata: Dict[str, Any] = field(default_factory=dict, compare=False)

    def __post_init__(self):
        """Validate judge score."""
        if not isinstance(self.judge_id, str) or not self.judge_id.strip():
            raise ValidationError("Judge ID cannot be empty")

        if not isinstance(self.judge_type, JudgeType):
            raise ValidationError(f"Invalid judge type: {self.judge_type!r}")

        if not (0 <= self.overall_score <= 100):
            raise ValidationError(
                f"Overall score must be between 0 and 100, got {self.overall_score}"
            )

        for name in ("quality", "confidence"):
            value = getattr(self, name)
            if not (0 <= value <= 1):
                raise ValidationError(f"{name.capitalize()} must be between 0 and 1, got {value}")

        for name in ("expertise", "reputation", "historical_accuracy"):
            value = getattr(self, name)
            if value is not None and not (0 <= value <= 1):
                raise ValidationError(f"{name} must be between 0 and 1, got {value}")

        for criterion_id, score in self.criterion_scores.items():
            if not isinstance(criterion_id, str) or not criterion_id.strip():
                raise ValidationError("Criterion ID cannot be empty")
            if score < 0:
                raise ValidationError(
                    f"Score for criterion '{criterion_id}' cannot be negative, got {score}"
                )

    @property
    def effective_expertise(self) -> Decimal:
        """Expertise signal, falling back to the judge type default."""
        if self.expertise is not None:
            return self.expertise
        return self.judge_type.default_expertise

    @property
    def effective_reputation(self) -> Decimal:
        """Reputation signal, falling back to quality."""
        if self.reputation is not None:
            return self.reputation
        return self.quality

    @property
    def effective_historical_accuracy(self) -> Decimal:
        """Historical accuracy, falling back to quality."""
        if self.historical_accuracy is not None:
            return self.historical_accuracy
        return self.quality

    def has_criterion(self, criterion_id: str) -> bool:
        """Check if the judge scored a criterion."""
        return criterion_id in self.criterion_scores

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "JudgeScore":
        """Create judge score from a raw submitted record."""
        if not isinstance(data, dict):
            raise ValidationError(f"Judge score record must be a dict, not {type(data).__name__}")

        missing = [
            key
            for key in ("judge_id", "judge_type", "overall_score", "quality", "confidence")
            if key not in data
        ]
        if missing:
            raise ValidationError(f"Judge score record missing fields: {', '.join(missing)}")

        raw_criteria = data.get("criterion_scores") or {}
        if not isinstance(raw_criteria, dict):
            raise ValidationError("criterion_scores must be a mapping")

        submitted_at = data.get("submitted_at")
        if isinstance(submitted_at, str):
            try:
                submitted_at = datetime.fromisoformat(submitted_at)
            except ValueError as e:
                raise ValidationError(f"Invalid submitted_at timestamp: {submitted_at}") from e

        def optional(key: str) -> Optional[Decimal]:
            value = data.get(key)
            return None if value is None else parse_decimal(value, key)

        return cls(
            judge_id=str(data["judge_id"]),
            judge_type=JudgeType.from_value(data["judge_type"]),
            overall_score=parse_decimal(data["overall_score"], "overall_score"),
            criterion_scores={
                str(criterion_id): parse_decimal(score, f"criterion_scores.{criterion_id}")
                for criterion_id, score in raw_criteria.items()
            },
            quality=parse_decimal(data["quality"], "quality"),
            confidence=parse_decimal(data["confidence"], "confidence"),
            expertise=optional("expertise"),
            reputation=optional("reputation"),
            historical_accuracy=optional("historical_accuracy"),
            submitted_at=submitted_at,
            metadata=dict(data.get("metadata") or {}),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "judge_id": self.judge_id,
            "judge_type": self.judge_type.value,
            "overall_score": str(self.overall_score),
            "criterion_scores": {k: str(v) for k, v in self.criterion_scores.items()},
            "quality": str(self.quality),
            "confidence": str(self.confidence),
            "expertise": None if self.expertise is None else str(self.expertise),
            "reputation": None if self.reputation is None else str(self.reputation),
            "historical_accuracy": (
                None if self.historical_accuracy is None else str(self.historical_accuracy)
            ),
            "submitted_at": self.submitted_at.isoformat() if self.submitted_at else None,
            "metadata": self.metadata.copy(),
        }
