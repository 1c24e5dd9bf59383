"""Confidence metrics value objects."""

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Optional

from ..exceptions import ValidationError


class ConfidenceTier(Enum):
    """Qualitative confidence tiers."""

    VERY_HIGH = "very_high"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    VERY_LOW = "very_low"

    @classmethod
    def from_value(cls, confidence: Decimal) -> "ConfidenceTier":
        """Map a confidence value in [0, 1] to its tier."""
        if confidence >= Decimal("0.9"):
            return cls.VERY_HIGH
        elif confidence >= Decimal("0.75"):
            return cls.HIGH
        elif confidence >= Decimal("0.6"):
            return cls.MEDIUM
        elif confidence >= Decimal("0.4"):
            return cls.LOW
        else:
            return cls.VERY_LOW


@dataclass(frozen=True)
class ConfidenceInterval:
    """Normal-approximation interval around a score."""

    lower: Decimal
    upper: Decimal
    level: Decimal = Decimal("0.95")

    def __post_init__(self):
        """Validate interval."""
        if self.lower > self.upper:
            raise ValidationError("Invalid confidence interval bounds")

        if not (0 <= self.lower and self.upper <= 100):
            raise ValidationError("Confidence interval must lie within 0 and 100")

    @property
    def width(self) -> Decimal:
        """Width of the interval."""
        return self.upper - self.lower

    def contains(self, value: Decimal) -> bool:
        """Check if a value lies inside the interval."""
        return self.lower <= value <= self.upper

    def to_dict(self) -> Dict[str, str]:
        """Convert to dictionary representation."""
        return {"lower": str(self.lower), "upper": str(self.upper), "level": str(self.level)}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ConfidenceInterval":
        """Create from dictionary representation."""
        return cls(
            lower=Decimal(data["lower"]),
            upper=Decimal(data["upper"]),
            level=Decimal(data.get("level", "0.95")),
        )


@dataclass(frozen=True)
class ConfidenceMetrics:
    """Calibrated confidence of an aggregated score."""

    overall_confidence: Decimal
    tier: ConfidenceTier
    factors: Dict[str, Decimal]
    overall_interval: ConfidenceInterval
    criterion_confidence: Dict[str, Decimal] = field(default_factory=dict)
    judge_type_confidence: Dict[str, Decimal] = field(default_factory=dict)
    criterion_intervals: Dict[str, ConfidenceInterval] = field(default_factory=dict)
    stability_score: Decimal = Decimal("1")
    max_change_pct: Decimal = Decimal("0")
    most_influential_judge: Optional[str] = None

    def __post_init__(self):
        """Validate confidence metrics."""
        if not (0 <= self.overall_confidence <= 1):
            raise ValidationError("Overall confidence must be between 0 and 1")

        for name, value in self.factors.items():
            if not (0 <= value <= 1):
                raise ValidationError(f"Confidence factor '{name}' must be between 0 and 1")

        if not (0 <= self.stability_score <= 1):
            raise ValidationError("Stability score must be between 0 and 1")

        if self.max_change_pct < 0:
            raise ValidationError("Maximum change cannot be negative")

    def weakest_factor(self) -> Optional[str]:
        """Name of the factor dragging confidence down the most."""
        if not self.factors:
            return None
        return min(self.factors, key=lambda name: (self.factors[name], name))

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "overall_confidence": str(self.overall_confidence),
            "tier": self.tier.value,
            "factors": {k: str(v) for k, v in self.factors.items()},
            "overall_interval": self.overall_interval.to_dict(),
            "criterion_confidence": {k: str(v) for k, v in self.criterion_confidence.items()},
            "judge_type_confidence": {k: str(v) for k, v in self.judge_type_confidence.items()},
            "criterion_intervals": {
                k: interval.to_dict() for k, interval in self.criterion_intervals.items()
            },
            "stability_score": str(self.stability_score),
            "max_change_pct": str(self.max_change_pct),
            "most_influential_judge": self.most_influential_judge,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ConfidenceMetrics":
        """Create from dictionary representation."""
        return cls(
            overall_confidence=Decimal(data["overall_confidence"]),
            tier=ConfidenceTier(data["tier"]),
            factors={k: Decimal(v) for k, v in data["factors"].items()},
            overall_interval=ConfidenceInterval.from_dict(data["overall_interval"]),
            criterion_confidence={
                k: Decimal(v) for k, v in data.get("criterion_confidence", {}).items()
            },
            judge_type_confidence={
                k: Decimal(v) for k, v in data.get("judge_type_confidence", {}).items()
            },
            criterion_intervals={
                k: ConfidenceInterval.from_dict(v)
                for k, v in data.get("criterion_intervals", {}).items()
            },
            stability_score=Decimal(data.get("stability_score", "1")),
            max_change_pct=Decimal(data.get("max_change_pct", "0")),
            most_influential_judge=data.get("most_influential_judge"),
        )
