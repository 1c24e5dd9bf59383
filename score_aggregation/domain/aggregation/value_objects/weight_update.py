"""Weight update value object."""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, Optional

from ..exceptions import InvalidConfigError, ValidationError
from .aggregation_config import HybridWeights, WeightingMethod
from .judge_type import JudgeType
from .precision import parse_decimal


@dataclass(frozen=True)
class WeightUpdate:
    """Change to weighting that produces a new aggregation version."""

    criterion_weights: Dict[str, Decimal] = field(default_factory=dict)
    judge_type_multipliers: Dict[JudgeType, Decimal] = field(default_factory=dict)
    judge_multipliers: Dict[str, Decimal] = field(default_factory=dict)
    weighting_method: Optional[WeightingMethod] = None
    hybrid_weights: Optional[HybridWeights] = None
    reason: str = ""

    def __post_init__(self):
        """Validate weight update."""
        if self.is_empty():
            raise InvalidConfigError("Weight update does not change anything")

        mappings = (self.criterion_weights, self.judge_type_multipliers, self.judge_multipliers)
        for mapping in mappings:
            for key, value in mapping.items():
                if value < 0:
                    raise InvalidConfigError(f"Weight for '{key}' cannot be negative")

    def is_empty(self) -> bool:
        """Check if update carries no change."""
        return not (
            self.criterion_weights
            or self.judge_type_multipliers
            or self.judge_multipliers
            or self.weighting_method
            or self.hybrid_weights
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "criterion_weights": {k: str(v) for k, v in self.criterion_weights.items()},
            "judge_type_multipliers": {
                k.value: str(v) for k, v in self.judge_type_multipliers.items()
            },
            "judge_multipliers": {k: str(v) for k, v in self.judge_multipliers.items()},
            "weighting_method": self.weighting_method.value if self.weighting_method else None,
            "hybrid_weights": self.hybrid_weights.to_dict() if self.hybrid_weights else None,
            "reason": self.reason,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "WeightUpdate":
        """Create from dictionary representation."""
        try:
            method = data.get("weighting_method")
            hybrid = data.get("hybrid_weights")
            return cls(
                criterion_weights={
                    str(k): parse_decimal(v, f"criterion_weights.{k}")
                    for k, v in (data.get("criterion_weights") or {}).items()
                },
                judge_type_multipliers={
                    JudgeType.from_value(k): parse_decimal(v, f"judge_type_multipliers.{k}")
                    for k, v in (data.get("judge_type_multipliers") or {}).items()
                },
                judge_multipliers={
                    str(k): parse_decimal(v, f"judge_multipliers.{k}")
                    for k, v in (data.get("judge_multipliers") or {}).items()
                },
                weighting_method=WeightingMethod(method) if method else None,
                hybrid_weights=HybridWeights.from_dict(hybrid) if hybrid else None,
                reason=str(data.get("reason") or ""),
            )
        except (ValidationError, ValueError) as e:
            raise InvalidConfigError(f"Malformed weight update: {e}") from e
