"""Consensus metrics value object."""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, Tuple

from ..exceptions import ValidationError
from .aggregation_config import ConsensusMethod


def _unit_interval(name: str, value: Decimal) -> None:
    if not (0 <= value <= 1):
        raise ValidationError(f"{name} must be between 0 and 1, got {value}")


@dataclass(frozen=True)
class ConsensusMetrics:
    """How strongly the judges agree, overall and broken down."""

    consensus_level: Decimal
    overall_agreement: Decimal
    polarization: Decimal
    method: ConsensusMethod = ConsensusMethod.SIMPLE
    criterion_agreement: Dict[str, Decimal] = field(default_factory=dict)
    judge_type_agreement: Dict[str, Decimal] = field(default_factory=dict)
    agreement_matrix: Dict[str, Dict[str, Decimal]] = field(default_factory=dict)
    iterations: int = 0
    initial_agreement: Decimal = Decimal("0")
    final_agreement: Decimal = Decimal("0")
    convergence_rate: Decimal = Decimal("1")
    converged: bool = True
    discarded_judges: Tuple[str, ...] = ()

    def __post_init__(self):
        """Validate consensus metrics."""
        object.__setattr__(self, "discarded_judges", tuple(self.discarded_judges))

        _unit_interval("Consensus level", self.consensus_level)
        _unit_interval("Overall agreement", self.overall_agreement)
        _unit_interval("Polarization", self.polarization)
        _unit_interval("Initial agreement", self.initial_agreement)
        _unit_interval("Final agreement", self.final_agreement)

        for criterion_id, agreement in self.criterion_agreement.items():
            _unit_interval(f"Agreement on '{criterion_id}'", agreement)

        if self.iterations < 0:
            raise ValidationError("Iteration count cannot be negative")

        if self.convergence_rate < 0:
            raise ValidationError("Convergence rate cannot be negative")

    def get_consensus_strength(self) -> str:
        """Get qualitative assessment of consensus strength."""
        if self.consensus_level >= Decimal("0.9"):
            return "VERY_STRONG"
        elif self.consensus_level >= Decimal("0.8"):
            return "STRONG"
        elif self.consensus_level >= Decimal("0.6"):
            return "MODERATE"
        else:
            return "WEAK"

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "consensus_level": str(self.consensus_level),
            "overall_agreement": str(self.overall_agreement),
            "polarization": str(self.polarization),
            "method": self.method.value,
            "criterion_agreement": {k: str(v) for k, v in self.criterion_agreement.items()},
            "judge_type_agreement": {k: str(v) for k, v in self.judge_type_agreement.items()},
            "agreement_matrix": {
                judge_id: {other: str(value) for other, value in row.items()}
                for judge_id, row in self.agreement_matrix.items()
            },
            "iterations": self.iterations,
            "initial_agreement": str(self.initial_agreement),
            "final_agreement": str(self.final_agreement),
            "convergence_rate": str(self.convergence_rate),
            "converged": self.converged,
            "discarded_judges": list(self.discarded_judges),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ConsensusMetrics":
        """Create from dictionary representation."""
        return cls(
            consensus_level=Decimal(data["consensus_level"]),
            overall_agreement=Decimal(data["overall_agreement"]),
            polarization=Decimal(data["polarization"]),
            method=ConsensusMethod(data.get("method", ConsensusMethod.SIMPLE.value)),
            criterion_agreement={
                k: Decimal(v) for k, v in data.get("criterion_agreement", {}).items()
            },
            judge_type_agreement={
                k: Decimal(v) for k, v in data.get("judge_type_agreement", {}).items()
            },
            agreement_matrix={
                judge_id: {other: Decimal(value) for other, value in row.items()}
                for judge_id, row in data.get("agreement_matrix", {}).items()
            },
            iterations=int(data.get("iterations", 0)),
            initial_agreement=Decimal(data.get("initial_agreement", "0")),
            final_agreement=Decimal(data.get("final_agreement", "0")),
            convergence_rate=Decimal(data.get("convergence_rate", "1")),
            converged=bool(data.get("converged", True)),
            discarded_judges=tuple(data.get("discarded_judges", ())),
        )
