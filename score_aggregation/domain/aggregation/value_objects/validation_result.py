"""Quality validation result value objects."""

from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, Optional, Tuple

from ..exceptions import ValidationError
from .aggregation_config import QUALITY_CHECKS


@dataclass(frozen=True)
class QualityCheck:
    """Outcome of one quality check against its threshold."""

    name: str
    passed: bool
    score: Decimal
    threshold: Decimal
    required: bool = True
    message: str = ""

    def __post_init__(self):
        """Validate quality check."""
        if self.name not in QUALITY_CHECKS:
            raise ValidationError(f"Unknown quality check: {self.name}")

    @property
    def is_blocking(self) -> bool:
        """A failed required check flags the result."""
        return self.required and not self.passed

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "name": self.name,
            "passed": self.passed,
            "score": str(self.score),
            "threshold": str(self.threshold),
            "required": self.required,
            "message": self.message,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "QualityCheck":
        """Create from dictionary representation."""
        return cls(
            name=data["name"],
            passed=bool(data["passed"]),
            score=Decimal(data["score"]),
            threshold=Decimal(data["threshold"]),
            required=bool(data.get("required", True)),
            message=data.get("message", ""),
        )


@dataclass(frozen=True)
class ValidationResult:
    """Advisory verdict of the quality validator."""

    passed: bool
    checks: Tuple[QualityCheck, ...]
    recommendations: Tuple[str, ...] = ()
    unresolved_conflicts: int = 0
    relaxed_scope: bool = False

    def __post_init__(self):
        """Validate result consistency."""
        object.__setattr__(self, "checks", tuple(self.checks))
        object.__setattr__(self, "recommendations", tuple(self.recommendations))

        if self.unresolved_conflicts < 0:
            raise ValidationError("Unresolved conflict count cannot be negative")

        blocking = any(check.is_blocking for check in self.checks)
        if self.passed and (blocking or self.unresolved_conflicts):
            raise ValidationError("A result with failed required checks cannot pass")

    @classmethod
    def pending(cls) -> "ValidationResult":
        """Placeholder for a result that has not been validated yet."""
        return cls(passed=False, checks=())

    def get_check(self, name: str) -> Optional[QualityCheck]:
        """Get check by name."""
        for check in self.checks:
            if check.name == name:
                return check
        return None

    def failed_checks(self) -> Tuple[QualityCheck, ...]:
        """Required checks that did not pass."""
        return tuple(check for check in self.checks if check.is_blocking)

    def with_relaxed_scope(self) -> "ValidationResult":
        """Mark the result as produced by the relaxed recomputation."""
        return ValidationResult(
            passed=self.passed,
            checks=self.checks,
            recommendations=self.recommendations,
            unresolved_conflicts=self.unresolved_conflicts,
            relaxed_scope=True,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "passed": self.passed,
            "checks": [check.to_dict() for check in self.checks],
            "recommendations": list(self.recommendations),
            "unresolved_conflicts": self.unresolved_conflicts,
            "relaxed_scope": self.relaxed_scope,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ValidationResult":
        """Create from dictionary representation."""
        return cls(
            passed=bool(data["passed"]),
            checks=tuple(QualityCheck.from_dict(check) for check in data.get("checks", [])),
            recommendations=tuple(data.get("recommendations", ())),
            unresolved_conflicts=int(data.get("unresolved_conflicts", 0)),
            relaxed_scope=bool(data.get("relaxed_scope", False)),
        )
