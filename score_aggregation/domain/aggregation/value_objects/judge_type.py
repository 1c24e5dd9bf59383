"""Judge type value object."""

from decimal import Decimal
from enum import Enum
from typing import NoReturn

from ..exceptions import ValidationError


def _unreachable(value: object) -> NoReturn:
    raise AssertionError(f"Unhandled judge type: {value!r}")


class JudgeType(Enum):
    """Closed set of evaluator kinds that submit judge scores."""

    STAFF_REVIEWER = "staff_reviewer"
    COMMUNITY_VOTER = "community_voter"
    AI_SELF_REVIEW = "ai_self_review"
    ELITE_PANELIST = "elite_panelist"
    AUTOMATED_SCORER = "automated_scorer"
    EXTERNAL_EXPERT = "external_expert"

    @property
    def expertise_rank(self) -> int:
        """Rank used for expert override, higher means more authoritative."""
        match self:
            case JudgeType.ELITE_PANELIST:
                return 6
            case JudgeType.EXTERNAL_EXPERT:
                return 5
            case JudgeType.STAFF_REVIEWER:
                return 4
            case JudgeType.AUTOMATED_SCORER:
                return 3
            case JudgeType.AI_SELF_REVIEW:
                return 2
            case JudgeType.COMMUNITY_VOTER:
                return 1
            case _:
                _unreachable(self)

    @property
    def default_expertise(self) -> Decimal:
        """Expertise signal used when a judge supplies none."""
        return (Decimal(self.expertise_rank) / Decimal("6")).quantize(Decimal("0.001"))

    @property
    def label(self) -> str:
        """Human readable name used in reports and recommendations."""
        match self:
            case JudgeType.STAFF_REVIEWER:
                return "staff review"
            case JudgeType.COMMUNITY_VOTER:
                return "community vote"
            case JudgeType.AI_SELF_REVIEW:
                return "AI self-review"
            case JudgeType.ELITE_PANELIST:
                return "elite-panel review"
            case JudgeType.AUTOMATED_SCORER:
                return "automated scoring"
            case JudgeType.EXTERNAL_EXPERT:
                return "external expert review"
            case _:
                _unreachable(self)

    @classmethod
    def from_value(cls, value: str) -> "JudgeType":
        """Parse judge type from its wire value."""
        if isinstance(value, JudgeType):
            return value

        try:
            return cls(str(value).strip().lower())
        except ValueError:
            valid = ", ".join(t.value for t in cls)
            raise ValidationError(f"Unknown judge type '{value}', expected one of: {valid}")

    def __str__(self) -> str:
        """String representation of judge type."""
        return self.value
