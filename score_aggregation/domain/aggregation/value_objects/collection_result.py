"""Score collection and weight assignment value objects."""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from .judge_score import JudgeScore
from .judge_type import JudgeType

OVERALL_LEVEL = "__overall__"


@dataclass(frozen=True)
class SkippedRecord:
    """A submitted record the collector did not accept."""

    judge_id: Optional[str]
    reason: str

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {"judge_id": self.judge_id, "reason": self.reason}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SkippedRecord":
        """Create from dictionary representation."""
        return cls(judge_id=data.get("judge_id"), reason=data["reason"])


@dataclass(frozen=True)
class CollectionResult:
    """Judge scores accepted for one execution."""

    execution_id: str
    scores: Tuple[JudgeScore, ...]
    skipped: Tuple[SkippedRecord, ...] = ()
    capped: Tuple[str, ...] = ()  # judge ids dropped by per-type caps

    def __post_init__(self):
        object.__setattr__(self, "scores", tuple(self.scores))
        object.__setattr__(self, "skipped", tuple(self.skipped))
        object.__setattr__(self, "capped", tuple(self.capped))

    @property
    def judge_count(self) -> int:
        return len(self.scores)

    @property
    def judge_ids(self) -> Tuple[str, ...]:
        return tuple(score.judge_id for score in self.scores)

    def counts_by_type(self) -> Dict[JudgeType, int]:
        """Accepted judges per judge type."""
        counts: Dict[JudgeType, int] = {}
        for score in self.scores:
            counts[score.judge_type] = counts.get(score.judge_type, 0) + 1
        return counts

    def get_score(self, judge_id: str) -> Optional[JudgeScore]:
        for score in self.scores:
            if score.judge_id == judge_id:
                return score
        return None

    def scores_for(self, criterion_id: str) -> List[JudgeScore]:
        """Judges that scored a criterion."""
        return [score for score in self.scores if score.has_criterion(criterion_id)]

    def without_judge(self, judge_id: str) -> "CollectionResult":
        """Collection with one judge removed."""
        return CollectionResult(
            execution_id=self.execution_id,
            scores=tuple(score for score in self.scores if score.judge_id != judge_id),
            skipped=self.skipped,
            capped=self.capped,
        )


@dataclass(frozen=True)
class WeightAssignment:
    """Raw weight per judge at each criterion and at the overall level."""

    weights: Dict[str, Dict[str, float]] = field(default_factory=dict)
    fallbacks: Tuple[str, ...] = ()  # levels that fell back to equal weights

    def weight_for(self, level: str, judge_id: str) -> float:
        """Raw weight of a judge, 0 when the judge did not score the level."""
        return self.weights.get(level, {}).get(judge_id, 0.0)

    def level(self, level: str) -> Dict[str, float]:
        return dict(self.weights.get(level, {}))

    def overall(self) -> Dict[str, float]:
        return self.level(OVERALL_LEVEL)
