"""Working score entry passed between aggregation stages."""

from dataclasses import dataclass, replace
from typing import Tuple

from .judge_type import JudgeType


@dataclass(frozen=True)
class ScoreEntry:
    """One judge's normalized score on one criterion, with its current weight."""

    judge_id: str
    judge_type: JudgeType
    criterion_id: str
    raw_score: float
    score: float  # normalized to 0-100
    weight: float
    quality: float
    expertise: float
    excluded: bool = False
    downgraded: bool = False
    annotations: Tuple[str, ...] = ()

    @property
    def is_retained(self) -> bool:
        """Entry still contributes to the aggregate."""
        return not self.excluded

    def with_weight(self, weight: float) -> "ScoreEntry":
        return replace(self, weight=weight)

    def excluded_as(self, annotation: str) -> "ScoreEntry":
        return replace(self, excluded=True, annotations=self.annotations + (annotation,))

    def downgraded_as(self, annotation: str) -> "ScoreEntry":
        return replace(
            self,
            weight=self.weight / 2,
            downgraded=True,
            annotations=self.annotations + (annotation,),
        )

    def annotated(self, annotation: str) -> "ScoreEntry":
        return replace(self, annotations=self.annotations + (annotation,))
