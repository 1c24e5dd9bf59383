"""Conflict detection and resolution services for judge disagreements."""

import logging
import statistics
import warnings
from decimal import Decimal
from typing import Dict, List, Optional, Sequence

from scipy import stats

from ..exceptions import ConflictUnresolvedWarning
from ..value_objects.aggregation_config import AggregationConfig, ResolutionStrategy
from ..value_objects.conflict import (
    Conflict,
    ConflictParticipant,
    ConflictResolution,
    ConflictSeverity,
    JudgePosition,
)
from ..value_objects.precision import SCORE_SCALE, to_decimal
from ..value_objects.score_entry import ScoreEntry

logger = logging.getLogger(__name__)

TRIM_PROPORTION = 0.2


class ConflictDetector:
    """Service for finding severe judge disagreement on a criterion.

    Runs over every collected score, independently of outlier handling, so a
    judge excluded as an outlier still shows up as a disputed participant.
    """

    def detect(
        self, criterion_id: str, entries: Sequence[ScoreEntry], config: AggregationConfig
    ) -> Optional[Conflict]:
        """Detect a conflict on one criterion, None when the judges agree."""
        if len(entries) < 3:
            return None

        scores = [entry.score for entry in entries]
        mean_score = statistics.fmean(scores)
        std_dev = statistics.pstdev(scores)
        if std_dev == 0:
            return None

        threshold = float(config.conflict_threshold)
        participants = []
        max_z = 0.0

        for entry in entries:
            z_score = (entry.score - mean_score) / std_dev
            disputed = abs(z_score) > threshold
            if disputed:
                max_z = max(max_z, abs(z_score))

            participants.append(
                ConflictParticipant(
                    judge_id=entry.judge_id,
                    judge_type=entry.judge_type,
                    score=to_decimal(entry.score),
                    z_score=to_decimal(z_score),
                    position=self._position(z_score),
                    disputed=disputed,
                )
            )

        if not any(participant.disputed for participant in participants):
            return None

        conflict = Conflict(
            criterion_id=criterion_id,
            severity=ConflictSeverity.from_z_score(max_z),
            max_z_score=to_decimal(max_z),
            detection_confidence=to_decimal(min(1.0, max_z / 3)),
            mean_score=to_decimal(mean_score),
            participants=tuple(participants),
        )

        logger.info(
            f"Detected {conflict.severity.value} conflict on '{criterion_id}': "
            f"disputed judges {', '.join(conflict.disputed_judges)}"
        )
        return conflict

    @staticmethod
    def _position(z_score: float) -> JudgePosition:
        if abs(z_score) <= 1:
            return JudgePosition.NEUTRAL
        return JudgePosition.HIGHER if z_score > 0 else JudgePosition.LOWER


class ConflictResolver:
    """Service for settling a detected conflict with the configured strategy."""

    def resolve(
        self,
        conflict: Conflict,
        entries: Sequence[ScoreEntry],
        config: AggregationConfig,
        warn: bool = True,
    ) -> Conflict:
        """Attach a resolution to a conflict."""
        strategy = config.resolution_strategy
        by_judge = {entry.judge_id: entry for entry in entries}

        if strategy == ResolutionStrategy.MAJORITY_RULE:
            resolution = self._majority_rule(conflict)
        elif strategy == ResolutionStrategy.EXPERT_OVERRIDE:
            resolution = self._expert_override(conflict)
        elif strategy == ResolutionStrategy.QUALITY_WEIGHTED:
            resolution = self._quality_weighted(conflict, by_judge)
        elif strategy == ResolutionStrategy.AUTOMATED_RESOLUTION:
            resolution = self._automated(conflict, float(config.smoothing_factor))
        else:
            resolution = self._deliberation(conflict)

        if resolution.resolved:
            logger.info(
                f"Resolved conflict on '{conflict.criterion_id}' by {strategy.value}: "
                f"{resolution.adjusted_score}"
            )
        elif warn:
            logger.warning(
                f"Conflict on '{conflict.criterion_id}' requires deliberation "
                f"({len(conflict.disputed_judges)} disputed judge(s))"
            )
            warnings.warn(
                f"Conflict on '{conflict.criterion_id}' left for human deliberation",
                ConflictUnresolvedWarning,
                stacklevel=2,
            )

        return Conflict(
            criterion_id=conflict.criterion_id,
            severity=conflict.severity,
            max_z_score=conflict.max_z_score,
            detection_confidence=conflict.detection_confidence,
            mean_score=conflict.mean_score,
            participants=conflict.participants,
            resolution=resolution,
        )

    def _majority_rule(self, conflict: Conflict) -> ConflictResolution:
        """Adopt the mode of the non-disputed cluster."""
        cluster = [float(p.score) for p in conflict.participants if not p.disputed]
        if not cluster:
            return self._deliberation(conflict)

        modes = statistics.multimode(cluster)
        if len(modes) == len(set(cluster)) and len(set(cluster)) > 1:
            # No repeated score, the cluster median stands in for the mode
            adopted = float(statistics.median(cluster))
        else:
            adopted = min(modes)

        return ConflictResolution(
            strategy=ResolutionStrategy.MAJORITY_RULE,
            resolved=True,
            explanation=(
                f"Adopted the majority view of {len(cluster)} of "
                f"{len(conflict.participants)} judges"
            ),
            confidence=to_decimal(len(cluster) / len(conflict.participants)),
            adjusted_score=to_decimal(adopted),
        )

    def _expert_override(self, conflict: Conflict) -> ConflictResolution:
        """Adopt the mean score of the most authoritative judge type present."""
        top_type = max(
            (p.judge_type for p in conflict.participants), key=lambda t: t.expertise_rank
        )
        expert_scores = [float(p.score) for p in conflict.participants if p.judge_type == top_type]

        return ConflictResolution(
            strategy=ResolutionStrategy.EXPERT_OVERRIDE,
            resolved=True,
            explanation=f"Deferred to {len(expert_scores)} {top_type.label} judge(s)",
            confidence=top_type.default_expertise,
            adjusted_score=to_decimal(statistics.fmean(expert_scores)),
        )

    def _quality_weighted(
        self, conflict: Conflict, by_judge: Dict[str, ScoreEntry]
    ) -> ConflictResolution:
        """Quality-weighted mean after dropping the lowest-quality judges."""
        qualities = {p.judge_id: by_judge[p.judge_id].quality for p in conflict.participants}
        lowest = min(qualities.values())
        kept = [p for p in conflict.participants if qualities[p.judge_id] > lowest]
        if not kept:
            kept = list(conflict.participants)  # everyone shares the same quality

        total_quality = sum(qualities[p.judge_id] for p in kept)
        if total_quality > 0:
            adopted = sum(float(p.score) * qualities[p.judge_id] for p in kept) / total_quality
        else:
            adopted = statistics.fmean(float(p.score) for p in kept)

        return ConflictResolution(
            strategy=ResolutionStrategy.QUALITY_WEIGHTED,
            resolved=True,
            explanation=(
                f"Quality-weighted mean of {len(kept)} judges, "
                f"{len(conflict.participants) - len(kept)} lowest-quality judge(s) dropped"
            ),
            confidence=to_decimal(min(1.0, statistics.fmean(qualities[p.judge_id] for p in kept))),
            adjusted_score=to_decimal(adopted),
        )

    def _automated(self, conflict: Conflict, smoothing_factor: float) -> ConflictResolution:
        """Smooth every score toward the trimmed mean and adopt the smoothed mean."""
        scores = [float(p.score) for p in conflict.participants]
        trimmed_mean = float(stats.trim_mean(scores, TRIM_PROPORTION))

        smoothed: Dict[str, Decimal] = {}
        values: List[float] = []
        for participant in conflict.participants:
            score = float(participant.score)
            value = score + smoothing_factor * (trimmed_mean - score)
            smoothed[participant.judge_id] = to_decimal(value)
            values.append(value)

        spread = statistics.pstdev(values) / SCORE_SCALE
        return ConflictResolution(
            strategy=ResolutionStrategy.AUTOMATED_RESOLUTION,
            resolved=True,
            explanation=(
                f"Smoothed scores toward the trimmed mean {trimmed_mean:.3f} "
                f"with factor {smoothing_factor}"
            ),
            confidence=to_decimal(max(0.0, 1 - spread)),
            adjusted_score=to_decimal(statistics.fmean(values)),
            adjusted_judge_scores=smoothed,
        )

    @staticmethod
    def _deliberation(conflict: Conflict) -> ConflictResolution:
        return ConflictResolution(
            strategy=ResolutionStrategy.DELIBERATION_REQUIRED,
            resolved=False,
            explanation=(
                f"Human sign-off required for {len(conflict.disputed_judges)} disputed judge(s)"
            ),
            confidence=Decimal("0"),
        )
