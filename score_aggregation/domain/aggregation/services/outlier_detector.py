"""Outlier detector service for criterion scores."""

import logging
import statistics
from typing import Dict, List, Sequence, Tuple

from ..exceptions import OutlierExclusionViolatesMinimumError
from ..value_objects.aggregation_config import AggregationConfig, OutlierAction
from ..value_objects.criterion_score import OutlierRecord
from ..value_objects.judge_type import JudgeType
from ..value_objects.precision import to_decimal
from ..value_objects.score_entry import ScoreEntry

logger = logging.getLogger(__name__)

MINIMUM_SAMPLE = 3
IQR_MINIMUM_SAMPLE = 5


class OutlierDetector:
    """Service for identifying and handling anomalous judge scores."""

    def detect(
        self, scores: Sequence[float], threshold: float, iqr_fallback: bool = True
    ) -> List[Tuple[int, float, str]]:
        """Identify outliers, returning (index, z score, method) per outlier."""
        if len(scores) < MINIMUM_SAMPLE:
            return []  # Need at least 3 data points for outlier detection

        mean_score = statistics.fmean(scores)
        std_dev = statistics.pstdev(scores)

        if std_dev == 0:
            return []

        z_scores = [abs(score - mean_score) / std_dev for score in scores]
        outliers = [(i, z, "z_score") for i, z in enumerate(z_scores) if z > threshold]

        # IQR-based outlier detection as backup against masking
        if not outliers and iqr_fallback and len(scores) >= IQR_MINIMUM_SAMPLE:
            outliers = [(i, z_scores[i], "iqr") for i in self._detect_outliers_iqr(scores)]

        return outliers

    def _detect_outliers_iqr(self, scores: Sequence[float]) -> List[int]:
        """Detect outliers using Interquartile Range method."""
        sorted_scores = sorted(scores)
        n = len(sorted_scores)

        q1 = sorted_scores[n // 4]
        q3 = sorted_scores[3 * n // 4]

        iqr = q3 - q1
        if iqr == 0:
            return []  # No variation in scores

        lower_bound = q1 - 1.5 * iqr
        upper_bound = q3 + 1.5 * iqr

        return [i for i, score in enumerate(scores) if score < lower_bound or score > upper_bound]

    def process(
        self,
        criterion_id: str,
        entries: List[ScoreEntry],
        config: AggregationConfig,
        enforce_minimums: bool = True,
    ) -> Tuple[List[ScoreEntry], List[OutlierRecord]]:
        """Detect outliers on one criterion and apply the configured action."""
        scores = [entry.score for entry in entries]
        detected = self.detect(
            scores, float(config.outlier_threshold), iqr_fallback=config.outlier_iqr_fallback
        )
        if not detected:
            return list(entries), []

        action = config.outlier_action
        processed = list(entries)
        records: List[OutlierRecord] = []

        for index, z_score, method in detected:
            entry = processed[index]
            records.append(
                OutlierRecord(
                    judge_id=entry.judge_id,
                    criterion_id=criterion_id,
                    score=to_decimal(entry.score),
                    z_score=to_decimal(z_score),
                    method=method,
                    action=action,
                )
            )
            processed[index] = self._apply_action(entry, action)

        logger.info(
            f"Detected {len(records)} outlier(s) on '{criterion_id}' "
            f"({', '.join(r.judge_id for r in records)}), action {action.value}"
        )

        if enforce_minimums and action == OutlierAction.EXCLUDE:
            self._check_minimums(criterion_id, entries, processed, config)

        return processed, records

    @staticmethod
    def _apply_action(entry: ScoreEntry, action: OutlierAction) -> ScoreEntry:
        if action == OutlierAction.EXCLUDE:
            return entry.excluded_as("outlier_excluded")
        if action == OutlierAction.DOWNGRADE:
            return entry.downgraded_as("outlier_downgraded")
        if action == OutlierAction.FLAG_FOR_REVIEW:
            return entry.annotated("flagged_for_review")
        if action == OutlierAction.INVESTIGATE:
            return entry.annotated("investigate")
        return entry

    def _check_minimums(
        self,
        criterion_id: str,
        before: List[ScoreEntry],
        after: List[ScoreEntry],
        config: AggregationConfig,
    ) -> None:
        """Re-check per-type and global minimums after exclusions."""
        excluded = [entry for entry in after if entry.excluded]
        before_counts = self._retained_by_type(before)
        after_counts = self._retained_by_type(after)
        violating: List[str] = []

        for policy in config.judge_types:
            had = before_counts.get(policy.judge_type, 0)
            has = after_counts.get(policy.judge_type, 0)
            if had >= policy.minimum_count > has:
                violating.extend(
                    entry.judge_id for entry in excluded if entry.judge_type == policy.judge_type
                )

        retained_before = sum(before_counts.values())
        retained_after = sum(after_counts.values())
        if retained_before >= config.minimum_total_judges > retained_after:
            violating.extend(entry.judge_id for entry in excluded)

        if violating:
            judge_ids = sorted(set(violating))
            raise OutlierExclusionViolatesMinimumError(
                f"Excluding outliers on '{criterion_id}' would breach a judge minimum: "
                f"{', '.join(judge_ids)}",
                judge_ids=judge_ids,
            )

    @staticmethod
    def _retained_by_type(entries: List[ScoreEntry]) -> Dict[JudgeType, int]:
        counts: Dict[JudgeType, int] = {}
        for entry in entries:
            if entry.is_retained:
                counts[entry.judge_type] = counts.get(entry.judge_type, 0) + 1
        return counts
