"""Score aggregator service for weighted judge scores."""

import logging
import statistics
from decimal import Decimal
from typing import List, Sequence

from ..value_objects.aggregation_config import (
    AggregationConfig,
    AggregationMethod,
    CriterionDefinition,
)
from ..value_objects.criterion_score import (
    AggregatedCriterionScore,
    JudgeContribution,
    OutlierRecord,
)
from ..value_objects.precision import to_decimal
from ..value_objects.score_distribution import ScoreDistribution
from ..value_objects.score_entry import ScoreEntry

logger = logging.getLogger(__name__)


class ScoreAggregator:
    """Service for combining weighted judge scores per criterion."""

    def weighted_average(self, entries: Sequence[ScoreEntry]) -> float:
        """Weighted mean of the retained scores."""
        retained = [entry for entry in entries if entry.is_retained]
        if not retained:
            return 0.0

        total_weight = sum(entry.weight for entry in retained)
        if total_weight <= 0:
            return statistics.fmean(entry.score for entry in retained)

        return sum(entry.score * entry.weight for entry in retained) / total_weight

    def median(self, entries: Sequence[ScoreEntry]) -> float:
        """Middle of the sorted retained scores."""
        retained = [entry.score for entry in entries if entry.is_retained]
        if not retained:
            return 0.0
        return float(statistics.median(retained))

    def bayesian(
        self, entries: Sequence[ScoreEntry], reference_mean: float, shrinkage: float
    ) -> float:
        """Shrink the weighted average toward a historical reference mean.

        This is a tunable heuristic, not a posterior: with shrinkage 0 it is the
        weighted average, with shrinkage 1 it is the reference mean.
        """
        average = self.weighted_average(entries)
        return average + shrinkage * (reference_mean - average)

    def aggregate_criterion(
        self,
        criterion: CriterionDefinition,
        entries: List[ScoreEntry],
        config: AggregationConfig,
        outliers: Sequence[OutlierRecord] = (),
    ) -> AggregatedCriterionScore:
        """Aggregate one criterion with the configured method."""
        retained = [entry for entry in entries if entry.is_retained]
        method = config.aggregation_method

        if not retained:
            value = 0.0
        elif method == AggregationMethod.MEDIAN:
            value = self.median(entries)
        elif method == AggregationMethod.BAYESIAN:
            value = self.bayesian(
                entries,
                float(config.reference_mean(criterion.criterion_id)),
                float(config.bayesian_shrinkage),
            )
        else:
            value = self.weighted_average(entries)

        logger.debug(
            f"Aggregated '{criterion.criterion_id}' with {method.value} over "
            f"{len(retained)}/{len(entries)} scores: {value:.3f}"
        )

        return AggregatedCriterionScore(
            criterion_id=criterion.criterion_id,
            weight=criterion.weight,
            aggregated_score=to_decimal(min(100.0, max(0.0, value))),
            distribution=ScoreDistribution.from_scores(
                [entry.score for entry in retained], bins=config.histogram_bins
            ),
            contributions=tuple(self._contributions(entries)),
            outliers=tuple(outliers),
        )

    def _contributions(self, entries: List[ScoreEntry]) -> List[JudgeContribution]:
        total_weight = sum(entry.weight for entry in entries if entry.is_retained)
        contributions = []

        for entry in entries:
            if entry.is_retained and total_weight > 0:
                normalized_weight = entry.weight / total_weight
            else:
                normalized_weight = 0.0

            contributions.append(
                JudgeContribution(
                    judge_id=entry.judge_id,
                    judge_type=entry.judge_type,
                    raw_score=to_decimal(entry.raw_score),
                    normalized_score=to_decimal(entry.score),
                    weight=to_decimal(entry.weight),
                    normalized_weight=to_decimal(normalized_weight),
                    contribution=to_decimal(entry.score * normalized_weight),
                    excluded=entry.excluded,
                    downgraded=entry.downgraded,
                )
            )

        return contributions

    def overall_score(self, criteria: Sequence[AggregatedCriterionScore]) -> Decimal:
        """Weighted sum of aggregated criterion scores over the scored criteria."""
        scored = [criterion for criterion in criteria if criterion.is_scored]
        if not scored:
            return Decimal("0.000")

        total_weight = sum(float(criterion.weight) for criterion in scored)
        if total_weight <= 0:
            value = statistics.fmean(float(criterion.aggregated_score) for criterion in scored)
        else:
            value = (
                sum(float(c.aggregated_score) * float(c.weight) for c in scored) / total_weight
            )

        return to_decimal(min(100.0, max(0.0, value)))
