"""Confidence calculator service for aggregated scores."""

import logging
import math
import statistics
from decimal import Decimal
from typing import Callable, Dict, List, Mapping, Optional, Sequence

from scipy.stats import norm

from ..value_objects.aggregation_config import AggregationConfig
from ..value_objects.collection_result import CollectionResult
from ..value_objects.confidence_metrics import (
    ConfidenceInterval,
    ConfidenceMetrics,
    ConfidenceTier,
)
from ..value_objects.consensus_metrics import ConsensusMetrics
from ..value_objects.criterion_score import AggregatedCriterionScore
from ..value_objects.judge_score import JudgeScore
from ..value_objects.precision import MAX_SCORE_VARIANCE, SCORE_SCALE, to_decimal
from ..value_objects.score_entry import ScoreEntry

logger = logging.getLogger(__name__)

LeaveOneOut = Callable[[str], Optional[Decimal]]


class ConfidenceCalculator:
    """Service for calibrating how far an aggregated score can be trusted."""

    def confidence_factors(
        self,
        judges: Sequence[JudgeScore],
        variance: float,
        consensus: float,
        config: AggregationConfig,
    ) -> Dict[str, float]:
        """Individual confidence signals, each in [0, 1]."""
        if not judges:
            return {name: 0.0 for name in config.confidence_weights.as_dict()}

        return {
            "judge_count": 1 - math.exp(-len(judges) / float(config.judge_count_saturation)),
            "judge_quality": statistics.fmean(float(j.quality) for j in judges),
            "score_variance": 1 - min(1.0, variance / MAX_SCORE_VARIANCE),
            "consensus": min(1.0, max(0.0, consensus)),
            "expertise": statistics.fmean(float(j.effective_expertise) for j in judges),
            "historical_accuracy": statistics.fmean(
                float(j.effective_historical_accuracy) for j in judges
            ),
        }

    def combine(self, factors: Mapping[str, float], config: AggregationConfig) -> float:
        """Weighted sum of the factors with the weights normalized."""
        weights = {name: float(w) for name, w in config.confidence_weights.as_dict().items()}
        total = sum(weights.values())
        return sum(factors.get(name, 0.0) * weight for name, weight in weights.items()) / total

    def calculate(
        self,
        collection: CollectionResult,
        criteria: Sequence[AggregatedCriterionScore],
        criterion_entries: Mapping[str, List[ScoreEntry]],
        consensus: ConsensusMetrics,
        overall_score: Decimal,
        config: AggregationConfig,
        leave_one_out: Optional[LeaveOneOut] = None,
    ) -> ConfidenceMetrics:
        """Compute overall, per-criterion and per-judge-type confidence."""
        scored = [criterion for criterion in criteria if criterion.is_scored]
        weight_total = sum(float(c.weight) for c in scored)
        if scored and weight_total > 0:
            variance = sum(float(c.distribution.variance) * float(c.weight) for c in scored)
            variance /= weight_total
        else:
            variance = 0.0

        factors = self.confidence_factors(
            collection.scores, variance, float(consensus.consensus_level), config
        )
        overall = self.combine(factors, config)
        z_value = float(norm.ppf(1 - (1 - float(config.confidence_level)) / 2))

        criterion_confidence: Dict[str, Decimal] = {}
        criterion_intervals: Dict[str, ConfidenceInterval] = {}
        standard_errors: Dict[str, float] = {}

        for criterion in criteria:
            entries = criterion_entries.get(criterion.criterion_id, [])
            retained = [entry for entry in entries if entry.is_retained]
            judges = [collection.get_score(entry.judge_id) for entry in retained]
            agreement = consensus.criterion_agreement.get(criterion.criterion_id, Decimal("0"))

            criterion_factors = self.confidence_factors(
                judges, float(criterion.distribution.variance), float(agreement), config
            )
            criterion_confidence[criterion.criterion_id] = to_decimal(
                self.combine(criterion_factors, config)
            )

            if retained:
                standard_error = float(criterion.distribution.stddev) / math.sqrt(len(retained))
                standard_errors[criterion.criterion_id] = standard_error
                criterion_intervals[criterion.criterion_id] = self._interval(
                    float(criterion.aggregated_score), standard_error, z_value, config
                )

        overall_se = 0.0
        if weight_total > 0:
            overall_se = math.sqrt(
                sum(
                    (float(c.weight) / weight_total * standard_errors[c.criterion_id]) ** 2
                    for c in scored
                )
            )

        judge_type_confidence = self._judge_type_confidence(collection, consensus, config)

        stability, max_change, influential = self._stability(
            collection, overall_score, leave_one_out
        )

        overall_decimal = to_decimal(overall)
        logger.debug(
            f"Confidence for execution {collection.execution_id}: {overall_decimal} "
            f"(stability {stability:.3f})"
        )

        return ConfidenceMetrics(
            overall_confidence=overall_decimal,
            tier=ConfidenceTier.from_value(overall_decimal),
            factors={name: to_decimal(value) for name, value in factors.items()},
            overall_interval=self._interval(float(overall_score), overall_se, z_value, config),
            criterion_confidence=criterion_confidence,
            judge_type_confidence=judge_type_confidence,
            criterion_intervals=criterion_intervals,
            stability_score=to_decimal(stability),
            max_change_pct=to_decimal(max_change),
            most_influential_judge=influential,
        )

    def _judge_type_confidence(
        self, collection: CollectionResult, consensus: ConsensusMetrics, config: AggregationConfig
    ) -> Dict[str, Decimal]:
        by_type: Dict[str, List[JudgeScore]] = {}
        for score in collection.scores:
            by_type.setdefault(score.judge_type.value, []).append(score)

        result = {}
        for judge_type, judges in sorted(by_type.items()):
            scores = [float(j.overall_score) for j in judges]
            variance = statistics.pvariance(scores) if len(scores) > 1 else 0.0
            agreement = consensus.judge_type_agreement.get(judge_type, consensus.consensus_level)
            factors = self.confidence_factors(judges, variance, float(agreement), config)
            result[judge_type] = to_decimal(self.combine(factors, config))
        return result

    @staticmethod
    def _interval(
        center: float, standard_error: float, z_value: float, config: AggregationConfig
    ) -> ConfidenceInterval:
        margin = z_value * standard_error
        return ConfidenceInterval(
            lower=to_decimal(max(0.0, center - margin)),
            upper=to_decimal(min(SCORE_SCALE, center + margin)),
            level=config.confidence_level,
        )

    def _stability(
        self,
        collection: CollectionResult,
        overall_score: Decimal,
        leave_one_out: Optional[LeaveOneOut],
    ):
        """Largest percentage swing of the overall score when one judge is removed."""
        if leave_one_out is None or collection.judge_count < 2:
            return 1.0, 0.0, None

        base = float(overall_score)
        max_change = 0.0
        influential = None

        for judge_id in sorted(collection.judge_ids):
            reduced = leave_one_out(judge_id)
            if reduced is None:
                continue

            difference = abs(float(reduced) - base)
            change = difference / base * 100 if base > 0 else difference
            if change > max_change:
                max_change = change
                influential = judge_id

        return max(0.0, 1 - max_change / 100), max_change, influential
