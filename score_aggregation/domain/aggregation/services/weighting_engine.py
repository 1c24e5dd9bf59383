"""Weighting engine service for judge scores."""

import logging
from typing import Dict, List

from ..value_objects.aggregation_config import AggregationConfig, WeightingMethod
from ..value_objects.collection_result import OVERALL_LEVEL, CollectionResult, WeightAssignment
from ..value_objects.judge_score import JudgeScore

logger = logging.getLogger(__name__)


class WeightingEngine:
    """Service for assigning a raw weight to every judge score.

    Weights are computed per criterion over the judges that scored it, and
    once more at the overall level over every collected judge. They are not
    normalized globally; the aggregator normalizes per criterion.
    """

    def assign(self, collection: CollectionResult, config: AggregationConfig) -> WeightAssignment:
        """Assign weights using the configured weighting method."""
        weights: Dict[str, Dict[str, float]] = {}
        fallbacks: List[str] = []

        levels = [
            (criterion_id, collection.scores_for(criterion_id))
            for criterion_id in config.criterion_ids()
        ]
        levels.append((OVERALL_LEVEL, list(collection.scores)))

        for level, contributors in levels:
            if not contributors:
                weights[level] = {}
                continue

            base, fell_back = self._base_weights(contributors, config)
            if fell_back:
                fallbacks.append(level)

            weights[level] = {
                score.judge_id: base[score.judge_id] * self._multiplier(score, config)
                for score in contributors
            }

        if fallbacks:
            logger.debug(
                f"{config.weighting_method.value} weighting fell back to equal weights for: "
                f"{', '.join(fallbacks)}"
            )

        return WeightAssignment(weights=weights, fallbacks=tuple(fallbacks))

    def _base_weights(self, contributors: List[JudgeScore], config: AggregationConfig):
        method = config.weighting_method

        if method == WeightingMethod.EQUAL:
            return self._equal(contributors), False

        if method == WeightingMethod.QUALITY_BASED:
            return self._normalized(
                contributors, {s.judge_id: float(s.quality) for s in contributors}
            )

        if method == WeightingMethod.EXPERTISE_BASED:
            return self._normalized(
                contributors, {s.judge_id: float(s.effective_expertise) for s in contributors}
            )

        if method == WeightingMethod.REPUTATION_BASED:
            return self._normalized(
                contributors, {s.judge_id: float(s.effective_reputation) for s in contributors}
            )

        return self._hybrid(contributors, config)

    def _hybrid(self, contributors: List[JudgeScore], config: AggregationConfig):
        hybrid = config.hybrid_weights
        total = float(hybrid.total())

        components = [
            (float(hybrid.quality) / total, {s.judge_id: float(s.quality) for s in contributors}),
            (
                float(hybrid.expertise) / total,
                {s.judge_id: float(s.effective_expertise) for s in contributors},
            ),
            (
                float(hybrid.reputation) / total,
                {s.judge_id: float(s.effective_reputation) for s in contributors},
            ),
        ]

        combined = {score.judge_id: 0.0 for score in contributors}
        fell_back = False
        for share, signal in components:
            normalized, component_fell_back = self._normalized(contributors, signal)
            fell_back = fell_back or (component_fell_back and share > 0)
            for judge_id, value in normalized.items():
                combined[judge_id] += share * value

        return combined, fell_back

    def _normalized(self, contributors: List[JudgeScore], signal: Dict[str, float]):
        """Normalize a signal over the contributors, equal weights when it sums to 0."""
        total = sum(signal.values())
        if total <= 0:
            return self._equal(contributors), True
        return {judge_id: value / total for judge_id, value in signal.items()}, False

    @staticmethod
    def _equal(contributors: List[JudgeScore]) -> Dict[str, float]:
        weight = 1.0 / len(contributors)
        return {score.judge_id: weight for score in contributors}

    @staticmethod
    def _multiplier(score: JudgeScore, config: AggregationConfig) -> float:
        policy = config.policy_for(score.judge_type)
        multiplier = float(policy.weight_multiplier) if policy else 1.0
        override = config.judge_weight_overrides.get(score.judge_id)
        if override is not None:
            multiplier *= float(override)
        return multiplier
