"""Consensus calculator service for judge agreement."""

import itertools
import logging
import statistics
from typing import Dict, List, Mapping, Sequence, Tuple

from ..value_objects.aggregation_config import AggregationConfig, ConsensusMethod
from ..value_objects.collection_result import CollectionResult, WeightAssignment
from ..value_objects.consensus_metrics import ConsensusMetrics
from ..value_objects.precision import MAX_SCORE_VARIANCE, SCORE_SCALE, to_decimal
from ..value_objects.score_entry import ScoreEntry

logger = logging.getLogger(__name__)


def pairwise_agreement(scores: Sequence[float]) -> float:
    """Mean over unordered pairs of 1 - |si - sj| / 100, 0 for fewer than 2 scores."""
    if len(scores) < 2:
        return 0.0

    pairs = list(itertools.combinations(scores, 2))
    return sum(1 - abs(a - b) / SCORE_SCALE for a, b in pairs) / len(pairs)


def polarization(scores: Sequence[float]) -> float:
    """Variance of the scores relative to a fully split panel."""
    if len(scores) < 2:
        return 0.0
    return min(1.0, statistics.pvariance(scores) / MAX_SCORE_VARIANCE)


class ConsensusCalculator:
    """Service for measuring how strongly judges agree."""

    def calculate(
        self,
        collection: CollectionResult,
        criterion_entries: Mapping[str, List[ScoreEntry]],
        assignment: WeightAssignment,
        config: AggregationConfig,
    ) -> ConsensusMetrics:
        """Measure agreement overall, per criterion and per judge type."""
        overall_scores = {score.judge_id: float(score.overall_score) for score in collection.scores}
        overall_agreement = pairwise_agreement(list(overall_scores.values()))

        criterion_agreement = {
            criterion_id: to_decimal(
                pairwise_agreement([entry.score for entry in entries if entry.is_retained])
            )
            for criterion_id, entries in criterion_entries.items()
        }

        by_type: Dict[str, List[float]] = {}
        for score in collection.scores:
            by_type.setdefault(score.judge_type.value, []).append(float(score.overall_score))
        judge_type_agreement = {
            judge_type: to_decimal(pairwise_agreement(scores))
            for judge_type, scores in sorted(by_type.items())
            if len(scores) >= 2
        }

        if config.consensus_method == ConsensusMethod.ITERATIVE:
            iterations, final_agreement, converged, discarded = self._iterate(
                overall_scores, assignment.overall(), overall_agreement, config
            )
        else:
            iterations, final_agreement, converged, discarded = 0, overall_agreement, True, ()

        if overall_agreement > 0:
            convergence_rate = final_agreement / overall_agreement
        else:
            convergence_rate = 1.0

        logger.debug(
            f"Consensus for execution {collection.execution_id}: "
            f"{config.consensus_method.value} agreement {final_agreement:.3f} "
            f"after {iterations} iteration(s)"
        )

        return ConsensusMetrics(
            consensus_level=to_decimal(final_agreement),
            overall_agreement=to_decimal(overall_agreement),
            polarization=to_decimal(polarization(list(overall_scores.values()))),
            method=config.consensus_method,
            criterion_agreement=criterion_agreement,
            judge_type_agreement=judge_type_agreement,
            agreement_matrix=self.agreement_matrix(overall_scores),
            iterations=iterations,
            initial_agreement=to_decimal(overall_agreement),
            final_agreement=to_decimal(final_agreement),
            convergence_rate=to_decimal(convergence_rate),
            converged=converged,
            discarded_judges=discarded,
        )

    def agreement_matrix(self, scores: Mapping[str, float]):
        """Agreement between every pair of judges."""
        return {
            judge_id: {
                other_id: to_decimal(1 - abs(score - other) / SCORE_SCALE)
                for other_id, other in scores.items()
            }
            for judge_id, score in scores.items()
        }

    def _iterate(
        self,
        scores: Dict[str, float],
        weights: Dict[str, float],
        initial_agreement: float,
        config: AggregationConfig,
    ) -> Tuple[int, float, bool, Tuple[str, ...]]:
        """Delphi-style refinement, bounded by the iteration cap."""
        threshold = float(config.outlier_threshold)
        epsilon = float(config.consensus_epsilon)

        kept = dict(scores)
        agreement = initial_agreement
        discarded: List[str] = []
        iterations = 0
        converged = False

        while iterations < config.consensus_max_iterations:
            iterations += 1

            if len(kept) < 2:
                break

            total_weight = sum(weights.get(judge_id, 0.0) for judge_id in kept)
            if total_weight > 0:
                center = sum(s * weights.get(j, 0.0) for j, s in kept.items()) / total_weight
            else:
                center = statistics.fmean(kept.values())

            std_dev = statistics.pstdev(kept.values())
            if std_dev == 0:
                converged = True
                break

            far = sorted(j for j, s in kept.items() if abs(s - center) / std_dev > threshold)
            if not far:
                converged = True
                break

            remaining = {j: s for j, s in kept.items() if j not in far}
            if len(remaining) < 2:
                break

            new_agreement = pairwise_agreement(list(remaining.values()))
            improvement = new_agreement - agreement
            if improvement < 0:
                converged = True
                break

            kept = remaining
            discarded.extend(far)
            agreement = new_agreement

            if improvement < epsilon:
                converged = True
                break

        return iterations, agreement, converged, tuple(discarded)
