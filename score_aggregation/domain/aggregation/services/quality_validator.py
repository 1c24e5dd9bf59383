"""Quality validator service for aggregated scores."""

import logging
from decimal import Decimal
from typing import List

from ..entities.aggregated_score import AggregatedScore
from ..value_objects.aggregation_config import AggregationConfig
from ..value_objects.judge_type import JudgeType
from ..value_objects.validation_result import QualityCheck, ValidationResult

logger = logging.getLogger(__name__)


class QualityValidator:
    """Service for checking a finished score against the quality thresholds.

    Validation is advisory: a failing result is flagged for human attention
    but still persisted.
    """

    def validate(self, score: AggregatedScore, config: AggregationConfig) -> ValidationResult:
        """Run every quality check and collect recommendations."""
        thresholds = config.quality_thresholds
        required = set(thresholds.required_checks)

        judge_count = len(score.judge_ids)
        confidence = score.confidence.overall_confidence
        variance = max(
            (c.distribution.variance for c in score.criteria if c.is_scored),
            default=Decimal("0.000"),
        )
        consensus = score.consensus.consensus_level

        checks = [
            QualityCheck(
                name="judge_count",
                passed=judge_count >= thresholds.minimum_judge_count,
                score=Decimal(judge_count),
                threshold=Decimal(thresholds.minimum_judge_count),
                required="judge_count" in required,
                message=f"{judge_count} judges, {thresholds.minimum_judge_count} required",
            ),
            QualityCheck(
                name="confidence",
                passed=confidence >= thresholds.minimum_confidence,
                score=confidence,
                threshold=thresholds.minimum_confidence,
                required="confidence" in required,
                message=f"confidence {confidence} ({score.confidence.tier.value})",
            ),
            QualityCheck(
                name="variance",
                passed=variance <= thresholds.maximum_variance,
                score=variance,
                threshold=thresholds.maximum_variance,
                required="variance" in required,
                message=f"largest criterion variance {variance}",
            ),
            QualityCheck(
                name="consensus",
                passed=consensus >= thresholds.consensus_threshold,
                score=consensus,
                threshold=thresholds.consensus_threshold,
                required="consensus" in required,
                message=f"consensus level {consensus}",
            ),
        ]

        unresolved = len(score.unresolved_conflicts())
        recommendations = self._recommendations(score, config, checks, unresolved)
        passed = not any(check.is_blocking for check in checks) and unresolved == 0

        result = ValidationResult(
            passed=passed,
            checks=tuple(checks),
            recommendations=tuple(recommendations),
            unresolved_conflicts=unresolved,
        )

        if passed:
            logger.info(f"Aggregated score {score.execution_id} v{score.version} passed validation")
        else:
            failed = [check.name for check in result.failed_checks()]
            logger.warning(
                f"Aggregated score {score.execution_id} v{score.version} failed validation: "
                f"checks {failed}, {unresolved} unresolved conflict(s)"
            )

        return result

    def _recommendations(
        self,
        score: AggregatedScore,
        config: AggregationConfig,
        checks: List[QualityCheck],
        unresolved: int,
    ) -> List[str]:
        """Generate recommendations based on failed checks."""
        recommendations = []
        failed = {check.name for check in checks if not check.passed}
        escalation = self._escalation_type(config)

        if "judge_count" in failed:
            recommendations.append(f"Gather additional {escalation.label}")

        if "confidence" in failed:
            weakest = score.confidence.weakest_factor()
            if weakest:
                recommendations.append(
                    f"Improve {weakest.replace('_', ' ')} before relying on this score"
                )

        if "variance" in failed:
            noisy = max(
                (c for c in score.criteria if c.is_scored),
                key=lambda c: c.distribution.variance,
                default=None,
            )
            if noisy is not None:
                recommendations.append(
                    f"Investigate scoring spread on criterion '{noisy.criterion_id}'"
                )

        if "consensus" in failed:
            recommendations.append(f"Escalate to {escalation.label} to settle disagreement")

        if unresolved:
            recommendations.append(
                f"Resolve {unresolved} judge conflict(s) through deliberation before release"
            )

        return recommendations

    @staticmethod
    def _escalation_type(config: AggregationConfig) -> JudgeType:
        """The most authoritative enabled judge type."""
        return max(
            (policy.judge_type for policy in config.judge_types),
            key=lambda judge_type: judge_type.expertise_rank,
        )
