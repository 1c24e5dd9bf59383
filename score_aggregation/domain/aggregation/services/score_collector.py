"""Score collector service for judge submissions."""

import logging
from typing import Any, Dict, Iterable, List, Optional, Set, Union

from ..exceptions import InsufficientJudgesError, ValidationError
from ..value_objects.aggregation_config import AggregationConfig
from ..value_objects.collection_result import CollectionResult, SkippedRecord
from ..value_objects.judge_score import JudgeScore

logger = logging.getLogger(__name__)

RawRecord = Union[JudgeScore, Dict[str, Any]]


class ScoreCollector:
    """Service for gathering the judge scores that feed one aggregation."""

    def collect(
        self, execution_id: str, config: AggregationConfig, records: Iterable[RawRecord]
    ) -> CollectionResult:
        """Validate a snapshot of submitted records and enforce the quorum."""
        accepted: List[JudgeScore] = []
        skipped: List[SkippedRecord] = []
        seen: Set[str] = set()

        for record in records:
            score, reason = self._accept(execution_id, config, record, seen)
            if score is None:
                skipped.append(SkippedRecord(judge_id=self._judge_id_of(record), reason=reason))
                logger.warning(
                    f"Skipped record from judge {self._judge_id_of(record)} "
                    f"for execution {execution_id}: {reason}"
                )
                continue

            accepted.append(score)

        kept, capped = self._apply_caps(config, accepted)
        for judge_id in capped:
            skipped.append(SkippedRecord(judge_id=judge_id, reason="judge type cap reached"))

        collection = CollectionResult(
            execution_id=execution_id,
            scores=tuple(kept),
            skipped=tuple(skipped),
            capped=tuple(capped),
        )
        self._check_quorum(config, collection)

        logger.info(
            f"Collected {collection.judge_count} judge scores for execution {execution_id} "
            f"({len(skipped)} skipped)"
        )
        return collection

    def _accept(
        self,
        execution_id: str,
        config: AggregationConfig,
        record: RawRecord,
        seen: Set[str],
    ):
        """Return (score, None) for an accepted record or (None, reason)."""
        if isinstance(record, dict):
            tagged = record.get("execution_id")
            if tagged is not None and str(tagged) != execution_id:
                return None, f"record belongs to execution {tagged}"
            try:
                score = JudgeScore.from_dict(record)
            except ValidationError as e:
                return None, f"malformed record: {e}"
        elif isinstance(record, JudgeScore):
            score = record
        else:
            return None, f"malformed record: unsupported type {type(record).__name__}"

        if score.judge_id in seen:
            return None, "duplicate submission"
        # A judge's first parsed record counts even when it is rejected below
        seen.add(score.judge_id)

        policy = config.policy_for(score.judge_type)
        if policy is None:
            return None, f"judge type {score.judge_type} is not enabled"

        for criterion_id, raw_score in score.criterion_scores.items():
            criterion = config.get_criterion(criterion_id)
            if criterion is None:
                return None, f"unknown criterion '{criterion_id}'"
            if not criterion.is_valid_score(raw_score):
                return None, (
                    f"score {raw_score} for '{criterion_id}' exceeds maximum {criterion.max_score}"
                )

        if score.quality < policy.quality_threshold:
            return None, (
                f"quality {score.quality} below threshold {policy.quality_threshold} "
                f"for {score.judge_type}"
            )

        return score, None

    def _apply_caps(self, config: AggregationConfig, scores: List[JudgeScore]):
        """Keep at most maximum_count judges per type, best quality first."""
        capped: List[str] = []
        dropped: Set[str] = set()

        for policy in config.judge_types:
            if policy.maximum_count is None:
                continue

            of_type = [score for score in scores if score.judge_type == policy.judge_type]
            if len(of_type) <= policy.maximum_count:
                continue

            ranked = sorted(of_type, key=lambda s: (-s.quality, -s.confidence, s.judge_id))
            for score in ranked[policy.maximum_count :]:
                dropped.add(score.judge_id)
                capped.append(score.judge_id)

            logger.debug(
                f"Capped {policy.judge_type} at {policy.maximum_count} judges, "
                f"dropped {len(of_type) - policy.maximum_count}"
            )

        kept = [score for score in scores if score.judge_id not in dropped]
        return kept, sorted(capped)

    def _check_quorum(self, config: AggregationConfig, collection: CollectionResult) -> None:
        counts = collection.counts_by_type()
        shortfalls: Dict[str, int] = {}

        for policy in config.judge_types:
            present = counts.get(policy.judge_type, 0)
            if present < policy.minimum_count:
                shortfalls[policy.judge_type.value] = policy.minimum_count - present

        if collection.judge_count < config.minimum_total_judges:
            shortfalls["total"] = config.minimum_total_judges - collection.judge_count

        if shortfalls:
            details = ", ".join(f"{name} short by {n}" for name, n in shortfalls.items())
            raise InsufficientJudgesError(
                f"Judge quorum not met for execution {collection.execution_id}: {details}",
                shortfalls=shortfalls,
            )

    @staticmethod
    def _judge_id_of(record: RawRecord) -> Optional[str]:
        if isinstance(record, JudgeScore):
            return record.judge_id
        if isinstance(record, dict) and record.get("judge_id") is not None:
            return str(record["judge_id"])
        return None

