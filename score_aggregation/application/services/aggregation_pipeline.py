"""Aggregation pipeline composing the scoring stages."""

import logging
import warnings
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Tuple

from ...domain.aggregation.entities.aggregated_score import AggregatedScore
from ...domain.aggregation.exceptions import AggregationDomainError, ValidationFailure
from ...domain.aggregation.services import (
    ConfidenceCalculator,
    ConflictDetector,
    ConflictResolver,
    ConsensusCalculator,
    OutlierDetector,
    QualityValidator,
    ScoreAggregator,
    ScoreCollector,
    WeightingEngine,
)
from ...domain.aggregation.services.score_collector import RawRecord
from ...domain.aggregation.value_objects.aggregation_config import (
    AggregationConfig,
    CriterionDefinition,
)
from ...domain.aggregation.value_objects.collection_result import (
    CollectionResult,
    WeightAssignment,
)
from ...domain.aggregation.value_objects.criterion_score import AggregatedCriterionScore
from ...domain.aggregation.value_objects.score_entry import ScoreEntry

logger = logging.getLogger(__name__)


class AggregationPipeline:
    """Runs collection through validation for one execution.

    Every stage is pure and synchronous and receives the configuration
    explicitly, so a pipeline instance can be shared between worker threads.
    """

    def __init__(
        self,
        collector: Optional[ScoreCollector] = None,
        weighting_engine: Optional[WeightingEngine] = None,
        outlier_detector: Optional[OutlierDetector] = None,
        aggregator: Optional[ScoreAggregator] = None,
        consensus_calculator: Optional[ConsensusCalculator] = None,
        conflict_detector: Optional[ConflictDetector] = None,
        conflict_resolver: Optional[ConflictResolver] = None,
        confidence_calculator: Optional[ConfidenceCalculator] = None,
        validator: Optional[QualityValidator] = None,
    ):
        self.collector = collector or ScoreCollector()
        self.weighting_engine = weighting_engine or WeightingEngine()
        self.outlier_detector = outlier_detector or OutlierDetector()
        self.aggregator = aggregator or ScoreAggregator()
        self.consensus_calculator = consensus_calculator or ConsensusCalculator()
        self.conflict_detector = conflict_detector or ConflictDetector()
        self.conflict_resolver = conflict_resolver or ConflictResolver()
        self.confidence_calculator = confidence_calculator or ConfidenceCalculator()
        self.validator = validator or QualityValidator()

    def run(
        self,
        execution_id: str,
        config: AggregationConfig,
        records: Iterable[RawRecord],
        version: int = 1,
        previous_version: Optional[int] = None,
    ) -> AggregatedScore:
        """Compute, validate and finalize a new aggregated score version."""
        records = list(records)
        score = self.compute(execution_id, config, records, version, previous_version)
        validation = self.validator.validate(score, config)

        if not validation.passed and config.strict_validation:
            logger.info(
                f"Strict validation failed for execution {execution_id}, "
                f"recomputing with relaxed scope"
            )
            relaxed_config = config.relaxed()
            score = self.compute(execution_id, relaxed_config, records, version, previous_version)
            validation = self.validator.validate(score, relaxed_config).with_relaxed_scope()
            # Later versions derive from the caller's configuration
            score.config = config

        score.finalize(validation)

        if score.is_flagged():
            warnings.warn(
                f"Aggregated score for execution {execution_id} v{version} was flagged: "
                f"{'; '.join(validation.recommendations) or 'see quality checks'}",
                ValidationFailure,
                stacklevel=2,
            )

        return score

    def compute(
        self,
        execution_id: str,
        config: AggregationConfig,
        records: List[RawRecord],
        version: int = 1,
        previous_version: Optional[int] = None,
    ) -> AggregatedScore:
        """Run stages 1-7 and return a complete, not yet validated score."""
        collection = self.collector.collect(execution_id, config, records)
        assignment = self.weighting_engine.assign(collection, config)

        criteria: List[AggregatedCriterionScore] = []
        processed_entries: Dict[str, List[ScoreEntry]] = {}

        for criterion in config.criteria:
            criterion_score, processed = self.score_criterion(
                collection, assignment, criterion, config
            )
            processed_entries[criterion.criterion_id] = processed
            criteria.append(criterion_score)

        overall_score = self.aggregator.overall_score(criteria)
        consensus = self.consensus_calculator.calculate(
            collection, processed_entries, assignment, config
        )
        confidence = self.confidence_calculator.calculate(
            collection,
            criteria,
            processed_entries,
            consensus,
            overall_score,
            config,
            leave_one_out=lambda judge_id: self._overall_without(collection, judge_id, config),
        )

        score = AggregatedScore.create_draft(
            execution_id=execution_id,
            version=version,
            overall_score=overall_score,
            criteria=tuple(criteria),
            confidence=confidence,
            consensus=consensus,
            config=config,
            judge_ids=collection.judge_ids,
            skipped_records=collection.skipped,
            previous_version=previous_version,
        )
        score.complete()

        logger.info(
            f"Computed aggregated score {overall_score} for execution {execution_id} "
            f"v{version} from {collection.judge_count} judges"
        )
        return score

    def score_criterion(
        self,
        collection: CollectionResult,
        assignment: WeightAssignment,
        criterion: CriterionDefinition,
        config: AggregationConfig,
        enforce_minimums: bool = True,
        quiet: bool = False,
    ) -> Tuple[AggregatedCriterionScore, List[ScoreEntry]]:
        """Outlier handling, aggregation and conflict resolution for one criterion.

        Returns the criterion score with the entries left after outlier
        handling. ``quiet`` suppresses the unresolved-conflict warning for
        hypothetical recomputations.
        """
        entries = self.build_entries(collection, assignment, criterion.criterion_id, config)
        processed, outliers = self.outlier_detector.process(
            criterion.criterion_id, entries, config, enforce_minimums=enforce_minimums
        )
        criterion_score = self.aggregator.aggregate_criterion(
            criterion, processed, config, outliers
        )

        conflict = self.conflict_detector.detect(criterion.criterion_id, entries, config)
        if conflict is not None:
            conflict = self.conflict_resolver.resolve(conflict, entries, config, warn=not quiet)
            criterion_score = criterion_score.with_conflicts((conflict,))

        return criterion_score, processed

    @staticmethod
    def build_entries(
        collection: CollectionResult,
        assignment: WeightAssignment,
        criterion_id: str,
        config: AggregationConfig,
    ) -> List[ScoreEntry]:
        """Normalized, weighted score entries of every judge that scored a criterion."""
        criterion = config.get_criterion(criterion_id)
        entries = []

        for score in collection.scores_for(criterion_id):
            raw_score = score.criterion_scores[criterion_id]
            entries.append(
                ScoreEntry(
                    judge_id=score.judge_id,
                    judge_type=score.judge_type,
                    criterion_id=criterion_id,
                    raw_score=float(raw_score),
                    score=criterion.normalize_score(raw_score),
                    weight=assignment.weight_for(criterion_id, score.judge_id),
                    quality=float(score.quality),
                    expertise=float(score.effective_expertise),
                )
            )

        return entries

    def _overall_without(
        self, collection: CollectionResult, judge_id: str, config: AggregationConfig
    ) -> Optional[Decimal]:
        """Overall score recomputed without one judge, for the stability estimate."""
        reduced = collection.without_judge(judge_id)
        if not reduced.scores:
            return None

        try:
            assignment = self.weighting_engine.assign(reduced, config)
            criteria = [
                self.score_criterion(
                    reduced, assignment, criterion, config, enforce_minimums=False, quiet=True
                )[0]
                for criterion in config.criteria
            ]
        except AggregationDomainError as e:
            logger.debug(f"Leave-one-out without {judge_id} skipped: {e}")
            return None

        return self.aggregator.overall_score(criteria)
