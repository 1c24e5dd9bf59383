"""Test data factories for generating test objects."""

from decimal import Decimal
from typing import Dict, Sequence

import factory

from score_aggregation.domain.aggregation.entities.aggregated_score import AggregatedScore
from score_aggregation.domain.aggregation.value_objects.aggregation_config import (
    AggregationConfig,
    CriterionDefinition,
    JudgeTypePolicy,
)
from score_aggregation.domain.aggregation.value_objects.confidence_metrics import (
    ConfidenceInterval,
    ConfidenceMetrics,
    ConfidenceTier,
)
from score_aggregation.domain.aggregation.value_objects.consensus_metrics import (
    ConsensusMetrics,
)
from score_aggregation.domain.aggregation.value_objects.criterion_score import (
    AggregatedCriterionScore,
    JudgeContribution,
)
from score_aggregation.domain.aggregation.value_objects.judge_score import JudgeScore
from score_aggregation.domain.aggregation.value_objects.judge_type import JudgeType
from score_aggregation.domain.aggregation.value_objects.score_distribution import (
    ScoreDistribution,
)
from score_aggregation.domain.aggregation.value_objects.score_entry import ScoreEntry

EXECUTION_ID = "exec-42"


class JudgeScoreFactory(factory.Factory):
    """Factory for JudgeScore value objects."""

    class Meta:
        model = JudgeScore

    judge_id = factory.Sequence(lambda n: f"judge-{n:03d}")
    judge_type = JudgeType.STAFF_REVIEWER
    overall_score = Decimal("70")
    criterion_scores = factory.LazyAttribute(
        lambda o: {"correctness": o.overall_score, "clarity": o.overall_score}
    )
    quality = Decimal("0.9")
    confidence = Decimal("0.8")


class JudgeRecordFactory(factory.DictFactory):
    """Factory for raw judge score records as submitted by upstream services."""

    execution_id = EXECUTION_ID
    judge_id = factory.Sequence(lambda n: f"judge-{n:03d}")
    judge_type = JudgeType.STAFF_REVIEWER.value
    overall_score = "70"
    criterion_scores = factory.LazyAttribute(
        lambda o: {"correctness": o.overall_score, "clarity": o.overall_score}
    )
    quality = "0.9"
    confidence = "0.8"


class ScoreEntryFactory(factory.Factory):
    """Factory for working score entries on a single criterion."""

    class Meta:
        model = ScoreEntry

    judge_id = factory.Sequence(lambda n: f"judge-{n:03d}")
    judge_type = JudgeType.STAFF_REVIEWER
    criterion_id = "correctness"
    raw_score = factory.LazyAttribute(lambda o: o.score)
    score = 70.0
    weight = 1.0
    quality = 0.9
    expertise = 0.667


def make_config(
    criteria: Sequence[tuple] = (("correctness", "0.5"), ("clarity", "0.5")),
    judge_types: Sequence[JudgeTypePolicy] = (),
    **overrides,
) -> AggregationConfig:
    """Aggregation config with every judge type enabled unless told otherwise."""
    policies = tuple(judge_types) or tuple(
        JudgeTypePolicy(judge_type=judge_type) for judge_type in JudgeType
    )
    return AggregationConfig(
        criteria=tuple(
            CriterionDefinition(criterion_id=criterion_id, weight=Decimal(weight))
            for criterion_id, weight in criteria
        ),
        judge_types=policies,
        **overrides,
    )


def make_records(
    criterion_scores: Sequence[Dict[str, object]],
    judge_type: JudgeType = JudgeType.STAFF_REVIEWER,
    overall_scores: Sequence[object] = (),
    **fields,
):
    """One raw record per criterion score mapping, sequential judge IDs."""
    records = []
    for index, scores in enumerate(criterion_scores):
        overall = overall_scores[index] if overall_scores else next(iter(scores.values()))
        records.append(
            JudgeRecordFactory(
                judge_id=f"{judge_type.value}-{index + 1}",
                judge_type=judge_type.value,
                overall_score=str(overall),
                criterion_scores={key: str(value) for key, value in scores.items()},
                **fields,
            )
        )
    return records


def make_entries(scores: Sequence[float], **fields):
    """Score entries with judge IDs j1..jn for the given normalized scores."""
    return [
        ScoreEntryFactory(judge_id=f"j{index + 1}", score=float(score), **fields)
        for index, score in enumerate(scores)
    ]


def make_aggregated_score(
    version: int = 1,
    previous_version=None,
    judge_ids: Sequence[str] = ("staff-1", "staff-2", "staff-3"),
    scores: Sequence[float] = (68, 70, 72),
    confidence: str = "0.800",
    consensus: str = "0.973",
    factors=None,
    conflicts=(),
    outliers=(),
    config: AggregationConfig = None,
) -> AggregatedScore:
    """Draft single-criterion aggregated score built from plain values."""
    distribution = ScoreDistribution.from_scores(list(scores))
    overall_confidence = Decimal(confidence)
    share = Decimal(1) / len(scores)
    contributions = tuple(
        JudgeContribution(
            judge_id=judge_id,
            judge_type=JudgeType.STAFF_REVIEWER,
            raw_score=Decimal(str(score)),
            normalized_score=Decimal(str(score)),
            weight=Decimal("1"),
            normalized_weight=share,
            contribution=Decimal(str(score)) * share,
        )
        for judge_id, score in zip(judge_ids, scores)
    )

    return AggregatedScore.create_draft(
        execution_id=EXECUTION_ID,
        version=version,
        overall_score=distribution.mean,
        criteria=(
            AggregatedCriterionScore(
                criterion_id="correctness",
                weight=Decimal("1"),
                aggregated_score=distribution.mean,
                distribution=distribution,
                contributions=contributions,
                outliers=tuple(outliers),
                conflicts=tuple(conflicts),
            ),
        ),
        confidence=ConfidenceMetrics(
            overall_confidence=overall_confidence,
            tier=ConfidenceTier.from_value(overall_confidence),
            factors=factors or {"judge_count": Decimal("0.632"), "consensus": Decimal(consensus)},
            overall_interval=ConfidenceInterval(
                lower=distribution.minimum, upper=distribution.maximum
            ),
        ),
        consensus=ConsensusMetrics(
            consensus_level=Decimal(consensus),
            overall_agreement=Decimal(consensus),
            polarization=Decimal("0.006"),
        ),
        config=config or make_config(criteria=(("correctness", "1"),)),
        judge_ids=tuple(judge_ids),
        previous_version=previous_version,
    )
