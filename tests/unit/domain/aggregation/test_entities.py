"""Tests for the aggregated score entity."""

from decimal import Decimal

import pytest

from score_aggregation.domain.aggregation.entities.aggregated_score import AggregatedScore
from score_aggregation.domain.aggregation.events.aggregation_events import (
    AggregationCompleted,
    AggregationFlagged,
    AggregationSuperseded,
)
from score_aggregation.domain.aggregation.exceptions import (
    InvalidStatusTransition,
    ValidationError,
)
from score_aggregation.domain.aggregation.value_objects.aggregation_config import OutlierAction
from score_aggregation.domain.aggregation.value_objects.aggregation_status import (
    AggregationStatus,
)
from score_aggregation.domain.aggregation.value_objects.conflict import (
    Conflict,
    ConflictParticipant,
    ConflictSeverity,
    JudgePosition,
)
from score_aggregation.domain.aggregation.value_objects.criterion_score import OutlierRecord
from score_aggregation.domain.aggregation.value_objects.judge_type import JudgeType
from score_aggregation.domain.aggregation.value_objects.validation_result import (
    QualityCheck,
    ValidationResult,
)
from tests.factories import EXECUTION_ID, make_aggregated_score


def _unresolved_conflict():
    return Conflict(
        criterion_id="correctness",
        severity=ConflictSeverity.MEDIUM,
        max_z_score=Decimal("2.8"),
        detection_confidence=Decimal("0.933"),
        mean_score=Decimal("63.667"),
        participants=(
            ConflictParticipant(
                judge_id="staff-1",
                judge_type=JudgeType.STAFF_REVIEWER,
                score=Decimal("70"),
                z_score=Decimal("0.35"),
                position=JudgePosition.NEUTRAL,
                disputed=False,
            ),
            ConflictParticipant(
                judge_id="staff-9",
                judge_type=JudgeType.STAFF_REVIEWER,
                score=Decimal("10"),
                z_score=Decimal("-2.8"),
                position=JudgePosition.LOWER,
                disputed=True,
            ),
        ),
    )


PASSED = ValidationResult(passed=True, checks=())
FAILED = ValidationResult(
    passed=False,
    checks=(
        QualityCheck(
            name="judge_count",
            passed=False,
            score=Decimal("3"),
            threshold=Decimal("5"),
        ),
    ),
    recommendations=("Gather additional elite-panel review",),
)


class TestAggregatedScoreLifecycle:
    """Test the aggregated score state machine."""

    def test_create_draft(self):
        score = make_aggregated_score()

        assert score.status == AggregationStatus.DRAFT
        assert score.id is not None
        assert score.quality.passed is False
        assert score.get_domain_events() == []

    def test_validated_path_records_completion(self):
        score = make_aggregated_score()
        score.complete()
        score.finalize(PASSED)

        assert score.is_validated()
        events = score.get_domain_events()
        assert len(events) == 1
        assert isinstance(events[0], AggregationCompleted)
        assert events[0].overall_score == "70.000"
        assert events[0].confidence_tier == "high"
        assert events[0].judge_count == 3

    def test_failed_validation_flags(self):
        score = make_aggregated_score()
        score.complete()
        score.finalize(FAILED)

        assert score.is_flagged()
        (event,) = score.get_domain_events()
        assert isinstance(event, AggregationFlagged)
        assert event.failed_checks == ["judge_count"]
        assert event.recommendations == ["Gather additional elite-panel review"]

    def test_unresolved_conflict_flags_even_when_checks_pass(self):
        score = make_aggregated_score(conflicts=(_unresolved_conflict(),))
        score.complete()
        score.finalize(PASSED)

        assert score.is_flagged()
        assert score.has_unresolved_conflicts()
        assert score.get_domain_events()[0].unresolved_conflicts == 1

    def test_finalize_requires_complete(self):
        with pytest.raises(InvalidStatusTransition):
            make_aggregated_score().finalize(PASSED)

    def test_complete_only_once(self):
        score = make_aggregated_score()
        score.complete()
        with pytest.raises(InvalidStatusTransition):
            score.complete()

    def test_clear_domain_events(self):
        score = make_aggregated_score()
        score.complete()
        score.finalize(PASSED)
        score.clear_domain_events()
        assert score.get_domain_events() == []


class TestSupersession:
    """Test superseding an aggregated score."""

    def setup_method(self):
        self.score = make_aggregated_score()
        self.score.complete()
        self.score.finalize(PASSED)
        self.score.clear_domain_events()

    def test_superseded_copy(self):
        superseded = self.score.superseded_by(2, "weight update")

        assert superseded.status == AggregationStatus.SUPERSEDED
        assert superseded.id == self.score.id
        assert self.score.status == AggregationStatus.VALIDATED

        (event,) = superseded.get_domain_events()
        assert isinstance(event, AggregationSuperseded)
        assert event.version == 1
        assert event.superseded_by_version == 2
        assert event.reason == "weight update"
        assert self.score.get_domain_events() == []

    def test_requires_later_version(self):
        with pytest.raises(ValidationError):
            self.score.superseded_by(1)

    def test_terminal(self):
        superseded = self.score.superseded_by(2)
        with pytest.raises(InvalidStatusTransition):
            superseded.superseded_by(3)

    def test_draft_cannot_be_superseded(self):
        with pytest.raises(InvalidStatusTransition):
            make_aggregated_score().superseded_by(2)


class TestAggregatedScoreValidation:
    """Test entity invariants."""

    def test_version_must_be_positive(self):
        with pytest.raises(ValidationError):
            make_aggregated_score(version=0)

    def test_previous_version_must_precede(self):
        with pytest.raises(ValidationError):
            make_aggregated_score(version=2, previous_version=2)

    def test_duplicate_criteria_rejected(self):
        score = make_aggregated_score()
        with pytest.raises(ValidationError, match="unique"):
            AggregatedScore.create_draft(
                execution_id=EXECUTION_ID,
                version=1,
                overall_score=Decimal("70"),
                criteria=score.criteria * 2,
                confidence=score.confidence,
                consensus=score.consensus,
                config=score.config,
            )


class TestAggregatedScoreQueries:
    """Test entity queries and serialization."""

    def test_investigation_queue(self):
        outliers = (
            OutlierRecord(
                judge_id="staff-4",
                criterion_id="correctness",
                score=Decimal("95"),
                z_score=Decimal("2.2"),
                method="z_score",
                action=OutlierAction.INVESTIGATE,
            ),
        )
        score = make_aggregated_score(outliers=outliers)

        assert [o.judge_id for o in score.investigation_queue()] == ["staff-4"]
        assert score.outliers() == list(outliers)

    def test_get_criterion(self):
        score = make_aggregated_score()
        assert score.get_criterion("correctness").aggregated_score == Decimal("70")
        assert score.get_criterion("style") is None

    def test_round_trip_preserves_equality(self):
        score = make_aggregated_score(
            version=3, previous_version=2, conflicts=(_unresolved_conflict(),)
        )
        score.complete()
        score.finalize(FAILED)

        restored = AggregatedScore.from_dict(score.to_dict())

        assert restored == score
        assert restored.created_at == score.created_at
        assert restored.get_domain_events() == []
