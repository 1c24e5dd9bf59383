"""Tests for the aggregation pipeline."""

from dataclasses import replace
from decimal import Decimal

import pytest

from score_aggregation.application.services.aggregation_pipeline import AggregationPipeline
from score_aggregation.domain.aggregation.events.aggregation_events import AggregationCompleted
from score_aggregation.domain.aggregation.exceptions import (
    ConflictUnresolvedWarning,
    InsufficientJudgesError,
    ValidationFailure,
)
from score_aggregation.domain.aggregation.value_objects.aggregation_config import (
    AggregationMethod,
    CriterionDefinition,
    JudgeTypePolicy,
    OutlierAction,
    QualityThresholds,
    ResolutionStrategy,
)
from score_aggregation.domain.aggregation.value_objects.aggregation_status import (
    AggregationStatus,
)
from score_aggregation.domain.aggregation.value_objects.confidence_metrics import ConfidenceTier
from score_aggregation.domain.aggregation.value_objects.judge_type import JudgeType
from tests.factories import EXECUTION_ID, make_config, make_records

CONFLICT_SCORES = [70, 71, 70, 72, 69, 70, 71, 70, 10]


def _conflict_records():
    return make_records([{"correctness": score, "clarity": 70} for score in CONFLICT_SCORES])


class TestAggregationPipeline:
    """Test the full scoring pipeline."""

    def setup_method(self):
        self.pipeline = AggregationPipeline()

    def test_end_to_end(self, config, agreeing_records):
        score = self.pipeline.run(EXECUTION_ID, config, agreeing_records)

        correctness = score.get_criterion("correctness")
        assert correctness.aggregated_score == Decimal("70.25")
        assert correctness.judge_count == 4
        (outlier,) = correctness.outliers
        assert outlier.judge_id == "staff_reviewer-4"
        assert outlier.method == "iqr"
        assert outlier.action == OutlierAction.EXCLUDE

        assert score.get_criterion("clarity").aggregated_score == Decimal("70")
        assert score.overall_score == Decimal("70.125")
        assert score.confidence.tier == ConfidenceTier.HIGH
        assert score.status == AggregationStatus.VALIDATED
        assert score.conflicts() == []
        assert score.version == 1
        assert score.previous_version is None

        (event,) = score.get_domain_events()
        assert isinstance(event, AggregationCompleted)
        assert event.judge_count == 5

    def test_confidence_interval_around_criterion_score(self, config, agreeing_records):
        score = self.pipeline.run(EXECUTION_ID, config, agreeing_records)

        interval = score.confidence.criterion_intervals["correctness"]
        assert interval.contains(Decimal("70.25"))
        # 1.96 * 1.479 / sqrt(4) on either side
        assert float(interval.width) == pytest.approx(2.899, abs=0.01)
        assert score.confidence.overall_interval.contains(score.overall_score)
        assert 0 <= score.confidence.stability_score <= 1
        assert score.confidence.most_influential_judge in score.judge_ids

    def test_deterministic(self, config, agreeing_records):
        first = self.pipeline.run(EXECUTION_ID, config, agreeing_records).to_dict()
        second = self.pipeline.run(EXECUTION_ID, config, agreeing_records).to_dict()

        for key in ("id", "created_at"):
            first.pop(key)
            second.pop(key)

        assert first == second

    def test_version_chain(self, config, agreeing_records):
        score = self.pipeline.run(
            EXECUTION_ID, config, agreeing_records, version=3, previous_version=2
        )

        assert score.version == 3
        assert score.previous_version == 2

    def test_median_method(self, agreeing_records):
        config = make_config(
            aggregation_method=AggregationMethod.MEDIAN, outlier_action=OutlierAction.KEEP
        )

        score = self.pipeline.run(EXECUTION_ID, config, agreeing_records)

        assert score.get_criterion("correctness").aggregated_score == Decimal("71")

    def test_adding_agreeing_judge_does_not_lower_confidence(self, config):
        scores = [70, 72, 68, 74, 71]
        before = self.pipeline.run(
            EXECUTION_ID,
            config,
            make_records([{"correctness": s, "clarity": s} for s in scores]),
        )
        after = self.pipeline.run(
            EXECUTION_ID,
            config,
            make_records([{"correctness": s, "clarity": s} for s in scores + [71]]),
        )

        assert before.outliers() == [] and after.outliers() == []
        assert after.confidence.overall_confidence >= before.confidence.overall_confidence

    def test_insufficient_judges(self):
        config = make_config(
            judge_types=(
                JudgeTypePolicy(JudgeType.STAFF_REVIEWER),
                JudgeTypePolicy(JudgeType.COMMUNITY_VOTER, minimum_count=3),
            )
        )
        records = make_records(
            [{"correctness": 70, "clarity": 70}] * 2, judge_type=JudgeType.COMMUNITY_VOTER
        )

        with pytest.raises(InsufficientJudgesError) as exc_info:
            self.pipeline.run(EXECUTION_ID, config, records)

        assert exc_info.value.shortfalls == {"community_voter": 1}

    def test_nearly_identical_scores_on_small_scale(self):
        config = replace(
            make_config(criteria=(("correctness", "1"),)),
            criteria=(
                CriterionDefinition(
                    criterion_id="correctness", weight=Decimal("1"), max_score=Decimal("1")
                ),
            ),
        )
        records = make_records(
            [{"correctness": value} for value in ("0.3", "0.30", "0.2999999999999999")]
        )

        score = self.pipeline.run(EXECUTION_ID, config, records)

        correctness = score.get_criterion("correctness")
        assert correctness.aggregated_score == Decimal("30")
        assert correctness.distribution.skewness == 0
        assert score.overall_score == Decimal("30")

    def test_skipped_records_are_reported(self, config, agreeing_records):
        records = agreeing_records + [{"judge_id": "broken"}]

        score = self.pipeline.run(EXECUTION_ID, config, records)

        assert [record.judge_id for record in score.skipped_records] == ["broken"]
        assert len(score.judge_ids) == 5


class TestConflictsInPipeline:
    """Test conflict handling inside the pipeline."""

    def setup_method(self):
        self.pipeline = AggregationPipeline()

    def test_resolved_conflict_replaces_criterion_score(self):
        config = make_config(resolution_strategy=ResolutionStrategy.MAJORITY_RULE)

        score = self.pipeline.run(EXECUTION_ID, config, _conflict_records())

        correctness = score.get_criterion("correctness")
        assert correctness.pre_resolution_score == Decimal("70.375")
        assert correctness.aggregated_score == Decimal("70")
        assert [o.judge_id for o in correctness.outliers] == ["staff_reviewer-9"]
        (conflict,) = correctness.conflicts
        assert conflict.disputed_judges == ("staff_reviewer-9",)
        assert score.overall_score == Decimal("70")
        assert score.is_validated()

    def test_unresolved_conflict_flags_score(self):
        with pytest.warns(UserWarning) as record:
            score = self.pipeline.run(EXECUTION_ID, make_config(), _conflict_records())

        categories = {warning.category for warning in record}
        assert ConflictUnresolvedWarning in categories
        assert ValidationFailure in categories

        assert score.is_flagged()
        assert score.quality.unresolved_conflicts == 1
        assert (
            "Resolve 1 judge conflict(s) through deliberation before release"
            in score.quality.recommendations
        )
        # Still aggregated without the outlier
        assert score.get_criterion("correctness").aggregated_score == Decimal("70.375")

    def test_stability_recomputes_conflict_resolution(self):
        config = make_config(resolution_strategy=ResolutionStrategy.EXPERT_OVERRIDE)
        records = make_records(
            [{"correctness": score, "clarity": 70} for score in CONFLICT_SCORES[:-1]]
        )
        records += make_records(
            [{"correctness": 10, "clarity": 70}], judge_type=JudgeType.ELITE_PANELIST
        )

        score = self.pipeline.run(EXECUTION_ID, config, records)

        assert score.get_criterion("correctness").aggregated_score == Decimal("10")
        assert score.overall_score == Decimal("40")
        # Dropping a staff reviewer still defers to the panelist; dropping the panelist
        # leaves the staff mean of 70.375 on correctness
        assert score.confidence.most_influential_judge == "elite_panelist-1"
        assert float(score.confidence.max_change_pct) == pytest.approx(75.47, abs=0.01)
        assert float(score.confidence.stability_score) == pytest.approx(0.245, abs=0.001)


class TestStrictValidation:
    """Test strict-mode recomputation."""

    def setup_method(self):
        self.pipeline = AggregationPipeline()

    def test_failed_validation_flags_with_warning(self, agreeing_records):
        config = make_config(quality_thresholds=QualityThresholds(minimum_judge_count=10))

        with pytest.warns(ValidationFailure, match="Gather additional elite-panel review"):
            score = self.pipeline.run(EXECUTION_ID, config, agreeing_records)

        assert score.is_flagged()
        assert not score.is_relaxed()
        assert score.get_criterion("correctness").aggregated_score == Decimal("70.25")

    def test_strict_mode_releases_relaxed_result(self, agreeing_records):
        config = make_config(
            strict_validation=True,
            quality_thresholds=QualityThresholds(minimum_judge_count=10),
        )

        with pytest.warns(ValidationFailure):
            score = self.pipeline.run(EXECUTION_ID, config, agreeing_records)

        assert score.is_flagged()
        assert score.is_relaxed()
        assert score.config == config
        assert score.applied_config().outlier_action == OutlierAction.FLAG_FOR_REVIEW

        correctness = score.get_criterion("correctness")
        assert correctness.aggregated_score == Decimal("75.2")
        assert correctness.outliers[0].action == OutlierAction.FLAG_FOR_REVIEW

    def test_strict_mode_relaxes_quality_thresholds(self):
        config = make_config(
            judge_types=(
                JudgeTypePolicy(JudgeType.STAFF_REVIEWER, quality_threshold=Decimal("0.8")),
            ),
            strict_validation=True,
        )
        records = make_records(
            [{"correctness": 70, "clarity": 70}, {"correctness": 72, "clarity": 72}]
        )
        low_quality = make_records([{"correctness": 68, "clarity": 68}], quality="0.5")[0]
        low_quality["judge_id"] = "staff-low"
        records.append(low_quality)

        score = self.pipeline.run(EXECUTION_ID, config, records)

        assert score.is_relaxed()
        assert "staff-low" in score.judge_ids
        assert score.skipped_records == ()
