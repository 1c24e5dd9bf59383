"""Unit tests for AggregationService."""

import asyncio
import logging
from concurrent.futures import ThreadPoolExecutor
from decimal import Decimal
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio

from score_aggregation.application.services.aggregation_service import AggregationService
from score_aggregation.domain.aggregation.events.aggregation_events import (
    AggregationCompleted,
    AggregationSuperseded,
)
from score_aggregation.domain.aggregation.exceptions import (
    ExecutionNotFoundError,
    InsufficientJudgesError,
    InvalidConfigError,
)
from score_aggregation.domain.aggregation.value_objects.aggregation_config import (
    JudgeTypePolicy,
    OutlierAction,
    QualityThresholds,
)
from score_aggregation.domain.aggregation.value_objects.aggregation_status import (
    AggregationStatus,
)
from score_aggregation.domain.aggregation.value_objects.judge_type import JudgeType
from score_aggregation.domain.aggregation.value_objects.weight_update import WeightUpdate
from tests.factories import EXECUTION_ID, make_config


class TestAggregationService:
    """Unit tests for AggregationService."""

    @pytest.fixture
    def service(self, aggregation_repository, judge_score_repository, event_publisher):
        """Create aggregation service over in-memory stores."""
        return AggregationService(
            aggregation_repository=aggregation_repository,
            judge_score_repository=judge_score_repository,
            event_publisher=event_publisher,
            debounce_seconds=0.01,
        )

    @pytest_asyncio.fixture
    async def ingested(self, judge_score_repository, agreeing_records):
        """Submit the agreeing panel for the test execution."""
        for record in agreeing_records:
            await judge_score_repository.add_record(EXECUTION_ID, record)
        return agreeing_records

    @pytest.mark.asyncio
    async def test_aggregate_stores_first_version(
        self, service, ingested, config, aggregation_repository, event_publisher
    ):
        """Test first aggregation of an execution."""
        # Act
        score = await service.aggregate(EXECUTION_ID, config)

        # Assert
        assert score.version == 1
        assert score.overall_score == Decimal("70.125")
        assert score.status == AggregationStatus.VALIDATED
        assert list(aggregation_repository.scores) == [(EXECUTION_ID, 1)]
        assert [type(event) for event in event_publisher.events] == [AggregationCompleted]
        assert score.get_domain_events() == []

    @pytest.mark.asyncio
    async def test_history_round_trip(self, service, ingested, config):
        """Test stored versions read back equal to the computed score."""
        # Arrange
        score = await service.aggregate(EXECUTION_ID, config)

        # Act
        history = await service.get_history(EXECUTION_ID)

        # Assert
        assert history == [score]

    @pytest.mark.asyncio
    async def test_recompute_supersedes_previous_version(
        self, service, ingested, config, event_publisher
    ):
        """Test a second aggregation supersedes the first."""
        # Arrange
        await service.aggregate(EXECUTION_ID, config)
        event_publisher.events.clear()

        # Act
        second = await service.aggregate(EXECUTION_ID, config)

        # Assert
        assert second.version == 2
        assert second.previous_version == 1

        history = await service.get_history(EXECUTION_ID)
        assert [score.version for score in history] == [1, 2]
        assert [score.status for score in history] == [
            AggregationStatus.SUPERSEDED,
            AggregationStatus.VALIDATED,
        ]

        superseded = [e for e in event_publisher.events if isinstance(e, AggregationSuperseded)]
        assert len(superseded) == 1
        assert superseded[0].version == 1
        assert superseded[0].superseded_by_version == 2

    @pytest.mark.asyncio
    async def test_insufficient_judges_persists_nothing(
        self, service, judge_score_repository, aggregation_repository, event_publisher
    ):
        """Test quorum failure leaves the store untouched."""
        # Arrange
        config = make_config(
            judge_types=(
                JudgeTypePolicy(JudgeType.STAFF_REVIEWER),
                JudgeTypePolicy(JudgeType.COMMUNITY_VOTER, minimum_count=3),
            )
        )
        for index in range(2):
            await judge_score_repository.add_record(
                EXECUTION_ID,
                {
                    "judge_id": f"voter-{index}",
                    "judge_type": "community_voter",
                    "overall_score": 70,
                    "criterion_scores": {"correctness": 70, "clarity": 70},
                    "quality": 0.8,
                    "confidence": 0.7,
                },
            )

        # Act & Assert
        with pytest.raises(InsufficientJudgesError):
            await service.aggregate(EXECUTION_ID, config)

        assert aggregation_repository.scores == {}
        assert event_publisher.events == []

    @pytest.mark.asyncio
    async def test_update_weights_creates_new_version(self, service, ingested, config):
        """Test weight update recomputes from the latest config."""
        # Arrange
        await service.aggregate(EXECUTION_ID, config)
        update = WeightUpdate(
            criterion_weights={"correctness": Decimal("0.8"), "clarity": Decimal("0.2")},
            reason="correctness matters more",
        )

        # Act
        updated = await service.update_weights(EXECUTION_ID, update)

        # Assert
        assert updated.version == 2
        assert updated.config.get_criterion("correctness").weight == Decimal("0.8")
        assert updated.overall_score == Decimal("70.2")

    @pytest.mark.asyncio
    async def test_update_weights_records_reason(
        self, service, ingested, config, event_publisher
    ):
        """Test supersession event carries the update reason."""
        # Arrange
        await service.aggregate(EXECUTION_ID, config)
        update = WeightUpdate(
            judge_multipliers={"staff_reviewer-1": Decimal("2")}, reason="senior reviewer"
        )

        # Act
        await service.update_weights(EXECUTION_ID, update)

        # Assert
        (event,) = [e for e in event_publisher.events if isinstance(e, AggregationSuperseded)]
        assert event.reason == "senior reviewer"

    @pytest.mark.asyncio
    @pytest.mark.filterwarnings("ignore::UserWarning")
    async def test_update_weights_keeps_strict_configuration(self, service, ingested):
        """Test a relaxed release does not leak its scope into later versions."""
        # Arrange
        config = make_config(
            strict_validation=True,
            quality_thresholds=QualityThresholds(minimum_judge_count=10),
        )
        first = await service.aggregate(EXECUTION_ID, config)
        update = WeightUpdate(
            criterion_weights={"correctness": Decimal("0.6"), "clarity": Decimal("0.4")}
        )

        # Act
        second = await service.update_weights(EXECUTION_ID, update)

        # Assert
        assert first.is_relaxed()
        assert second.config == config.apply_weight_update(update)
        assert second.config.strict_validation
        assert second.config.outlier_action == OutlierAction.EXCLUDE
        assert second.is_relaxed()
        # Relaxed again: 75.2 on correctness with the 95 kept for review, 70 on clarity
        assert second.overall_score == Decimal("73.12")

    @pytest.mark.asyncio
    @pytest.mark.filterwarnings("ignore::UserWarning")
    async def test_validate_relaxed_score_with_applied_configuration(self, service, ingested):
        """Test revalidation of a relaxed release reproduces its stored verdict."""
        # Arrange
        config = make_config(
            strict_validation=True,
            quality_thresholds=QualityThresholds(minimum_judge_count=10),
        )
        score = await service.aggregate(EXECUTION_ID, config)

        # Act
        result = await service.validate(EXECUTION_ID)

        # Assert
        assert result.relaxed_scope
        assert result.passed == score.quality.passed
        assert [c.name for c in result.failed_checks()] == [
            c.name for c in score.quality.failed_checks()
        ]

    @pytest.mark.asyncio
    async def test_update_weights_rejects_invalid_rubric(self, service, ingested, config):
        """Test invalid derived config is rejected before processing."""
        # Arrange
        await service.aggregate(EXECUTION_ID, config)

        # Act & Assert
        with pytest.raises(InvalidConfigError):
            await service.update_weights(
                EXECUTION_ID, WeightUpdate(criterion_weights={"correctness": Decimal("0.9")})
            )

        assert len(await service.get_history(EXECUTION_ID)) == 1

    @pytest.mark.asyncio
    async def test_update_weights_without_history(self, service):
        """Test weight update for an unknown execution."""
        update = WeightUpdate(judge_multipliers={"staff-1": Decimal("2")})

        with pytest.raises(ExecutionNotFoundError):
            await service.update_weights("missing", update)

    @pytest.mark.asyncio
    async def test_validate_latest_without_persisting(
        self, service, ingested, config, aggregation_repository
    ):
        """Test validation reruns the checks on the stored score."""
        # Arrange
        await service.aggregate(EXECUTION_ID, config)

        # Act
        result = await service.validate(EXECUTION_ID)

        # Assert
        assert result.passed
        assert len(result.checks) == 4
        assert len(aggregation_repository.scores) == 1

    @pytest.mark.asyncio
    async def test_validate_given_result(self, service, ingested, config):
        """Test validation of an explicitly supplied result."""
        score = await service.aggregate(EXECUTION_ID, config)

        result = await service.validate(EXECUTION_ID, score)

        assert result == score.quality

    @pytest.mark.asyncio
    async def test_validate_without_history(self, service):
        """Test validation of an unknown execution."""
        with pytest.raises(ExecutionNotFoundError):
            await service.validate("missing")

    @pytest.mark.asyncio
    async def test_publish_failure_is_logged(
        self, aggregation_repository, judge_score_repository, ingested, config, caplog
    ):
        """Test event publishing failures do not lose the stored score."""
        # Arrange
        publisher = AsyncMock()
        publisher.publish_all.side_effect = RuntimeError("broker down")
        service = AggregationService(
            aggregation_repository=aggregation_repository,
            judge_score_repository=judge_score_repository,
            event_publisher=publisher,
        )

        # Act
        with caplog.at_level(logging.ERROR):
            score = await service.aggregate(EXECUTION_ID, config)

        # Assert
        assert score.version == 1
        assert (EXECUTION_ID, 1) in aggregation_repository.scores
        publisher.publish_all.assert_awaited_once()
        assert "Failed to publish" in caplog.text

    @pytest.mark.asyncio
    async def test_concurrent_aggregations_are_serialized(self, service, ingested, config):
        """Test one computation per execution at a time."""
        # Act
        first, second = await asyncio.gather(
            service.aggregate(EXECUTION_ID, config),
            service.aggregate(EXECUTION_ID, config),
        )

        # Assert
        assert sorted([first.version, second.version]) == [1, 2]
        history = await service.get_history(EXECUTION_ID)
        assert [score.status for score in history] == [
            AggregationStatus.SUPERSEDED,
            AggregationStatus.VALIDATED,
        ]

    @pytest.mark.asyncio
    async def test_idle_execution_locks_are_released(
        self, service, ingested, judge_score_repository, config
    ):
        """Test per-execution locks do not outlive their computations."""
        # Arrange
        await judge_score_repository.add_record("exec-other", ingested[0])

        # Act
        await asyncio.gather(
            service.aggregate(EXECUTION_ID, config),
            service.aggregate(EXECUTION_ID, config),
            service.aggregate("exec-other", make_config()),
            return_exceptions=True,
        )

        # Assert
        assert service._execution_locks == {}
        assert service._lock_users == {}

    @pytest.mark.asyncio
    async def test_custom_executor(
        self, aggregation_repository, judge_score_repository, ingested, config
    ):
        """Test stages run on a supplied executor."""
        with ThreadPoolExecutor(max_workers=2) as executor:
            service = AggregationService(
                aggregation_repository=aggregation_repository,
                judge_score_repository=judge_score_repository,
                executor=executor,
            )
            score = await service.aggregate(EXECUTION_ID, config)

        assert score.overall_score == Decimal("70.125")

    @pytest.mark.asyncio
    async def test_trigger_coalesces_burst(
        self, service, ingested, config, aggregation_repository
    ):
        """Test quorum triggers within the window share one computation."""
        # Act
        results = await asyncio.gather(
            *(service.trigger(EXECUTION_ID, config) for _ in range(3))
        )

        # Assert
        assert all(result is results[0] for result in results)
        assert list(aggregation_repository.scores) == [(EXECUTION_ID, 1)]
