"""Application service exposing aggregation operations."""

import asyncio
import functools
import logging
from concurrent.futures import Executor
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict, List, Optional

from ...domain.aggregation.entities.aggregated_score import AggregatedScore
from ...domain.aggregation.exceptions import AggregationDomainError, ExecutionNotFoundError
from ...domain.aggregation.repositories.aggregation_repository import (
    AggregationRepository,
    JudgeScoreRepository,
)
from ...domain.aggregation.value_objects.aggregation_config import AggregationConfig
from ...domain.aggregation.value_objects.aggregation_status import AggregationStatus
from ...domain.aggregation.value_objects.validation_result import ValidationResult
from ...domain.aggregation.value_objects.weight_update import WeightUpdate
from ..interfaces.domain_event_publisher import DomainEventPublisher
from .aggregation_pipeline import AggregationPipeline
from .trigger_debouncer import TriggerDebouncer

logger = logging.getLogger(__name__)


class AggregationService:
    """Service for computing, versioning and publishing aggregated scores."""

    def __init__(
        self,
        aggregation_repository: AggregationRepository,
        judge_score_repository: JudgeScoreRepository,
        event_publisher: Optional[DomainEventPublisher] = None,
        pipeline: Optional[AggregationPipeline] = None,
        executor: Optional[Executor] = None,
        debounce_seconds: float = 2.0,
    ):
        self.aggregation_repository = aggregation_repository
        self.judge_score_repository = judge_score_repository
        self.event_publisher = event_publisher
        self.pipeline = pipeline or AggregationPipeline()
        self.executor = executor  # None runs stages on the loop's default thread pool
        self.debouncer = TriggerDebouncer(debounce_seconds)

        # One computation per execution at a time; a lock lives while it has users
        self._execution_locks: Dict[str, asyncio.Lock] = {}
        self._lock_users: Dict[str, int] = {}

    @asynccontextmanager
    async def _execution_lock(self, execution_id: str) -> AsyncIterator[None]:
        lock = self._execution_locks.setdefault(execution_id, asyncio.Lock())
        self._lock_users[execution_id] = self._lock_users.get(execution_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._lock_users[execution_id] -= 1
            if not self._lock_users[execution_id]:
                del self._lock_users[execution_id]
                del self._execution_locks[execution_id]

    async def aggregate(self, execution_id: str, config: AggregationConfig) -> AggregatedScore:
        """Compute and store a new aggregated score version for an execution."""
        async with self._execution_lock(execution_id):
            return await self._aggregate_locked(execution_id, config)

    async def update_weights(
        self, execution_id: str, weight_update: WeightUpdate
    ) -> AggregatedScore:
        """Recompute the latest version with a weight update applied."""
        async with self._execution_lock(execution_id):
            latest = await self.aggregation_repository.get_latest(execution_id)
            if latest is None:
                raise ExecutionNotFoundError(
                    f"No aggregated score exists for execution {execution_id}"
                )

            config = latest.config.apply_weight_update(weight_update)
            logger.info(
                f"Updating weights for execution {execution_id} from v{latest.version}: "
                f"{weight_update.reason or 'no reason given'}"
            )
            return await self._aggregate_locked(
                execution_id, config, reason=weight_update.reason or "weight update"
            )

    async def get_history(self, execution_id: str) -> List[AggregatedScore]:
        """Every stored version of an execution in ascending version order."""
        return await self.aggregation_repository.get_history(execution_id)

    async def validate(
        self, execution_id: str, result: Optional[AggregatedScore] = None
    ) -> ValidationResult:
        """Re-run the quality checks on a result, the latest version by default."""
        if result is None:
            result = await self.aggregation_repository.get_latest(execution_id)
            if result is None:
                raise ExecutionNotFoundError(
                    f"No aggregated score exists for execution {execution_id}"
                )

        validation = self.pipeline.validator.validate(result, result.applied_config())
        return validation.with_relaxed_scope() if result.is_relaxed() else validation

    async def trigger(self, execution_id: str, config: AggregationConfig) -> AggregatedScore:
        """Debounced aggregation for quorum events."""
        return await self.debouncer.submit(
            execution_id, functools.partial(self.aggregate, execution_id, config)
        )

    async def _aggregate_locked(
        self, execution_id: str, config: AggregationConfig, reason: Optional[str] = None
    ) -> AggregatedScore:
        records = await self.judge_score_repository.list_records(execution_id)
        latest = await self.aggregation_repository.get_latest(execution_id)
        version = await self.aggregation_repository.next_version(execution_id)
        previous_version = latest.version if latest else None

        logger.info(
            f"Aggregating execution {execution_id} v{version} from {len(records)} records"
        )

        try:
            loop = asyncio.get_running_loop()
            score = await loop.run_in_executor(
                self.executor,
                functools.partial(
                    self.pipeline.run, execution_id, config, records, version, previous_version
                ),
            )
        except AggregationDomainError as e:
            logger.warning(f"Aggregation of execution {execution_id} rejected: {e}")
            raise
        except Exception as e:
            logger.error(f"Aggregation of execution {execution_id} failed: {e}", exc_info=True)
            raise

        await self.aggregation_repository.save(score)

        events = score.get_domain_events()
        score.clear_domain_events()

        if latest is not None and latest.status != AggregationStatus.SUPERSEDED:
            await self.aggregation_repository.mark_superseded(
                execution_id, latest.version, version, reason
            )
            superseded = latest.superseded_by(version, reason)
            events.extend(superseded.get_domain_events())

        await self._publish(events)

        logger.info(
            f"Stored execution {execution_id} v{version}: {score.overall_score} ({score.status})"
        )
        return score

    async def _publish(self, events: List[object]) -> None:
        if self.event_publisher is None or not events:
            return

        try:
            await self.event_publisher.publish_all(events)
        except Exception as e:
            # Score is already stored; escalation can be replayed from history
            logger.error(f"Failed to publish {len(events)} event(s): {e}", exc_info=True)
