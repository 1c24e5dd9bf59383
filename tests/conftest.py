"""Global test configuration and fixtures."""

import logging
from dataclasses import replace
from typing import Any, Dict, List, Optional

import pytest

from score_aggregation.application.interfaces.domain_event_publisher import (
    DomainEventPublisher,
)
from score_aggregation.domain.aggregation.entities.aggregated_score import AggregatedScore
from score_aggregation.domain.aggregation.exceptions import VersionConflictError
from score_aggregation.domain.aggregation.repositories.aggregation_repository import (
    AggregationRepository,
    JudgeScoreRepository,
)
from score_aggregation.domain.aggregation.value_objects.aggregation_status import (
    AggregationStatus,
)
from tests.factories import make_config, make_records

logging.basicConfig(level=logging.INFO)


class InMemoryAggregationRepository(AggregationRepository):
    """Dictionary backed aggregation store for service tests."""

    def __init__(self):
        self.scores: Dict[tuple, Dict[str, Any]] = {}
        self.superseded: Dict[tuple, int] = {}

    async def save(self, score: AggregatedScore) -> None:
        key = (score.execution_id, score.version)
        if key in self.scores:
            raise VersionConflictError(f"{key} already stored")
        self.scores[key] = score.to_dict()

    def _load(self, key) -> AggregatedScore:
        score = AggregatedScore.from_dict(self.scores[key])
        if key in self.superseded:
            score = replace(score, status=AggregationStatus.SUPERSEDED)
        return score

    async def get(self, execution_id: str, version: int) -> Optional[AggregatedScore]:
        key = (execution_id, version)
        return self._load(key) if key in self.scores else None

    async def get_latest(self, execution_id: str) -> Optional[AggregatedScore]:
        history = await self.get_history(execution_id)
        return history[-1] if history else None

    async def get_history(self, execution_id: str) -> List[AggregatedScore]:
        keys = sorted(key for key in self.scores if key[0] == execution_id)
        return [self._load(key) for key in keys]

    async def next_version(self, execution_id: str) -> int:
        versions = [key[1] for key in self.scores if key[0] == execution_id]
        return max(versions, default=0) + 1

    async def mark_superseded(
        self, execution_id: str, version: int, superseded_by: int, reason: Optional[str] = None
    ) -> None:
        self.superseded[(execution_id, version)] = superseded_by


class InMemoryJudgeScoreRepository(JudgeScoreRepository):
    """List backed judge record store for service tests."""

    def __init__(self):
        self.records: Dict[str, List[Dict[str, Any]]] = {}

    async def add_record(self, execution_id: str, record: Dict[str, Any]) -> None:
        self.records.setdefault(execution_id, []).append(dict(record))

    async def list_records(self, execution_id: str) -> List[Dict[str, Any]]:
        return list(self.records.get(execution_id, []))

    async def list_executions(self) -> List[str]:
        return sorted(self.records)


class RecordingEventPublisher(DomainEventPublisher):
    """Publisher that keeps every event it receives."""

    def __init__(self):
        self.events: List[object] = []

    async def publish(self, event) -> None:
        self.events.append(event)

    async def publish_all(self, events) -> None:
        for event in events:
            await self.publish(event)


@pytest.fixture
def aggregation_repository():
    return InMemoryAggregationRepository()


@pytest.fixture
def judge_score_repository():
    return InMemoryJudgeScoreRepository()


@pytest.fixture
def event_publisher():
    return RecordingEventPublisher()


@pytest.fixture
def config():
    """Two equally weighted criteria, every judge type enabled."""
    return make_config()


@pytest.fixture
def agreeing_records():
    """Five staff reviewers; 95 on correctness is the only anomaly."""
    return make_records(
        [
            {"correctness": 70, "clarity": 70},
            {"correctness": 72, "clarity": 72},
            {"correctness": 68, "clarity": 68},
            {"correctness": 95, "clarity": 69},
            {"correctness": 71, "clarity": 71},
        ],
        overall_scores=[70, 72, 68, 90, 71],
    )
