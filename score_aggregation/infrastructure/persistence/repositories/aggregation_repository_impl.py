"""Aggregation repository implementation."""

import logging
from typing import Any, Dict, List, Optional, Set

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError

from ....domain.aggregation.entities.aggregated_score import AggregatedScore
from ....domain.aggregation.exceptions import VersionConflictError
from ....domain.aggregation.repositories.aggregation_repository import (
    AggregationRepository,
    JudgeScoreRepository,
)
from ..database import SessionFactory
from ..models.aggregation_models import (
    AggregatedScoreModel,
    AggregationSupersessionModel,
    JudgeScoreRecordModel,
)
from .mappers.aggregation_mapper import AggregationMapper

logger = logging.getLogger(__name__)


class SqlAlchemyAggregationRepository(AggregationRepository):
    """SQLAlchemy implementation of AggregationRepository."""

    def __init__(self, session_factory: SessionFactory):
        self.session_factory = session_factory
        self.mapper = AggregationMapper()

    async def save(self, score: AggregatedScore) -> None:
        """Append a new aggregated score version."""
        async with self.session_factory() as session:
            try:
                session.add(self.mapper.score_to_model(score))
                await session.commit()
            except IntegrityError as e:
                await session.rollback()
                raise VersionConflictError(
                    f"Execution {score.execution_id} already has version {score.version}"
                ) from e
            except Exception:
                await session.rollback()
                raise

        logger.debug(f"Saved aggregated score {score.execution_id} v{score.version}")

    async def get(self, execution_id: str, version: int) -> Optional[AggregatedScore]:
        """Get one version of an execution's aggregated score."""
        async with self.session_factory() as session:
            query = select(AggregatedScoreModel).where(
                AggregatedScoreModel.execution_id == execution_id,
                AggregatedScoreModel.version == version,
            )
            result = await session.execute(query)
            score_model = result.scalar_one_or_none()
            if score_model is None:
                return None

            superseded = await self._superseded_versions(session, execution_id)
            return self.mapper.model_to_score(score_model, version in superseded)

    async def get_latest(self, execution_id: str) -> Optional[AggregatedScore]:
        """Get the highest version of an execution's aggregated score."""
        async with self.session_factory() as session:
            query = (
                select(AggregatedScoreModel)
                .where(AggregatedScoreModel.execution_id == execution_id)
                .order_by(AggregatedScoreModel.version.desc())
                .limit(1)
            )
            result = await session.execute(query)
            score_model = result.scalar_one_or_none()
            if score_model is None:
                return None

            superseded = await self._superseded_versions(session, execution_id)
            return self.mapper.model_to_score(score_model, score_model.version in superseded)

    async def get_history(self, execution_id: str) -> List[AggregatedScore]:
        """Get every version of an execution in ascending version order."""
        async with self.session_factory() as session:
            query = (
                select(AggregatedScoreModel)
                .where(AggregatedScoreModel.execution_id == execution_id)
                .order_by(AggregatedScoreModel.version.asc())
            )
            result = await session.execute(query)
            score_models = result.scalars().all()

            superseded = await self._superseded_versions(session, execution_id)
            return [
                self.mapper.model_to_score(model, model.version in superseded)
                for model in score_models
            ]

    async def next_version(self, execution_id: str) -> int:
        """Get the version the next computation should be stored under."""
        async with self.session_factory() as session:
            query = select(func.max(AggregatedScoreModel.version)).where(
                AggregatedScoreModel.execution_id == execution_id
            )
            result = await session.execute(query)
            latest = result.scalar()
            return (latest or 0) + 1

    async def mark_superseded(
        self, execution_id: str, version: int, superseded_by: int, reason: Optional[str] = None
    ) -> None:
        """Append a supersession record; stored payloads are never rewritten."""
        async with self.session_factory() as session:
            try:
                session.add(
                    AggregationSupersessionModel(
                        execution_id=execution_id,
                        version=version,
                        superseded_by=superseded_by,
                        reason=reason,
                    )
                )
                await session.commit()
            except IntegrityError as e:
                await session.rollback()
                raise VersionConflictError(
                    f"Execution {execution_id} v{version} is already superseded"
                ) from e
            except Exception:
                await session.rollback()
                raise

        logger.debug(f"Marked {execution_id} v{version} superseded by v{superseded_by}")

    async def _superseded_versions(self, session, execution_id: str) -> Set[int]:
        query = select(AggregationSupersessionModel.version).where(
            AggregationSupersessionModel.execution_id == execution_id
        )
        result = await session.execute(query)
        return set(result.scalars().all())


class SqlAlchemyJudgeScoreRepository(JudgeScoreRepository):
    """SQLAlchemy implementation of JudgeScoreRepository."""

    def __init__(self, session_factory: SessionFactory):
        self.session_factory = session_factory
        self.mapper = AggregationMapper()

    async def add_record(self, execution_id: str, record: Dict[str, Any]) -> None:
        """Append a raw judge score record for an execution."""
        async with self.session_factory() as session:
            try:
                session.add(self.mapper.record_to_model(execution_id, record))
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    async def list_records(self, execution_id: str) -> List[Dict[str, Any]]:
        """Snapshot of the records submitted for an execution, in arrival order."""
        async with self.session_factory() as session:
            query = (
                select(JudgeScoreRecordModel)
                .where(JudgeScoreRecordModel.execution_id == execution_id)
                .order_by(JudgeScoreRecordModel.id.asc())
            )
            result = await session.execute(query)
            return [self.mapper.model_to_record(model) for model in result.scalars().all()]

    async def list_executions(self) -> List[str]:
        """Executions with at least one submitted record."""
        async with self.session_factory() as session:
            query = (
                select(JudgeScoreRecordModel.execution_id)
                .distinct()
                .order_by(JudgeScoreRecordModel.execution_id)
            )
            result = await session.execute(query)
            return list(result.scalars().all())
