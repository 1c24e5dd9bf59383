"""Dependency injection container wiring the aggregation service."""

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Optional

from ..application.services.aggregation_service import AggregationService
from .events.logging_event_publisher import LoggingEventPublisher
from .persistence.database import DatabaseManager
from .persistence.repositories.aggregation_repository_impl import (
    SqlAlchemyAggregationRepository,
    SqlAlchemyJudgeScoreRepository,
)
from .settings import EngineSettings

logger = logging.getLogger(__name__)


class Container:
    """Owns the database manager, repositories and service for one process."""

    def __init__(self, settings: Optional[EngineSettings] = None):
        self.settings = settings or EngineSettings.from_env()
        self.database = DatabaseManager(self.settings.database_config())
        self.event_publisher = LoggingEventPublisher()
        self._executor: Optional[ThreadPoolExecutor] = None
        self._aggregation_repository = None
        self._judge_score_repository = None
        self._service: Optional[AggregationService] = None
        self._initialized = False

    async def wire_dependencies(self) -> None:
        """Initialize and wire all dependencies."""
        if self._initialized:
            return

        logger.debug("Wiring aggregation dependencies")
        await self.database.create_tables()

        session_factory = self.database.get_async_session_factory()
        self._aggregation_repository = SqlAlchemyAggregationRepository(session_factory)
        self._judge_score_repository = SqlAlchemyJudgeScoreRepository(session_factory)

        if self.settings.max_workers:
            self._executor = ThreadPoolExecutor(
                max_workers=self.settings.max_workers, thread_name_prefix="aggregation"
            )

        self._service = AggregationService(
            aggregation_repository=self._aggregation_repository,
            judge_score_repository=self._judge_score_repository,
            event_publisher=self.event_publisher,
            executor=self._executor,
            debounce_seconds=self.settings.debounce_seconds,
        )
        self._initialized = True

    async def get_aggregation_service(self) -> AggregationService:
        await self.wire_dependencies()
        return self._service

    async def get_judge_score_repository(self) -> SqlAlchemyJudgeScoreRepository:
        await self.wire_dependencies()
        return self._judge_score_repository

    async def cleanup(self) -> None:
        """Release the executor and database connections."""
        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None
        await self.database.close()
        self._initialized = False
