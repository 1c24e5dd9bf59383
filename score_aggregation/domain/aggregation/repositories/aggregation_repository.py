"""Repository interfaces for aggregation domain."""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from ..entities.aggregated_score import AggregatedScore


class AggregationRepository(ABC):
    """Append-only store of aggregated score versions."""

    @abstractmethod
    async def save(self, score: AggregatedScore) -> None:
        """Append a new version.

        Raises VersionConflictError when the execution already has the version.
        """
        pass

    @abstractmethod
    async def get(self, execution_id: str, version: int) -> Optional[AggregatedScore]:
        """Get one version of an execution's aggregated score."""
        pass

    @abstractmethod
    async def get_latest(self, execution_id: str) -> Optional[AggregatedScore]:
        """Get the highest version of an execution's aggregated score."""
        pass

    @abstractmethod
    async def get_history(self, execution_id: str) -> List[AggregatedScore]:
        """Get every version of an execution in ascending version order."""
        pass

    @abstractmethod
    async def next_version(self, execution_id: str) -> int:
        """Get the version the next computation should be stored under."""
        pass

    @abstractmethod
    async def mark_superseded(
        self, execution_id: str, version: int, superseded_by: int, reason: Optional[str] = None
    ) -> None:
        """Record that a version has been replaced by a later one."""
        pass


class JudgeScoreRepository(ABC):
    """Append-only store of raw judge score submissions."""

    @abstractmethod
    async def add_record(self, execution_id: str, record: Dict[str, Any]) -> None:
        """Append a raw judge score record for an execution."""
        pass

    @abstractmethod
    async def list_records(self, execution_id: str) -> List[Dict[str, Any]]:
        """Snapshot of the records submitted for an execution, in arrival order."""
        pass

    @abstractmethod
    async def list_executions(self) -> List[str]:
        """Executions with at least one submitted record."""
        pass
