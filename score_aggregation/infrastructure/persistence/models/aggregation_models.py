"""Database models for Aggregation domain."""

from datetime import datetime, timezone

from sqlalchemy import (
    JSON,
    Column,
    DateTime,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)

from ..database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AggregatedScoreModel(Base):
    """Aggregated score version database model.

    Rows are never updated; the full entity is kept in ``payload`` and the
    scalar columns exist for querying.
    """

    __tablename__ = "aggregated_scores"

    id = Column(String(36), primary_key=True)
    execution_id = Column(String(255), nullable=False)
    version = Column(Integer, nullable=False)
    status = Column(String(20), nullable=False)
    overall_score = Column(Numeric(6, 3), nullable=False)
    overall_confidence = Column(Numeric(4, 3), nullable=False)
    payload = Column(JSON, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)

    __table_args__ = (
        UniqueConstraint("execution_id", "version", name="uq_aggregated_scores_execution_version"),
        Index("ix_aggregated_scores_execution", "execution_id"),
        Index("ix_aggregated_scores_status", "status"),
    )

    def __repr__(self) -> str:
        return (
            f"<AggregatedScoreModel(execution_id='{self.execution_id}', "
            f"version={self.version}, status='{self.status}')>"
        )


class AggregationSupersessionModel(Base):
    """Supersession record linking a version to the one that replaced it."""

    __tablename__ = "aggregation_supersessions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    execution_id = Column(String(255), nullable=False)
    version = Column(Integer, nullable=False)
    superseded_by = Column(Integer, nullable=False)
    reason = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)

    __table_args__ = (
        UniqueConstraint(
            "execution_id", "version", name="uq_aggregation_supersessions_execution_version"
        ),
        Index("ix_aggregation_supersessions_execution", "execution_id"),
    )

    def __repr__(self) -> str:
        return (
            f"<AggregationSupersessionModel(execution_id='{self.execution_id}', "
            f"version={self.version}, superseded_by={self.superseded_by})>"
        )


class JudgeScoreRecordModel(Base):
    """Raw judge score submission database model."""

    __tablename__ = "judge_score_records"

    id = Column(Integer, primary_key=True, autoincrement=True)
    execution_id = Column(String(255), nullable=False)
    judge_id = Column(String(255), nullable=True)
    payload = Column(JSON, nullable=False)
    received_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)

    __table_args__ = (
        Index("ix_judge_score_records_execution", "execution_id"),
        Index("ix_judge_score_records_execution_judge", "execution_id", "judge_id"),
    )

    def __repr__(self) -> str:
        return (
            f"<JudgeScoreRecordModel(execution_id='{self.execution_id}', "
            f"judge_id='{self.judge_id}')>"
        )
