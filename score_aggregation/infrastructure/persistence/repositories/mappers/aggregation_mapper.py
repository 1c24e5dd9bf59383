"""Domain-model mapper for Aggregation domain."""

import json
from dataclasses import replace
from typing import Any, Dict

from .....domain.aggregation.entities.aggregated_score import AggregatedScore
from .....domain.aggregation.value_objects.aggregation_status import AggregationStatus
from ...models.aggregation_models import AggregatedScoreModel, JudgeScoreRecordModel


class AggregationMapper:
    """Mapper between Aggregation domain entities and database models."""

    def score_to_model(self, score: AggregatedScore) -> AggregatedScoreModel:
        """Convert AggregatedScore domain entity to database model."""
        return AggregatedScoreModel(
            id=str(score.id),
            execution_id=score.execution_id,
            version=score.version,
            status=score.status.value,
            overall_score=score.overall_score,
            overall_confidence=score.confidence.overall_confidence,
            payload=score.to_dict(),
            created_at=score.created_at,
        )

    def model_to_score(
        self, score_model: AggregatedScoreModel, superseded: bool = False
    ) -> AggregatedScore:
        """Convert database model to AggregatedScore domain entity.

        The stored payload is immutable, so supersession is applied on read.
        """
        score = AggregatedScore.from_dict(score_model.payload)
        if superseded and score.status != AggregationStatus.SUPERSEDED:
            score = replace(score, status=AggregationStatus.SUPERSEDED)
        return score

    def record_to_model(self, execution_id: str, record: Dict[str, Any]) -> JudgeScoreRecordModel:
        """Convert a raw judge score submission to database model."""
        judge_id = record.get("judge_id") if isinstance(record, dict) else None
        return JudgeScoreRecordModel(
            execution_id=execution_id,
            judge_id=str(judge_id) if judge_id is not None else None,
            # Decimals and datetimes are stored as strings
            payload=json.loads(json.dumps(record, default=str)),
        )

    def model_to_record(self, record_model: JudgeScoreRecordModel) -> Dict[str, Any]:
        """Convert database model to a raw judge score submission."""
        return dict(record_model.payload)
