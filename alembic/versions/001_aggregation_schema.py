"""Aggregated score, supersession and judge record tables

Revision ID: 001
Revises:
Create Date: 2026-10-16 09:00:00.000000

"""
from typing import Sequence, Union

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create the append-only aggregation tables."""
    op.create_table(
        "aggregated_scores",
        sa.Column("id", sa.String(36), nullable=False),
        sa.Column("execution_id", sa.String(255), nullable=False),
        sa.Column("version", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("overall_score", sa.Numeric(6, 3), nullable=False),
        sa.Column("overall_confidence", sa.Numeric(4, 3), nullable=False),
        sa.Column("payload", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_aggregated_scores"),
        sa.UniqueConstraint(
            "execution_id", "version", name="uq_aggregated_scores_execution_version"
        ),
    )
    op.create_index("ix_aggregated_scores_execution", "aggregated_scores", ["execution_id"])
    op.create_index("ix_aggregated_scores_status", "aggregated_scores", ["status"])

    op.create_table(
        "aggregation_supersessions",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("execution_id", sa.String(255), nullable=False),
        sa.Column("version", sa.Integer(), nullable=False),
        sa.Column("superseded_by", sa.Integer(), nullable=False),
        sa.Column("reason", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_aggregation_supersessions"),
        sa.UniqueConstraint(
            "execution_id", "version", name="uq_aggregation_supersessions_execution_version"
        ),
    )
    op.create_index(
        "ix_aggregation_supersessions_execution", "aggregation_supersessions", ["execution_id"]
    )

    op.create_table(
        "judge_score_records",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("execution_id", sa.String(255), nullable=False),
        sa.Column("judge_id", sa.String(255), nullable=True),
        sa.Column("payload", sa.JSON(), nullable=False),
        sa.Column("received_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_judge_score_records"),
    )
    op.create_index("ix_judge_score_records_execution", "judge_score_records", ["execution_id"])
    op.create_index(
        "ix_judge_score_records_execution_judge",
        "judge_score_records",
        ["execution_id", "judge_id"],
    )


def downgrade() -> None:
    """Drop the aggregation tables."""
    op.drop_index("ix_judge_score_records_execution_judge", table_name="judge_score_records")
    op.drop_index("ix_judge_score_records_execution", table_name="judge_score_records")
    op.drop_table("judge_score_records")

    op.drop_index(
        "ix_aggregation_supersessions_execution", table_name="aggregation_supersessions"
    )
    op.drop_table("aggregation_supersessions")

    op.drop_index("ix_aggregated_scores_status", table_name="aggregated_scores")
    op.drop_index("ix_aggregated_scores_execution", table_name="aggregated_scores")
    op.drop_table("aggregated_scores")
