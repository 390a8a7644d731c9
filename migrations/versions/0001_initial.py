"""Initial schema

Revision ID: 0001
Revises:
Create Date: 2026-10-19

"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

revision: str = "0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Pipeline jobs
    op.create_table(
        "quiz_jobs",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("account_id", sa.String(100), nullable=False),
        sa.Column("persona", sa.String(100), nullable=False),
        sa.Column("category", sa.String(100), nullable=False),
        sa.Column("difficulty", sa.String(20), nullable=False),
        sa.Column("step", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("retry_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column("data", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_quiz_jobs_account_id", "quiz_jobs", ["account_id"])
    op.create_index("ix_quiz_jobs_persona", "quiz_jobs", ["persona"])
    op.create_index("ix_quiz_jobs_claim", "quiz_jobs", ["step", "status", "created_at"])

    # Persona configuration
    op.create_table(
        "persona_configs",
        sa.Column("persona", sa.String(100), nullable=False),
        sa.Column("display_name", sa.String(255), nullable=False),
        sa.Column("categories", sa.JSON(), nullable=False),
        sa.Column("format", sa.String(50), nullable=False),
        sa.Column("timing_profile", sa.String(20), nullable=False),
        sa.Column("audio_track", sa.String(100), nullable=False),
        sa.Column("version", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("updated_source", sa.String(20), nullable=False, server_default="seed"),
        sa.Column("last_updated", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("persona"),
    )

    # Append-only metrics snapshots
    op.create_table(
        "video_analytics",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("job_id", sa.Uuid(), nullable=False),
        sa.Column("published_id", sa.String(100), nullable=False),
        sa.Column("account_id", sa.String(100), nullable=False),
        sa.Column("persona", sa.String(100), nullable=False),
        sa.Column("category", sa.String(100), nullable=False, server_default=""),
        sa.Column("format", sa.String(50), nullable=False),
        sa.Column("timing_bucket", sa.String(20), nullable=False),
        sa.Column("audio_track", sa.String(100), nullable=False),
        sa.Column("views", sa.BigInteger(), nullable=False, server_default="0"),
        sa.Column("likes", sa.BigInteger(), nullable=False, server_default="0"),
        sa.Column("comments", sa.BigInteger(), nullable=False, server_default="0"),
        sa.Column("watch_time_seconds", sa.Float(), nullable=True),
        sa.Column("avg_view_duration_seconds", sa.Float(), nullable=True),
        sa.Column("completion_rate", sa.Float(), nullable=True),
        sa.Column("engagement_rate", sa.Float(), nullable=False, server_default="0"),
        sa.Column("reward_score", sa.Float(), nullable=False, server_default="0"),
        sa.Column("published_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("collected_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_video_analytics_job_id", "video_analytics", ["job_id"])
    op.create_index("ix_video_analytics_account_id", "video_analytics", ["account_id"])
    op.create_index("ix_video_analytics_persona", "video_analytics", ["persona"])
    op.create_index(
        "ix_video_analytics_published_collected",
        "video_analytics",
        ["published_id", "collected_at"],
    )

    # Refinement reports
    op.create_table(
        "refinement_reports",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("report_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("report", sa.JSON(), nullable=False),
        sa.Column("applied", sa.JSON(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_refinement_reports_report_date", "refinement_reports", ["report_date"])


def downgrade() -> None:
    op.drop_index("ix_refinement_reports_report_date", table_name="refinement_reports")
    op.drop_table("refinement_reports")
    op.drop_index("ix_video_analytics_published_collected", table_name="video_analytics")
    op.drop_index("ix_video_analytics_persona", table_name="video_analytics")
    op.drop_index("ix_video_analytics_account_id", table_name="video_analytics")
    op.drop_index("ix_video_analytics_job_id", table_name="video_analytics")
    op.drop_table("video_analytics")
    op.drop_table("persona_configs")
    op.drop_index("ix_quiz_jobs_claim", table_name="quiz_jobs")
    op.drop_index("ix_quiz_jobs_persona", table_name="quiz_jobs")
    op.drop_index("ix_quiz_jobs_account_id", table_name="quiz_jobs")
    op.drop_table("quiz_jobs")
