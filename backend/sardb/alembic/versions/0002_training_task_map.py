"""Add training task map and test flags on activities.

Revision ID: 0002_training_task_map
Revises: 0001_initial_schema
Create Date: 2026-10-19 15:00:00.000000
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect


# revision identifiers, used by Alembic.
revision = "0002_training_task_map"
down_revision = "0001_initial_schema"
branch_labels = None
depends_on = None

ACTIVITY_TABLES = ("training_sessions", "calls", "meetings", "events")


def _table_exists(table_name: str) -> bool:
    return bool(inspect(op.get_bind()).has_table(table_name))


def _column_exists(table_name: str, column_name: str) -> bool:
    insp = inspect(op.get_bind())
    if not insp.has_table(table_name):
        return False
    return any(c.get("name") == column_name for c in insp.get_columns(table_name))


def upgrade() -> None:
    for table in ACTIVITY_TABLES:
        if not _column_exists(table, "is_test"):
            with op.batch_alter_table(table) as batch_op:
                batch_op.add_column(
                    sa.Column("is_test", sa.Boolean(), nullable=False, server_default=sa.false())
                )

    if not _table_exists("training_task_map"):
        op.create_table(
            "training_task_map",
            sa.Column("id", sa.String(length=36), primary_key=True),
            sa.Column(
                "training_session_id",
                sa.String(length=36),
                sa.ForeignKey("training_sessions.id", ondelete="CASCADE"),
                nullable=False,
            ),
            sa.Column(
                "task_id",
                sa.String(length=36),
                sa.ForeignKey("position_tasks.id", ondelete="CASCADE"),
                nullable=False,
            ),
            sa.Column(
                "position_id",
                sa.String(length=36),
                sa.ForeignKey("positions.id", ondelete="SET NULL"),
                nullable=True,
            ),
            sa.Column("evaluation_method", sa.String(length=255), nullable=True),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
            sa.UniqueConstraint("training_session_id", "task_id", name="uq_training_task_map_session_task"),
        )
        op.create_index("ix_training_task_map_training_session_id", "training_task_map", ["training_session_id"])
        op.create_index("ix_training_task_map_task_id", "training_task_map", ["task_id"])


def downgrade() -> None:
    if _table_exists("training_task_map"):
        op.drop_index("ix_training_task_map_task_id", table_name="training_task_map")
        op.drop_index("ix_training_task_map_training_session_id", table_name="training_task_map")
        op.drop_table("training_task_map")

    for table in ACTIVITY_TABLES:
        if _column_exists(table, "is_test"):
            with op.batch_alter_table(table) as batch_op:
                batch_op.drop_column("is_test")
