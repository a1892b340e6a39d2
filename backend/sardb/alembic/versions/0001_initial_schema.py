"""initial schema

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "0001_initial_schema"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


member_status_enum = sa.Enum("active", "inactive", "prospective", name="member_status_enum")
member_position_status_enum = sa.Enum("trainee", "qualified", "inactive", name="member_position_status_enum")
training_attendance_status_enum = sa.Enum("attended", "absent", "excused", name="training_attendance_status_enum")


def _id() -> sa.Column:
    return sa.Column("id", sa.String(length=36), primary_key=True)


def _created_at() -> sa.Column:
    return sa.Column("created_at", sa.DateTime(timezone=True), nullable=False)


def _fk(name: str, target: str, *, nullable: bool, ondelete: str) -> sa.Column:
    return sa.Column(name, sa.String(length=36), sa.ForeignKey(target, ondelete=ondelete), nullable=nullable)


def _ix(table: str, *columns: str, name: str = None, unique: bool = False) -> None:
    op.create_index(name or f"ix_{table}_{columns[0]}", table, list(columns), unique=unique)


def _attendance_table(table: str, fk_name: str, target: str) -> None:
    op.create_table(
        table,
        _id(),
        _fk(fk_name, target, nullable=False, ondelete="CASCADE"),
        _fk("member_id", "members.id", nullable=False, ondelete="CASCADE"),
        sa.Column("time_in", sa.DateTime(timezone=True), nullable=True),
        sa.Column("time_out", sa.DateTime(timezone=True), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        _created_at(),
        sa.UniqueConstraint(fk_name, "member_id", name=f"uq_{table}_{fk_name.rsplit('_id', 1)[0]}_member"),
    )
    _ix(table, fk_name)
    _ix(table, "member_id")


def _activity_table(table: str, *extra: sa.Column, title_nullable: bool = False) -> None:
    op.create_table(
        table,
        _id(),
        sa.Column("title", sa.String(length=255), nullable=title_nullable),
        *extra,
        sa.Column("start_dt", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_dt", sa.DateTime(timezone=True), nullable=True),
        sa.Column("location_text", sa.String(length=255), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        _created_at(),
    )
    _ix(table, "start_dt")


def upgrade() -> None:
    # --- accounts -----------------------------------------------------------
    op.create_table(
        "roles",
        _id(),
        sa.Column("name", sa.String(length=64), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        _created_at(),
    )
    _ix("roles", "name", unique=True)

    op.create_table(
        "role_permissions",
        _id(),
        _fk("role_id", "roles.id", nullable=False, ondelete="CASCADE"),
        sa.Column("permission_key", sa.String(length=64), nullable=False),
        sa.UniqueConstraint("role_id", "permission_key", name="uq_role_permissions_role_key"),
    )
    _ix("role_permissions", "role_id")
    _ix("role_permissions", "permission_key")

    # --- members ------------------------------------------------------------
    op.create_table(
        "members",
        _id(),
        sa.Column("first_name", sa.String(length=128), nullable=False),
        sa.Column("last_name", sa.String(length=128), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=True),
        sa.Column("phone", sa.String(length=64), nullable=True),
        sa.Column("status", member_status_enum, nullable=False),
        sa.Column("role", sa.String(length=64), nullable=False),
        sa.Column("hashed_password", sa.String(length=255), nullable=True),
        sa.Column("joined_on", sa.Date(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        _created_at(),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )
    _ix("members", "email", unique=True)
    _ix("members", "status")
    _ix("members", "role")
    _ix("members", "status", "last_name", "first_name", name="idx_members_status_name")

    # --- training -----------------------------------------------------------
    op.create_table(
        "courses",
        _id(),
        sa.Column("code", sa.String(length=64), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("valid_months", sa.Integer(), nullable=False),
        sa.Column("warning_days", sa.Integer(), nullable=False),
        sa.Column("never_expires", sa.Boolean(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        _created_at(),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )
    _ix("courses", "code", unique=True)
    _ix("courses", "is_active")

    op.create_table(
        "member_certifications",
        _id(),
        _fk("member_id", "members.id", nullable=False, ondelete="CASCADE"),
        _fk("course_id", "courses.id", nullable=False, ondelete="CASCADE"),
        sa.Column("completed_at", sa.Date(), nullable=False),
        sa.Column("expires_at", sa.Date(), nullable=True),
        sa.Column("issuer", sa.String(length=255), nullable=True),
        sa.Column("certificate_number", sa.String(length=128), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        _created_at(),
    )
    _ix("member_certifications", "member_id")
    _ix("member_certifications", "course_id")
    _ix("member_certifications", "member_id", "course_id", name="idx_member_certs_member_course")
    _ix("member_certifications", "expires_at", name="idx_member_certs_expires")

    # --- activity -----------------------------------------------------------
    _activity_table("training_sessions", sa.Column("instructor", sa.String(length=255), nullable=True))
    op.create_table(
        "training_attendance",
        _id(),
        _fk("training_session_id", "training_sessions.id", nullable=False, ondelete="CASCADE"),
        _fk("member_id", "members.id", nullable=False, ondelete="CASCADE"),
        sa.Column("status", training_attendance_status_enum, nullable=False),
        sa.Column("hours", sa.Float(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        _created_at(),
        sa.UniqueConstraint("training_session_id", "member_id", name="uq_training_attendance_session_member"),
    )
    _ix("training_attendance", "training_session_id")
    _ix("training_attendance", "member_id")
    _ix("training_attendance", "status")

    _activity_table(
        "calls",
        sa.Column("call_type", sa.String(length=64), nullable=True),
        sa.Column("summary", sa.Text(), nullable=True),
        sa.Column("outcome", sa.Text(), nullable=True),
        title_nullable=True,
    )
    _attendance_table("call_attendance", "call_id", "calls.id")

    _activity_table("meetings")
    _attendance_table("meeting_attendance", "meeting_id", "meetings.id")

    _activity_table("events")
    _attendance_table("event_attendance", "event_id", "events.id")

    # --- positions ----------------------------------------------------------
    op.create_table(
        "positions",
        _id(),
        sa.Column("code", sa.String(length=64), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("level", sa.Integer(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        _created_at(),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )
    _ix("positions", "code", unique=True)
    _ix("positions", "is_active")

    op.create_table(
        "position_req_groups",
        _id(),
        _fk("position_id", "positions.id", nullable=False, ondelete="CASCADE"),
        sa.Column("label", sa.String(length=255), nullable=False),
        sa.Column("min_met", sa.Integer(), nullable=False),
        _created_at(),
    )
    _ix("position_req_groups", "position_id")

    op.create_table(
        "position_tasks",
        _id(),
        sa.Column("task_code", sa.String(length=64), nullable=False),
        sa.Column("task_name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        _fk("position_id", "positions.id", nullable=True, ondelete="SET NULL"),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        _created_at(),
    )
    _ix("position_tasks", "task_code")
    _ix("position_tasks", "position_id")
    _ix("position_tasks", "is_active")

    op.create_table(
        "position_requirements",
        _id(),
        _fk("position_id", "positions.id", nullable=False, ondelete="CASCADE"),
        sa.Column("req_kind", sa.String(length=32), nullable=False),
        _fk("req_group_id", "position_req_groups.id", nullable=True, ondelete="SET NULL"),
        _fk("course_id", "courses.id", nullable=True, ondelete="CASCADE"),
        _fk("required_position_id", "positions.id", nullable=True, ondelete="CASCADE"),
        _fk("task_id", "position_tasks.id", nullable=True, ondelete="CASCADE"),
        sa.Column("min_count", sa.Integer(), nullable=True),
        sa.Column("activity_type", sa.String(length=16), nullable=True),
        sa.Column("within_months", sa.Integer(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        _created_at(),
    )
    for column in ("position_id", "req_kind", "req_group_id", "course_id", "required_position_id", "task_id"):
        _ix("position_requirements", column)
    _ix("position_requirements", "position_id", "req_kind", name="idx_position_requirements_position_kind")

    op.create_table(
        "task_requirements",
        _id(),
        _fk("task_id", "position_tasks.id", nullable=False, ondelete="CASCADE"),
        sa.Column("req_kind", sa.String(length=32), nullable=False),
        sa.Column("min_count", sa.Integer(), nullable=True),
        sa.Column("activity_type", sa.String(length=16), nullable=True),
        sa.Column("within_months", sa.Integer(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        _created_at(),
    )
    _ix("task_requirements", "task_id")

    op.create_table(
        "member_positions",
        _id(),
        _fk("member_id", "members.id", nullable=False, ondelete="CASCADE"),
        _fk("position_id", "positions.id", nullable=False, ondelete="CASCADE"),
        sa.Column("status", member_position_status_enum, nullable=False),
        sa.Column("awarded_at", sa.Date(), nullable=True),
        sa.Column("expires_at", sa.Date(), nullable=True),
        _fk("approved_by", "members.id", nullable=True, ondelete="SET NULL"),
        sa.Column("approved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        _created_at(),
        sa.UniqueConstraint("member_id", "position_id", name="uq_member_positions_member_position"),
    )
    _ix("member_positions", "member_id")
    _ix("member_positions", "position_id")
    _ix("member_positions", "status")
    _ix("member_positions", "position_id", "status", name="idx_member_positions_status")

    op.create_table(
        "member_task_signoffs",
        _id(),
        _fk("member_id", "members.id", nullable=False, ondelete="CASCADE"),
        _fk("task_id", "position_tasks.id", nullable=False, ondelete="CASCADE"),
        _fk("position_id", "positions.id", nullable=True, ondelete="SET NULL"),
        _fk("call_id", "calls.id", nullable=True, ondelete="SET NULL"),
        _fk("training_session_id", "training_sessions.id", nullable=True, ondelete="SET NULL"),
        sa.Column("evaluator_name", sa.String(length=255), nullable=True),
        sa.Column("evaluator_position", sa.String(length=255), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("signed_at", sa.DateTime(timezone=True), nullable=False),
    )
    _ix("member_task_signoffs", "member_id")
    _ix("member_task_signoffs", "task_id")
    _ix("member_task_signoffs", "position_id")
    _ix("member_task_signoffs", "member_id", "task_id", name="idx_member_task_signoffs_member_task")

    # --- audit --------------------------------------------------------------
    op.create_table(
        "audit_events",
        _id(),
        sa.Column("entity_type", sa.String(length=64), nullable=False),
        sa.Column("entity_id", sa.String(length=64), nullable=False),
        sa.Column("action", sa.String(length=64), nullable=False),
        _fk("actor_member_id", "members.id", nullable=True, ondelete="SET NULL"),
        sa.Column("occurred_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("before", sa.JSON(), nullable=True),
        sa.Column("after", sa.JSON(), nullable=True),
        sa.Column("correlation_id", sa.String(length=64), nullable=True),
        sa.Column("metadata", sa.JSON(), nullable=True),
        _created_at(),
    )
    _ix("audit_events", "id")
    _ix("audit_events", "entity_type")
    _ix("audit_events", "entity_id")
    _ix("audit_events", "actor_member_id")
    _ix("audit_events", "occurred_at")
    _ix("audit_events", "correlation_id")
    _ix("audit_events", "entity_type", "entity_id", name="ix_audit_events_entity")
    _ix("audit_events", "action", name="ix_audit_events_action")
    op.create_index("ix_audit_events_time_desc", "audit_events", [sa.text("occurred_at DESC")])


def downgrade() -> None:
    for table in (
        "audit_events",
        "member_task_signoffs",
        "member_positions",
        "task_requirements",
        "position_requirements",
        "position_tasks",
        "position_req_groups",
        "positions",
        "event_attendance",
        "events",
        "meeting_attendance",
        "meetings",
        "call_attendance",
        "calls",
        "training_attendance",
        "training_sessions",
        "member_certifications",
        "courses",
        "members",
        "role_permissions",
        "roles",
    ):
        op.drop_table(table)

    bind = op.get_bind()
    for enum in (training_attendance_status_enum, member_position_status_enum, member_status_enum):
        enum.drop(bind, checkfirst=True)
