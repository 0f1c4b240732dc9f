"""initial schema

Revision ID: 3b9d1c7e5a20
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""

from collections.abc import Sequence

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "3b9d1c7e5a20"
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _id() -> sa.Column:
    return sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True)


def _fk(name: str, target: str, *, nullable: bool = False, index: bool = False) -> sa.Column:
    return sa.Column(
        name,
        postgresql.UUID(as_uuid=True),
        sa.ForeignKey(target),
        nullable=nullable,
        index=index,
    )


def upgrade() -> None:
    op.create_table(
        "users",
        _id(),
        sa.Column("email", sa.String(length=320), nullable=False, unique=True),
        sa.Column("first_name", sa.String(length=255), nullable=False, server_default=""),
        sa.Column("last_name", sa.String(length=255), nullable=False, server_default=""),
        sa.Column(
            "roles",
            postgresql.ARRAY(sa.String()),
            nullable=False,
            server_default="{}",
        ),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
    )
    op.create_table(
        "institutions",
        _id(),
        sa.Column("name", sa.String(length=255), nullable=False),
    )
    op.create_table(
        "courses",
        _id(),
        sa.Column("title", sa.String(length=500), nullable=False),
        _fk("educator_id", "users.id", nullable=True),
        _fk("institution_id", "institutions.id", nullable=True),
        sa.Column("duration_hours", sa.Integer(), nullable=True),
        sa.Column("status", sa.String(length=32), nullable=False, server_default="published"),
    )
    op.create_table(
        "course_modules",
        _id(),
        _fk("course_id", "courses.id", index=True),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column("title", sa.String(length=500), nullable=False),
    )
    op.create_table(
        "lessons",
        _id(),
        _fk("module_id", "course_modules.id", index=True),
        sa.Column("title", sa.String(length=500), nullable=False),
        sa.Column("material_kind", sa.String(length=32), nullable=False, server_default="video"),
        sa.Column("position", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
    )
    op.create_table(
        "enrollments",
        _id(),
        _fk("learner_id", "users.id"),
        _fk("course_id", "courses.id"),
        sa.Column("status", sa.String(length=32), nullable=False, server_default="active"),
        sa.Column("enrolled_at", sa.Integer(), nullable=False),
        sa.Column("completed_at", sa.Integer(), nullable=True),
        sa.UniqueConstraint("learner_id", "course_id", name="uq_enrollments_learner_course"),
    )
    op.create_table(
        "lesson_performance",
        _id(),
        _fk("user_id", "users.id"),
        _fk("lesson_id", "lessons.id", index=True),
        sa.Column("material_kind", sa.String(length=32), nullable=True),
        sa.Column("score", sa.Float(), nullable=False, server_default="0"),
        sa.Column("max_score", sa.Float(), nullable=False, server_default="100"),
        sa.Column("percentage", sa.Float(), nullable=False, server_default="0"),
        sa.Column("time_spent_seconds", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("is_completed", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("attempt_number", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("started_at", sa.Integer(), nullable=False),
        sa.Column("completed_at", sa.Integer(), nullable=True),
        sa.UniqueConstraint(
            "user_id", "lesson_id", "attempt_number", name="uq_lesson_performance_attempt"
        ),
        sa.CheckConstraint(
            "percentage >= 0 AND percentage <= 100",
            name="ck_lesson_performance_percentage",
        ),
        sa.CheckConstraint("max_score > 0", name="ck_lesson_performance_max_score"),
    )
    op.create_table(
        "certificates",
        _id(),
        sa.Column("code", sa.String(length=64), nullable=False),
        _fk("enrollment_id", "enrollments.id"),
        _fk("learner_id", "users.id"),
        _fk("course_id", "courses.id"),
        sa.Column("issued_at", sa.Integer(), nullable=False),
        sa.Column("final_score", sa.Float(), nullable=False, server_default="0"),
        sa.Column("total_hours", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("course_title", sa.String(length=500), nullable=False),
        sa.Column("course_duration_hours", sa.Integer(), nullable=True),
        sa.Column("learner_name", sa.String(length=511), nullable=False),
        sa.Column("educator_name", sa.String(length=511), nullable=False),
        sa.Column("institution_name", sa.String(length=255), nullable=False),
        sa.UniqueConstraint("enrollment_id", name="uq_certificates_enrollment_id"),
        sa.UniqueConstraint("code", name="uq_certificates_code"),
    )
    op.create_table(
        "payment_transactions",
        _id(),
        sa.Column("gateway", sa.String(length=32), nullable=False),
        sa.Column("gateway_transaction_id", sa.String(length=255), nullable=False, unique=True),
        _fk("learner_id", "users.id"),
        _fk("course_id", "courses.id"),
        sa.Column("amount_cents", sa.Integer(), nullable=False),
        sa.Column("currency", sa.String(length=3), nullable=False),
        sa.Column("status", sa.String(length=32), nullable=False, server_default="completed"),
        sa.Column("completed_at", sa.Integer(), nullable=False),
        sa.Column("gateway_response", sa.Text(), nullable=True),
    )


def downgrade() -> None:
    for table in (
        "payment_transactions",
        "certificates",
        "lesson_performance",
        "enrollments",
        "lessons",
        "course_modules",
        "courses",
        "institutions",
        "users",
    ):
        op.drop_table(table)
