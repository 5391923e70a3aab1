"""initial schema

Revision ID: 20261019_0001
Revises:
Create Date: 2026-10-19
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "20261019_0001"
down_revision = None
branch_labels = None
depends_on = None


allocation_status = postgresql.ENUM("forecast", "confirmed", name="allocation_status", create_type=False)


def upgrade() -> None:
    allocation_status.create(op.get_bind(), checkfirst=True)

    op.create_table(
        "roles",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("name", sa.String(length=64), nullable=False, unique=True),
        sa.Column("label", sa.String(length=255), nullable=False),
        sa.Column("is_admin", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("is_plannable", sa.Boolean(), nullable=False, server_default=sa.text("true")),
    )

    op.create_table(
        "resources",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("email", sa.String(length=320), nullable=False, unique=True),
        sa.Column("job_title", sa.String(length=255), nullable=True),
        sa.Column("password_hash", sa.String(length=255), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )

    op.create_table(
        "resource_roles",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("resource_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("resources.id"), nullable=False),
        sa.Column("role_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("roles.id"), nullable=False),
        sa.UniqueConstraint("resource_id", "role_id", name="uq_resource_roles_resource_role"),
    )
    op.create_index("ix_resource_roles_role_id", "resource_roles", ["role_id"])

    op.create_table(
        "projects",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False, unique=True),
        sa.Column("customer", sa.String(length=255), nullable=True),
        sa.Column("description", sa.String(length=2000), nullable=True),
        sa.Column("start_date", sa.Date(), nullable=True),
        sa.Column("end_date", sa.Date(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint(
            "start_date IS NULL OR end_date IS NULL OR start_date <= end_date",
            name="ck_projects_date_range",
        ),
    )

    op.create_table(
        "work_types",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("name", sa.String(length=128), nullable=False, unique=True),
        sa.Column("description", sa.String(length=2000), nullable=True),
        sa.Column("color", sa.String(length=32), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
    )

    op.create_table(
        "allocations",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("resource_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("resources.id"), nullable=False),
        sa.Column("project_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("projects.id"), nullable=True),
        sa.Column("work_type_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("work_types.id"), nullable=False),
        sa.Column("week_start", sa.Date(), nullable=True),
        sa.Column("days", sa.Numeric(6, 2), nullable=False, server_default=sa.text("0")),
        sa.Column("notes", sa.String(length=2000), nullable=True),
        sa.Column("status", allocation_status, nullable=False, server_default="confirmed"),
        sa.Column("role", sa.String(length=255), nullable=True),
        sa.Column("quantity", sa.Integer(), nullable=True),
        sa.Column("days_per_week", sa.Integer(), nullable=True),
        sa.Column("num_weeks", sa.Integer(), nullable=True),
        sa.Column("start_date", sa.Date(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("days >= 0", name="ck_allocations_days_non_negative"),
        sa.CheckConstraint("quantity IS NULL OR quantity >= 1", name="ck_allocations_quantity_positive"),
        sa.CheckConstraint(
            "days_per_week IS NULL OR (days_per_week >= 1 AND days_per_week <= 5)",
            name="ck_allocations_days_per_week_range",
        ),
        sa.CheckConstraint("num_weeks IS NULL OR num_weeks >= 1", name="ck_allocations_num_weeks_positive"),
        sa.UniqueConstraint(
            "resource_id",
            "project_id",
            "work_type_id",
            "week_start",
            name="uq_allocations_resource_project_work_type_week",
        ),
    )
    op.execute(
        """
        CREATE UNIQUE INDEX uq_allocations_resource_work_type_week_no_project
        ON allocations (resource_id, work_type_id, week_start)
        WHERE project_id IS NULL
        """
    )
    op.create_index("ix_allocations_resource_week", "allocations", ["resource_id", "week_start"])
    op.create_index("ix_allocations_project_id", "allocations", ["project_id"])
    op.create_index("ix_allocations_week_start", "allocations", ["week_start"])

    op.create_table(
        "skills",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False, unique=True),
        sa.Column("description", sa.String(length=2000), nullable=True),
    )

    op.create_table(
        "resource_skills",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("resource_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("resources.id"), nullable=False),
        sa.Column("skill_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("skills.id"), nullable=False),
        sa.Column("proficiency", sa.String(length=64), nullable=True),
        sa.Column("expires_at", sa.Date(), nullable=True),
        sa.Column("notes", sa.String(length=2000), nullable=True),
        sa.UniqueConstraint("resource_id", "skill_id", name="uq_resource_skills_resource_skill"),
    )
    op.create_index("ix_resource_skills_skill_id", "resource_skills", ["skill_id"])


def downgrade() -> None:
    op.drop_index("ix_resource_skills_skill_id", table_name="resource_skills")
    op.drop_table("resource_skills")
    op.drop_table("skills")

    op.drop_index("ix_allocations_week_start", table_name="allocations")
    op.drop_index("ix_allocations_project_id", table_name="allocations")
    op.drop_index("ix_allocations_resource_week", table_name="allocations")
    op.execute("DROP INDEX IF EXISTS uq_allocations_resource_work_type_week_no_project")
    op.drop_table("allocations")

    op.drop_table("work_types")
    op.drop_table("projects")
    op.drop_index("ix_resource_roles_role_id", table_name="resource_roles")
    op.drop_table("resource_roles")
    op.drop_table("resources")
    op.drop_table("roles")

    allocation_status.drop(op.get_bind(), checkfirst=True)
