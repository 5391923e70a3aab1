"""seed reference work types and roles

Revision ID: 20261019_0002
Revises: 20261019_0001
Create Date: 2026-10-19

Seeds the data the planner needs before the first allocation:
- work types: Project, Holiday, Internal, PreSales
- roles: admin (admin access), Consultant (plannable)
"""

from __future__ import annotations

import uuid

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "20261019_0002"
down_revision = "20261019_0001"
branch_labels = None
depends_on = None


WORK_TYPES = [
    {"name": "Project", "description": "Billable project delivery", "color": "#2563eb"},
    {"name": "Holiday", "description": "Leave and public holidays", "color": "#16a34a"},
    {"name": "Internal", "description": "Internal initiatives and training", "color": "#9333ea"},
    {"name": "PreSales", "description": "Opportunity and bid support", "color": "#ea580c"},
]

ROLES = [
    {"name": "admin", "label": "Administrator", "is_admin": True, "is_plannable": False},
    {"name": "Consultant", "label": "Consultant", "is_admin": False, "is_plannable": True},
]


def upgrade() -> None:
    work_types_table = sa.table(
        "work_types",
        sa.column("id", postgresql.UUID(as_uuid=True)),
        sa.column("name", sa.String),
        sa.column("description", sa.String),
        sa.column("color", sa.String),
        sa.column("is_active", sa.Boolean),
    )
    roles_table = sa.table(
        "roles",
        sa.column("id", postgresql.UUID(as_uuid=True)),
        sa.column("name", sa.String),
        sa.column("label", sa.String),
        sa.column("is_admin", sa.Boolean),
        sa.column("is_plannable", sa.Boolean),
    )

    op.bulk_insert(
        work_types_table,
        [{"id": uuid.uuid4(), "is_active": True, **row} for row in WORK_TYPES],
    )
    op.bulk_insert(roles_table, [{"id": uuid.uuid4(), **row} for row in ROLES])


def downgrade() -> None:
    work_type_names = ", ".join(f"'{row['name']}'" for row in WORK_TYPES)
    role_names = ", ".join(f"'{row['name']}'" for row in ROLES)
    op.execute(f"DELETE FROM work_types WHERE name IN ({work_type_names})")
    op.execute(f"DELETE FROM roles WHERE name IN ({role_names})")
