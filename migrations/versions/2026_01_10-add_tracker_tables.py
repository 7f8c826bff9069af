"""Add tracker tables: teams, users, customers, tracker_projects, tracker_entries

Revision ID: add_tracker_tables
Revises:
Create Date: 2026-01-10 00:00:00.000000+00:00

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "add_tracker_tables"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "teams",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("created_at", postgresql.TIMESTAMP(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.Column("updated_at", postgresql.TIMESTAMP(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "users",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("team_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("full_name", sa.String(length=255), nullable=True),
        sa.Column("avatar_url", sa.String(length=500), nullable=True),
        sa.Column("created_at", postgresql.TIMESTAMP(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.Column("updated_at", postgresql.TIMESTAMP(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.ForeignKeyConstraint(["team_id"], ["teams.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_users_team_id", "users", ["team_id"], unique=False)
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    op.create_table(
        "customers",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("team_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("website", sa.String(length=500), nullable=True),
        sa.Column("created_at", postgresql.TIMESTAMP(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.Column("updated_at", postgresql.TIMESTAMP(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.ForeignKeyConstraint(["team_id"], ["teams.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_customers_team_id", "customers", ["team_id"], unique=False)

    op.create_table(
        "tracker_projects",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("team_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("customer_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("rate", sa.Numeric(precision=12, scale=2), nullable=True),
        sa.Column("currency", sa.String(length=3), nullable=True),
        sa.Column("created_at", postgresql.TIMESTAMP(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.Column("updated_at", postgresql.TIMESTAMP(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.ForeignKeyConstraint(["team_id"], ["teams.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["customer_id"], ["customers.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_tracker_projects_team_id", "tracker_projects", ["team_id"], unique=False)
    op.create_index("ix_tracker_projects_customer_id", "tracker_projects", ["customer_id"], unique=False)

    op.create_table(
        "tracker_entries",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("team_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("assigned_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("project_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("start", postgresql.TIMESTAMP(timezone=True), nullable=False),
        sa.Column("stop", postgresql.TIMESTAMP(timezone=True), nullable=True),
        sa.Column("duration", sa.Integer(), nullable=False, server_default=sa.text("-1")),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("created_at", postgresql.TIMESTAMP(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.Column("updated_at", postgresql.TIMESTAMP(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.ForeignKeyConstraint(["team_id"], ["teams.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["assigned_id"], ["users.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["project_id"], ["tracker_projects.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint(
            "(stop IS NULL AND duration = -1) OR (stop IS NOT NULL AND duration >= 0)",
            name="ck_tracker_entries_running_sentinel",
        ),
    )
    op.create_index("ix_tracker_entries_team_id", "tracker_entries", ["team_id"], unique=False)
    op.create_index("ix_tracker_entries_assigned_id", "tracker_entries", ["assigned_id"], unique=False)
    op.create_index("ix_tracker_entries_project_id", "tracker_entries", ["project_id"], unique=False)
    op.create_index("idx_tracker_entries_team_date", "tracker_entries", ["team_id", "date"], unique=False)
    op.create_index(
        "idx_tracker_entries_team_assignee",
        "tracker_entries",
        ["team_id", "assigned_id", "duration"],
        unique=False,
    )
    # At most one running timer per assignee within a team
    op.create_index(
        "uq_tracker_entries_one_running",
        "tracker_entries",
        ["team_id", "assigned_id"],
        unique=True,
        postgresql_where=sa.text("duration = -1"),
    )


def downgrade() -> None:
    op.drop_index("uq_tracker_entries_one_running", table_name="tracker_entries")
    op.drop_index("idx_tracker_entries_team_assignee", table_name="tracker_entries")
    op.drop_index("idx_tracker_entries_team_date", table_name="tracker_entries")
    op.drop_index("ix_tracker_entries_project_id", table_name="tracker_entries")
    op.drop_index("ix_tracker_entries_assigned_id", table_name="tracker_entries")
    op.drop_index("ix_tracker_entries_team_id", table_name="tracker_entries")
    op.drop_table("tracker_entries")

    op.drop_index("ix_tracker_projects_customer_id", table_name="tracker_projects")
    op.drop_index("ix_tracker_projects_team_id", table_name="tracker_projects")
    op.drop_table("tracker_projects")

    op.drop_index("ix_customers_team_id", table_name="customers")
    op.drop_table("customers")

    op.drop_index("ix_users_email", table_name="users")
    op.drop_index("ix_users_team_id", table_name="users")
    op.drop_table("users")

    op.drop_table("teams")
