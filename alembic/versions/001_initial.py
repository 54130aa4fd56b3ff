"""Initial schema: dimension tables and events

Revision ID: 001
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""
from collections.abc import Sequence

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    # Apps table
    op.create_table(
        "apps",
        sa.Column("id", sa.Integer, autoincrement=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_apps"),
        sa.UniqueConstraint("name", name="uq_apps_name"),
    )

    # Projects table
    op.create_table(
        "projects",
        sa.Column("id", sa.Integer, autoincrement=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("path", sa.Text, nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_projects"),
        sa.UniqueConstraint("name", "path", name="uq_projects_name_path"),
    )

    # Branches are scoped to a project
    op.create_table(
        "branches",
        sa.Column("id", sa.Integer, autoincrement=True),
        sa.Column(
            "project_id",
            sa.Integer,
            sa.ForeignKey("projects.id", name="fk_branches_project_id_projects"),
            nullable=False,
        ),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_branches"),
        sa.UniqueConstraint("project_id", "name", name="uq_branches_project_id_name"),
    )

    # Entities are scoped to a project
    op.create_table(
        "entities",
        sa.Column("id", sa.Integer, autoincrement=True),
        sa.Column(
            "project_id",
            sa.Integer,
            sa.ForeignKey("projects.id", name="fk_entities_project_id_projects"),
            nullable=False,
        ),
        sa.Column("name", sa.Text, nullable=False),
        sa.Column("entity_type", sa.String(50), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_entities"),
        sa.UniqueConstraint(
            "project_id",
            "name",
            "entity_type",
            name="uq_entities_project_id_name_entity_type",
        ),
    )

    # Languages table
    op.create_table(
        "languages",
        sa.Column("id", sa.Integer, autoincrement=True),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_languages"),
        sa.UniqueConstraint("name", name="uq_languages_name"),
    )

    # Events table
    op.create_table(
        "events",
        sa.Column("id", sa.Integer, autoincrement=True),
        sa.Column("timestamp", sa.DateTime(), nullable=False),
        sa.Column("end_timestamp", sa.DateTime()),
        sa.Column("duration", sa.Integer),
        sa.Column("activity_type", sa.String(50), nullable=False),
        sa.Column(
            "app_id",
            sa.Integer,
            sa.ForeignKey("apps.id", name="fk_events_app_id_apps"),
            nullable=False,
        ),
        sa.Column(
            "project_id",
            sa.Integer,
            sa.ForeignKey("projects.id", name="fk_events_project_id_projects"),
        ),
        sa.Column(
            "branch_id",
            sa.Integer,
            sa.ForeignKey("branches.id", name="fk_events_branch_id_branches"),
        ),
        sa.Column(
            "entity_id",
            sa.Integer,
            sa.ForeignKey("entities.id", name="fk_events_entity_id_entities"),
        ),
        sa.Column(
            "language_id",
            sa.Integer,
            sa.ForeignKey("languages.id", name="fk_events_language_id_languages"),
        ),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_events"),
    )
    op.create_index("idx_events_timestamp", "events", ["timestamp"])
    op.create_index("idx_events_activity_type", "events", ["activity_type"])
    op.create_index("idx_events_project_time", "events", ["project_id", "timestamp"])


def downgrade() -> None:
    op.drop_index("idx_events_project_time", table_name="events")
    op.drop_index("idx_events_activity_type", table_name="events")
    op.drop_index("idx_events_timestamp", table_name="events")
    op.drop_table("events")
    op.drop_table("languages")
    op.drop_table("entities")
    op.drop_table("branches")
    op.drop_table("projects")
    op.drop_table("apps")
