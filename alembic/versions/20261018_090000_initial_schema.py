"""Initial schema: tournaments, competitors, event types and ballots

Revision ID: 5a1e0c7d2b94
Revises:
Create Date: 2026-10-18 09:00:00.000000+00:00
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# Revision identifiers, used by Alembic.
revision: str = "5a1e0c7d2b94"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "tournaments",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("meeting_date", sa.DateTime(), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.Column("closed_at", sa.DateTime(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("idx_tournaments_status", "tournaments", ["status"], unique=False)

    op.create_table(
        "event_types",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("display_name", sa.String(length=255), nullable=False),
        sa.Column(
            "rubric_config",
            sa.JSON().with_variant(postgresql.JSONB(), "postgresql"),
            nullable=False,
        ),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("name"),
    )

    op.create_table(
        "competitors",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("tournament_id", sa.String(length=36), nullable=False),
        sa.Column("first_name", sa.String(length=100), nullable=False),
        sa.Column("last_name", sa.String(length=100), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("magic_token", sa.String(length=64), nullable=False),
        sa.Column("magic_link_sent_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(["tournament_id"], ["tournaments.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("magic_token"),
    )
    op.create_index("idx_competitors_tournament", "competitors", ["tournament_id"], unique=False)

    op.create_table(
        "ballots",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("tournament_id", sa.String(length=36), nullable=False),
        sa.Column("competitor_id", sa.String(length=36), nullable=False),
        sa.Column("event_type_id", sa.Integer(), nullable=False),
        sa.Column("device_id", sa.String(length=100), nullable=True),
        sa.Column("judge_name", sa.String(length=255), nullable=False),
        sa.Column("score_content", sa.Integer(), nullable=True),
        sa.Column("score_organization_citations", sa.Integer(), nullable=True),
        sa.Column("score_category3", sa.Integer(), nullable=True),
        sa.Column("score_category4", sa.Integer(), nullable=True),
        sa.Column("score_impact", sa.Integer(), nullable=True),
        sa.Column("comments_content", sa.Text(), nullable=True),
        sa.Column("comments_organization_citations", sa.Text(), nullable=True),
        sa.Column("comments_category3", sa.Text(), nullable=True),
        sa.Column("comments_category4", sa.Text(), nullable=True),
        sa.Column("comments_impact", sa.Text(), nullable=True),
        sa.Column("overall_comments", sa.Text(), nullable=True),
        sa.Column("total_time_seconds", sa.Integer(), nullable=True),
        sa.Column("speaker_rank", sa.Integer(), nullable=True),
        sa.Column("status", sa.String(length=20), nullable=False),
        sa.Column("draft_saved_at", sa.DateTime(), nullable=True),
        sa.Column("submitted_at", sa.DateTime(), nullable=True),
        sa.Column("ip_address", sa.String(length=64), nullable=True),
        sa.Column("user_agent", sa.String(length=512), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(["tournament_id"], ["tournaments.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["competitor_id"], ["competitors.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["event_type_id"], ["event_types.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "idx_ballots_tournament_status", "ballots", ["tournament_id", "status"], unique=False
    )
    op.create_index(
        "idx_ballots_competitor_status", "ballots", ["competitor_id", "status"], unique=False
    )
    # One open draft per device + competitor + event
    op.create_index(
        "uq_ballots_open_draft",
        "ballots",
        ["device_id", "competitor_id", "event_type_id"],
        unique=True,
        postgresql_where=sa.text("status = 'draft'"),
        sqlite_where=sa.text("status = 'draft'"),
    )


def downgrade() -> None:
    op.drop_index("uq_ballots_open_draft", table_name="ballots")
    op.drop_index("idx_ballots_competitor_status", table_name="ballots")
    op.drop_index("idx_ballots_tournament_status", table_name="ballots")
    op.drop_table("ballots")
    op.drop_index("idx_competitors_tournament", table_name="competitors")
    op.drop_table("competitors")
    op.drop_table("event_types")
    op.drop_index("idx_tournaments_status", table_name="tournaments")
    op.drop_table("tournaments")
