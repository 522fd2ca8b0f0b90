"""create contents and episodes

Revision ID: 002
Revises: 001
Create Date: 2026-10-19

"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

revision: str = "002"
down_revision: Union[str, None] = "001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "contents",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=False, server_default=""),
        sa.Column("type", sa.String(10), nullable=False, server_default="movie"),
        sa.Column("genre", sa.JSON(), nullable=False),
        sa.Column("release_year", sa.Integer(), nullable=True),
        sa.Column("rating", sa.Float(), nullable=True),
        sa.Column("video_url", sa.String(1024), nullable=True),
        sa.Column("thumbnail_url", sa.String(1024), nullable=False, server_default=""),
        sa.Column("duration", sa.Integer(), nullable=True),
        sa.Column("access", sa.String(10), nullable=False, server_default="free"),
        sa.Column("file_size", sa.BigInteger(), nullable=True),
        sa.Column("target_age_group", sa.String(10), nullable=False, server_default="all"),
        sa.Column("target_gender", sa.String(10), nullable=False, server_default="all"),
        sa.Column("uploaded_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_table(
        "episodes",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("content_id", sa.String(36), sa.ForeignKey("contents.id", ondelete="CASCADE"), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("video_url", sa.String(1024), nullable=True),
        sa.Column("duration", sa.Integer(), nullable=True),
        sa.Column("thumbnail_url", sa.String(1024), nullable=True),
    )
    op.create_index("ix_episodes_content_id", "episodes", ["content_id"])


def downgrade() -> None:
    op.drop_index("ix_episodes_content_id", table_name="episodes")
    op.drop_table("episodes")
    op.drop_table("contents")
