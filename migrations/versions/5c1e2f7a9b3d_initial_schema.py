"""initial schema

Revision ID: 5c1e2f7a9b3d
Revises:
Create Date: 2026-10-19 09:12:41.318204

"""
from __future__ import annotations

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "5c1e2f7a9b3d"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create users, ghost circles, posts, likes, tag links and tags."""
    op.create_table(
        "app_user",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("anonymous_alias", sa.Text(), nullable=True),
        sa.Column("avatar_emoji", sa.Text(), nullable=True),
        sa.Column("college", sa.Text(), nullable=True),
        sa.Column("area", sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_table(
        "ghost_circle",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("creator_id", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["creator_id"], ["app_user.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_table(
        "ghost_circle_member",
        sa.Column("circle_id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(["circle_id"], ["ghost_circle.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["user_id"], ["app_user.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("circle_id", "user_id"),
    )
    op.create_table(
        "post",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("author_id", sa.Integer(), nullable=True),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("images", sa.JSON(), nullable=False),
        sa.Column("videos", sa.JSON(), nullable=False),
        sa.Column("anonymous_alias", sa.Text(), nullable=False),
        sa.Column("avatar_emoji", sa.Text(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("college", sa.Text(), nullable=True),
        sa.Column("area", sa.Text(), nullable=True),
        sa.Column("ghost_circle_id", sa.Integer(), nullable=True),
        sa.Column("comments", sa.JSON(), nullable=False),
        sa.Column("share_count", sa.Integer(), nullable=False),
        sa.Column("is_seed", sa.Boolean(), nullable=False),
        sa.Column("version_id", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(["author_id"], ["app_user.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["ghost_circle_id"], ["ghost_circle.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_post_expires_at", "post", ["expires_at"])
    op.create_index("ix_post_college_id", "post", ["college", "id"])
    op.create_index("ix_post_area_id", "post", ["area", "id"])
    op.create_index("ix_post_ghost_circle_id", "post", ["ghost_circle_id", "id"])
    op.create_index("ix_post_is_seed_id", "post", ["is_seed", "id"])
    op.create_index("ix_post_author_id", "post", ["author_id"])

    op.create_table(
        "post_tag",
        sa.Column("post_id", sa.Integer(), nullable=False),
        sa.Column("tag_name", sa.Text(), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(["post_id"], ["post.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("post_id", "tag_name"),
    )
    op.create_index("ix_post_tag_tag_name_post_id", "post_tag", ["tag_name", "post_id"])

    op.create_table(
        "post_like",
        sa.Column("post_id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("anonymous_alias", sa.Text(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["post_id"], ["post.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["user_id"], ["app_user.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("post_id", "user_id"),
    )

    op.create_table(
        "tag",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("display_name", sa.Text(), nullable=False),
        sa.Column("post_count", sa.Integer(), nullable=False),
        sa.Column("trending_score", sa.Integer(), nullable=False),
        sa.Column("category", sa.Text(), nullable=False),
        sa.Column("last_updated", sa.DateTime(timezone=True), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("name"),
    )
    op.create_index("ix_tag_trending_score", "tag", ["trending_score"])
    op.create_index("ix_tag_post_count", "tag", ["post_count"])


def downgrade() -> None:
    """Drop every table created by this revision."""
    op.drop_index("ix_tag_post_count", table_name="tag")
    op.drop_index("ix_tag_trending_score", table_name="tag")
    op.drop_table("tag")
    op.drop_table("post_like")
    op.drop_index("ix_post_tag_tag_name_post_id", table_name="post_tag")
    op.drop_table("post_tag")
    for name in (
        "ix_post_author_id",
        "ix_post_is_seed_id",
        "ix_post_ghost_circle_id",
        "ix_post_area_id",
        "ix_post_college_id",
        "ix_post_expires_at",
    ):
        op.drop_index(name, table_name="post")
    op.drop_table("post")
    op.drop_table("ghost_circle_member")
    op.drop_table("ghost_circle")
    op.drop_table("app_user")
