"""Create user_profiles, posts and comments tables

Revision ID: 001
Revises: None
Create Date: 2026-05-02 00:00:00.000000+00:00

Membership sets are JSON arrays stored next to their counters; see
sportconnect/models/social.py for the column semantics.

Rollback: downgrade() drops all three tables (destructive).
"""

from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

# revision identifiers
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "user_profiles",
        sa.Column("user_id", sa.String(128), nullable=False),
        sa.Column("display_name", sa.String(255), nullable=False, server_default=sa.text("''")),
        sa.Column("email", sa.String(320), nullable=False, server_default=sa.text("''")),
        sa.Column("bio", sa.Text(), nullable=False, server_default=sa.text("''")),
        sa.Column("city", sa.String(255), nullable=True),
        sa.Column("state", sa.String(255), nullable=True),
        sa.Column("country", sa.String(255), nullable=True),
        sa.Column("latitude", sa.Float(), nullable=True),
        sa.Column("longitude", sa.Float(), nullable=True),
        sa.Column(
            "sport_ratings",
            sa.JSON(),
            nullable=True,
            comment="Sparse sport → rating map; absent key = unrated",
        ),
        sa.Column("followers", sa.JSON(), nullable=False, server_default=sa.text("'[]'")),
        sa.Column("followers_count", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("following", sa.JSON(), nullable=False, server_default=sa.text("'[]'")),
        sa.Column("following_count", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("liked_posts", sa.JSON(), nullable=False, server_default=sa.text("'[]'")),
        sa.Column("posts_count", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("user_id"),
    )

    op.create_table(
        "posts",
        sa.Column("id", sa.String(36), nullable=False),
        sa.Column("text", sa.Text(), nullable=False),
        sa.Column("user_id", sa.String(128), nullable=False),
        sa.Column(
            "user_display_name",
            sa.String(255),
            nullable=False,
            server_default=sa.text("'Anonymous'"),
        ),
        sa.Column("likes", sa.JSON(), nullable=False, server_default=sa.text("'[]'")),
        sa.Column("like_count", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("comment_count", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column(
            "latitude",
            sa.Float(),
            nullable=True,
            comment="Author latitude when the post was created",
        ),
        sa.Column("longitude", sa.Float(), nullable=True),
        sa.Column("sport_ratings", sa.JSON(), nullable=True),
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    # Recent feed and ranking candidate pool
    op.create_index("idx_posts_created_at", "posts", [sa.text("created_at DESC")])
    # Following feed
    op.create_index("idx_posts_user_created", "posts", ["user_id", "created_at"])

    op.create_table(
        "comments",
        sa.Column("id", sa.String(36), nullable=False),
        sa.Column("post_id", sa.String(36), nullable=False),
        sa.Column("text", sa.Text(), nullable=False),
        sa.Column("user_id", sa.String(128), nullable=False),
        sa.Column(
            "user_display_name",
            sa.String(255),
            nullable=False,
            server_default=sa.text("'Anonymous'"),
        ),
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.ForeignKeyConstraint(["post_id"], ["posts.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("idx_comments_post_created", "comments", ["post_id", "created_at"])


def downgrade() -> None:
    op.drop_index("idx_comments_post_created", table_name="comments")
    op.drop_table("comments")
    op.drop_index("idx_posts_user_created", table_name="posts")
    op.drop_index("idx_posts_created_at", table_name="posts")
    op.drop_table("posts")
    op.drop_table("user_profiles")
