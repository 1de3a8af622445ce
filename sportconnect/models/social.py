"""
SportConnect Backend — Social Graph SQLAlchemy Models
=====================================================

What:  ORM models for the `user_profiles`, `posts` and `comments` tables.
How:   Inherit from the shared DeclarativeBase; Alembic reads these for migrations.
Who:   Used by the services (reads, inserts) and by SqlToggleStore (locked
       read-modify-write of membership sets).

Table Design:
    - Membership sets (likes, followers, following, liked_posts) are JSON
      arrays of actor ids stored next to their counters. Both are always
      written together inside one transaction, and the counter is always
      recomputed as len(set).
    - Posts carry a snapshot of the author's location and sport ratings taken
      at creation time. The scorer prefers this snapshot and falls back to
      the author's live profile when it is absent.
    - String primary keys: user ids come from the external auth service
      (opaque strings); post and comment ids are UUID4 strings.
    - Portable column types only, so the same models run on PostgreSQL and
      on SQLite in the test-suite.
"""

import uuid
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import JSON, DateTime, Float, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from sportconnect.database import Base


def _uuid() -> str:
    return str(uuid.uuid4())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class UserProfile(Base):
    """
    A user's public profile plus both sides of the follow graph.

    Lifecycle:
        1. Created with empty sets and zero counts on first access
           (ProfileService.get_or_create_profile) or by a toggle that needs
           it as a counter-entity.
        2. Location and ratings edited through the settings endpoint.
        3. followers/following and liked_posts only ever change inside
           SqlToggleStore transactions.
    """

    __tablename__ = "user_profiles"

    user_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    display_name: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    email: Mapped[str] = mapped_column(String(320), nullable=False, default="")
    bio: Mapped[str] = mapped_column(Text, nullable=False, default="")

    # ── Location ──────────────────────────────────────────────────────────
    # city/state/country are for display; latitude/longitude feed the scorer
    city: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    state: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    country: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    latitude: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    longitude: Mapped[Optional[float]] = mapped_column(Float, nullable=True)

    # ── Sport Ratings ─────────────────────────────────────────────────────
    # Sparse {"tennis": 7.5, "golf": 18.0}; absent key = unrated
    sport_ratings: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)

    # ── Follow Graph ──────────────────────────────────────────────────────
    followers: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)
    followers_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    following: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)
    following_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    liked_posts: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)
    posts_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )

    def __repr__(self) -> str:
        return (
            f"<UserProfile(user_id='{self.user_id}', "
            f"followers={self.followers_count}, following={self.following_count})>"
        )


class Post(Base):
    """
    A short status update (max 280 characters).

    Query Patterns:
        - Recent feed / candidate pool: ORDER BY created_at DESC LIMIT n
          → idx_posts_created_at
        - Profile & following feed: WHERE user_id IN (...) ORDER BY created_at DESC
          → idx_posts_user_created
    """

    __tablename__ = "posts"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    text: Mapped[str] = mapped_column(Text, nullable=False)
    user_id: Mapped[str] = mapped_column(String(128), nullable=False)
    user_display_name: Mapped[str] = mapped_column(
        String(255), nullable=False, default="Anonymous"
    )

    likes: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)
    like_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    comment_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # ── Author snapshot at creation time ──────────────────────────────────
    latitude: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    longitude: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    sport_ratings: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )

    __table_args__ = (
        Index("idx_posts_created_at", created_at.desc()),
        Index("idx_posts_user_created", "user_id", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<Post(id={self.id}, user_id='{self.user_id}', likes={self.like_count})>"


class Comment(Base):
    """A comment on a post. Listed oldest first."""

    __tablename__ = "comments"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    post_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("posts.id", ondelete="CASCADE"), nullable=False
    )
    text: Mapped[str] = mapped_column(Text, nullable=False)
    user_id: Mapped[str] = mapped_column(String(128), nullable=False)
    user_display_name: Mapped[str] = mapped_column(
        String(255), nullable=False, default="Anonymous"
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )

    __table_args__ = (Index("idx_comments_post_created", "post_id", "created_at"),)
