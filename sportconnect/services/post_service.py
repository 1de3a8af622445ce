"""
SportConnect Backend — Post Service
===================================

What:  Business logic for posts and their comments.
How:   Stateless service; every call receives the request's AsyncSession
       (from get_db_session) and only flushes. The dependency commits once
       the route returns, so each call is one transaction.
Who:   Called by the /api/posts route handlers.

Post Creation Flow:
    ┌──────────┐    ┌──────────────┐    ┌──────────────────┐    ┌───────┐
    │  Trim &  │───▶│ Load author  │───▶│ Insert post with │───▶│ flush │
    │ validate │    │ (or create)  │    │ author snapshot, │    └───────┘
    └──────────┘    └──────────────┘    │ posts_count += 1 │
                                        └──────────────────┘

    The author's coordinates and sport ratings are copied onto the post.
    The feed scorer ranks on these values and only falls back to the live
    profile when the post carries none.
"""

import logging
from typing import List

from sqlalchemy import asc, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from sportconnect.exceptions import DatabaseError, NotFoundError, ValidationError
from sportconnect.models.social import Comment, Post, UserProfile
from sportconnect.schemas.social import MAX_POST_CHARS, CommentResponse, PostResponse
from sportconnect.services.sql_store import default_profile

logger = logging.getLogger(__name__)


def clean_text(text: str, field: str = "text") -> str:
    """Trim and check the 1-280 character bound shared by posts and comments."""
    cleaned = (text or "").strip()
    if not cleaned:
        raise ValidationError(message=f"{field.capitalize()} cannot be empty", field=field)
    if len(cleaned) > MAX_POST_CHARS:
        raise ValidationError(
            message=f"{field.capitalize()} must be at most {MAX_POST_CHARS} characters",
            field=field,
            context={"length": len(cleaned)},
        )
    return cleaned


class PostService:
    """
    Business logic layer for posts and comments.

    Error Handling Strategy:
        Our own exceptions (ValidationError, NotFoundError) propagate as-is.
        SQLAlchemy errors are logged and wrapped in DatabaseError so clients
        never see statements or constraint names.
    """

    async def create_post(self, db: AsyncSession, author_id: str, text: str) -> PostResponse:
        """
        Publish a post for `author_id`.

        Raises:
            ValidationError: empty or over-long text
            DatabaseError: insert failed
        """
        cleaned = clean_text(text)

        try:
            author = await db.get(UserProfile, author_id, with_for_update=True)
            if author is None:
                author = default_profile(author_id)
                db.add(author)

            post = Post(
                text=cleaned,
                user_id=author_id,
                user_display_name=author.display_name or "Anonymous",
                likes=[],
                like_count=0,
                comment_count=0,
                latitude=author.latitude,
                longitude=author.longitude,
                sport_ratings=dict(author.sport_ratings) if author.sport_ratings else None,
            )
            db.add(post)
            author.posts_count = (author.posts_count or 0) + 1
            await db.flush()
        except SQLAlchemyError as e:
            logger.error("Database error creating post for %s: %s", author_id, str(e), exc_info=True)
            raise DatabaseError(
                message="Could not publish your post. Please try again.",
                context={"error_type": type(e).__name__},
            )

        logger.info("Post %s created by %s (%d chars)", post.id, author_id, len(cleaned))
        return PostResponse.model_validate(post)

    async def get_post(self, db: AsyncSession, post_id: str) -> PostResponse:
        """
        Raises:
            NotFoundError: no post with this id (→ 404)
        """
        try:
            post = await db.get(Post, post_id)
        except SQLAlchemyError as e:
            logger.error("Database error fetching post %s: %s", post_id, str(e))
            raise DatabaseError(
                message="Could not retrieve the post. Please try again.",
                context={"post_id": post_id},
            )
        if post is None:
            raise NotFoundError(resource="post", resource_id=post_id)
        return PostResponse.model_validate(post)

    async def add_comment(
        self, db: AsyncSession, post_id: str, author_id: str, text: str
    ) -> CommentResponse:
        """
        Insert a comment and bump the post's comment_count in one transaction.

        The post row is locked first so concurrent comments cannot lose an
        increment.
        """
        cleaned = clean_text(text)

        try:
            post = await db.get(Post, post_id, with_for_update=True)
            if post is None:
                raise NotFoundError(resource="post", resource_id=post_id)

            author = await db.get(UserProfile, author_id)
            comment = Comment(
                post_id=post.id,
                text=cleaned,
                user_id=author_id,
                user_display_name=(author.display_name if author else "") or "Anonymous",
            )
            db.add(comment)
            post.comment_count = (post.comment_count or 0) + 1
            await db.flush()
        except SQLAlchemyError as e:
            logger.error("Database error adding comment to %s: %s", post_id, str(e), exc_info=True)
            raise DatabaseError(
                message="Could not save your comment. Please try again.",
                context={"post_id": post_id},
            )

        logger.info("Comment %s added to post %s (count=%d)", comment.id, post_id, post.comment_count)
        return CommentResponse.model_validate(comment)

    async def list_comments(self, db: AsyncSession, post_id: str) -> List[CommentResponse]:
        """Comments on a post, oldest first. Missing post → NotFoundError."""
        try:
            post = await db.get(Post, post_id)
            if post is None:
                raise NotFoundError(resource="post", resource_id=post_id)
            result = await db.execute(
                select(Comment)
                .where(Comment.post_id == post_id)
                .order_by(asc(Comment.created_at), asc(Comment.id))
            )
            comments = result.scalars().all()
        except SQLAlchemyError as e:
            logger.error("Database error listing comments for %s: %s", post_id, str(e))
            raise DatabaseError(
                message="Could not retrieve comments. Please try again.",
                context={"post_id": post_id},
            )
        return [CommentResponse.model_validate(c) for c in comments]


# ── Singleton Instance ────────────────────────────────────────────────────
post_service = PostService()
