"""
SportConnect Backend — SQL Toggle Store
=======================================

What:  ToggleStore implementation on async SQLAlchemy.
How:   One `async with session.begin()` block per toggle:
           1. SELECT ... FOR UPDATE the primary entity and the actor profile
           2. create the actor profile if it does not exist yet
           3. recompute membership from the rows just read
           4. write both sets and both counts
       Leaving the block commits; any exception rolls everything back.
Who:   Used by the like/follow routes and by the integration tests.

Locking:
    PostgreSQL takes row locks, so two concurrent toggles on the same post
    serialize and the second one sees the first one's write. Follow locks
    both profiles in one statement ordered by user_id, so opposite follows
    between the same two users cannot deadlock. SQLite ignores FOR UPDATE
    but serializes writers on its own.
"""

import logging
from typing import Callable, Dict, List, Optional, Tuple

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from sportconnect.database import async_session_factory
from sportconnect.exceptions import (
    DatabaseError,
    SportConnectError,
    TransactionConflictError,
)
from sportconnect.models.social import Post, UserProfile
from sportconnect.schemas.toggles import ToggleKind, ToggleOperation, ToggleResult
from sportconnect.services.store_base import ToggleStore

logger = logging.getLogger(__name__)


def flip_membership(members: List[str], actor_id: str) -> Tuple[List[str], bool]:
    """
    Remove `actor_id` if present, otherwise append it.

    Returns the new list (duplicates dropped, order kept) and whether the
    actor is a member afterwards.
    """
    deduped = list(dict.fromkeys(members))
    if actor_id in deduped:
        return [m for m in deduped if m != actor_id], False
    return deduped + [actor_id], True


def set_membership(members: List[str], item_id: str, present: bool) -> List[str]:
    deduped = [m for m in dict.fromkeys(members) if m != item_id]
    if present:
        deduped.append(item_id)
    return deduped


def _member_list(value, entity: str, entity_id: str) -> List[str]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise TransactionConflictError(
            message=f"The {entity} no longer has the expected shape",
            context={"entity": entity, "entity_id": entity_id},
        )
    return [str(v) for v in value]


def default_profile(user_id: str) -> UserProfile:
    """A fresh profile with empty sets and zero counters."""
    return UserProfile(
        user_id=user_id,
        display_name="",
        email="",
        bio="",
        followers=[],
        followers_count=0,
        following=[],
        following_count=0,
        liked_posts=[],
        posts_count=0,
    )


class SqlToggleStore(ToggleStore):
    """
    Authoritative toggles against the social tables.

    Args:
        session_factory: callable returning a new AsyncSession. Defaults to
                         the application's factory; tests inject their own.
    """

    def __init__(self, session_factory: Optional[Callable[[], AsyncSession]] = None):
        self._session_factory = session_factory or async_session_factory

    async def apply_toggle(self, operation: ToggleOperation) -> ToggleResult:
        try:
            async with self._session_factory() as session:
                async with session.begin():
                    if operation.kind is ToggleKind.LIKE:
                        result = await self._toggle_like(session, operation)
                    else:
                        result = await self._toggle_follow(session, operation)
        except SportConnectError:
            raise
        except SQLAlchemyError as e:
            logger.error(
                "Toggle transaction failed for %s: %s",
                ":".join(operation.key),
                str(e),
                exc_info=True,
            )
            raise DatabaseError(
                message="Could not save your change. Please try again.",
                context={"toggle": ":".join(operation.key), "error_type": type(e).__name__},
            )

        logger.info(
            "Toggle committed: %s member=%s count=%d",
            ":".join(operation.key),
            result.is_member,
            result.count,
        )
        return result

    # ── Like ──────────────────────────────────────────────────────────────

    async def _toggle_like(
        self, session: AsyncSession, operation: ToggleOperation
    ) -> ToggleResult:
        post = (
            await session.execute(
                select(Post).where(Post.id == operation.target_id).with_for_update()
            )
        ).scalar_one_or_none()
        if post is None:
            raise TransactionConflictError(
                message="This post no longer exists",
                context={"post_id": operation.target_id},
            )

        actor = await self._load_or_create_profiles(session, [operation.actor_id])
        profile = actor[operation.actor_id]

        likes, is_member = flip_membership(
            _member_list(post.likes, "post", post.id), operation.actor_id
        )
        post.likes = likes
        post.like_count = len(likes)

        liked = set_membership(
            _member_list(profile.liked_posts, "profile", profile.user_id),
            post.id,
            is_member,
        )
        profile.liked_posts = liked

        return ToggleResult(
            operation=operation,
            is_member=is_member,
            count=len(likes),
            counter_count=len(liked),
        )

    # ── Follow ────────────────────────────────────────────────────────────

    async def _toggle_follow(
        self, session: AsyncSession, operation: ToggleOperation
    ) -> ToggleResult:
        rows = (
            await session.execute(
                select(UserProfile)
                .where(UserProfile.user_id.in_([operation.actor_id, operation.target_id]))
                .order_by(UserProfile.user_id)
                .with_for_update()
            )
        ).scalars().all()
        profiles: Dict[str, UserProfile] = {row.user_id: row for row in rows}

        target = profiles.get(operation.target_id)
        if target is None:
            raise TransactionConflictError(
                message="This user no longer exists",
                context={"user_id": operation.target_id},
            )
        actor = profiles.get(operation.actor_id)
        if actor is None:
            actor = default_profile(operation.actor_id)
            session.add(actor)
            logger.info("Created default profile for %s during follow", operation.actor_id)

        followers, is_member = flip_membership(
            _member_list(target.followers, "profile", target.user_id), operation.actor_id
        )
        target.followers = followers
        target.followers_count = len(followers)

        following = set_membership(
            _member_list(actor.following, "profile", actor.user_id),
            target.user_id,
            is_member,
        )
        actor.following = following
        actor.following_count = len(following)

        return ToggleResult(
            operation=operation,
            is_member=is_member,
            count=len(followers),
            counter_count=len(following),
        )

    # ── Helpers ───────────────────────────────────────────────────────────

    async def _load_or_create_profiles(
        self, session: AsyncSession, user_ids: List[str]
    ) -> Dict[str, UserProfile]:
        rows = (
            await session.execute(
                select(UserProfile)
                .where(UserProfile.user_id.in_(user_ids))
                .order_by(UserProfile.user_id)
                .with_for_update()
            )
        ).scalars().all()
        profiles = {row.user_id: row for row in rows}
        for user_id in user_ids:
            if user_id not in profiles:
                profiles[user_id] = default_profile(user_id)
                session.add(profiles[user_id])
                logger.info("Created default profile for %s during toggle", user_id)
        return profiles


def get_toggle_store() -> ToggleStore:
    """FastAPI dependency; tests override it with a store on their own engine."""
    return SqlToggleStore()
