"""
SportConnect Backend — Feed Service
===================================

What:  Builds the four post feeds: recommended (ranked), recent, following
       and liked.
How:   Reads rows with async SQLAlchemy, maps them through the validating
       domain constructors and hands them to GeoAffinityScorer.
Who:   Called by the /api/feed and /api/users/{id}/liked-posts routes.

Recommended Feed:
    ┌─────────────┐   ┌──────────────────┐   ┌───────────────┐   ┌────────┐
    │ Load viewer │──▶│ Newest N posts + │──▶│ from_document │──▶│  rank  │
    │  profile    │   │ owners' profiles │   │ (skip broken) │   │ top-k  │
    └─────────────┘   └──────────────────┘   └───────────────┘   └────────┘
          │
          └── no location and no ratings → recent feed, personalized=false
"""

import logging
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import desc, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from sportconnect.config import settings
from sportconnect.exceptions import DatabaseError, ValidationError
from sportconnect.models.social import Post, UserProfile
from sportconnect.schemas.domain import CandidateItem, OwnerProfile, Viewer
from sportconnect.schemas.social import FeedItem, FeedResponse, PostResponse
from sportconnect.services.scorer import GeoAffinityScorer

logger = logging.getLogger(__name__)


def profile_document(profile: UserProfile) -> Dict[str, Any]:
    return {
        "user_id": profile.user_id,
        "latitude": profile.latitude,
        "longitude": profile.longitude,
        "sport_ratings": profile.sport_ratings,
    }


def post_document(post: Post) -> Dict[str, Any]:
    return {
        "id": post.id,
        "user_id": post.user_id,
        "latitude": post.latitude,
        "longitude": post.longitude,
        "sport_ratings": post.sport_ratings,
    }


class FeedService:
    """
    Feed queries and ranking.

    Args:
        scorer: ranking strategy; defaults to a GeoAffinityScorer configured
                from settings.
    """

    def __init__(self, scorer: Optional[GeoAffinityScorer] = None):
        self.scorer = scorer or GeoAffinityScorer()

    async def recommended_feed(
        self, db: AsyncSession, viewer_id: str, limit: Optional[int] = None
    ) -> FeedResponse:
        """
        Posts ranked by distance and skill similarity to the viewer.

        Falls back to the recency feed when the viewer has no profile, no
        location and no ratings, or a profile the scorer cannot read.
        """
        top_n = settings.recommended_feed_limit if limit is None else limit
        if top_n < 0:
            raise ValidationError(message="limit must be >= 0", field="limit")

        try:
            viewer_row = await db.get(UserProfile, viewer_id)
            viewer = self._viewer_from_row(viewer_id, viewer_row)
            if viewer is None or not viewer.has_personalization():
                logger.info("Viewer %s has no personalization signal; serving recent feed", viewer_id)
                return await self.recent_feed(db, limit=top_n)

            posts = await self._newest_posts(db, settings.candidate_pool_size)
            owners = await self._owner_profiles(db, {p.user_id for p in posts})
        except SQLAlchemyError as e:
            logger.error("Database error building feed for %s: %s", viewer_id, str(e), exc_info=True)
            raise DatabaseError(
                message="Could not load your feed. Please try again.",
                context={"viewer_id": viewer_id},
            )

        candidates = self._candidates(posts, owners)
        ranked = self.scorer.rank(viewer, candidates, limit=top_n)
        logger.info(
            "Ranked feed for %s: %d of %d candidates",
            viewer_id,
            len(ranked),
            len(candidates),
        )
        return FeedResponse(
            personalized=True,
            items=[
                FeedItem(
                    post=PostResponse.model_validate(result.item.payload),
                    score=result.score,
                    distance_km=result.distance_km,
                    location_score=result.location_score,
                    rating_score=result.rating_score,
                    recommended=result.recommended,
                )
                for result in ranked
            ],
        )

    async def recent_feed(self, db: AsyncSession, limit: Optional[int] = None) -> FeedResponse:
        top_n = settings.recent_feed_limit if limit is None else limit
        try:
            posts = await self._newest_posts(db, top_n)
        except SQLAlchemyError as e:
            logger.error("Database error loading recent posts: %s", str(e))
            raise DatabaseError(message="Could not load posts. Please try again.")
        return self._plain_feed(posts)

    async def following_feed(self, db: AsyncSession, viewer_id: str) -> FeedResponse:
        """Posts by users the viewer follows, newest first."""
        try:
            viewer = await db.get(UserProfile, viewer_id)
            following = list(viewer.following or []) if viewer else []
            if not following:
                return FeedResponse(personalized=False, items=[])
            result = await db.execute(
                select(Post)
                .where(Post.user_id.in_(following))
                .order_by(desc(Post.created_at))
                .limit(settings.candidate_pool_size)
            )
            posts = result.scalars().all()
        except SQLAlchemyError as e:
            logger.error("Database error loading following feed for %s: %s", viewer_id, str(e))
            raise DatabaseError(message="Could not load posts. Please try again.")
        return self._plain_feed(posts)

    async def liked_posts(self, db: AsyncSession, viewer_id: str) -> FeedResponse:
        """Posts in the viewer's liked_posts set, newest first."""
        try:
            viewer = await db.get(UserProfile, viewer_id)
            liked = list(viewer.liked_posts or []) if viewer else []
            if not liked:
                return FeedResponse(personalized=False, items=[])
            result = await db.execute(
                select(Post).where(Post.id.in_(liked)).order_by(desc(Post.created_at))
            )
            posts = result.scalars().all()
        except SQLAlchemyError as e:
            logger.error("Database error loading liked posts for %s: %s", viewer_id, str(e))
            raise DatabaseError(message="Could not load posts. Please try again.")
        return self._plain_feed(posts)

    async def user_posts(self, db: AsyncSession, user_id: str) -> FeedResponse:
        """Posts written by one user, newest first (profile screen)."""
        try:
            result = await db.execute(
                select(Post)
                .where(Post.user_id == user_id)
                .order_by(desc(Post.created_at), desc(Post.id))
            )
            posts = result.scalars().all()
        except SQLAlchemyError as e:
            logger.error("Database error loading posts by %s: %s", user_id, str(e))
            raise DatabaseError(message="Could not load posts. Please try again.")
        return self._plain_feed(posts)

    # ── Helpers ───────────────────────────────────────────────────────────

    def _viewer_from_row(self, viewer_id: str, row: Optional[UserProfile]) -> Optional[Viewer]:
        if row is None:
            return None
        try:
            return Viewer.from_document(profile_document(row))
        except ValidationError as e:
            logger.warning("Viewer profile %s is malformed (%s); not personalizing", viewer_id, e.message)
            return None

    def _candidates(
        self, posts: Iterable[Post], owners: Dict[str, OwnerProfile]
    ) -> List[CandidateItem]:
        candidates: List[CandidateItem] = []
        for post in posts:
            try:
                candidates.append(
                    CandidateItem.from_document(
                        post_document(post),
                        owner=owners.get(post.user_id),
                        payload=post,
                    )
                )
            except ValidationError as e:
                logger.warning("Skipping malformed post %s: %s", post.id, e.message)
        return candidates

    async def _newest_posts(self, db: AsyncSession, limit: int) -> List[Post]:
        result = await db.execute(select(Post).order_by(desc(Post.created_at)).limit(limit))
        return list(result.scalars().all())

    async def _owner_profiles(self, db: AsyncSession, user_ids: set) -> Dict[str, OwnerProfile]:
        if not user_ids:
            return {}
        rows = (
            await db.execute(select(UserProfile).where(UserProfile.user_id.in_(user_ids)))
        ).scalars().all()
        owners: Dict[str, OwnerProfile] = {}
        for row in rows:
            try:
                owners[row.user_id] = OwnerProfile.from_document(profile_document(row))
            except ValidationError as e:
                logger.warning("Ignoring malformed profile %s: %s", row.user_id, e.message)
        return owners

    def _plain_feed(self, posts: Iterable[Post]) -> FeedResponse:
        return FeedResponse(
            personalized=False,
            items=[FeedItem(post=PostResponse.model_validate(p)) for p in posts],
        )


# ── Singleton Instance ────────────────────────────────────────────────────
feed_service = FeedService()
