"""
SportConnect Backend — Profile Service
======================================

What:  Profile reads and edits: get-or-create, bio, location and sport
       ratings, reverse-geocoded location, user search, follower lists.
How:   Stateless; every call receives the request's AsyncSession. Location
       and ratings pass through the same validating constructors the feed
       scorer uses (GeoPoint, SkillProfile), so nothing the scorer would
       reject can be stored.
Who:   Called by the /api/users route handlers.
"""

import logging
from typing import Dict, List, Optional

from sqlalchemy import func, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from sportconnect.exceptions import (
    CircuitBreakerOpenError,
    DatabaseError,
    GeocodingServiceError,
    NotFoundError,
    ValidationError,
)
from sportconnect.models.social import UserProfile
from sportconnect.schemas.domain import GeoPoint, SkillProfile
from sportconnect.schemas.social import (
    MAX_BIO_CHARS,
    LocationIn,
    ProfileResponse,
    UserSummary,
)
from sportconnect.services.geocoding_service import GeocodingService, geocoding_service
from sportconnect.services.sql_store import default_profile

logger = logging.getLogger(__name__)

CONNECTION_KINDS = ("followers", "following")
SEARCH_RESULT_LIMIT = 20


class ProfileService:
    """
    Business logic layer for user profiles.

    Args:
        geocoder: GeocodingService used by locate_from_coordinates().
                  Defaults to the process-wide singleton.
    """

    def __init__(self, geocoder: Optional[GeocodingService] = None):
        self.geocoder = geocoder or geocoding_service

    async def _load(self, db: AsyncSession, user_id: str) -> UserProfile:
        try:
            profile = await db.get(UserProfile, user_id)
        except SQLAlchemyError as e:
            logger.error("Database error fetching profile %s: %s", user_id, str(e))
            raise DatabaseError(
                message="Could not retrieve the profile. Please try again.",
                context={"user_id": user_id},
            )
        if profile is None:
            raise NotFoundError(resource="profile", resource_id=user_id)
        return profile

    async def _flush(self, db: AsyncSession, user_id: str, action: str) -> None:
        try:
            await db.flush()
        except SQLAlchemyError as e:
            logger.error("Database error during %s for %s: %s", action, user_id, str(e), exc_info=True)
            raise DatabaseError(
                message="Could not save your profile. Please try again.",
                context={"user_id": user_id, "action": action},
            )

    async def get_or_create_profile(
        self,
        db: AsyncSession,
        user_id: str,
        display_name: str = "",
        email: str = "",
    ) -> ProfileResponse:
        """
        Return the profile, creating the default one on first access.

        An existing profile keeps its stored name and email; blank stored
        values are filled in from the arguments.
        """
        try:
            profile = await db.get(UserProfile, user_id)
        except SQLAlchemyError as e:
            logger.error("Database error fetching profile %s: %s", user_id, str(e))
            raise DatabaseError(context={"user_id": user_id})

        if profile is None:
            profile = default_profile(user_id)
            profile.display_name = display_name.strip()
            profile.email = email.strip()
            db.add(profile)
            logger.info("Created profile for %s", user_id)
        else:
            if not profile.display_name and display_name.strip():
                profile.display_name = display_name.strip()
            if not profile.email and email.strip():
                profile.email = email.strip()

        await self._flush(db, user_id, "get_or_create")
        return ProfileResponse.model_validate(profile)

    async def get_profile(self, db: AsyncSession, user_id: str) -> ProfileResponse:
        return ProfileResponse.model_validate(await self._load(db, user_id))

    async def update_bio(self, db: AsyncSession, user_id: str, bio: str) -> ProfileResponse:
        cleaned = (bio or "").strip()
        if len(cleaned) > MAX_BIO_CHARS:
            raise ValidationError(
                message=f"Bio must be at most {MAX_BIO_CHARS} characters",
                field="bio",
                context={"length": len(cleaned)},
            )
        profile = await self._load(db, user_id)
        profile.bio = cleaned
        await self._flush(db, user_id, "update_bio")
        return ProfileResponse.model_validate(profile)

    async def update_settings(
        self,
        db: AsyncSession,
        user_id: str,
        location: Optional[LocationIn],
        sport_ratings: Dict[str, float],
    ) -> ProfileResponse:
        """
        Store location and sport ratings.

        Validation happens before the profile is touched, so a bad rating
        leaves the stored location unchanged too.

        Rules:
            - location with a blank city is ignored
            - coordinates must be both present or both absent
            - an empty sport_ratings mapping clears all ratings
        """
        point: Optional[GeoPoint] = None
        keep_location = location is not None and bool(location.city.strip())
        if keep_location:
            point = GeoPoint.from_document(location.latitude, location.longitude)
        skills = SkillProfile.from_document(sport_ratings or {})

        profile = await self._load(db, user_id)
        if keep_location:
            profile.city = location.city.strip()
            profile.state = location.state.strip()
            profile.country = location.country.strip()
            profile.latitude = point.latitude if point else None
            profile.longitude = point.longitude if point else None
        profile.sport_ratings = dict(skills.ratings) if not skills.is_empty() else None

        await self._flush(db, user_id, "update_settings")
        logger.info(
            "Settings updated for %s (location=%s, sports=%d)",
            user_id,
            "set" if keep_location else "unchanged",
            len(skills.ratings),
        )
        return ProfileResponse.model_validate(profile)

    async def locate_from_coordinates(
        self, db: AsyncSession, user_id: str, latitude: float, longitude: float
    ) -> ProfileResponse:
        """
        Reverse-geocode the coordinates and store the place on the profile.

        A geocoder outage is not fatal: the coordinates are still stored and
        the city falls back to "lat, lon" with 4 decimals.
        """
        point = GeoPoint.from_document(latitude, longitude)
        profile = await self._load(db, user_id)

        try:
            place = await self.geocoder.reverse(point.latitude, point.longitude)
            city, state, country = place.city, place.state, place.country
        except (GeocodingServiceError, CircuitBreakerOpenError) as e:
            logger.warning("Reverse geocoding failed for %s: %s", user_id, e.message)
            city, state, country = "", "", ""

        profile.city = city or f"{point.latitude:.4f}, {point.longitude:.4f}"
        profile.state = state
        profile.country = country
        profile.latitude = point.latitude
        profile.longitude = point.longitude

        await self._flush(db, user_id, "locate")
        return ProfileResponse.model_validate(profile)

    async def search_users(
        self, db: AsyncSession, term: str, exclude_user_id: Optional[str] = None
    ) -> List[UserSummary]:
        """Case-insensitive substring match on display name or email."""
        term = (term or "").strip().lower()
        if not term:
            return []

        # autoescape: "%" and "_" in the term match literally
        query = select(UserProfile).where(
            or_(
                func.lower(UserProfile.display_name).contains(term, autoescape=True),
                func.lower(UserProfile.email).contains(term, autoescape=True),
            )
        )
        if exclude_user_id:
            query = query.where(UserProfile.user_id != exclude_user_id)
        query = query.order_by(UserProfile.display_name).limit(SEARCH_RESULT_LIMIT)

        try:
            rows = (await db.execute(query)).scalars().all()
        except SQLAlchemyError as e:
            logger.error("Database error searching users: %s", str(e))
            raise DatabaseError(message="Could not search users. Please try again.")
        return [UserSummary.model_validate(row) for row in rows]

    async def list_connections(
        self, db: AsyncSession, user_id: str, kind: str
    ) -> List[UserSummary]:
        """Profiles in the user's followers or following set, in set order."""
        if kind not in CONNECTION_KINDS:
            raise ValidationError(
                message=f"kind must be one of {CONNECTION_KINDS}",
                field="kind",
            )
        profile = await self._load(db, user_id)
        member_ids = list(getattr(profile, kind) or [])
        if not member_ids:
            return []

        try:
            rows = (
                await db.execute(select(UserProfile).where(UserProfile.user_id.in_(member_ids)))
            ).scalars().all()
        except SQLAlchemyError as e:
            logger.error("Database error listing %s of %s: %s", kind, user_id, str(e))
            raise DatabaseError(context={"user_id": user_id, "kind": kind})

        by_id = {row.user_id: row for row in rows}
        return [UserSummary.model_validate(by_id[m]) for m in member_ids if m in by_id]


# ── Singleton Instance ────────────────────────────────────────────────────
profile_service = ProfileService()
