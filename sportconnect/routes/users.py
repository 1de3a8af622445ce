"""
SportConnect Backend — User Route Handlers
==========================================

What:  Profile reads and edits, user search, follow toggle, connections.
How:   Delegates to ProfileService; the follow toggle goes through the
       ToggleStore like the post like toggle.
Who:   Profile and settings screens, people search, follow buttons.

Route order matters: /users/search is declared before /users/{user_id}
so "search" is never captured as a user id.
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from sportconnect.database import get_db_session
from sportconnect.schemas.social import (
    BioUpdate,
    ErrorResponse,
    LocateRequest,
    ProfileCreate,
    ProfileResponse,
    SettingsUpdate,
    ToggleRequest,
    ToggleResponse,
    UserSummary,
)
from sportconnect.schemas.toggles import ToggleKind, ToggleOperation
from sportconnect.services.profile_service import profile_service
from sportconnect.services.sql_store import get_toggle_store
from sportconnect.services.store_base import ToggleStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/users", tags=["Users"])


@router.get(
    "/search",
    response_model=List[UserSummary],
    summary="Find users by name or email",
    description="Case-insensitive substring search. A blank query returns an empty list.",
)
async def search_users(
    q: str = Query(default="", max_length=100),
    viewer_id: Optional[str] = Query(default=None, description="Excluded from results"),
    db: AsyncSession = Depends(get_db_session),
) -> List[UserSummary]:
    return await profile_service.search_users(db=db, term=q, exclude_user_id=viewer_id)


@router.get(
    "/{user_id}",
    response_model=ProfileResponse,
    responses={404: {"description": "Profile not found", "model": ErrorResponse}},
    summary="Get a profile",
)
async def get_profile(user_id: str, db: AsyncSession = Depends(get_db_session)) -> ProfileResponse:
    return await profile_service.get_profile(db=db, user_id=user_id)


@router.put(
    "/{user_id}",
    response_model=ProfileResponse,
    summary="Get or create a profile",
    description=(
        "Called after sign-in. Creates the profile with empty follower sets "
        "on first access; afterwards returns it unchanged."
    ),
)
async def get_or_create_profile(
    user_id: str,
    body: ProfileCreate,
    db: AsyncSession = Depends(get_db_session),
) -> ProfileResponse:
    return await profile_service.get_or_create_profile(
        db=db, user_id=user_id, display_name=body.display_name, email=body.email
    )


@router.patch("/{user_id}/bio", response_model=ProfileResponse, summary="Update bio")
async def update_bio(
    user_id: str,
    body: BioUpdate,
    db: AsyncSession = Depends(get_db_session),
) -> ProfileResponse:
    return await profile_service.update_bio(db=db, user_id=user_id, bio=body.bio)


@router.patch(
    "/{user_id}/settings",
    response_model=ProfileResponse,
    responses={400: {"description": "Invalid coordinates or ratings", "model": ErrorResponse}},
    summary="Update location and sport ratings",
)
async def update_settings(
    user_id: str,
    body: SettingsUpdate,
    db: AsyncSession = Depends(get_db_session),
) -> ProfileResponse:
    return await profile_service.update_settings(
        db=db,
        user_id=user_id,
        location=body.location,
        sport_ratings=body.sport_ratings,
    )


@router.post(
    "/{user_id}/locate",
    response_model=ProfileResponse,
    summary="Set location from device coordinates",
    description=(
        "Reverse-geocodes the coordinates into city, state and country. If the "
        "geocoder is unavailable the coordinates are stored with a "
        "'lat, lon' city label."
    ),
)
async def locate(
    user_id: str,
    body: LocateRequest,
    db: AsyncSession = Depends(get_db_session),
) -> ProfileResponse:
    return await profile_service.locate_from_coordinates(
        db=db, user_id=user_id, latitude=body.latitude, longitude=body.longitude
    )


@router.post(
    "/{user_id}/follow",
    response_model=ToggleResponse,
    responses={
        400: {"description": "Self-follow", "model": ErrorResponse},
        409: {"description": "User no longer exists", "model": ErrorResponse},
    },
    summary="Follow or unfollow a user",
    description=(
        "Atomically flips the actor in the user's followers and the user in "
        "the actor's following, updating both counts."
    ),
)
async def toggle_follow(
    user_id: str,
    body: ToggleRequest,
    store: ToggleStore = Depends(get_toggle_store),
) -> ToggleResponse:
    operation = ToggleOperation(kind=ToggleKind.FOLLOW, actor_id=body.actor_id, target_id=user_id)
    result = await store.apply_toggle(operation)
    return ToggleResponse(
        kind=operation.kind,
        actor_id=operation.actor_id,
        target_id=operation.target_id,
        is_member=result.is_member,
        count=result.count,
        counter_count=result.counter_count,
    )


@router.get("/{user_id}/followers", response_model=List[UserSummary], summary="Followers")
async def list_followers(
    user_id: str, db: AsyncSession = Depends(get_db_session)
) -> List[UserSummary]:
    return await profile_service.list_connections(db=db, user_id=user_id, kind="followers")


@router.get("/{user_id}/following", response_model=List[UserSummary], summary="Following")
async def list_following(
    user_id: str, db: AsyncSession = Depends(get_db_session)
) -> List[UserSummary]:
    return await profile_service.list_connections(db=db, user_id=user_id, kind="following")
