"""
SportConnect Backend — Feed Route Handlers
==========================================

What:  GET endpoints for the home feeds and per-user post lists.
How:   Thin wrappers over FeedService; the viewer is passed explicitly as
       `viewer_id` (authentication is handled upstream).
Who:   Home screen tabs of the mobile app and SportConnectClient.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from sportconnect.database import get_db_session
from sportconnect.schemas.social import ErrorResponse, FeedResponse
from sportconnect.services.feed_service import feed_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Feed"])


@router.get(
    "/feed/recommended",
    response_model=FeedResponse,
    responses={
        400: {"description": "Invalid limit", "model": ErrorResponse},
        500: {"description": "Server error", "model": ErrorResponse},
    },
    summary="Posts ranked by distance and skill similarity",
    description=(
        "Ranks the most recent posts for the viewer by a weighted mix of "
        "geographic distance (70%) and sport rating similarity (30%). Lower "
        "scores rank first. Viewers without a location or ratings get the "
        "recent feed with personalized=false."
    ),
)
async def recommended_feed(
    viewer_id: str = Query(min_length=1, description="User requesting the feed"),
    limit: Optional[int] = Query(default=None, ge=0, le=100, description="Top-N (default 15)"),
    db: AsyncSession = Depends(get_db_session),
) -> FeedResponse:
    return await feed_service.recommended_feed(db=db, viewer_id=viewer_id, limit=limit)


@router.get("/feed/recent", response_model=FeedResponse, summary="Newest posts first")
async def recent_feed(
    limit: Optional[int] = Query(default=None, ge=1, le=100, description="Page size (default 20)"),
    db: AsyncSession = Depends(get_db_session),
) -> FeedResponse:
    return await feed_service.recent_feed(db=db, limit=limit)


@router.get(
    "/feed/following",
    response_model=FeedResponse,
    summary="Posts by users the viewer follows",
)
async def following_feed(
    viewer_id: str = Query(min_length=1),
    db: AsyncSession = Depends(get_db_session),
) -> FeedResponse:
    return await feed_service.following_feed(db=db, viewer_id=viewer_id)


@router.get(
    "/users/{user_id}/posts",
    response_model=FeedResponse,
    summary="Posts written by the user, newest first",
)
async def user_posts(
    user_id: str,
    db: AsyncSession = Depends(get_db_session),
) -> FeedResponse:
    return await feed_service.user_posts(db=db, user_id=user_id)


@router.get(
    "/users/{user_id}/liked-posts",
    response_model=FeedResponse,
    summary="Posts the user has liked",
)
async def liked_posts(
    user_id: str,
    db: AsyncSession = Depends(get_db_session),
) -> FeedResponse:
    return await feed_service.liked_posts(db=db, viewer_id=user_id)
