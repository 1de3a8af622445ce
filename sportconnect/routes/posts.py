"""
SportConnect Backend — Post Route Handlers
==========================================

What:  Create and read posts, like toggle, comments.
How:   Reads and inserts use the request session (get_db_session). The like
       toggle goes through the ToggleStore, which runs its own locked
       transaction and returns the committed state.
Who:   Mobile app post composer, post cards, comment sheet; SportConnectClient.

Caching:
    Post detail is mutable (likes, comment counts), so nothing here sets
    cache headers.
"""

import logging
from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from sportconnect.database import get_db_session
from sportconnect.schemas.social import (
    CommentCreate,
    CommentResponse,
    ErrorResponse,
    PostCreate,
    PostResponse,
    ToggleRequest,
    ToggleResponse,
)
from sportconnect.schemas.toggles import ToggleKind, ToggleOperation
from sportconnect.services.post_service import post_service
from sportconnect.services.sql_store import get_toggle_store
from sportconnect.services.store_base import ToggleStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/posts", tags=["Posts"])


@router.post(
    "",
    response_model=PostResponse,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"description": "Empty or over-long text", "model": ErrorResponse}},
    summary="Publish a post",
    description=(
        "Creates a post of 1-280 characters (after trimming). The author's "
        "current location and sport ratings are stored on the post for ranking."
    ),
)
async def create_post(
    body: PostCreate,
    db: AsyncSession = Depends(get_db_session),
) -> PostResponse:
    return await post_service.create_post(db=db, author_id=body.author_id, text=body.text)


@router.get(
    "/{post_id}",
    response_model=PostResponse,
    responses={404: {"description": "Post not found", "model": ErrorResponse}},
    summary="Get a single post",
)
async def get_post(post_id: str, db: AsyncSession = Depends(get_db_session)) -> PostResponse:
    return await post_service.get_post(db=db, post_id=post_id)


@router.post(
    "/{post_id}/like",
    response_model=ToggleResponse,
    responses={
        409: {"description": "Post no longer exists", "model": ErrorResponse},
        500: {"description": "Transaction failed", "model": ErrorResponse},
    },
    summary="Like or unlike a post",
    description=(
        "Atomically flips the actor's membership in the post's likes and the "
        "post id in the actor's liked posts. Returns the committed state; "
        "like_count always equals the number of likers."
    ),
)
async def toggle_like(
    post_id: str,
    body: ToggleRequest,
    store: ToggleStore = Depends(get_toggle_store),
) -> ToggleResponse:
    operation = ToggleOperation(kind=ToggleKind.LIKE, actor_id=body.actor_id, target_id=post_id)
    result = await store.apply_toggle(operation)
    return ToggleResponse(
        kind=operation.kind,
        actor_id=operation.actor_id,
        target_id=operation.target_id,
        is_member=result.is_member,
        count=result.count,
        counter_count=result.counter_count,
    )


@router.get(
    "/{post_id}/comments",
    response_model=List[CommentResponse],
    responses={404: {"description": "Post not found", "model": ErrorResponse}},
    summary="List comments, oldest first",
)
async def list_comments(
    post_id: str, db: AsyncSession = Depends(get_db_session)
) -> List[CommentResponse]:
    return await post_service.list_comments(db=db, post_id=post_id)


@router.post(
    "/{post_id}/comments",
    response_model=CommentResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"description": "Empty or over-long text", "model": ErrorResponse},
        404: {"description": "Post not found", "model": ErrorResponse},
    },
    summary="Comment on a post",
)
async def add_comment(
    post_id: str,
    body: CommentCreate,
    db: AsyncSession = Depends(get_db_session),
) -> CommentResponse:
    return await post_service.add_comment(
        db=db, post_id=post_id, author_id=body.author_id, text=body.text
    )
