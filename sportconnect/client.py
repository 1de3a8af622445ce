"""
SportConnect API client.

Thin async client for applications that embed SportConnect (a mobile
backend-for-frontend, a bot, the integration tests). Feed reads are plain
GETs. Likes and follows go through OptimisticToggleReconciler so the caller's
ToggleView flips immediately and is corrected or rolled back when the
service answers.

    client = SportConnectClient(actor_id="u-42")
    await client.start()
    view = ToggleView(is_member=False, count=post.like_count)
    outcome = await client.toggle_like(post.id, view)
    await client.stop()
"""
import logging
from typing import Optional

import httpx

from sportconnect.config import settings
from sportconnect.schemas.social import FeedResponse, ProfileResponse
from sportconnect.schemas.toggles import (
    ToggleKind,
    ToggleOperation,
    ToggleOutcome,
    ToggleView,
)
from sportconnect.services.http_store import HttpToggleStore, error_from_response
from sportconnect.services.reconciler import OptimisticToggleReconciler

logger = logging.getLogger(__name__)


class SportConnectClient:
    def __init__(
        self,
        actor_id: str,
        base_url: Optional[str] = None,
        http: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.actor_id = actor_id
        self.base_url = base_url or settings.api_base_url
        self._http: Optional[httpx.AsyncClient] = http
        self._reconciler: Optional[OptimisticToggleReconciler] = None
        if http is not None:
            self._reconciler = OptimisticToggleReconciler(HttpToggleStore(http))

    async def start(self) -> None:
        if self._http is None:
            self._http = httpx.AsyncClient(base_url=self.base_url, timeout=settings.api_timeout)
            self._reconciler = OptimisticToggleReconciler(HttpToggleStore(self._http))

    async def stop(self) -> None:
        if self._http:
            await self._http.aclose()
            self._http = None
            self._reconciler = None

    async def __aenter__(self) -> "SportConnectClient":
        await self.start()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.stop()

    @property
    def reconciler(self) -> OptimisticToggleReconciler:
        if self._reconciler is None:
            raise RuntimeError("SportConnectClient.start() has not been called")
        return self._reconciler

    async def _get(self, path: str, **params) -> dict:
        if self._http is None:
            raise RuntimeError("SportConnectClient.start() has not been called")
        resp = await self._http.get(
            path, params={k: v for k, v in params.items() if v is not None}
        )
        if resp.status_code >= 400:
            raise error_from_response(resp)
        return resp.json()

    # ── Reads ─────────────────────────────────────────────────────────────

    async def recommended_feed(self, limit: Optional[int] = None) -> FeedResponse:
        data = await self._get("/api/feed/recommended", viewer_id=self.actor_id, limit=limit)
        return FeedResponse.model_validate(data)

    async def recent_feed(self, limit: Optional[int] = None) -> FeedResponse:
        return FeedResponse.model_validate(await self._get("/api/feed/recent", limit=limit))

    async def following_feed(self) -> FeedResponse:
        data = await self._get("/api/feed/following", viewer_id=self.actor_id)
        return FeedResponse.model_validate(data)

    async def profile(self, user_id: Optional[str] = None) -> ProfileResponse:
        data = await self._get(f"/api/users/{user_id or self.actor_id}")
        return ProfileResponse.model_validate(data)

    # ── Toggles ───────────────────────────────────────────────────────────

    async def toggle_like(self, post_id: str, view: ToggleView) -> ToggleOutcome:
        """Like or unlike a post. `view` is the heart + like counter."""
        operation = ToggleOperation(kind=ToggleKind.LIKE, actor_id=self.actor_id, target_id=post_id)
        return await self.reconciler.toggle(operation, view)

    async def toggle_follow(self, user_id: str, view: ToggleView) -> ToggleOutcome:
        """Follow or unfollow a user. `view` is the button + follower count."""
        operation = ToggleOperation(kind=ToggleKind.FOLLOW, actor_id=self.actor_id, target_id=user_id)
        return await self.reconciler.toggle(operation, view)
