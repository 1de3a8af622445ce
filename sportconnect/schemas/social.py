"""
SportConnect Backend — Pydantic Request/Response Schemas
========================================================

What:  Pydantic models defining the HTTP contract of the social API.
How:   FastAPI validates request bodies against these models and serializes
       responses through them (OpenAPI docs are generated from them too).
Who:   Route handlers, services (as return types) and SportConnectClient.

Schemas are separate from the SQLAlchemy models so that internal columns
(e.g. liked_posts on profiles) are only exposed where a route asks for them.
"""

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from sportconnect.schemas.toggles import ToggleKind


# ══════════════════════════════════════════════════════════════════════════
# Posts & Comments
# ══════════════════════════════════════════════════════════════════════════

MAX_POST_CHARS = 280
MAX_BIO_CHARS = 500


class PostCreate(BaseModel):
    """Body of POST /api/posts. Text is trimmed and validated by PostService."""
    author_id: str = Field(min_length=1, description="Acting user id")
    text: str = Field(description=f"Post text, 1-{MAX_POST_CHARS} characters after trimming")


class PostResponse(BaseModel):
    id: str
    text: str
    user_id: str
    user_display_name: str
    like_count: int
    comment_count: int
    likes: List[str] = Field(default_factory=list)
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    created_at: datetime

    model_config = {"from_attributes": True}


class CommentCreate(BaseModel):
    author_id: str = Field(min_length=1)
    text: str


class CommentResponse(BaseModel):
    id: str
    post_id: str
    text: str
    user_id: str
    user_display_name: str
    created_at: datetime

    model_config = {"from_attributes": True}


# ══════════════════════════════════════════════════════════════════════════
# Feeds
# ══════════════════════════════════════════════════════════════════════════


class FeedItem(BaseModel):
    """
    One post in a feed.

    Ranked feeds fill in the score breakdown; recency feeds leave it null.
    Lower score = more relevant.
    """
    post: PostResponse
    score: Optional[float] = Field(default=None, description="Composite score (lower is better)")
    distance_km: Optional[float] = Field(default=None, description="Distance to the viewer, if known")
    location_score: Optional[float] = None
    rating_score: Optional[float] = None
    recommended: bool = Field(default=False, description="Score below the recommendation threshold")


class FeedResponse(BaseModel):
    personalized: bool = Field(
        description="False when the viewer had no location or ratings and the recency feed was used"
    )
    items: List[FeedItem]


# ══════════════════════════════════════════════════════════════════════════
# Toggles
# ══════════════════════════════════════════════════════════════════════════


class ToggleRequest(BaseModel):
    actor_id: str = Field(min_length=1, description="User performing the like/follow")


class ToggleResponse(BaseModel):
    kind: ToggleKind
    actor_id: str
    target_id: str
    is_member: bool = Field(description="Actor is now in the target's likes/followers")
    count: int = Field(description="Target's like_count / followers_count")
    counter_count: int = Field(description="Actor's liked posts / following count")


# ══════════════════════════════════════════════════════════════════════════
# Profiles
# ══════════════════════════════════════════════════════════════════════════


class ProfileCreate(BaseModel):
    display_name: str = Field(default="", max_length=255)
    email: str = Field(default="", max_length=320)


class BioUpdate(BaseModel):
    bio: str = Field(max_length=MAX_BIO_CHARS)


class LocationIn(BaseModel):
    city: str = ""
    state: str = ""
    country: str = ""
    latitude: Optional[float] = None
    longitude: Optional[float] = None


class SettingsUpdate(BaseModel):
    """
    Body of PATCH /api/users/{id}/settings.

    A location with a blank city is ignored. An empty sport_ratings mapping
    clears all ratings.
    """
    location: Optional[LocationIn] = None
    sport_ratings: Dict[str, float] = Field(default_factory=dict)


class LocateRequest(BaseModel):
    latitude: float
    longitude: float


class ProfileResponse(BaseModel):
    user_id: str
    display_name: str
    email: str
    bio: str
    city: Optional[str] = None
    state: Optional[str] = None
    country: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    sport_ratings: Dict[str, float] = Field(default_factory=dict)
    followers: List[str] = Field(default_factory=list)
    followers_count: int = 0
    following: List[str] = Field(default_factory=list)
    following_count: int = 0
    liked_posts: List[str] = Field(default_factory=list)
    posts_count: int = 0

    model_config = {"from_attributes": True}

    @field_validator("sport_ratings", mode="before")
    @classmethod
    def null_ratings_as_empty(cls, v):
        return {} if v is None else v

    @field_validator("followers", "following", "liked_posts", mode="before")
    @classmethod
    def null_sets_as_empty(cls, v):
        return [] if v is None else v


class UserSummary(BaseModel):
    """Compact profile for search results and follower lists."""
    user_id: str
    display_name: str
    email: str
    bio: str = ""
    followers_count: int = 0

    model_config = {"from_attributes": True}


class Place(BaseModel):
    """A geocoder answer."""
    name: str
    city: str = ""
    state: str = ""
    country: str = ""
    latitude: float
    longitude: float


# ══════════════════════════════════════════════════════════════════════════
# Error & Health
# ══════════════════════════════════════════════════════════════════════════


class ErrorResponse(BaseModel):
    """
    Standardized error body for all API errors.

    Example:
        {
            "error": "validation_error",
            "message": "latitude 91.0 is outside [-90, 90]",
            "details": {"field": "latitude", "value": 91.0},
            "request_id": "550e8400"
        }
    """
    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    details: Optional[dict] = Field(default=None, description="Additional error context")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class HealthResponse(BaseModel):
    status: str = Field(description="Overall service status: healthy, degraded, unhealthy")
    version: str = Field(description="Application version")
    database: str = Field(description="Database connectivity: connected, disconnected")
    geocoder: str = Field(description="Geocoder circuit: available, circuit_open")
    uptime_seconds: float = Field(description="Seconds since service started")
