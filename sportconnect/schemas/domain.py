"""
SportConnect Backend — Ranking Domain Types
===========================================

What:  Immutable value types consumed by the Geo-Affinity Scorer.
How:   Pydantic models whose validators raise the application's own
       ValidationError. Store documents (ORM rows, JSON bodies, API
       payloads) enter through the `from_document` constructors, which also
       reject wrongly-typed fields before pydantic coercion can hide them.
Who:   Built by FeedService from database rows; consumed by GeoAffinityScorer.

Types:
    GeoPoint       latitude/longitude in degrees, finite, in range
    SkillProfile   sparse sport → rating mapping over a fixed set of sports
    OwnerProfile   live profile of a candidate's owner (fallback data)
    CandidateItem  item being ranked (denormalized snapshot + owner fallback)
    Viewer         actor requesting the feed
    RankedResult   candidate plus its computed score breakdown
"""

import math
from typing import Any, Dict, List, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from sportconnect.exceptions import ValidationError


# ── Sport Catalogue ───────────────────────────────────────────────────────
# What: Upper bound of each sport's rating scale (lower bound is always 0)
# tennis = UTR (0-16), golf = handicap (0-54), everything else 0-10
SPORT_RATING_RANGES: Dict[str, float] = {
    "tennis": 16.0,
    "basketball": 10.0,
    "soccer": 10.0,
    "football": 10.0,
    "baseball": 10.0,
    "golf": 54.0,
    "swimming": 10.0,
    "running": 10.0,
}


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _check_coordinate(name: str, value: float, bound: float) -> float:
    if not _is_number(value) or not math.isfinite(value):
        raise ValidationError(
            message=f"{name} must be a finite number",
            field=name,
            context={"value": repr(value)},
        )
    if not -bound <= value <= bound:
        raise ValidationError(
            message=f"{name} {value} is outside [-{bound:g}, {bound:g}]",
            field=name,
            context={"value": value},
        )
    return float(value)


def _check_rating(sport: Any, value: Any) -> float:
    if sport not in SPORT_RATING_RANGES:
        raise ValidationError(
            message=f"Unknown sport '{sport}'. Must be one of: {sorted(SPORT_RATING_RANGES)}",
            field="sport_ratings",
        )
    if not _is_number(value) or not math.isfinite(value):
        raise ValidationError(
            message=f"Rating for {sport} must be a finite number",
            field="sport_ratings",
            context={"sport": sport, "value": repr(value)},
        )
    upper = SPORT_RATING_RANGES[sport]
    if not 0.0 <= value <= upper:
        raise ValidationError(
            message=f"Rating for {sport} must be between 0 and {upper:g}",
            field="sport_ratings",
            context={"sport": sport, "value": value},
        )
    return float(value)


# ══════════════════════════════════════════════════════════════════════════
# Value Types
# ══════════════════════════════════════════════════════════════════════════


class GeoPoint(BaseModel):
    """A point on the Earth's surface, in degrees."""

    model_config = ConfigDict(frozen=True)

    latitude: float
    longitude: float

    @field_validator("latitude", mode="before")
    @classmethod
    def validate_latitude(cls, v: Any) -> float:
        return _check_coordinate("latitude", v, 90.0)

    @field_validator("longitude", mode="before")
    @classmethod
    def validate_longitude(cls, v: Any) -> float:
        return _check_coordinate("longitude", v, 180.0)

    @classmethod
    def from_document(cls, latitude: Any, longitude: Any) -> Optional["GeoPoint"]:
        """
        Build a GeoPoint from raw store fields.

        Returns None when both halves are absent (no location recorded).
        Raises ValidationError when only one half is present or either half
        is malformed.
        """
        if latitude is None and longitude is None:
            return None
        if latitude is None or longitude is None:
            raise ValidationError(
                message="Location needs both latitude and longitude",
                field="latitude" if latitude is None else "longitude",
            )
        return cls(latitude=latitude, longitude=longitude)


class SkillProfile(BaseModel):
    """
    Sparse sport → rating mapping.

    Ratings are validated against their own sport's scale but are compared
    as plain magnitudes by the scorer.
    """

    model_config = ConfigDict(frozen=True)

    ratings: Dict[str, float] = Field(default_factory=dict)

    @field_validator("ratings", mode="before")
    @classmethod
    def validate_ratings(cls, v: Any) -> Dict[str, float]:
        if not isinstance(v, Mapping):
            raise ValidationError(
                message="sport_ratings must be an object of sport → rating",
                field="sport_ratings",
            )
        return {sport: _check_rating(sport, value) for sport, value in v.items()}

    @classmethod
    def from_document(cls, ratings: Any) -> Optional["SkillProfile"]:
        """Returns None for a missing mapping; validates everything else."""
        if ratings is None:
            return None
        return cls(ratings=ratings)

    def is_empty(self) -> bool:
        return not self.ratings

    def shared_sports(self, other: "SkillProfile") -> List[str]:
        """Sports rated on both sides, in this profile's key order."""
        return [sport for sport in self.ratings if sport in other.ratings]


class OwnerProfile(BaseModel):
    model_config = ConfigDict(frozen=True)

    user_id: str
    location: Optional[GeoPoint] = None
    skills: Optional[SkillProfile] = None

    @classmethod
    def from_document(cls, doc: Mapping[str, Any]) -> "OwnerProfile":
        return cls(
            user_id=doc["user_id"],
            location=GeoPoint.from_document(doc.get("latitude"), doc.get("longitude")),
            skills=SkillProfile.from_document(doc.get("sport_ratings")),
        )


class Viewer(BaseModel):
    """The actor requesting a ranked feed."""

    model_config = ConfigDict(frozen=True)

    actor_id: str
    location: Optional[GeoPoint] = None
    skills: Optional[SkillProfile] = None

    @classmethod
    def from_document(cls, doc: Mapping[str, Any]) -> "Viewer":
        return cls(
            actor_id=doc["user_id"],
            location=GeoPoint.from_document(doc.get("latitude"), doc.get("longitude")),
            skills=SkillProfile.from_document(doc.get("sport_ratings")),
        )

    def has_personalization(self) -> bool:
        """True when the viewer supplies a location or at least one rating."""
        return self.location is not None or (
            self.skills is not None and not self.skills.is_empty()
        )


class CandidateItem(BaseModel):
    """
    An item being ranked for a viewer.

    `location`/`skills` are the values denormalized onto the item when it was
    created; `owner` is the owner's live profile, used when the item carries
    no value of its own. `payload` is opaque to the scorer.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    item_id: str
    owner_id: str
    location: Optional[GeoPoint] = None
    skills: Optional[SkillProfile] = None
    owner: Optional[OwnerProfile] = None
    payload: Any = None

    @classmethod
    def from_document(
        cls,
        doc: Mapping[str, Any],
        owner: Optional[OwnerProfile] = None,
        payload: Any = None,
    ) -> "CandidateItem":
        """Build from a post document (`id`, `user_id`, snapshot fields)."""
        if not doc.get("id") or not doc.get("user_id"):
            raise ValidationError(message="Post document is missing id or user_id")
        return cls(
            item_id=doc["id"],
            owner_id=doc["user_id"],
            location=GeoPoint.from_document(doc.get("latitude"), doc.get("longitude")),
            skills=SkillProfile.from_document(doc.get("sport_ratings")),
            owner=owner,
            payload=payload,
        )

    @property
    def effective_location(self) -> Optional[GeoPoint]:
        if self.location is not None:
            return self.location
        return self.owner.location if self.owner else None

    @property
    def effective_skills(self) -> Optional[SkillProfile]:
        if self.skills is not None and not self.skills.is_empty():
            return self.skills
        return self.owner.skills if self.owner else None


class RankedResult(BaseModel):
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    item: CandidateItem
    score: float
    distance_km: Optional[float] = None
    location_score: float
    rating_score: float
    recommended: bool = False
