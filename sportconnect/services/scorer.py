"""
SportConnect Backend — Geo-Affinity Scorer
==========================================

What:  Ranks candidate posts for a viewer by blending great-circle distance
       with sport-skill similarity into one comparable number.
How:   Pure functions plus a small stateless orchestrator. No I/O, never
       suspends, never mutates its inputs.
Who:   Called by FeedService for GET /api/feed/recommended.

Scoring (lower = more relevant):
    distance        haversine, mean Earth radius 6371 km; unknown if either
                    side has no location
    location score  0-10 km    → d × 10                    (0-100)
                    10-50 km   → 100 + (d − 10) × 5        (100-300)
                    50-200 km  → 300 + (d − 50) × 2        (300-600)
                    > 200 km   → 600 + min(d − 200, 400)   (600-1000)
                    unknown    → 1000
    rating score    mean |Δrating| over sports rated on both sides × 10;
                    100 when no sport overlaps
    composite       0.7 × location + 0.3 × rating

    A candidate with no usable data on either axis scores
    0.7 × 1000 + 0.3 × 100 = 730.
"""

import math
from typing import Iterable, List, Optional

from sportconnect.config import settings
from sportconnect.exceptions import ValidationError
from sportconnect.schemas.domain import (
    CandidateItem,
    GeoPoint,
    RankedResult,
    SkillProfile,
    Viewer,
)

EARTH_RADIUS_KM = 6371.0

LOCATION_WEIGHT = 0.7
RATING_WEIGHT = 0.3

UNKNOWN_LOCATION_SCORE = 1000.0
UNKNOWN_RATING_SCORE = 100.0
MAX_FAR_PENALTY_KM = 400.0


def haversine_km(a: GeoPoint, b: GeoPoint) -> float:
    """Great-circle distance between two points in kilometers."""
    lat1, lon1 = math.radians(a.latitude), math.radians(a.longitude)
    lat2, lon2 = math.radians(b.latitude), math.radians(b.longitude)
    dlat = lat2 - lat1
    dlon = lon2 - lon1

    h = math.sin(dlat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(dlon / 2) ** 2
    # Clamp: rounding can push h a hair above 1 for antipodal points
    h = min(1.0, max(0.0, h))
    return 2 * EARTH_RADIUS_KM * math.asin(math.sqrt(h))


def location_score(distance_km: Optional[float]) -> float:
    """
    Piecewise, saturating distance penalty.

    Continuous at 10, 50 and 200 km and non-decreasing everywhere.

    Raises:
        ValidationError: distance is negative or not finite.
    """
    if distance_km is None:
        return UNKNOWN_LOCATION_SCORE
    if math.isnan(distance_km) or distance_km < 0:
        raise ValidationError(
            message="Distance must be a non-negative number",
            field="distance_km",
            context={"value": repr(distance_km)},
        )

    if distance_km <= 10:
        return distance_km * 10
    if distance_km <= 50:
        return 100 + (distance_km - 10) * 5
    if distance_km <= 200:
        return 300 + (distance_km - 50) * 2
    return 600 + min(distance_km - 200, MAX_FAR_PENALTY_KM)


def average_skill_difference(
    viewer_skills: Optional[SkillProfile],
    candidate_skills: Optional[SkillProfile],
) -> Optional[float]:
    """Mean absolute rating gap over shared sports, or None without overlap."""
    if viewer_skills is None or candidate_skills is None:
        return None

    shared = viewer_skills.shared_sports(candidate_skills)
    if not shared:
        return None

    total = sum(
        abs(viewer_skills.ratings[sport] - candidate_skills.ratings[sport])
        for sport in shared
    )
    return total / len(shared)


def rating_score(average_difference: Optional[float]) -> float:
    if average_difference is None:
        return UNKNOWN_RATING_SCORE
    return average_difference * 10


def composite_score(location: float, rating: float) -> float:
    return LOCATION_WEIGHT * location + RATING_WEIGHT * rating


class GeoAffinityScorer:
    """
    Stateless ranking orchestrator.

    Attributes:
        default_limit:          top-N used when rank() gets no limit
        recommended_threshold:  composite score below which a result is
                                flagged `recommended` (hint only, not a filter)
    """

    def __init__(
        self,
        default_limit: Optional[int] = None,
        recommended_threshold: Optional[float] = None,
    ):
        self.default_limit = (
            default_limit if default_limit is not None else settings.recommended_feed_limit
        )
        self.recommended_threshold = (
            recommended_threshold
            if recommended_threshold is not None
            else settings.recommended_threshold
        )

    def score(self, viewer: Viewer, candidate: CandidateItem) -> RankedResult:
        """Score a single candidate relative to the viewer."""
        candidate_location = candidate.effective_location
        distance: Optional[float] = None
        if viewer.location is not None and candidate_location is not None:
            distance = haversine_km(viewer.location, candidate_location)

        loc = location_score(distance)
        rating = rating_score(
            average_skill_difference(viewer.skills, candidate.effective_skills)
        )
        total = composite_score(loc, rating)

        return RankedResult(
            item=candidate,
            score=total,
            distance_km=distance,
            location_score=loc,
            rating_score=rating,
            recommended=total < self.recommended_threshold,
        )

    def rank(
        self,
        viewer: Viewer,
        candidates: Iterable[CandidateItem],
        limit: Optional[int] = None,
    ) -> List[RankedResult]:
        """
        Score, sort ascending and truncate.

        Candidates owned by the viewer are dropped. `sorted` is stable, so
        equal scores keep their input order.
        """
        top_n = self.default_limit if limit is None else limit
        if top_n < 0:
            raise ValidationError(message="limit must be >= 0", field="limit")

        scored = [
            self.score(viewer, candidate)
            for candidate in candidates
            if candidate.owner_id != viewer.actor_id
        ]
        scored = sorted(scored, key=lambda result: result.score)
        return scored[:top_n]


def has_personalization(viewer: Viewer) -> bool:
    """Whether a ranked feed means anything for this viewer."""
    return viewer.has_personalization()
