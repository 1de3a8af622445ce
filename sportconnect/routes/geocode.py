"""
SportConnect Backend — Geocoding Route
======================================

What:  GET /api/geocode/search. Place autocomplete for the settings screen.
How:   Proxies GeocodingService.search(); the service holds the retry
       policy and circuit breaker, so clients never call the geocoder
       directly.
"""

from typing import List

from fastapi import APIRouter, Query

from sportconnect.schemas.social import ErrorResponse, Place
from sportconnect.services.geocoding_service import geocoding_service

router = APIRouter(prefix="/api/geocode", tags=["Geocoding"])


@router.get(
    "/search",
    response_model=List[Place],
    responses={
        400: {"description": "Empty query", "model": ErrorResponse},
        503: {"description": "Geocoder unavailable", "model": ErrorResponse},
    },
    summary="Search places by name",
)
async def search_places(
    q: str = Query(min_length=1, max_length=200, description="City, address or landmark"),
    limit: int = Query(default=5, ge=1, le=10),
) -> List[Place]:
    return await geocoding_service.search(q, limit=limit)
