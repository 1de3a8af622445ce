"""
SportConnect Backend — Geocoding Service
========================================

What:  HTTP client for the two place-lookup APIs used by profile settings:
       reverse geocoding (coordinates → city/state/country) and forward
       search (free text → place + coordinates).
How:   httpx.AsyncClient calls wrapped in tenacity retry (exponential
       backoff + jitter) and a circuit breaker.
Who:   ProfileService.locate_from_coordinates(), GET /api/geocode/search.
When:  Only when a user edits their location; never on the feed path.

Resilience Strategy:
    1. Tenacity retries transport errors, 429 and 5xx responses
    2. Circuit breaker rejects calls instantly after repeated failures
    3. 4xx responses (other than 429) are not retried: the request is wrong
    4. A 200 whose body is not the expected JSON shape counts as a failure
"""

import logging
import time
import uuid
from typing import List, Optional

import httpx
from tenacity import (
    RetryError,
    before_sleep_log,
    retry,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential_jitter,
)

from sportconnect.config import settings
from sportconnect.exceptions import (
    CircuitBreakerOpenError,
    GeocodingServiceError,
    ValidationError,
)
from sportconnect.schemas.domain import GeoPoint
from sportconnect.schemas.social import Place

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Circuit Breaker Implementation
# ══════════════════════════════════════════════════════════════════════════

class CircuitBreaker:
    """
    Circuit breaker for the geocoding APIs.

    State Machine:
        CLOSED → (failure_count >= threshold) → OPEN
        OPEN → (recovery_timeout elapsed) → HALF_OPEN
        HALF_OPEN → success → CLOSED; failure → OPEN

    Not thread-safe; the service runs on one event loop per process.
    """

    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"

    def __init__(self, failure_threshold: int = 5, recovery_timeout: int = 60):
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self.failure_count = 0
        self.state = self.CLOSED
        self.last_failure_time: Optional[float] = None

    def can_execute(self) -> bool:
        """
        Returns True if the call may proceed.

        Raises:
            CircuitBreakerOpenError if OPEN and the recovery timeout hasn't elapsed.
        """
        if self.state == self.OPEN:
            elapsed = time.time() - (self.last_failure_time or 0)
            if elapsed < self.recovery_timeout:
                raise CircuitBreakerOpenError(
                    recovery_time=max(1, int(self.recovery_timeout - elapsed))
                )
            logger.info("Geocoder circuit transitioning to HALF_OPEN after %.1fs", elapsed)
            self.state = self.HALF_OPEN
        return True

    def record_success(self) -> None:
        if self.state == self.HALF_OPEN:
            logger.info("Geocoder circuit transitioning to CLOSED (service recovered)")
        self.failure_count = 0
        self.state = self.CLOSED
        self.last_failure_time = None

    def record_failure(self) -> None:
        self.failure_count += 1
        self.last_failure_time = time.time()

        if self.state == self.HALF_OPEN:
            logger.warning("Geocoder circuit returning to OPEN (test request failed)")
            self.state = self.OPEN
        elif self.failure_count >= self.failure_threshold:
            logger.warning(
                "Geocoder circuit OPENING after %d consecutive failures",
                self.failure_count,
            )
            self.state = self.OPEN


def _is_transient(exc: BaseException) -> bool:
    """Transport errors, 429 and 5xx are worth another attempt."""
    if isinstance(exc, httpx.TransportError):
        return True
    if isinstance(exc, httpx.HTTPStatusError):
        status = exc.response.status_code
        return status == 429 or status >= 500
    return False


def retry_wait() -> wait_exponential_jitter:
    """min_wait * 2^n + jitter, capped at max_wait."""
    return wait_exponential_jitter(
        multiplier=settings.retry_min_wait,
        max=settings.retry_max_wait,
        jitter=1,
    )


# ══════════════════════════════════════════════════════════════════════════
# Geocoding Service
# ══════════════════════════════════════════════════════════════════════════

class GeocodingService:
    """
    Reverse and forward geocoding over HTTP.

    Args:
        client: optional preconfigured httpx.AsyncClient (tests pass one
                built on httpx.MockTransport). Created lazily otherwise.
    """

    def __init__(self, client: Optional[httpx.AsyncClient] = None):
        self._client = client
        self.circuit_breaker = CircuitBreaker(
            failure_threshold=settings.cb_failure_threshold,
            recovery_timeout=settings.cb_recovery_timeout,
        )

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=settings.geocoding_timeout,
                headers={"User-Agent": settings.geocoding_user_agent},
            )
        return self._client

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def reverse(self, latitude: float, longitude: float) -> Place:
        """
        Look up the place at the given coordinates.

        Raises:
            ValidationError: coordinates out of range
            GeocodingServiceError: API failed after retries
            CircuitBreakerOpenError: too many recent failures
        """
        point = GeoPoint.from_document(latitude, longitude)
        data = await self._get_json(
            settings.geocoding_reverse_url,
            {
                "latitude": point.latitude,
                "longitude": point.longitude,
                "localityLanguage": "en",
            },
        )
        city = data.get("city") or data.get("locality") or ""
        state = data.get("principalSubdivision") or ""
        country = data.get("countryName") or ""
        name = ", ".join(part for part in (city, state, country) if part)
        return Place(
            name=name or f"{point.latitude:.4f}, {point.longitude:.4f}",
            city=city,
            state=state,
            country=country,
            latitude=point.latitude,
            longitude=point.longitude,
        )

    async def search(self, query: str, limit: int = 5) -> List[Place]:
        """Free-text place search; returns an empty list when nothing matches."""
        query = query.strip()
        if not query:
            raise ValidationError(message="Search text cannot be empty", field="q")

        data = await self._get_json(
            settings.geocoding_search_url,
            {"q": query, "format": "json", "addressdetails": 1, "limit": limit},
            expected=list,
        )
        places: List[Place] = []
        for hit in data:
            try:
                point = GeoPoint.from_document(float(hit["lat"]), float(hit["lon"]))
            except (KeyError, TypeError, ValueError, ValidationError):
                logger.debug("Skipping malformed geocoder hit: %r", hit)
                continue
            address = hit.get("address") or {}
            places.append(
                Place(
                    name=hit.get("display_name", ""),
                    city=address.get("city") or address.get("town") or address.get("village") or "",
                    state=address.get("state", ""),
                    country=address.get("country", ""),
                    latitude=point.latitude,
                    longitude=point.longitude,
                )
            )
        return places

    async def _get_json(self, url: str, params: dict, expected: type = dict):
        request_id = str(uuid.uuid4())[:8]
        self.circuit_breaker.can_execute()

        try:
            result = await self._get_with_retry(url, params, request_id)
        except RetryError as e:
            self.circuit_breaker.record_failure()
            last = e.last_attempt.exception() if e.last_attempt else None
            logger.error("[%s] Geocoder retries exhausted: %s", request_id, last)
            raise GeocodingServiceError(
                retry_after=self.circuit_breaker.recovery_timeout,
                context={"request_id": request_id, "attempts": settings.retry_max_attempts},
            )
        except httpx.HTTPError as e:
            self.circuit_breaker.record_failure()
            logger.error("[%s] Geocoder request failed: %s", request_id, str(e))
            raise GeocodingServiceError(
                context={"request_id": request_id, "error_type": type(e).__name__},
            )
        except ValueError as e:
            # 200 with an HTML maintenance page or other non-JSON body
            self.circuit_breaker.record_failure()
            logger.error("[%s] Geocoder returned a non-JSON body: %s", request_id, str(e))
            raise GeocodingServiceError(
                context={"request_id": request_id, "error_type": "invalid_body"},
            )

        if not isinstance(result, expected):
            self.circuit_breaker.record_failure()
            logger.error(
                "[%s] Geocoder returned %s, expected %s",
                request_id,
                type(result).__name__,
                expected.__name__,
            )
            raise GeocodingServiceError(
                context={"request_id": request_id, "error_type": "invalid_body"},
            )

        self.circuit_breaker.record_success()
        return result

    @retry(
        retry=retry_if_exception(_is_transient),
        stop=stop_after_attempt(settings.retry_max_attempts),
        wait=retry_wait(),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=False,
    )
    async def _get_with_retry(self, url: str, params: dict, request_id: str):
        start_time = time.perf_counter()
        response = await self.client.get(url, params=params)
        duration_ms = (time.perf_counter() - start_time) * 1000
        logger.info(
            "[%s] Geocoder %s → %d in %.0fms",
            request_id,
            url,
            response.status_code,
            duration_ms,
        )
        response.raise_for_status()
        return response.json()


# ── Singleton Instance ────────────────────────────────────────────────────
# Holds the circuit breaker state shared by all requests
geocoding_service = GeocodingService()
