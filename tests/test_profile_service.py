"""
SportConnect Backend — Profile Service Tests
============================================

What:  ProfileService against the in-memory database with a mocked geocoder.

What we test:
    ✅ Get-or-create: defaults on first access, idempotent afterwards
    ✅ Bio trimming and length limit
    ✅ Settings: location needs a city, coordinates validated, ratings
       validated, empty ratings clear, bad input leaves the row untouched
    ✅ Reverse geocoding success and the "lat, lon" fallback
    ✅ User search and follower/following lists
"""

from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from sportconnect.exceptions import (
    CircuitBreakerOpenError,
    GeocodingServiceError,
    NotFoundError,
    ValidationError,
)
from sportconnect.models.social import UserProfile
from sportconnect.schemas.social import LocationIn, Place
from sportconnect.services.geocoding_service import GeocodingService
from sportconnect.services.profile_service import ProfileService


@pytest.fixture
def geocoder():
    mock = MagicMock()
    mock.reverse = AsyncMock()
    return mock


@pytest.fixture
def service(geocoder):
    return ProfileService(geocoder=geocoder)


class TestGetOrCreate:
    @pytest.mark.asyncio
    async def test_creates_default_profile(self, service, db_session):
        profile = await service.get_or_create_profile(db_session, "alice", "Alice", "alice@example.com")

        assert profile.user_id == "alice"
        assert profile.display_name == "Alice"
        assert profile.followers == []
        assert profile.followers_count == 0
        assert profile.following_count == 0
        assert profile.sport_ratings == {}
        assert profile.posts_count == 0

    @pytest.mark.asyncio
    async def test_existing_profile_kept(self, service, db_session, make_profile):
        await make_profile("alice", display_name="Ace", followers=["bob"], followers_count=1)

        profile = await service.get_or_create_profile(db_session, "alice", "Alice", "new@example.com")

        assert profile.display_name == "Ace"
        assert profile.followers == ["bob"]

    @pytest.mark.asyncio
    async def test_get_missing_profile(self, service, db_session):
        with pytest.raises(NotFoundError):
            await service.get_profile(db_session, "nobody")


class TestUpdateBio:
    @pytest.mark.asyncio
    async def test_trimmed(self, service, db_session, make_profile):
        await make_profile("alice")
        profile = await service.update_bio(db_session, "alice", "  4.0 NTRP, weekday mornings  ")
        assert profile.bio == "4.0 NTRP, weekday mornings"

    @pytest.mark.asyncio
    async def test_too_long(self, service, db_session, make_profile):
        await make_profile("alice")
        with pytest.raises(ValidationError):
            await service.update_bio(db_session, "alice", "x" * 501)


class TestUpdateSettings:
    @pytest.mark.asyncio
    async def test_location_and_ratings_stored(self, service, db_session, make_profile):
        await make_profile("alice")

        profile = await service.update_settings(
            db_session,
            "alice",
            LocationIn(city=" Austin ", state="TX", country="USA", latitude=30.27, longitude=-97.74),
            {"tennis": 9.5, "golf": 18},
        )

        assert profile.city == "Austin"
        assert profile.latitude == 30.27
        assert profile.sport_ratings == {"tennis": 9.5, "golf": 18.0}

    @pytest.mark.asyncio
    async def test_blank_city_ignores_location(self, service, db_session, make_profile):
        await make_profile("alice", city="Denver", latitude=39.7, longitude=-105.0)

        profile = await service.update_settings(
            db_session, "alice", LocationIn(city="  ", latitude=1.0, longitude=1.0), {}
        )

        assert profile.city == "Denver"
        assert profile.latitude == 39.7

    @pytest.mark.asyncio
    async def test_empty_ratings_clear(self, service, db_session, make_profile):
        await make_profile("alice", sport_ratings={"tennis": 5.0})

        profile = await service.update_settings(db_session, "alice", None, {})

        assert profile.sport_ratings == {}
        stored = await db_session.get(UserProfile, "alice")
        assert stored.sport_ratings is None

    @pytest.mark.asyncio
    async def test_invalid_rating_leaves_profile_untouched(self, service, db_session, make_profile):
        await make_profile("alice", city="Denver", sport_ratings={"tennis": 5.0})

        with pytest.raises(ValidationError):
            await service.update_settings(
                db_session, "alice", LocationIn(city="Austin"), {"tennis": 20}
            )

        stored = await db_session.get(UserProfile, "alice")
        assert stored.city == "Denver"
        assert stored.sport_ratings == {"tennis": 5.0}

    @pytest.mark.asyncio
    async def test_half_coordinates_rejected(self, service, db_session, make_profile):
        await make_profile("alice")
        with pytest.raises(ValidationError):
            await service.update_settings(
                db_session, "alice", LocationIn(city="Austin", latitude=30.0), {}
            )

    @pytest.mark.asyncio
    async def test_city_without_coordinates(self, service, db_session, make_profile):
        await make_profile("alice", latitude=39.7, longitude=-105.0)

        profile = await service.update_settings(db_session, "alice", LocationIn(city="Austin"), {})

        assert profile.city == "Austin"
        assert profile.latitude is None
        assert profile.longitude is None


class TestLocate:
    @pytest.mark.asyncio
    async def test_reverse_geocoded(self, service, geocoder, db_session, make_profile):
        await make_profile("alice")
        geocoder.reverse.return_value = Place(
            name="Boulder, Colorado, United States",
            city="Boulder",
            state="Colorado",
            country="United States",
            latitude=40.015,
            longitude=-105.2705,
        )

        profile = await service.locate_from_coordinates(db_session, "alice", 40.015, -105.2705)

        assert profile.city == "Boulder"
        assert profile.state == "Colorado"
        assert profile.latitude == 40.015
        geocoder.reverse.assert_awaited_once_with(40.015, -105.2705)

    @pytest.mark.parametrize(
        "error", [GeocodingServiceError(), CircuitBreakerOpenError(recovery_time=30)]
    )
    @pytest.mark.asyncio
    async def test_geocoder_failure_falls_back(self, service, geocoder, db_session, make_profile, error):
        await make_profile("alice")
        geocoder.reverse.side_effect = error

        profile = await service.locate_from_coordinates(db_session, "alice", 40.0150123, -105.27)

        assert profile.city == "40.0150, -105.2700"
        assert profile.latitude == 40.0150123

    @pytest.mark.asyncio
    async def test_maintenance_page_falls_back(self, db_session, make_profile):
        await make_profile("alice")
        transport = httpx.MockTransport(
            lambda request: httpx.Response(200, text="<html>maintenance</html>")
        )
        service = ProfileService(
            geocoder=GeocodingService(client=httpx.AsyncClient(transport=transport))
        )

        profile = await service.locate_from_coordinates(db_session, "alice", 40.0, -74.0)

        assert profile.city == "40.0000, -74.0000"
        assert profile.latitude == 40.0

    @pytest.mark.asyncio
    async def test_invalid_coordinates(self, service, geocoder, db_session, make_profile):
        await make_profile("alice")
        with pytest.raises(ValidationError):
            await service.locate_from_coordinates(db_session, "alice", 95.0, 0.0)
        geocoder.reverse.assert_not_called()


class TestSearchAndConnections:
    @pytest.mark.asyncio
    async def test_search_by_name_or_email(self, service, db_session, make_profile):
        await make_profile("u1", display_name="Serena Park", email="sp@example.com")
        await make_profile("u2", display_name="Tom", email="serenade@example.com")
        await make_profile("u3", display_name="Zed", email="zed@example.com")

        results = await service.search_users(db_session, "SEREN")

        assert {r.user_id for r in results} == {"u1", "u2"}

    @pytest.mark.asyncio
    async def test_search_excludes_caller(self, service, db_session, make_profile):
        await make_profile("u1", display_name="Sam")
        await make_profile("u2", display_name="Samantha")

        results = await service.search_users(db_session, "sam", exclude_user_id="u1")

        assert [r.user_id for r in results] == ["u2"]

    @pytest.mark.parametrize("term", ["%", "_", "a%"])
    @pytest.mark.asyncio
    async def test_wildcards_match_literally(self, service, db_session, make_profile, term):
        await make_profile("u1", display_name="Alice", email="alice@example.com")
        await make_profile("u2", display_name="Bob", email="bob@example.com")

        assert await service.search_users(db_session, term) == []

    @pytest.mark.asyncio
    async def test_literal_percent_found(self, service, db_session, make_profile):
        await make_profile("u1", display_name="100% Hustle")
        await make_profile("u2", display_name="Hustler")

        results = await service.search_users(db_session, "0% h")

        assert [r.user_id for r in results] == ["u1"]

    @pytest.mark.asyncio
    async def test_blank_search(self, service, mock_db_session):
        assert await service.search_users(mock_db_session, "   ") == []
        mock_db_session.execute.assert_not_called()

    @pytest.mark.asyncio
    async def test_followers_and_following(self, service, db_session, make_profile):
        await make_profile("alice", followers=["bob", "carol"], following=["carol"])
        await make_profile("bob")
        await make_profile("carol")

        followers = await service.list_connections(db_session, "alice", "followers")
        following = await service.list_connections(db_session, "alice", "following")

        assert [p.user_id for p in followers] == ["bob", "carol"]
        assert [p.user_id for p in following] == ["carol"]

    @pytest.mark.asyncio
    async def test_unknown_connection_kind(self, service, db_session):
        with pytest.raises(ValidationError):
            await service.list_connections(db_session, "alice", "blocked")
