"""
SportConnect Backend — API Endpoint Tests
=========================================

What:  HTTP-level tests through the FastAPI app (ASGITransport).
How:   test_client routes requests into the app, whose session dependency
       and toggle store point at the per-test in-memory database.

What we test:
    ✅ Status codes and bodies for each route group
    ✅ Error mapping: 400 / 404 / 409 / 503 with the standard error body
    ✅ X-Request-ID echoed back
    ✅ Health endpoint
"""

from unittest.mock import AsyncMock

import pytest

from sportconnect.exceptions import CircuitBreakerOpenError
from sportconnect.schemas.social import Place
from sportconnect.services.geocoding_service import geocoding_service


class TestHealth:
    @pytest.mark.asyncio
    async def test_health(self, test_client):
        response = await test_client.get("/health")
        assert response.status_code == 200
        body = response.json()
        assert body["status"] in ("healthy", "degraded")
        assert body["database"] == "connected"


class TestPosts:
    @pytest.mark.asyncio
    async def test_create_and_get(self, test_client):
        response = await test_client.post(
            "/api/posts", json={"author_id": "alice", "text": "  Tennis at 6?  "}
        )
        assert response.status_code == 201
        post = response.json()
        assert post["text"] == "Tennis at 6?"

        fetched = await test_client.get(f"/api/posts/{post['id']}")
        assert fetched.status_code == 200
        assert fetched.json()["id"] == post["id"]

    @pytest.mark.asyncio
    async def test_create_too_long(self, test_client):
        response = await test_client.post("/api/posts", json={"author_id": "alice", "text": "x" * 281})
        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "validation_error"
        assert body["details"]["field"] == "text"
        assert "request_id" in body

    @pytest.mark.asyncio
    async def test_missing_post(self, test_client):
        response = await test_client.get("/api/posts/nope", headers={"X-Request-ID": "abc12345"})
        assert response.status_code == 404
        assert response.json()["error"] == "not_found"
        assert response.json()["request_id"] == "abc12345"
        assert response.headers["X-Request-ID"] == "abc12345"

    @pytest.mark.asyncio
    async def test_like_toggle(self, test_client, make_post):
        post = await make_post("bob")

        first = await test_client.post(f"/api/posts/{post.id}/like", json={"actor_id": "alice"})
        assert first.status_code == 200
        assert first.json() == {
            "kind": "like",
            "actor_id": "alice",
            "target_id": post.id,
            "is_member": True,
            "count": 1,
            "counter_count": 1,
        }

        second = await test_client.post(f"/api/posts/{post.id}/like", json={"actor_id": "alice"})
        assert second.json()["is_member"] is False
        assert second.json()["count"] == 0

    @pytest.mark.asyncio
    async def test_like_vanished_post(self, test_client):
        response = await test_client.post("/api/posts/deleted/like", json={"actor_id": "alice"})
        assert response.status_code == 409
        assert response.json()["error"] == "conflict"

    @pytest.mark.asyncio
    async def test_comments(self, test_client, make_post):
        post = await make_post("bob")

        created = await test_client.post(
            f"/api/posts/{post.id}/comments", json={"author_id": "carol", "text": "count me in"}
        )
        assert created.status_code == 201

        listed = await test_client.get(f"/api/posts/{post.id}/comments")
        assert [c["text"] for c in listed.json()] == ["count me in"]

        detail = await test_client.get(f"/api/posts/{post.id}")
        assert detail.json()["comment_count"] == 1


class TestFeeds:
    @pytest.mark.asyncio
    async def test_recommended(self, test_client, make_profile, make_post):
        await make_profile("viewer", latitude=37.77, longitude=-122.42)
        await make_post("bob", text="nearby", latitude=37.80, longitude=-122.27)

        response = await test_client.get("/api/feed/recommended", params={"viewer_id": "viewer"})

        assert response.status_code == 200
        body = response.json()
        assert body["personalized"] is True
        assert body["items"][0]["post"]["text"] == "nearby"
        assert body["items"][0]["recommended"] is True

    @pytest.mark.asyncio
    async def test_recommended_requires_viewer(self, test_client):
        response = await test_client.get("/api/feed/recommended")
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_recent_and_liked(self, test_client, make_post):
        post = await make_post("bob", text="hello")
        await test_client.post(f"/api/posts/{post.id}/like", json={"actor_id": "alice"})

        recent = await test_client.get("/api/feed/recent")
        liked = await test_client.get("/api/users/alice/liked-posts")

        assert [i["post"]["text"] for i in recent.json()["items"]] == ["hello"]
        assert [i["post"]["id"] for i in liked.json()["items"]] == [post.id]

    @pytest.mark.asyncio
    async def test_user_posts(self, test_client):
        for text in ["older", "newer"]:
            await test_client.post("/api/posts", json={"author_id": "alice", "text": text})
        await test_client.post("/api/posts", json={"author_id": "bob", "text": "bob's"})

        response = await test_client.get("/api/users/alice/posts")

        assert response.status_code == 200
        assert [i["post"]["text"] for i in response.json()["items"]] == ["newer", "older"]
        profile = await test_client.get("/api/users/alice")
        assert profile.json()["posts_count"] == 2


class TestUsers:
    @pytest.mark.asyncio
    async def test_profile_lifecycle(self, test_client):
        created = await test_client.put(
            "/api/users/alice", json={"display_name": "Alice", "email": "alice@example.com"}
        )
        assert created.status_code == 200
        assert created.json()["followers_count"] == 0

        bio = await test_client.patch("/api/users/alice/bio", json={"bio": "Lefty, 4.5"})
        assert bio.json()["bio"] == "Lefty, 4.5"

        updated = await test_client.patch(
            "/api/users/alice/settings",
            json={
                "location": {"city": "Austin", "latitude": 30.27, "longitude": -97.74},
                "sport_ratings": {"tennis": 10.5},
            },
        )
        assert updated.status_code == 200
        assert updated.json()["sport_ratings"] == {"tennis": 10.5}

        fetched = await test_client.get("/api/users/alice")
        assert fetched.json()["city"] == "Austin"

    @pytest.mark.asyncio
    async def test_invalid_rating(self, test_client, make_profile):
        await make_profile("alice")
        response = await test_client.patch(
            "/api/users/alice/settings", json={"sport_ratings": {"tennis": 99}}
        )
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_missing_profile(self, test_client):
        assert (await test_client.get("/api/users/ghost")).status_code == 404

    @pytest.mark.asyncio
    async def test_follow_and_connections(self, test_client, make_profile):
        await make_profile("alice")
        await make_profile("bob")

        response = await test_client.post("/api/users/bob/follow", json={"actor_id": "alice"})
        assert response.status_code == 200
        assert response.json()["count"] == 1

        followers = await test_client.get("/api/users/bob/followers")
        following = await test_client.get("/api/users/alice/following")
        assert [u["user_id"] for u in followers.json()] == ["alice"]
        assert [u["user_id"] for u in following.json()] == ["bob"]

    @pytest.mark.asyncio
    async def test_self_follow(self, test_client, make_profile):
        await make_profile("alice")
        response = await test_client.post("/api/users/alice/follow", json={"actor_id": "alice"})
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_search(self, test_client, make_profile):
        await make_profile("u1", display_name="Serena")
        await make_profile("u2", display_name="Venus")

        response = await test_client.get("/api/users/search", params={"q": "ser", "viewer_id": "u2"})

        assert response.status_code == 200
        assert [u["user_id"] for u in response.json()] == ["u1"]

    @pytest.mark.asyncio
    async def test_locate_with_geocoder_down(self, test_client, make_profile, monkeypatch):
        await make_profile("alice")
        from sportconnect.services.profile_service import profile_service

        monkeypatch.setattr(
            profile_service.geocoder,
            "reverse",
            AsyncMock(side_effect=CircuitBreakerOpenError(recovery_time=10)),
        )

        response = await test_client.post(
            "/api/users/alice/locate", json={"latitude": 12.5, "longitude": -70.0}
        )

        assert response.status_code == 200
        assert response.json()["city"] == "12.5000, -70.0000"


class TestGeocode:
    @pytest.mark.asyncio
    async def test_search(self, test_client, monkeypatch):
        monkeypatch.setattr(
            geocoding_service,
            "search",
            AsyncMock(
                return_value=[
                    Place(name="Austin, Texas", city="Austin", state="Texas", latitude=30.27, longitude=-97.74)
                ]
            ),
        )
        response = await test_client.get("/api/geocode/search", params={"q": "Austin"})
        assert response.status_code == 200
        assert response.json()[0]["city"] == "Austin"

    @pytest.mark.asyncio
    async def test_circuit_open_is_503(self, test_client, monkeypatch):
        monkeypatch.setattr(
            geocoding_service,
            "search",
            AsyncMock(side_effect=CircuitBreakerOpenError(recovery_time=42)),
        )
        response = await test_client.get("/api/geocode/search", params={"q": "Austin"})
        assert response.status_code == 503
        assert response.headers["Retry-After"] == "42"
        assert response.json()["details"]["recovery_time"] == 42
