"""
SportConnect Backend — Post Service Tests
=========================================

What:  PostService against the in-memory database, plus mock-session
       tests for the error wrapping.

What we test:
    ✅ Text trimming and the 1-280 character bound
    ✅ Author snapshot (location, ratings, display name) copied onto the post
    ✅ posts_count incremented; missing author profile created
    ✅ Comments: comment_count incremented, oldest-first listing, 404s
    ✅ SQLAlchemy errors wrapped in DatabaseError
"""

import pytest
from sqlalchemy.exc import OperationalError

from sportconnect.exceptions import DatabaseError, NotFoundError, ValidationError
from sportconnect.models.social import Post, UserProfile
from sportconnect.services.post_service import PostService, clean_text


class TestCleanText:
    def test_trims(self):
        assert clean_text("  hello  ") == "hello"

    @pytest.mark.parametrize("text", ["", "   ", "\n\t"])
    def test_empty_rejected(self, text):
        with pytest.raises(ValidationError):
            clean_text(text)

    def test_limit_is_inclusive(self):
        assert len(clean_text("x" * 280)) == 280
        with pytest.raises(ValidationError):
            clean_text("x" * 281)

    def test_limit_applies_after_trimming(self):
        assert clean_text("  " + "x" * 280 + "  ") == "x" * 280


class TestCreatePost:
    def setup_method(self):
        self.service = PostService()

    @pytest.mark.asyncio
    async def test_snapshot_copied_from_author(self, db_session, make_profile):
        await make_profile(
            "alice",
            display_name="Alice",
            latitude=37.77,
            longitude=-122.42,
            sport_ratings={"tennis": 7.5},
        )

        post = await self.service.create_post(db_session, "alice", "  Hitting at 6pm  ")

        assert post.text == "Hitting at 6pm"
        assert post.user_display_name == "Alice"
        assert post.latitude == 37.77
        assert post.longitude == -122.42
        assert post.like_count == 0
        assert post.comment_count == 0
        stored = await db_session.get(Post, post.id)
        assert stored.sport_ratings == {"tennis": 7.5}

    @pytest.mark.asyncio
    async def test_posts_count_incremented(self, db_session, make_profile):
        await make_profile("alice", posts_count=2)

        await self.service.create_post(db_session, "alice", "one more")

        profile = await db_session.get(UserProfile, "alice")
        assert profile.posts_count == 3

    @pytest.mark.asyncio
    async def test_unknown_author_gets_profile(self, db_session):
        post = await self.service.create_post(db_session, "newcomer", "first post")

        assert post.user_display_name == "Anonymous"
        assert post.latitude is None
        profile = await db_session.get(UserProfile, "newcomer")
        assert profile.posts_count == 1

    @pytest.mark.asyncio
    async def test_empty_text_rejected_before_any_query(self, mock_db_session):
        with pytest.raises(ValidationError):
            await self.service.create_post(mock_db_session, "alice", "   ")
        mock_db_session.get.assert_not_called()

    @pytest.mark.asyncio
    async def test_database_error_wrapped(self, mock_db_session):
        mock_db_session.get.side_effect = OperationalError("SELECT", {}, Exception("down"))

        with pytest.raises(DatabaseError):
            await self.service.create_post(mock_db_session, "alice", "hello")


class TestGetPost:
    def setup_method(self):
        self.service = PostService()

    @pytest.mark.asyncio
    async def test_found(self, db_session, make_post):
        created = await make_post("bob", text="Pickup soccer Sunday")
        post = await self.service.get_post(db_session, created.id)
        assert post.text == "Pickup soccer Sunday"

    @pytest.mark.asyncio
    async def test_not_found(self, mock_db_session):
        mock_db_session.get.return_value = None
        with pytest.raises(NotFoundError):
            await self.service.get_post(mock_db_session, "missing")


class TestComments:
    def setup_method(self):
        self.service = PostService()

    @pytest.mark.asyncio
    async def test_add_comment_bumps_count(self, db_session, make_post, make_profile):
        await make_profile("carol", display_name="Carol")
        post = await make_post("bob")

        comment = await self.service.add_comment(db_session, post.id, "carol", " I'm in! ")

        assert comment.text == "I'm in!"
        assert comment.user_display_name == "Carol"
        assert comment.post_id == post.id
        stored = await db_session.get(Post, post.id)
        assert stored.comment_count == 1

    @pytest.mark.asyncio
    async def test_comments_listed_oldest_first(self, db_session, make_post):
        post = await make_post("bob")
        for text in ["first", "second", "third"]:
            await self.service.add_comment(db_session, post.id, "carol", text)

        comments = await self.service.list_comments(db_session, post.id)

        assert [c.text for c in comments] == ["first", "second", "third"]
        stored = await db_session.get(Post, post.id)
        assert stored.comment_count == 3

    @pytest.mark.asyncio
    async def test_comment_on_missing_post(self, db_session):
        with pytest.raises(NotFoundError):
            await self.service.add_comment(db_session, "missing", "carol", "hello?")

    @pytest.mark.asyncio
    async def test_list_comments_missing_post(self, db_session):
        with pytest.raises(NotFoundError):
            await self.service.list_comments(db_session, "missing")

    @pytest.mark.asyncio
    async def test_comment_text_validated(self, db_session, make_post):
        post = await make_post("bob")
        with pytest.raises(ValidationError):
            await self.service.add_comment(db_session, post.id, "carol", "x" * 281)
