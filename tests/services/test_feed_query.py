"""
Tests for the feed aggregation statement.

Covers:
1. Sort mode resolution and fallbacks
2. Derived counts (likes, comments), including zero
3. Ordering per sort mode with the created_at / id tie-break
4. Videos whose uploader no longer exists
5. Relevance ordering for text queries
"""

import pytest

from vidshelf.services.feed_query import (
    FeedAggregationBuilder,
    FeedFilter,
    SortMode,
    row_to_feed_item,
)
from tests.factories import add_comments, add_likes, create_video


async def run_feed(db_session, feed_filter=None, sort=None, skip=0, limit=None, **kwargs):
    builder = FeedAggregationBuilder(feed_filter, sort, **kwargs)
    result = await db_session.execute(builder.build(skip=skip, limit=limit))
    return [row_to_feed_item(row) for row in result.all()]


class TestSortModeResolution:
    """Mapping client sort tokens to modes."""

    @pytest.mark.parametrize("token,expected", [
        ("date_desc", SortMode.DATE_DESC),
        ("views_desc", SortMode.VIEWS_DESC),
        ("likes_desc", SortMode.LIKES_DESC),
        ("comments_desc", SortMode.COMMENTS_DESC),
        ("  LIKES_DESC ", SortMode.LIKES_DESC),
    ])
    def test_known_tokens(self, token, expected):
        assert SortMode.resolve(token, has_query=False) is expected

    def test_unknown_token_falls_back_to_date(self):
        assert SortMode.resolve("most_popular", has_query=True) is SortMode.DATE_DESC

    def test_missing_token_uses_default(self):
        assert SortMode.resolve(None, has_query=False) is SortMode.DATE_DESC
        assert SortMode.resolve("", has_query=True, default=SortMode.RELEVANCE) is SortMode.RELEVANCE

    def test_relevance_without_query_degrades_to_date(self):
        assert SortMode.resolve("relevance", has_query=False) is SortMode.DATE_DESC
        assert SortMode.resolve(None, has_query=False, default=SortMode.RELEVANCE) is SortMode.DATE_DESC

    def test_relevance_with_query(self):
        assert SortMode.resolve("relevance", has_query=True) is SortMode.RELEVANCE

    def test_builder_resolves_relevance_against_its_filter(self):
        assert FeedAggregationBuilder(FeedFilter(), "relevance").sort is SortMode.DATE_DESC
        assert FeedAggregationBuilder(FeedFilter(query="cats"), "relevance").sort is SortMode.RELEVANCE
        assert FeedAggregationBuilder(FeedFilter(query="!!"), "relevance").sort is SortMode.DATE_DESC


class TestDerivedCounts:
    """likes_count and comment_count are computed at read time."""

    async def test_counts_match_liker_set_and_comments(self, db_session, alice, bob):
        popular = await create_video(db_session, alice.id, "Popular", minutes=1)
        quiet = await create_video(db_session, alice.id, "Quiet", minutes=2)
        await add_likes(db_session, popular, alice.id, bob.id)
        await add_comments(db_session, popular.id, bob.id, "first", "second", "third")

        items = {item["title"]: item for item in await run_feed(db_session)}

        assert items["Popular"]["likes_count"] == 2
        assert items["Popular"]["comment_count"] == 3
        assert items["Quiet"]["likes_count"] == 0
        assert items["Quiet"]["comment_count"] == 0
        assert quiet.id in {item["id"] for item in items.values()}

    async def test_likes_do_not_multiply_comment_count(self, db_session, alice, bob):
        video = await create_video(db_session, alice.id, "Both")
        await add_likes(db_session, video, alice.id, bob.id)
        await add_comments(db_session, video.id, alice.id, "a", "b")

        [item] = await run_feed(db_session)

        assert item["likes_count"] == 2
        assert item["comment_count"] == 2

    async def test_relevance_score_absent_without_query(self, db_session, alice):
        await create_video(db_session, alice.id, "Anything")

        [item] = await run_feed(db_session)

        assert item["relevance_score"] is None


class TestOrdering:
    """Each mode yields a non-increasing key sequence, ties broken by recency."""

    @pytest.fixture
    async def catalog(self, db_session, alice, bob):
        a = await create_video(db_session, alice.id, "A", minutes=1, view_count=10)
        b = await create_video(db_session, alice.id, "B", minutes=2, view_count=30)
        c = await create_video(db_session, bob.id, "C", minutes=3, view_count=10)
        d = await create_video(db_session, bob.id, "D", minutes=4, view_count=0)
        await add_likes(db_session, a, alice.id, bob.id)
        await add_likes(db_session, c, alice.id)
        await add_comments(db_session, d.id, alice.id, "x", "y")
        await add_comments(db_session, b.id, alice.id, "z")
        return {"A": a, "B": b, "C": c, "D": d}

    async def test_date_desc(self, db_session, catalog):
        items = await run_feed(db_session, sort="date_desc")
        assert [item["title"] for item in items] == ["D", "C", "B", "A"]

    async def test_views_desc_with_recency_tie_break(self, db_session, catalog):
        items = await run_feed(db_session, sort="views_desc")
        assert [item["title"] for item in items] == ["B", "C", "A", "D"]

    async def test_likes_desc(self, db_session, catalog):
        items = await run_feed(db_session, sort="likes_desc")
        assert [item["title"] for item in items] == ["A", "C", "D", "B"]
        likes = [item["likes_count"] for item in items]
        assert likes == sorted(likes, reverse=True)

    async def test_comments_desc(self, db_session, catalog):
        items = await run_feed(db_session, sort="comments_desc")
        assert [item["title"] for item in items] == ["D", "B", "C", "A"]

    async def test_relevance_without_query_is_date_order(self, db_session, catalog):
        items = await run_feed(db_session, sort="relevance")
        assert [item["title"] for item in items] == ["D", "C", "B", "A"]

    async def test_same_timestamp_breaks_on_id(self, db_session, alice):
        first = await create_video(db_session, alice.id, "First", minutes=5, file_id="f1")
        second = await create_video(db_session, alice.id, "Second", minutes=5, file_id="f2")

        items = await run_feed(db_session)

        assert [item["id"] for item in items] == [second.id, first.id]

    async def test_windows_are_stable_continuations(self, db_session, catalog):
        full = [item["id"] for item in await run_feed(db_session, sort="views_desc")]
        first = [item["id"] for item in await run_feed(db_session, sort="views_desc", limit=2)]
        second = [item["id"] for item in await run_feed(db_session, sort="views_desc", skip=2, limit=2)]

        assert first + second == full


class TestUploaderJoin:
    async def test_uploader_summary(self, db_session, alice):
        await create_video(db_session, alice.id, "Mine")

        [item] = await run_feed(db_session)

        assert item["uploader"] == {"id": alice.id, "username": "alice"}

    async def test_missing_uploader_keeps_the_video(self, db_session, alice):
        await create_video(db_session, alice.id, "Kept", minutes=1)
        await create_video(db_session, 9999, "Orphan", minutes=2)

        items = await run_feed(db_session)

        assert [item["title"] for item in items] == ["Orphan", "Kept"]
        assert items[0]["uploader"] == {"id": None, "username": None}

    async def test_filter_by_uploader(self, db_session, alice, bob):
        await create_video(db_session, alice.id, "Alice one", minutes=1)
        await create_video(db_session, bob.id, "Bob one", minutes=2)

        items = await run_feed(db_session, FeedFilter(uploader_id=bob.id))

        assert [item["title"] for item in items] == ["Bob one"]


class TestTextQuery:
    async def test_relevance_orders_by_score(self, db_session, alice):
        await create_video(db_session, alice.id, "Piano basics", "learn piano", minutes=1)
        await create_video(db_session, alice.id, "Music theory", "piano and more", minutes=2)
        await create_video(db_session, alice.id, "Drums", "rhythm", minutes=3)

        items = await run_feed(db_session, FeedFilter(query="piano"), "relevance")

        assert [item["title"] for item in items] == ["Piano basics", "Music theory"]
        assert items[0]["relevance_score"] == pytest.approx(3.0)
        assert items[1]["relevance_score"] == pytest.approx(1.0)

    async def test_text_query_with_other_sort(self, db_session, alice):
        await create_video(db_session, alice.id, "Piano basics", "", minutes=1, view_count=1)
        await create_video(db_session, alice.id, "Piano advanced", "", minutes=2, view_count=5)

        items = await run_feed(db_session, FeedFilter(query="piano"), "views_desc")

        assert [item["title"] for item in items] == ["Piano advanced", "Piano basics"]

    async def test_count_statement_ignores_window(self, db_session, alice):
        for minute in range(5):
            await create_video(db_session, alice.id, f"Clip {minute}", minutes=minute)
        await create_video(db_session, alice.id, "Other", minutes=9)

        builder = FeedAggregationBuilder(FeedFilter(query="clip"))

        assert await db_session.scalar(builder.count_statement()) == 5
