"""
Feed Aggregation Builder

Composes the SQL behind every feed, search result and single-video read.
The statement is assembled in a fixed sequence of stages:

    1. match           base video rows for the filter (+ relevance score)
    2. derive likes    likes_count = size of the liker set, 0 when empty
    3. join comments   comment_count = number of comments, 0 when none
    4. order + window  sort key, then created_at desc, then id desc; offset/limit
    5. join uploader   LEFT OUTER JOIN users, uploader fields NULL when missing
    6. project         the FeedItem columns only

Ordering and windowing happen before the uploader join so the widened rows
are never re-sorted, but after the derived counts exist because several
sort modes order on them. Counts are always computed from ``video_likes``
and ``comments`` at query time; nothing is cached on the video row.
"""

import enum
from dataclasses import dataclass
from typing import Any, Optional

from sqlalchemy import Float, Select, cast, func, null, select
from sqlalchemy.sql.elements import ColumnElement

from vidshelf.models import Comment, User, Video, VideoLike
from vidshelf.services.text_search import TextSearchService


# ========================================
# Sort Modes
# ========================================

class SortMode(str, enum.Enum):
    """
    Recognised feed orderings.

    Every mode orders descending on its key and breaks ties on
    ``created_at`` descending, then ``id`` descending, so each page is a
    stable continuation of the previous one.
    """

    DATE_DESC = "date_desc"
    VIEWS_DESC = "views_desc"
    LIKES_DESC = "likes_desc"
    COMMENTS_DESC = "comments_desc"
    RELEVANCE = "relevance"

    def __str__(self) -> str:
        return self.value

    @classmethod
    def resolve(
        cls,
        token: Optional[str],
        *,
        has_query: bool,
        default: Optional["SortMode"] = None,
    ) -> "SortMode":
        """
        Map a client sort token to a mode.

        - No token: ``default`` (``DATE_DESC`` unless given)
        - Unrecognised token: ``DATE_DESC``, silently
        - ``relevance`` without an active text query: ``DATE_DESC``, silently
        """
        if token is None or not token.strip():
            mode = default or cls.DATE_DESC
        else:
            try:
                mode = cls(token.strip().lower())
            except ValueError:
                mode = cls.DATE_DESC

        if mode is cls.RELEVANCE and not has_query:
            return cls.DATE_DESC
        return mode


# Primary key column name per mode; None means created_at is the key.
_PRIMARY_SORT_KEY: dict[SortMode, Optional[str]] = {
    SortMode.DATE_DESC: None,
    SortMode.VIEWS_DESC: "view_count",
    SortMode.LIKES_DESC: "likes_count",
    SortMode.COMMENTS_DESC: "comment_count",
    SortMode.RELEVANCE: "relevance_score",
}


# ========================================
# Filter
# ========================================

@dataclass(frozen=True)
class FeedFilter:
    """
    Which videos a feed covers.

    All fields empty means "all videos". ``query`` is free text;
    ``uploader_id`` and ``video_id`` narrow the feed to one uploader's
    videos or a single video.
    """

    query: Optional[str] = None
    uploader_id: Optional[int] = None
    video_id: Optional[int] = None


# ========================================
# Builder
# ========================================

class FeedAggregationBuilder:
    """
    Builds the feed statement and its matching count statement.

    Example:
        >>> builder = FeedAggregationBuilder(FeedFilter(query="cats"), "likes_desc")
        >>> rows = (await db.execute(builder.build(skip=0, limit=12))).all()
        >>> total = await db.scalar(builder.count_statement())

    Text matching follows ``text_search``; pass one built for the session's
    dialect on PostgreSQL (``FeedService`` does).
    """

    def __init__(
        self,
        feed_filter: FeedFilter | None = None,
        sort: SortMode | str | None = None,
        *,
        text_search: TextSearchService | None = None,
        default_sort: SortMode = SortMode.DATE_DESC,
    ):
        self.feed_filter = feed_filter or FeedFilter()
        self.text_search = text_search or TextSearchService()
        self.terms = self.text_search.prepare_terms(self.feed_filter.query)

        token = sort.value if isinstance(sort, SortMode) else sort
        self.sort = SortMode.resolve(token, has_query=self.has_text_query, default=default_sort)

    @property
    def has_text_query(self) -> bool:
        return bool(self.terms)

    # ----------------------------------------
    # Stage 1: match
    # ----------------------------------------

    def _match_conditions(self) -> list[ColumnElement[bool]]:
        conditions: list[ColumnElement[bool]] = []
        if self.has_text_query:
            conditions.append(
                self.text_search.match_clause(self.terms, Video.title, Video.description)
            )
        if self.feed_filter.uploader_id is not None:
            conditions.append(Video.uploader_id == self.feed_filter.uploader_id)
        if self.feed_filter.video_id is not None:
            conditions.append(Video.id == self.feed_filter.video_id)
        return conditions

    def _relevance_expr(self) -> ColumnElement[Any]:
        if self.has_text_query:
            return self.text_search.relevance_score(self.terms, Video.title, Video.description)
        return cast(null(), Float)

    def _match(self) -> Select:
        return (
            select(
                Video.id,
                Video.title,
                Video.description,
                Video.file_id,
                Video.thumbnail_url,
                Video.uploader_id,
                Video.view_count,
                Video.created_at,
                self._relevance_expr().label("relevance_score"),
            )
            .select_from(Video)
            .where(*self._match_conditions())
        )

    # ----------------------------------------
    # Stage 2: likes_count
    # ----------------------------------------

    @staticmethod
    def _derive_likes(stmt: Select) -> tuple[Select, ColumnElement[int]]:
        like_counts = (
            select(
                VideoLike.video_id.label("video_id"),
                func.count(VideoLike.id).label("likes_count"),
            )
            .group_by(VideoLike.video_id)
            .subquery("like_counts")
        )
        likes_count = func.coalesce(like_counts.c.likes_count, 0)
        stmt = (
            stmt.outerjoin(like_counts, like_counts.c.video_id == Video.id)
            .add_columns(likes_count.label("likes_count"))
        )
        return stmt, likes_count

    # ----------------------------------------
    # Stage 3: comment_count
    # ----------------------------------------

    @staticmethod
    def _join_comments(stmt: Select) -> tuple[Select, ColumnElement[int]]:
        comment_counts = (
            select(
                Comment.video_id.label("video_id"),
                func.count(Comment.id).label("comment_count"),
            )
            .group_by(Comment.video_id)
            .subquery("comment_counts")
        )
        comment_count = func.coalesce(comment_counts.c.comment_count, 0)
        stmt = (
            stmt.outerjoin(comment_counts, comment_counts.c.video_id == Video.id)
            .add_columns(comment_count.label("comment_count"))
        )
        return stmt, comment_count

    # ----------------------------------------
    # Stage 4: order + window
    # ----------------------------------------

    def _order_by(self, columns: dict[str, Any]) -> list[Any]:
        """Full ORDER BY for the resolved mode over the given columns."""
        order = []
        key = _PRIMARY_SORT_KEY[self.sort]
        if key is not None:
            order.append(columns[key].desc())
        order.append(columns["created_at"].desc())
        order.append(columns["id"].desc())
        return order

    def _order(
        self,
        stmt: Select,
        derived: dict[str, Any],
        skip: int,
        limit: Optional[int],
    ) -> Select:
        columns = {
            "id": Video.id,
            "created_at": Video.created_at,
            "view_count": Video.view_count,
            "relevance_score": self._relevance_expr(),
            **derived,
        }
        stmt = stmt.order_by(*self._order_by(columns))
        if skip:
            stmt = stmt.offset(skip)
        if limit is not None:
            stmt = stmt.limit(limit)
        return stmt

    # ----------------------------------------
    # Stages 5 + 6: uploader join and projection
    # ----------------------------------------

    def _join_uploader(self, ranked: Select) -> Select:
        window = ranked.subquery("ranked")
        return (
            select(
                window.c.id,
                window.c.title,
                window.c.description,
                window.c.file_id,
                window.c.thumbnail_url,
                window.c.view_count,
                window.c.created_at,
                window.c.likes_count,
                window.c.comment_count,
                window.c.relevance_score,
                User.id.label("uploader_id"),
                User.username.label("uploader_username"),
            )
            .select_from(window)
            .outerjoin(User, User.id == window.c.uploader_id)
            .order_by(*self._order_by({key: column for key, column in window.c.items()}))
        )

    # ----------------------------------------
    # Public API
    # ----------------------------------------

    def build(self, skip: int = 0, limit: Optional[int] = None) -> Select:
        """Compose all six stages into one statement."""
        stmt = self._match()
        stmt, likes_count = self._derive_likes(stmt)
        stmt, comment_count = self._join_comments(stmt)
        stmt = self._order(
            stmt,
            {"likes_count": likes_count, "comment_count": comment_count},
            skip,
            limit,
        )
        return self._join_uploader(stmt)

    def count_statement(self) -> Select:
        """Total rows matching the filter, independent of windowing."""
        return (
            select(func.count(Video.id))
            .select_from(Video)
            .where(*self._match_conditions())
        )


def row_to_feed_item(row: Any) -> dict[str, Any]:
    """
    Shape one result row of ``FeedAggregationBuilder.build()`` as a FeedItem
    mapping. The uploader summary is nested; both fields are None when the
    uploader row is missing.
    """
    data = dict(row._mapping)
    return {
        "id": data["id"],
        "title": data["title"],
        "description": data["description"],
        "file_id": data["file_id"],
        "thumbnail_url": data["thumbnail_url"],
        "view_count": data["view_count"],
        "created_at": data["created_at"],
        "likes_count": int(data["likes_count"] or 0),
        "comment_count": int(data["comment_count"] or 0),
        "relevance_score": data["relevance_score"],
        "uploader": {
            "id": data["uploader_id"],
            "username": data["uploader_username"],
        },
    }
