"""
Ranking & Pagination Controller

Turns a page request into a feed window: clamps page and page size,
runs the aggregation statement for the window, and counts the full
result set separately to report how many pages exist.
"""

import math
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from vidshelf.core.config import settings
from vidshelf.core.exceptions import NotFoundError
from vidshelf.core.logging import get_logger
from vidshelf.schemas.video import FeedItem, FeedPage
from vidshelf.services.feed_query import (
    FeedAggregationBuilder,
    FeedFilter,
    SortMode,
    row_to_feed_item,
)
from vidshelf.services.text_search import TextSearchService

logger = get_logger(__name__)


class FeedService:
    """Windowed, sorted reads over the video catalog."""

    def __init__(
        self,
        db: AsyncSession,
        text_search: Optional[TextSearchService] = None,
        page_size: Optional[int] = None,
        max_page_size: Optional[int] = None,
    ):
        self.db = db
        if text_search is None:
            dialect = db.get_bind().dialect.name if db is not None else None
            text_search = TextSearchService(dialect=dialect)
        self.text_search = text_search
        self.page_size = page_size or settings.FEED_PAGE_SIZE
        self.max_page_size = max_page_size or settings.FEED_MAX_PAGE_SIZE

    # ========================================
    # Window arithmetic
    # ========================================

    def clamp_page(self, page: Optional[int]) -> int:
        if page is None or page < 1:
            return 1
        return page

    def clamp_page_size(self, limit: Optional[int]) -> int:
        if limit is None:
            return self.page_size
        return max(1, min(limit, self.max_page_size))

    async def _paginate(
        self,
        builder: FeedAggregationBuilder,
        page: Optional[int],
        limit: Optional[int],
    ) -> FeedPage:
        current_page = self.clamp_page(page)
        page_size = self.clamp_page_size(limit)
        skip = (current_page - 1) * page_size

        result = await self.db.execute(builder.build(skip=skip, limit=page_size))
        items = [FeedItem.model_validate(row_to_feed_item(row)) for row in result.all()]

        total = await self.db.scalar(builder.count_statement()) or 0
        total_pages = math.ceil(total / page_size)

        logger.debug(
            "feed_page_built",
            sort=builder.sort.value,
            page=current_page,
            page_size=page_size,
            returned=len(items),
            total=total,
        )

        return FeedPage(
            items=items,
            current_page=current_page,
            total_pages=total_pages,
            total_items=total,
            page_size=page_size,
        )

    # ========================================
    # Feeds
    # ========================================

    async def list_videos(
        self,
        sort: Optional[str] = None,
        page: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> FeedPage:
        """All videos, newest first unless another sort mode is asked for."""
        builder = FeedAggregationBuilder(
            FeedFilter(),
            sort,
            text_search=self.text_search,
            default_sort=SortMode.DATE_DESC,
        )
        return await self._paginate(builder, page, limit)

    async def search_videos(
        self,
        query: Optional[str],
        sort: Optional[str] = None,
        page: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> FeedPage:
        """
        Videos whose title or description contains every query term.

        A blank query (or one made only of punctuation and boolean
        keywords) returns an empty page without touching the database.
        Results default to relevance order.
        """
        terms = self.text_search.prepare_terms(query)
        if not terms:
            return FeedPage(
                items=[],
                current_page=self.clamp_page(page),
                total_pages=0,
                total_items=0,
                page_size=self.clamp_page_size(limit),
            )

        logger.info("feed_search", **self.text_search.explain_query(query))

        builder = FeedAggregationBuilder(
            FeedFilter(query=query),
            sort,
            text_search=self.text_search,
            default_sort=SortMode.RELEVANCE,
        )
        return await self._paginate(builder, page, limit)

    async def uploader_videos(
        self,
        uploader_id: int,
        page: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> FeedPage:
        """One uploader's videos, newest first."""
        builder = FeedAggregationBuilder(
            FeedFilter(uploader_id=uploader_id),
            SortMode.DATE_DESC,
            text_search=self.text_search,
        )
        return await self._paginate(builder, page, limit)

    async def get_item(self, video_id: int) -> FeedItem:
        """
        A single video with its derived counts and uploader summary.

        Raises:
            NotFoundError: If no video has this id
        """
        builder = FeedAggregationBuilder(
            FeedFilter(video_id=video_id),
            text_search=self.text_search,
        )
        result = await self.db.execute(builder.build(limit=1))
        row = result.first()
        if row is None:
            raise NotFoundError(f"Video {video_id} not found")
        return FeedItem.model_validate(row_to_feed_item(row))
