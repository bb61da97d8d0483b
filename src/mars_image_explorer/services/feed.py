"""Scroll-driven incremental fetching of a paginated view."""

import asyncio
import logging
from collections.abc import Awaitable
from dataclasses import dataclass, field, replace
from typing import Protocol

from mars_image_explorer.domain.errors import TransientError
from mars_image_explorer.domain.photos import Cursor, Page, Photo, UserVote
from mars_image_explorer.domain.queries import FeedQuery

_logger = logging.getLogger(__name__)


class PageFetcher(Protocol):
    """Runs a typed query and returns one page."""

    def fetch(self, query: FeedQuery) -> Awaitable[Page]:
        """Return the page for ``query``."""


def is_near_bottom(
    scroll_top: float,
    viewport_height: float,
    content_height: float,
    content_top: float,
    margin: float = 0.0,
) -> bool:
    """Return whether the viewport bottom has reached the end of the content."""
    return scroll_top + viewport_height >= content_height - content_top - margin


@dataclass
class ScrollFeed:
    """Accumulates pages of one query as the user scrolls.

    ``busy`` guarantees at most one outstanding fetch. A failed fetch leaves
    ``items`` and ``cursor`` untouched so the next signal retries it. Once the
    store reports no continuation the feed is ``exhausted`` for good; build a
    new feed to start over.
    """

    fetcher: PageFetcher
    query: FeedQuery
    timeout_seconds: float | None = None
    scroll_margin: float = 0.0
    items: list[Photo | UserVote] = field(default_factory=list, init=False)
    cursor: Cursor | None = field(default=None, init=False)
    busy: bool = field(default=False, init=False)
    exhausted: bool = field(default=False, init=False)
    last_error: Exception | None = field(default=None, init=False)
    _seen: set[str] = field(default_factory=set, init=False, repr=False)
    _task: "asyncio.Task[None] | None" = field(default=None, init=False, repr=False)

    def __post_init__(self) -> None:
        self.cursor = self.query.cursor

    def request_more(self) -> "asyncio.Task[None] | None":
        """Start fetching the next page unless busy or exhausted."""
        if self.busy or self.exhausted:
            return None
        loop = asyncio.get_running_loop()
        pending = self.fetcher.fetch(self.query.with_cursor(self.cursor))
        self.busy = True
        self._task = loop.create_task(self._receive(pending))
        return self._task

    async def load_more(self) -> None:
        """Fetch the next page and wait for it to be appended."""
        task = self.request_more()
        if task is not None:
            await task

    def on_scroll_signal(
        self,
        scroll_top: float,
        viewport_height: float,
        content_height: float,
        content_top: float,
    ) -> "asyncio.Task[None] | None":
        """Request more items when the viewport nears the end of the content."""
        if not is_near_bottom(
            scroll_top,
            viewport_height,
            content_height,
            content_top,
            margin=self.scroll_margin,
        ):
            return None
        _logger.debug("Fetching more photos for %s", self.query)
        return self.request_more()

    def update_votes(self, image_id: str, votes: int) -> bool:
        """Replace the vote count of a held item."""
        for index, item in enumerate(self.items):
            if item.image_id == image_id:
                self.items[index] = replace(item, votes=votes)
                return True
        return False

    async def _receive(self, pending: Awaitable[Page]) -> None:
        try:
            if self.timeout_seconds is None:
                page = await pending
            else:
                page = await asyncio.wait_for(pending, self.timeout_seconds)
        except (TransientError, TimeoutError) as exc:
            _logger.warning(
                "Fetching %s failed: %s", self.query, str(exc) or "timed out"
            )
            self.last_error = exc
        else:
            self._append(page)
        finally:
            self.busy = False
            self._task = None

    def _append(self, page: Page) -> None:
        for item in page.items:
            if item.image_id in self._seen:
                _logger.debug("Skipping duplicate image %s", item.image_id)
                continue
            self._seen.add(item.image_id)
            self.items.append(item)
        self.cursor = page.next_cursor
        self.exhausted = page.next_cursor is None
        self.last_error = None
