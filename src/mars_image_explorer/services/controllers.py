"""Feeds bound to the timeline, top-voted and favorites listings."""

import asyncio
import logging
from abc import ABC, abstractmethod
from collections.abc import Awaitable
from dataclasses import dataclass, field

from mars_image_explorer.domain.instruments import (
    DEFAULT_INSTRUMENT,
    DEFAULT_MISSION,
    mission_instrument,
)
from mars_image_explorer.domain.photos import Photo, UserVote, VoteResult
from mars_image_explorer.domain.queries import (
    FeedQuery,
    PopularityQuery,
    RecencyQuery,
    UserVoteQuery,
)
from mars_image_explorer.services.feed import ScrollFeed
from mars_image_explorer.services.queries import QueryCursorClient
from mars_image_explorer.services.votes import UserContext, VoteCoordinator

_logger = logging.getLogger(__name__)


class _FeedController(ABC):
    """Shared behaviour for listing controllers."""

    client: QueryCursorClient
    coordinator: VoteCoordinator
    timeout_seconds: float | None
    feed: ScrollFeed

    @property
    @abstractmethod
    def partition_key(self) -> str:
        """Key of the partition the feed lists."""

    @abstractmethod
    def _build_query(self) -> FeedQuery:
        """Return the query for a fresh feed."""

    def _new_feed(self) -> ScrollFeed:
        return ScrollFeed(
            fetcher=self.client,
            query=self._build_query(),
            timeout_seconds=self.timeout_seconds,
        )

    def _reset(self) -> None:
        _logger.debug("Starting a new feed for %s", self.partition_key)
        self.feed = self._new_feed()

    def request_more(self) -> "asyncio.Task[None] | None":
        """Fetch the next page of the current feed."""
        return self.feed.request_more()

    def on_scroll_signal(
        self,
        scroll_top: float,
        viewport_height: float,
        content_height: float,
        content_top: float,
    ) -> "asyncio.Task[None] | None":
        """Forward scroll geometry to the current feed."""
        return self.feed.on_scroll_signal(
            scroll_top, viewport_height, content_height, content_top
        )

    def vote(
        self, user: UserContext, photo: Photo | UserVote
    ) -> Awaitable[VoteResult]:
        """Vote on a photo and reflect the new count in the feed."""
        pending = self.coordinator.vote(user, photo)
        return _apply_vote(self.feed, pending)


async def _apply_vote(feed: ScrollFeed, pending: Awaitable[VoteResult]) -> VoteResult:
    result = await pending
    feed.update_votes(result.image_id, result.votes)
    return result


@dataclass
class TimelineFeed(_FeedController):
    """Photos of one instrument, newest first."""

    client: QueryCursorClient
    coordinator: VoteCoordinator
    instrument: str = DEFAULT_INSTRUMENT
    mission: str = DEFAULT_MISSION
    before_time: int | None = None
    timeout_seconds: float | None = None
    feed: ScrollFeed = field(init=False)

    def __post_init__(self) -> None:
        self.feed = self._new_feed()

    @property
    def partition_key(self) -> str:
        return mission_instrument(self.mission, self.instrument)

    def _build_query(self) -> FeedQuery:
        return RecencyQuery(self.partition_key, before_time=self.before_time)

    def select_instrument(self, instrument: str) -> None:
        """Switch to another instrument, discarding loaded photos."""
        if instrument == self.instrument:
            return
        self.instrument = instrument
        self._reset()

    def set_before_time(self, before_time: int | None) -> None:
        """Only show photos taken at or before ``before_time``."""
        if before_time == self.before_time:
            return
        self.before_time = before_time
        self._reset()


@dataclass
class TopVotedFeed(_FeedController):
    """Photos of one instrument, most voted first."""

    client: QueryCursorClient
    coordinator: VoteCoordinator
    instrument: str = DEFAULT_INSTRUMENT
    mission: str = DEFAULT_MISSION
    max_votes: int | None = None
    timeout_seconds: float | None = None
    feed: ScrollFeed = field(init=False)

    def __post_init__(self) -> None:
        self.feed = self._new_feed()

    @property
    def partition_key(self) -> str:
        return mission_instrument(self.mission, self.instrument)

    def _build_query(self) -> FeedQuery:
        return PopularityQuery(self.partition_key, max_votes=self.max_votes)

    def select_instrument(self, instrument: str) -> None:
        """Switch to another instrument, discarding loaded photos."""
        if instrument == self.instrument:
            return
        self.instrument = instrument
        self._reset()

    def set_max_votes(self, max_votes: int | None) -> None:
        """Only show photos with at most ``max_votes`` votes."""
        if max_votes == self.max_votes:
            return
        self.max_votes = max_votes
        self._reset()


@dataclass
class FavoritesFeed(_FeedController):
    """Photos the user voted on, newest vote first."""

    client: QueryCursorClient
    coordinator: VoteCoordinator
    user: UserContext
    timeout_seconds: float | None = None
    feed: ScrollFeed = field(init=False)

    def __post_init__(self) -> None:
        self.feed = self._new_feed()

    @property
    def partition_key(self) -> str:
        return self.user.user_id

    def _build_query(self) -> FeedQuery:
        return UserVoteQuery(self.user.user_id)

    def switch_user(self, user: UserContext) -> None:
        """Show another user's favorites."""
        if user == self.user:
            return
        self.user = user
        self._reset()
