"""Paginated queries over the photo and user-vote tables."""

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Protocol, TypeVar

from mars_image_explorer.domain.errors import TransientError, ValidationError
from mars_image_explorer.domain.photos import (
    IMAGE_ID_ATTRIBUTE,
    PARTITION_ATTRIBUTE,
    RECEIVED_ATTRIBUTE,
    THUMBNAIL_ATTRIBUTE,
    TIMESTAMP_ATTRIBUTE,
    USER_ID_ATTRIBUTE,
    VOTED_AT_ATTRIBUTE,
    VOTES_ATTRIBUTE,
    Cursor,
    Page,
    Photo,
    UserVote,
)
from mars_image_explorer.domain.queries import (
    ConditionalPut,
    FeedQuery,
    Increment,
    PopularityQuery,
    RecencyQuery,
    StoreQuery,
    StoreResponse,
    UserVoteQuery,
)

_logger = logging.getLogger(__name__)

_PHOTO_ATTRIBUTES = {
    IMAGE_ID_ATTRIBUTE,
    PARTITION_ATTRIBUTE,
    TIMESTAMP_ATTRIBUTE,
    RECEIVED_ATTRIBUTE,
    VOTES_ATTRIBUTE,
    THUMBNAIL_ATTRIBUTE,
    "url",
    "mission",
    "instrument",
}
_USER_VOTE_ATTRIBUTES = _PHOTO_ATTRIBUTES | {USER_ID_ATTRIBUTE, VOTED_AT_ATTRIBUTE}

R = TypeVar("R", Photo, UserVote)


class PhotoStore(Protocol):
    """Key-value store holding photos and user votes."""

    async def query(self, request: StoreQuery) -> StoreResponse:
        """Run an ordered query against one partition."""

    async def put_if_absent(self, request: ConditionalPut) -> None:
        """Write a record unless one with the same key exists."""

    async def increment(self, request: Increment) -> int:
        """Add to a numeric attribute and return the updated value."""

    async def get_item(
        self, table: str, key: dict[str, object]
    ) -> dict[str, object] | None:
        """Return a single record by key, if present."""


@dataclass
class QueryCursorClient:
    """Issues paginated queries and turns store keys into cursors.

    Argument problems raise ``ValidationError`` when a method is called.
    Store problems raise ``TransientError`` when the returned awaitable is
    awaited. Reads are never retried here.
    """

    store: PhotoStore
    photos_table: str = "photos"
    user_votes_table: str = "user_votes"
    page_size: int = 5

    def query_by_recency(
        self,
        partition_key: str,
        cursor: Cursor | None = None,
        before_time: int | None = None,
    ) -> Awaitable[Page[Photo]]:
        """Return photos of a partition ordered by capture time, newest first."""
        return self.fetch(RecencyQuery(partition_key, cursor, before_time))

    def query_by_popularity(
        self,
        partition_key: str,
        cursor: Cursor | None = None,
        max_votes: int | None = None,
    ) -> Awaitable[Page[Photo]]:
        """Return photos of a partition ordered by votes, most voted first."""
        return self.fetch(PopularityQuery(partition_key, cursor, max_votes))

    def query_user_votes(
        self, user_id: str, cursor: Cursor | None = None
    ) -> Awaitable[Page[UserVote]]:
        """Return the photos a user voted on, newest vote first."""
        return self.fetch(UserVoteQuery(user_id, cursor))

    def fetch(self, query: FeedQuery) -> Awaitable[Page]:
        """Run a typed query and return its page."""
        start_key = dict(query.cursor.key) if query.cursor else None
        if isinstance(query, RecencyQuery):
            request = self._photo_query(
                query.partition_key, TIMESTAMP_ATTRIBUTE, query.before_time, start_key
            )
            return self._run(query, request, _parse_photo)
        if isinstance(query, PopularityQuery):
            request = self._photo_query(
                query.partition_key, VOTES_ATTRIBUTE, query.max_votes, start_key
            )
            return self._run(query, request, _parse_photo)
        if isinstance(query, UserVoteQuery):
            request = StoreQuery(
                table=self.user_votes_table,
                partition_attribute=USER_ID_ATTRIBUTE,
                partition_value=query.user_id,
                sort_attribute=VOTED_AT_ATTRIBUTE,
                limit=self.page_size,
                exclusive_start_key=start_key,
            )
            return self._run(query, request, _parse_user_vote)
        raise ValidationError(f"Unsupported query: {query!r}")

    def get_photo(self, image_id: str) -> Awaitable[Photo | None]:
        """Return a photo by id, if present."""
        if not isinstance(image_id, str) or not image_id:
            raise ValidationError(f"Invalid image id: {image_id!r}")
        return self._get_photo(image_id)

    def _photo_query(
        self,
        partition_key: str,
        sort_attribute: str,
        upper_bound: int | None,
        start_key: dict[str, object] | None,
    ) -> StoreQuery:
        return StoreQuery(
            table=self.photos_table,
            partition_attribute=PARTITION_ATTRIBUTE,
            partition_value=partition_key,
            sort_attribute=sort_attribute,
            sort_upper_bound=upper_bound,
            limit=self.page_size,
            exclusive_start_key=start_key,
        )

    async def _run(
        self,
        query: FeedQuery,
        request: StoreQuery,
        parse: Callable[[dict[str, object]], R],
    ) -> Page[R]:
        _logger.debug("Querying %s: %s", request.table, request)
        try:
            response = await self.store.query(request)
        except TransientError:
            raise
        except Exception as exc:
            raise TransientError(f"Query on {request.table} failed: {exc}") from exc

        next_cursor = None
        if response.last_evaluated_key is not None:
            next_cursor = Cursor(
                view=query.view,
                partition_key=query.partition_key,
                key=dict(response.last_evaluated_key),
            )
        try:
            items = tuple(parse(row) for row in response.items)
        except (KeyError, ValueError, TypeError) as exc:
            raise TransientError(
                f"Malformed record in {request.table}: {exc!r}"
            ) from exc
        return Page(items=items, next_cursor=next_cursor)

    async def _get_photo(self, image_id: str) -> Photo | None:
        try:
            row = await self.store.get_item(
                self.photos_table, {IMAGE_ID_ATTRIBUTE: image_id}
            )
        except TransientError:
            raise
        except Exception as exc:
            raise TransientError(f"Lookup of {image_id} failed: {exc}") from exc
        if row is None:
            return None
        try:
            return _parse_photo(row)
        except (KeyError, ValueError, TypeError) as exc:
            raise TransientError(f"Malformed photo {image_id}: {exc!r}") from exc


def _parse_photo(row: dict[str, object]) -> Photo:
    """Parse a photo record into a domain model."""
    return Photo(
        image_id=str(row[IMAGE_ID_ATTRIBUTE]),
        mission_instrument=str(row.get(PARTITION_ATTRIBUTE, "")),
        captured_at=int(row.get(TIMESTAMP_ATTRIBUTE) or 0),
        received_at=_optional_int(row.get(RECEIVED_ATTRIBUTE)),
        votes=int(row.get(VOTES_ATTRIBUTE) or 0),
        url=row.get("url"),
        thumbnail=row.get(THUMBNAIL_ATTRIBUTE),
        mission=row.get("mission"),
        instrument=row.get("instrument"),
        metadata={k: v for k, v in row.items() if k not in _PHOTO_ATTRIBUTES},
    )


def _parse_user_vote(row: dict[str, object]) -> UserVote:
    """Parse a user vote record into a domain model."""
    return UserVote(
        user_id=str(row[USER_ID_ATTRIBUTE]),
        image_id=str(row[IMAGE_ID_ATTRIBUTE]),
        mission_instrument=str(row.get(PARTITION_ATTRIBUTE, "")),
        captured_at=int(row.get(TIMESTAMP_ATTRIBUTE) or 0),
        voted_at=int(row.get(VOTED_AT_ATTRIBUTE) or 0),
        votes=int(row.get(VOTES_ATTRIBUTE) or 0),
        url=row.get("url"),
        mission=row.get("mission"),
        instrument=row.get("instrument"),
        metadata={k: v for k, v in row.items() if k not in _USER_VOTE_ATTRIBUTES},
    )


def _optional_int(value: object) -> int | None:
    if isinstance(value, int | float):
        return int(value)
    if isinstance(value, str) and value.strip().lstrip("-").isdigit():
        return int(value)
    return None
