"""Typed query requests and the store request/response shapes."""

from dataclasses import dataclass, field, replace
from typing import ClassVar

from mars_image_explorer.domain.errors import ValidationError
from mars_image_explorer.domain.photos import Cursor, FeedView


def _require_key(value: object, name: str) -> None:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"A required parameter, {name}, is missing.")


def _check_cursor(cursor: Cursor | None, view: FeedView, partition_key: str) -> None:
    if cursor is None:
        return
    if not isinstance(cursor, Cursor):
        raise ValidationError(f"Invalid cursor: {cursor!r}")
    if cursor.view != view or cursor.partition_key != partition_key:
        raise ValidationError(
            f"Cursor for {cursor.view}:{cursor.partition_key} "
            f"cannot continue {view}:{partition_key}"
        )


@dataclass(frozen=True)
class RecencyQuery:
    """Photos of one partition, newest first, optionally taken at or before a time."""

    view: ClassVar[FeedView] = FeedView.RECENCY

    partition_key: str
    cursor: Cursor | None = None
    before_time: int | None = None

    def __post_init__(self) -> None:
        _require_key(self.partition_key, "partition key")
        _check_cursor(self.cursor, self.view, self.partition_key)

    def with_cursor(self, cursor: Cursor | None) -> "RecencyQuery":
        """Return the same query continued from ``cursor``."""
        return replace(self, cursor=cursor)


@dataclass(frozen=True)
class PopularityQuery:
    """Photos of one partition, most voted first, optionally capped by votes."""

    view: ClassVar[FeedView] = FeedView.POPULARITY

    partition_key: str
    cursor: Cursor | None = None
    max_votes: int | None = None

    def __post_init__(self) -> None:
        _require_key(self.partition_key, "partition key")
        _check_cursor(self.cursor, self.view, self.partition_key)

    def with_cursor(self, cursor: Cursor | None) -> "PopularityQuery":
        """Return the same query continued from ``cursor``."""
        return replace(self, cursor=cursor)


@dataclass(frozen=True)
class UserVoteQuery:
    """Votes cast by one user, newest first."""

    view: ClassVar[FeedView] = FeedView.USER_VOTES

    user_id: str
    cursor: Cursor | None = None

    def __post_init__(self) -> None:
        _require_key(self.user_id, "user id")
        _check_cursor(self.cursor, self.view, self.user_id)

    @property
    def partition_key(self) -> str:
        return self.user_id

    def with_cursor(self, cursor: Cursor | None) -> "UserVoteQuery":
        """Return the same query continued from ``cursor``."""
        return replace(self, cursor=cursor)


FeedQuery = RecencyQuery | PopularityQuery | UserVoteQuery


@dataclass(frozen=True)
class StoreQuery:
    """Ordered, paginated read against one partition of a store table."""

    table: str
    partition_attribute: str
    partition_value: str
    sort_attribute: str
    sort_upper_bound: int | None = None
    limit: int | None = None
    scan_forward: bool = False
    exclusive_start_key: dict[str, object] | None = None


@dataclass(frozen=True)
class StoreResponse:
    """Records returned by a store query and the key to continue from."""

    items: list[dict[str, object]] = field(default_factory=list)
    last_evaluated_key: dict[str, object] | None = None


@dataclass(frozen=True)
class ConditionalPut:
    """Write that succeeds only if no record with ``condition_attribute`` exists."""

    table: str
    item: dict[str, object]
    condition_attribute: str


@dataclass(frozen=True)
class Increment:
    """Additive update of a numeric attribute that returns the new value."""

    table: str
    key: dict[str, object]
    attribute: str = "votes"
    delta: int = 1
