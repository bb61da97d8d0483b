"""Domain models for photos, votes and paginated results."""

import base64
import json
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Generic, TypeVar

from mars_image_explorer.domain.errors import InvalidCursorError

IMAGE_ID_ATTRIBUTE = "imageid"
PARTITION_ATTRIBUTE = "mission_instrument"
TIMESTAMP_ATTRIBUTE = "timestamp"
RECEIVED_ATTRIBUTE = "received_timestamp"
VOTES_ATTRIBUTE = "votes"
USER_ID_ATTRIBUTE = "userid"
VOTED_AT_ATTRIBUTE = "voted_at"
THUMBNAIL_ATTRIBUTE = "data"

T = TypeVar("T")


class FeedView(StrEnum):
    """Logical, ordered views a cursor can belong to."""

    RECENCY = "recency"
    POPULARITY = "popularity"
    USER_VOTES = "user_votes"


@dataclass(frozen=True)
class Photo:
    """Represents an ingested rover image."""

    image_id: str
    mission_instrument: str
    captured_at: int
    received_at: int | None = None
    votes: int = 0
    url: str | None = None
    thumbnail: str | None = None
    mission: str | None = None
    instrument: str | None = None
    metadata: dict[str, object] = field(default_factory=dict)


@dataclass(frozen=True)
class UserVote:
    """Represents a user's vote on a photo, mirroring the photo metadata."""

    user_id: str
    image_id: str
    mission_instrument: str
    captured_at: int
    voted_at: int
    votes: int = 0
    url: str | None = None
    mission: str | None = None
    instrument: str | None = None
    metadata: dict[str, object] = field(default_factory=dict)


@dataclass(frozen=True)
class VoteResult:
    """Outcome of a successful vote."""

    image_id: str
    votes: int


@dataclass(frozen=True)
class Cursor:
    """Continuation point within one view of one partition."""

    view: FeedView
    partition_key: str
    key: dict[str, object]

    def encode(self) -> str:
        """Return an opaque, URL-safe token for this cursor."""
        payload = json.dumps(
            {"v": self.view.value, "p": self.partition_key, "k": self.key},
            separators=(",", ":"),
            sort_keys=True,
        )
        token = base64.urlsafe_b64encode(payload.encode("utf-8")).decode("ascii")
        return token.rstrip("=")

    @classmethod
    def decode(cls, token: str) -> "Cursor":
        """Parse a token produced by ``encode``."""
        padded = token + "=" * (-len(token) % 4)
        try:
            payload = json.loads(base64.urlsafe_b64decode(padded.encode("ascii")))
            key = payload["k"]
            if not isinstance(key, dict):
                raise TypeError("cursor key must be an object")
            return cls(
                view=FeedView(payload["v"]),
                partition_key=str(payload["p"]),
                key=key,
            )
        except (ValueError, KeyError, TypeError) as exc:
            raise InvalidCursorError(f"Malformed cursor: {token!r}") from exc


@dataclass(frozen=True)
class Page(Generic[T]):
    """One page of ordered records plus the cursor for the next page."""

    items: tuple[T, ...]
    next_cursor: Cursor | None = None

    @property
    def has_more(self) -> bool:
        """Whether the store reported a continuation."""
        return self.next_cursor is not None
