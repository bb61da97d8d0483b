"""Pydantic response models for the HTTP API."""

from typing import Any

from pydantic import BaseModel, Field


class InstrumentModel(BaseModel):
    """Instrument that photos can be browsed by."""

    id: str
    name: str


class PhotoModel(BaseModel):
    """Photo payload."""

    image_id: str
    mission_instrument: str
    captured_at: int
    received_at: int | None = None
    votes: int = 0
    url: str | None = None
    thumbnail: str | None = None
    mission: str | None = None
    instrument: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)


class UserVoteModel(BaseModel):
    """Voted photo payload."""

    user_id: str
    image_id: str
    mission_instrument: str
    captured_at: int
    voted_at: int
    votes: int = 0
    url: str | None = None
    mission: str | None = None
    instrument: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)


class PhotoPage(BaseModel):
    """A page of photos and the token for the next page."""

    items: list[PhotoModel]
    next_cursor: str | None = None


class UserVotePage(BaseModel):
    """A page of voted photos and the token for the next page."""

    items: list[UserVoteModel]
    next_cursor: str | None = None


class VoteResponse(BaseModel):
    """Outcome of a vote."""

    image_id: str
    status: str
    votes: int | None = None
