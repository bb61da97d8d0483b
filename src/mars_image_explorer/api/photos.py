"""Photo listing and voting endpoints."""

from __future__ import annotations

from dataclasses import asdict
from typing import TYPE_CHECKING

from fastapi import APIRouter, Depends, Header, HTTPException, Query, Request, status

from mars_image_explorer.api.models import (
    InstrumentModel,
    PhotoModel,
    PhotoPage,
    UserVoteModel,
    UserVotePage,
    VoteResponse,
)
from mars_image_explorer.domain.instruments import INSTRUMENTS, mission_instrument
from mars_image_explorer.domain.photos import Cursor, Page
from mars_image_explorer.services.votes import UserContext

if TYPE_CHECKING:
    from mars_image_explorer.containers import AppContainer

router = APIRouter(tags=["photos"])


def _container(request: Request) -> AppContainer:
    return request.app.state.container


async def require_user(x_user_id: str | None = Header(default=None)) -> UserContext:
    """Resolve the acting user from the X-User-Id header."""
    if not x_user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="X-User-Id header is required",
        )
    return UserContext(user_id=x_user_id)


@router.get("/instruments")
async def list_instruments() -> list[InstrumentModel]:
    """Return the instruments photos can be browsed by."""
    return [InstrumentModel(id=i.id, name=i.name) for i in INSTRUMENTS.values()]


@router.get("/timeline/{instrument}")
async def timeline(
    instrument: str,
    request: Request,
    before: int | None = Query(default=None, gt=0),
    cursor: str | None = None,
) -> PhotoPage:
    """Return an instrument's photos, newest first."""
    container = _container(request)
    page = await container.query_client.query_by_recency(
        _partition_key(container, instrument),
        cursor=_decode_cursor(cursor),
        before_time=before,
    )
    return PhotoPage(
        items=[PhotoModel(**asdict(photo)) for photo in page.items],
        next_cursor=_encode_cursor(page),
    )


@router.get("/top-voted/{instrument}")
async def top_voted(
    instrument: str,
    request: Request,
    max_votes: int | None = Query(default=None, ge=0),
    cursor: str | None = None,
) -> PhotoPage:
    """Return an instrument's photos, most voted first."""
    container = _container(request)
    page = await container.query_client.query_by_popularity(
        _partition_key(container, instrument),
        cursor=_decode_cursor(cursor),
        max_votes=max_votes,
    )
    return PhotoPage(
        items=[PhotoModel(**asdict(photo)) for photo in page.items],
        next_cursor=_encode_cursor(page),
    )


@router.get("/favorites")
async def favorites(
    request: Request,
    cursor: str | None = None,
    user: UserContext = Depends(require_user),
) -> UserVotePage:
    """Return the photos the user voted on, newest vote first."""
    container = _container(request)
    page = await container.query_client.query_user_votes(
        user.user_id, cursor=_decode_cursor(cursor)
    )
    return UserVotePage(
        items=[UserVoteModel(**asdict(vote)) for vote in page.items],
        next_cursor=_encode_cursor(page),
    )


@router.post("/photos/{image_id}/votes")
async def vote(
    image_id: str,
    request: Request,
    user: UserContext = Depends(require_user),
) -> VoteResponse:
    """Vote on a photo once per user."""
    container = _container(request)
    photo = await container.query_client.get_photo(image_id)
    if photo is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND)
    result = await container.vote_coordinator.vote(user, photo)
    return VoteResponse(image_id=result.image_id, status="counted", votes=result.votes)


def _partition_key(container: AppContainer, instrument: str) -> str:
    if instrument not in INSTRUMENTS:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Unknown instrument: {instrument}",
        )
    return mission_instrument(container.settings.default_mission, instrument)


def _decode_cursor(token: str | None) -> Cursor | None:
    if not token:
        return None
    return Cursor.decode(token)


def _encode_cursor(page: Page) -> str | None:
    if page.next_cursor is None:
        return None
    return page.next_cursor.encode()
