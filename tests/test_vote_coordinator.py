"""Tests for at-most-once voting."""

import asyncio

import pytest

from mars_image_explorer.domain.errors import (
    AlreadyVotedError,
    PartialWriteError,
    TransientError,
    ValidationError,
)
from mars_image_explorer.domain.photos import Photo
from mars_image_explorer.services.queries import QueryCursorClient
from mars_image_explorer.services.votes import UserContext, VoteCoordinator
from tests.conftest import InMemoryPhotoStore, photo_row


def _photo(store: InMemoryPhotoStore, image_id: str, votes: int = 0) -> Photo:
    store.add_photos(photo_row(image_id, votes=votes))
    photo = asyncio.run(QueryCursorClient(store).get_photo(image_id))
    assert photo is not None
    return photo


def test_vote_increments_counter(
    store: InMemoryPhotoStore, vote_coordinator: VoteCoordinator
) -> None:
    photo = _photo(store, "123", votes=1000)

    result = asyncio.run(vote_coordinator.vote(UserContext("new-user"), photo))

    assert result.image_id == "123"
    assert result.votes == 1001
    assert store.photo("123")["votes"] == 1001


def test_second_vote_by_same_user_is_rejected(
    store: InMemoryPhotoStore, vote_coordinator: VoteCoordinator
) -> None:
    photo = _photo(store, "123", votes=1000)
    user = UserContext("new-user")
    asyncio.run(vote_coordinator.vote(user, photo))

    with pytest.raises(AlreadyVotedError) as excinfo:
        asyncio.run(vote_coordinator.vote(user, photo))

    assert str(excinfo.value) == "You have already voted on this image"
    assert store.photo("123")["votes"] == 1001
    assert len(store.increments) == 1


def test_votes_from_different_users_both_count(
    store: InMemoryPhotoStore, vote_coordinator: VoteCoordinator
) -> None:
    photo = _photo(store, "abc", votes=5)

    async def vote_concurrently() -> list:
        return await asyncio.gather(
            vote_coordinator.vote(UserContext("u1"), photo),
            vote_coordinator.vote(UserContext("u2"), photo),
        )

    results = asyncio.run(vote_concurrently())

    assert sorted(result.votes for result in results) == [6, 7]
    assert store.photo("abc")["votes"] == 7


def test_concurrent_duplicate_votes_count_once(
    store: InMemoryPhotoStore, vote_coordinator: VoteCoordinator
) -> None:
    photo = _photo(store, "abc")
    user = UserContext("u1")

    async def vote_twice() -> list:
        return await asyncio.gather(
            vote_coordinator.vote(user, photo),
            vote_coordinator.vote(user, photo),
            return_exceptions=True,
        )

    results = asyncio.run(vote_twice())

    assert sum(isinstance(r, AlreadyVotedError) for r in results) == 1
    assert store.photo("abc")["votes"] == 1


def test_vote_record_mirrors_photo_without_thumbnail(
    store: InMemoryPhotoStore, vote_coordinator: VoteCoordinator
) -> None:
    photo = _photo(store, "img-9", votes=2)

    asyncio.run(vote_coordinator.vote(UserContext("u1"), photo))

    record = store.tables["user_votes"][("u1", "img-9")]
    assert record["userid"] == "u1"
    assert record["voted_at"] == 1_700_000_000_000
    assert record["mission_instrument"] == "curiosity+fcam"
    assert record["time"] == {"creation_timestamp_utc": 1_400_000_000_000}
    assert "data" not in record
    assert store.puts[0].condition_attribute == "imageid"


def test_failed_increment_is_a_partial_write(
    store: InMemoryPhotoStore, vote_coordinator: VoteCoordinator
) -> None:
    photo = _photo(store, "img-1", votes=3)
    store.increment_failures.append(TransientError("throttled"))

    with pytest.raises(PartialWriteError):
        asyncio.run(vote_coordinator.vote(UserContext("u1"), photo))

    assert ("u1", "img-1") in store.tables["user_votes"]
    assert store.photo("img-1")["votes"] == 3
    assert len(store.increments) == 1


def test_failed_vote_record_is_transient(
    store: InMemoryPhotoStore, vote_coordinator: VoteCoordinator
) -> None:
    photo = _photo(store, "img-1")
    store.put_failures.append(TransientError("unavailable"))

    with pytest.raises(TransientError):
        asyncio.run(vote_coordinator.vote(UserContext("u1"), photo))

    assert store.increments == []


def test_invalid_input_raises_at_call_time(
    store: InMemoryPhotoStore, vote_coordinator: VoteCoordinator
) -> None:
    photo = _photo(store, "img-1")

    with pytest.raises(ValidationError):
        vote_coordinator.vote(UserContext(""), photo)
    with pytest.raises(ValidationError):
        vote_coordinator.vote(UserContext("u1"), None)
    assert store.puts == []
