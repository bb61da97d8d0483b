"""At-most-once voting on photos."""

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import UTC, datetime

from mars_image_explorer.domain.errors import (
    AlreadyVotedError,
    ConditionalCheckFailedError,
    PartialWriteError,
    TransientError,
    ValidationError,
)
from mars_image_explorer.domain.photos import (
    IMAGE_ID_ATTRIBUTE,
    PARTITION_ATTRIBUTE,
    RECEIVED_ATTRIBUTE,
    TIMESTAMP_ATTRIBUTE,
    USER_ID_ATTRIBUTE,
    VOTED_AT_ATTRIBUTE,
    VOTES_ATTRIBUTE,
    Photo,
    UserVote,
    VoteResult,
)
from mars_image_explorer.domain.queries import ConditionalPut, Increment
from mars_image_explorer.services.queries import PhotoStore

_logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UserContext:
    """Identity of the user acting on the feed."""

    user_id: str


def _epoch_millis() -> int:
    return int(datetime.now(tz=UTC).timestamp() * 1000)


@dataclass
class VoteCoordinator:
    """Records a user's vote, then increments the photo's vote count.

    The vote record is written first with a conditional put, so a second vote
    by the same user never reaches the counter. A failed increment after a
    successful put is reported as ``PartialWriteError`` and is not retried.
    """

    store: PhotoStore
    photos_table: str = "photos"
    user_votes_table: str = "user_votes"
    clock: Callable[[], int] = _epoch_millis

    def vote(
        self, user: UserContext, photo: Photo | UserVote
    ) -> Awaitable[VoteResult]:
        """Vote on ``photo`` as ``user`` and return the updated vote count.

        A ``UserVote`` from a favorites listing stands in for the photo it
        mirrors.
        """
        if isinstance(photo, UserVote):
            photo = _voted_photo(photo)
        if not isinstance(user, UserContext) or not user.user_id:
            raise ValidationError(f"User ID was invalid: {user!r}")
        if not isinstance(photo, Photo) or not photo.image_id:
            raise ValidationError(f"Invalid object was given as a photo: {photo!r}")
        return self._vote(user.user_id, photo)

    async def _vote(self, user_id: str, photo: Photo) -> VoteResult:
        put = ConditionalPut(
            table=self.user_votes_table,
            item=_vote_record(user_id, photo, voted_at=self.clock()),
            condition_attribute=IMAGE_ID_ATTRIBUTE,
        )
        try:
            await self.store.put_if_absent(put)
        except ConditionalCheckFailedError:
            _logger.info("User %s already voted on %s", user_id, photo.image_id)
            raise AlreadyVotedError(user_id, photo.image_id) from None
        except TransientError:
            raise
        except Exception as exc:
            raise TransientError(f"Recording vote failed: {exc}") from exc

        increment = Increment(
            table=self.photos_table,
            key={IMAGE_ID_ATTRIBUTE: photo.image_id},
            attribute=VOTES_ATTRIBUTE,
            delta=1,
        )
        try:
            votes = await self.store.increment(increment)
        except Exception as exc:
            _logger.error(
                "Vote by %s on %s recorded but count not incremented: %s",
                user_id,
                photo.image_id,
                exc,
            )
            raise PartialWriteError(user_id, photo.image_id) from exc

        _logger.debug("Liked image %s, votes=%s", photo.image_id, votes)
        return VoteResult(image_id=photo.image_id, votes=votes)


def _voted_photo(vote: UserVote) -> Photo:
    return Photo(
        image_id=vote.image_id,
        mission_instrument=vote.mission_instrument,
        captured_at=vote.captured_at,
        votes=vote.votes,
        url=vote.url,
        mission=vote.mission,
        instrument=vote.instrument,
        metadata=dict(vote.metadata),
    )


def _vote_record(user_id: str, photo: Photo, voted_at: int) -> dict[str, object]:
    """Project photo metadata, minus the thumbnail, into a vote record."""
    record: dict[str, object] = dict(photo.metadata)
    record.update(
        {
            IMAGE_ID_ATTRIBUTE: photo.image_id,
            PARTITION_ATTRIBUTE: photo.mission_instrument,
            TIMESTAMP_ATTRIBUTE: photo.captured_at,
            VOTES_ATTRIBUTE: photo.votes,
            "url": photo.url,
            "mission": photo.mission,
            "instrument": photo.instrument,
            USER_ID_ATTRIBUTE: user_id,
            VOTED_AT_ATTRIBUTE: voted_at,
        }
    )
    if photo.received_at is not None:
        record[RECEIVED_ATTRIBUTE] = photo.received_at
    return record
