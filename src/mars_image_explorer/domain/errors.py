"""Error taxonomy for the data-access layer."""


class ExplorerError(Exception):
    """Base class for image explorer errors."""


class ValidationError(ExplorerError, ValueError):
    """Raised at call time when required input is missing or malformed."""


class TransientError(ExplorerError):
    """Raised when the store is unavailable or rejects a request."""


class InvalidCursorError(TransientError):
    """Raised when a continuation token cannot be decoded."""


class ConditionalCheckFailedError(ExplorerError):
    """Raised by a store when a conditional write's precondition fails."""


class AlreadyVotedError(ExplorerError):
    """Raised when a user votes on a photo for the second time."""

    def __init__(self, user_id: str, image_id: str) -> None:
        super().__init__("You have already voted on this image")
        self.user_id = user_id
        self.image_id = image_id


class PartialWriteError(ExplorerError):
    """Raised when a vote was recorded but the counter was not incremented."""

    def __init__(self, user_id: str, image_id: str) -> None:
        super().__init__(
            f"Vote by {user_id} on {image_id} was recorded "
            "but the vote count was not updated"
        )
        self.user_id = user_id
        self.image_id = image_id
