from typing import Optional


class DatabaseError(Exception):
    """Base exception for database-related errors."""

    def __init__(
        self, message: str, original_exception: Optional[Exception] = None
    ):
        super().__init__(message)
        self.original_exception = original_exception


class DatabaseConnectionError(DatabaseError):
    """Raised for errors connecting to the database."""

    pass


class SchemaInitializationError(DatabaseError):
    """Raised for errors during schema setup."""

    pass


class CollectionOperationError(DatabaseError):
    """Raised for errors while reading or writing collections."""

    pass


class MarshallingError(DatabaseError):
    """Indicates an error during data conversion between application models
    and DB format."""

    pass


class CollectionNotFoundError(DatabaseError):
    """Raised when a specified collection is not found."""

    pass


class DuplicateWordIdError(CollectionOperationError):
    """Raised when a word id is already used by another collection."""

    pass


class ReviewError(Exception):
    """Base exception for the review core (scheduler and sessions)."""

    pass


class InvalidRatingError(ReviewError, ValueError):
    """Raised when a rating is not one of Hard, Medium or Easy."""

    pass


class SessionStateError(ReviewError):
    """Raised when an operation is not allowed in the session's phase."""

    pass


class SessionFinishedError(SessionStateError):
    """Raised when a finished session is asked to accept more ratings."""

    pass


class AnswerNotRevealedError(SessionStateError):
    """Raised when a card is rated before its answer was shown."""

    pass


class AlreadyRatedError(SessionStateError):
    """Raised when a word pair is rated a second time in one session."""

    pass


class UnknownCardError(ReviewError, KeyError):
    """Raised for card keys or word pair ids that are not part of a session."""

    pass


class WordPairNotFoundError(ReviewError, KeyError):
    """Raised when a word pair id is not held by any loaded collection."""

    pass


class AmbiguousWordPairError(ReviewError):
    """Raised when a word pair id is held by more than one loaded word."""

    pass
