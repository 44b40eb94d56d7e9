"""
This module defines the SequentialReviewSession class: single-card
flashcard review driven front-to-back by a review queue.
"""

import logging
from collections import Counter
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional, Sequence
from uuid import UUID, uuid4

from .exceptions import (
    AnswerNotRevealedError,
    SessionFinishedError,
    SessionStateError,
)
from .models import Conjugation, Rating, ReviewEntry
from .rating import RatingResult, RatingSink
from .scheduler import RatingInput

logger = logging.getLogger(__name__)


class ReviewPhase(str, Enum):
    IDLE = "idle"
    SHOWING = "showing"
    DONE = "done"


@dataclass(frozen=True)
class CardView:
    """What the front-end shows for the current card."""

    source: str
    target: Optional[str] = None
    explanation: Optional[str] = None
    example: Optional[str] = None
    conjugation: Optional[Conjugation] = None


class SequentialReviewSession:
    """
    Flashcard review over a queue of entries.

    Phases move IDLE -> SHOWING -> ... -> DONE. Each card starts with only
    its front visible; it must be revealed before it can be rated. A rating
    goes through the RatingSink and advances to the next card.
    """

    def __init__(
        self,
        queue: Sequence[ReviewEntry],
        sink: RatingSink,
        label: Optional[str] = None,
    ):
        self.session_uuid: UUID = uuid4()
        self.sink = sink
        self.label = label
        self._queue: List[ReviewEntry] = list(queue)
        self._total = len(self._queue)
        self._position = 0
        self._revealed = False
        self.phase = ReviewPhase.IDLE
        self.results: List[RatingResult] = []

    def start(self) -> Optional[ReviewEntry]:
        """
        Show the first card, or finish at once when there is nothing to review.
        """
        if self.phase is not ReviewPhase.IDLE:
            raise SessionStateError("Session has already been started.")
        if not self._queue:
            logger.info(f"Review session {self.session_uuid}: nothing to review.")
            self.phase = ReviewPhase.DONE
            return None
        logger.info(
            f"Starting review session {self.session_uuid} "
            f"with {self._total} words."
        )
        self._show(0)
        return self.current

    def _show(self, position: int) -> None:
        self._position = position
        self._revealed = False
        self.phase = ReviewPhase.SHOWING

    @property
    def current(self) -> Optional[ReviewEntry]:
        if self.phase is not ReviewPhase.SHOWING:
            return None
        return self._queue[self._position]

    @property
    def revealed(self) -> bool:
        return self._revealed

    @property
    def is_done(self) -> bool:
        return self.phase is ReviewPhase.DONE

    @property
    def total(self) -> int:
        return self._total

    @property
    def position(self) -> int:
        """Zero-based index of the current card in the queue."""
        return self._position

    def front(self) -> CardView:
        entry = self._require_current()
        return CardView(source=entry.word_pair.source)

    def reveal(self) -> CardView:
        """Show the back of the current card. Calling it again changes nothing."""
        entry = self._require_current()
        self._revealed = True
        pair = entry.word_pair
        return CardView(
            source=pair.source,
            target=pair.target,
            explanation=pair.explanation,
            example=pair.example,
            conjugation=pair.conjugation,
        )

    def _require_current(self) -> ReviewEntry:
        entry = self.current
        if entry is None:
            if self.phase is ReviewPhase.DONE:
                raise SessionFinishedError("Review session is finished.")
            raise SessionStateError("Review session has not been started.")
        return entry

    def rate(
        self, rating: RatingInput, reviewed_at: Optional[datetime] = None
    ) -> RatingResult:
        """
        Rate the current card and move on to the next one.

        Raises:
            InvalidRatingError: For an unknown rating; nothing changes.
            AnswerNotRevealedError: If the answer has not been revealed.
            SessionFinishedError: If the queue is exhausted.
            SessionStateError: If the session was never started.
        """
        parsed = Rating.parse(rating)
        entry = self._require_current()
        if not self._revealed:
            raise AnswerNotRevealedError(
                "Reveal the answer before rating the card."
            )

        result = self.sink.rate_at(entry.location, parsed, reviewed_at)
        self.results.append(result)

        next_position = self._position + 1
        if next_position >= len(self._queue):
            self.phase = ReviewPhase.DONE
            logger.info(
                f"Review session {self.session_uuid} finished: "
                f"{len(self.results)} words rated."
            )
        else:
            self._show(next_position)
        return result

    def close(self) -> None:
        """Discard the rest of the queue. Queued writes are not affected."""
        if self.phase is not ReviewPhase.DONE:
            logger.info(
                f"Review session {self.session_uuid} closed after "
                f"{len(self.results)} of {self._total} words."
            )
        self._queue = self._queue[: len(self.results)]
        self.phase = ReviewPhase.DONE

    def stats(self) -> Dict[str, int]:
        """
        Aggregated statistics for the session.

        Returns:
            dict: "total", "reviewed", "remaining" and one count per rating name.
        """
        counts = Counter(result.rating.name.lower() for result in self.results)
        reviewed = len(self.results)
        remaining = 0 if self.is_done else self._total - reviewed
        stats = {
            "total": self._total,
            "reviewed": reviewed,
            "remaining": remaining,
        }
        for rating in Rating:
            stats[rating.name.lower()] = counts.get(rating.name.lower(), 0)
        return stats
