"""
Shared rating logic for both review front-ends.

The sequential review and the matching game both report ratings through
RatingSink.rate_at(), which addresses the word by its (collection, index)
location and consolidates the steps that follow a rating:
1. Rating validation
2. Reading the word's latest retention state
3. Scheduler transition
4. Writing the new state to every copy of the word
5. Queueing persistence of the affected collections
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional, Tuple

from .models import Rating, RetentionState, WordLocation
from .persistence import WriteQueue
from .repository import CollectionRepository
from .scheduler import BaseScheduler, RatingInput

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RatingResult:
    word_pair_id: str
    rating: Rating
    before: RetentionState
    after: RetentionState
    locations: Tuple[WordLocation, ...]


class RatingSink:
    """
    Applies ratings to the in-memory collections and schedules their writes.
    """

    def __init__(
        self,
        repository: CollectionRepository,
        scheduler: BaseScheduler,
        write_queue: WriteQueue,
        sync_duplicates: bool = True,
    ):
        """
        Args:
            repository: Arena holding the latest collection snapshots.
            scheduler: Scheduler computing the next retention state.
            write_queue: Queue receiving one job per changed collection.
            sync_duplicates: Also update copies of the word in other collections.
        """
        self.repository = repository
        self.scheduler = scheduler
        self.write_queue = write_queue
        self.sync_duplicates = sync_duplicates

    def rate(
        self,
        word_pair_id: str,
        rating: RatingInput,
        reviewed_at: Optional[datetime] = None,
    ) -> RatingResult:
        """
        Rate the word holding ``word_pair_id``.

        Raises:
            InvalidRatingError: If the rating is invalid; nothing is changed.
            WordPairNotFoundError: If no loaded collection holds the word.
            AmbiguousWordPairError: If the id is shared by several words.
        """
        parsed = Rating.parse(rating)
        location = self.repository.locate(word_pair_id)
        return self.rate_at(location, parsed, reviewed_at)

    def rate_at(
        self,
        location: WordLocation,
        rating: RatingInput,
        reviewed_at: Optional[datetime] = None,
    ) -> RatingResult:
        """
        Rate the word at ``location`` and queue persistence of its collection(s).

        Raises:
            InvalidRatingError: If the rating is invalid; nothing is changed.
            CollectionNotFoundError: If the collection is not loaded.
            WordPairNotFoundError: If the collection has no word at the index.
        """
        parsed = Rating.parse(rating)
        word_pair = self.repository.pair_at(location)
        before = word_pair.retention
        after = self.scheduler.transition(before, parsed, reviewed_at)

        locations: List[WordLocation] = [location]
        if self.sync_duplicates:
            locations.extend(self.repository.duplicates_of(location))

        for loc in locations:
            self.repository.set_retention(loc, after)

        for collection_id in dict.fromkeys(loc.collection_id for loc in locations):
            self.write_queue.enqueue(collection_id)

        logger.info(
            f"Rated {word_pair.id} at {location} {parsed.name}: "
            f"{before.bucket.name} -> {after.bucket.name} "
            f"({len(locations)} copies)"
        )
        return RatingResult(
            word_pair_id=word_pair.id,
            rating=parsed,
            before=before,
            after=after,
            locations=tuple(locations),
        )
