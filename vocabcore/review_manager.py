"""
This module defines the ReviewManager class, which wires the collection
store, the in-memory repository, the scheduler and the write queue
together and starts review sessions over the user's deduplicated pool.
"""

import logging
import random
from datetime import datetime, timedelta
from typing import Dict, List, Optional

from .config import Settings, settings as default_settings
from .models import Bucket, ReviewEntry
from .matching import MatchingSession
from .persistence import CollectionStore, WriteQueue
from .pool import dedupe
from .rating import RatingSink
from .repository import CollectionRepository
from .review_session import SequentialReviewSession
from .scheduler import BaseScheduler, BucketScheduler, BucketSchedulerConfig
from .selector import by_bucket, count_by_bucket, count_due, select_due

logger = logging.getLogger(__name__)


class ReviewManager:
    """
    Entry point for review front-ends.

    This class is responsible for:
    - Loading the user's collections from the store into memory.
    - Building the deduplicated pool and its due set.
    - Starting sequential and matching sessions over that pool.
    - Flushing queued persistence writes.
    """

    def __init__(
        self,
        store: CollectionStore,
        scheduler: Optional[BaseScheduler] = None,
        settings: Optional[Settings] = None,
    ):
        self.settings = settings or default_settings
        self.store = store
        self.scheduler = scheduler or BucketScheduler(
            BucketSchedulerConfig.from_settings(self.settings)
        )
        self.repository = CollectionRepository()
        self.write_queue = WriteQueue(
            store, self.repository, max_attempts=self.settings.max_write_attempts
        )
        self.sink = RatingSink(self.repository, self.scheduler, self.write_queue)

    def load(self) -> int:
        """
        Read every collection from the store.

        Returns:
            int: Number of collections loaded.
        """
        return self.repository.load(self.store.load_collections())

    def pool(self) -> List[ReviewEntry]:
        return dedupe(self.repository.entries())

    def due_count(self, now: Optional[datetime] = None) -> int:
        return count_due(self.pool(), now=now, scheduler=self.scheduler)

    def bucket_counts(self) -> Dict[Bucket, int]:
        return count_by_bucket(self.pool())

    def due_entries(
        self, limit: Optional[int] = None, now: Optional[datetime] = None
    ) -> List[ReviewEntry]:
        return select_due(
            self.pool(),
            limit=self.settings.session_limit if limit is None else limit,
            now=now,
            scheduler=self.scheduler,
            new_interleave=self.settings.new_interleave,
        )

    def remaining_due(self, now: Optional[datetime] = None) -> List[ReviewEntry]:
        """Due set left after a session; empty when nothing more is due."""
        return self.due_entries(now=now)

    def start_review(
        self, limit: Optional[int] = None, now: Optional[datetime] = None
    ) -> SequentialReviewSession:
        queue = self.due_entries(limit=limit, now=now)
        session = SequentialReviewSession(queue, self.sink, label="due")
        session.start()
        return session

    def start_bucket_drill(self, bucket: Bucket) -> SequentialReviewSession:
        """Review every word of one bucket, due or not."""
        queue = by_bucket(self.pool(), bucket)
        session = SequentialReviewSession(
            queue, self.sink, label=bucket.name.lower()
        )
        session.start()
        return session

    def start_matching(
        self,
        limit: Optional[int] = None,
        now: Optional[datetime] = None,
        rng: Optional[random.Random] = None,
        clock=None,
    ) -> MatchingSession:
        """
        Start a matching game on the head of the due set.

        ``limit`` defaults to the configured pairs per game.
        """
        size = self.settings.pairs_per_game if limit is None else limit
        entries = self.due_entries(limit=size, now=now)
        return MatchingSession(
            entries,
            self.sink,
            mismatch_delay=timedelta(milliseconds=self.settings.mismatch_delay_ms),
            rng=rng,
            clock=clock,
        )

    def flush(self) -> int:
        """Write queued collections; storage failures stay queued for retry."""
        return self.write_queue.flush()

    @property
    def pending_writes(self) -> List[str]:
        return self.write_queue.pending
