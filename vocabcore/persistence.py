"""
Persistence contract and the write-behind queue used after ratings.

The review core never talks to storage directly: ratings update the
in-memory repository and enqueue a job naming the changed collection.
Jobs run one at a time, in order, and each job reads the collection from
the repository when it runs, so a later job never writes a stale copy.
"""

import logging
from abc import ABC, abstractmethod
from collections import deque
from dataclasses import dataclass
from typing import Deque, Dict, List, Optional, Sequence

from .constants import DEFAULT_MAX_WRITE_ATTEMPTS
from .exceptions import CollectionNotFoundError
from .models import Collection, WordPair
from .repository import CollectionRepository

logger = logging.getLogger(__name__)


class CollectionStore(ABC):
    """
    Storage collaborator. ``persist`` must be idempotent under retry.
    """

    @abstractmethod
    def load_collections(self) -> List[Collection]:
        """Return every collection of the current user, words in order."""
        pass

    @abstractmethod
    def persist(self, collection_id: str, words: Sequence[WordPair]) -> None:
        """Replace the stored words of ``collection_id`` with ``words``."""
        pass


class InMemoryCollectionStore(CollectionStore):
    """Dictionary-backed store, used for tests and throwaway sessions."""

    def __init__(self, collections: Optional[Sequence[Collection]] = None):
        self._collections: Dict[str, Collection] = {}
        for collection in collections or []:
            self._collections[collection.id] = collection.model_copy(deep=True)
        self.persist_calls: List[str] = []

    def load_collections(self) -> List[Collection]:
        return [c.model_copy(deep=True) for c in self._collections.values()]

    def persist(self, collection_id: str, words: Sequence[WordPair]) -> None:
        if collection_id not in self._collections:
            raise CollectionNotFoundError(
                f"Collection '{collection_id}' does not exist."
            )
        self.persist_calls.append(collection_id)
        self._collections[collection_id] = self._collections[
            collection_id
        ].model_copy(
            update={"words": [w.model_copy(deep=True) for w in words]}
        )


@dataclass
class WriteJob:
    collection_id: str
    attempts: int = 0
    last_error: Optional[str] = None


class WriteQueue:
    """
    Serialized FIFO of collection writes with retry.

    Enqueueing a collection that is already pending is a no-op, since the
    pending job will write the latest snapshot anyway.
    """

    def __init__(
        self,
        store: CollectionStore,
        repository: CollectionRepository,
        max_attempts: int = DEFAULT_MAX_WRITE_ATTEMPTS,
    ):
        self.store = store
        self.repository = repository
        self.max_attempts = max(1, max_attempts)
        self._pending: Deque[WriteJob] = deque()
        self.failed: List[WriteJob] = []
        self.completed: int = 0

    def __len__(self) -> int:
        return len(self._pending)

    @property
    def pending(self) -> List[str]:
        return [job.collection_id for job in self._pending]

    def enqueue(self, collection_id: str) -> None:
        if any(job.collection_id == collection_id for job in self._pending):
            logger.debug(f"Write for {collection_id} already pending.")
            return
        self._pending.append(WriteJob(collection_id=collection_id))
        logger.debug(f"Queued write for collection {collection_id}.")

    def _run(self, job: WriteJob) -> bool:
        job.attempts += 1
        try:
            collection = self.repository.get(job.collection_id)
            self.store.persist(job.collection_id, list(collection.words))
        except Exception as e:
            job.last_error = str(e)
            if job.attempts < self.max_attempts:
                logger.warning(
                    f"Write for collection {job.collection_id} failed "
                    f"(attempt {job.attempts}/{self.max_attempts}): {e}"
                )
                self._pending.append(job)
            else:
                logger.error(
                    f"Giving up on write for collection {job.collection_id} "
                    f"after {job.attempts} attempts: {e}"
                )
                self.failed.append(job)
            return False
        self.completed += 1
        logger.debug(f"Persisted collection {job.collection_id}.")
        return True

    def flush(self) -> int:
        """
        Run the jobs pending at call time, one at a time, oldest first.

        A failed job goes to the back of the queue and is retried on a
        later flush. Never raises for storage failures.

        Returns:
            int: Number of jobs written successfully.
        """
        written = 0
        for _ in range(len(self._pending)):
            job = self._pending.popleft()
            if self._run(job):
                written += 1
        return written

    def drain(self) -> int:
        """Flush until nothing is pending; failing jobs end up in ``failed``."""
        written = 0
        while self._pending:
            written += self.flush()
        return written

    def retry_failed(self) -> int:
        """Re-queue parked jobs with a fresh attempt budget."""
        jobs, self.failed = self.failed, []
        for job in jobs:
            self.enqueue(job.collection_id)
        return len(jobs)
