"""
Due-set selection: which words to review now, and in what order.

All functions accept any item exposing a ``retention`` attribute, so they
work on WordPair objects and on ReviewEntry objects alike.
"""

import logging
from datetime import datetime
from typing import Dict, List, Optional, Protocol, Sequence, TypeVar

from .constants import DEFAULT_NEW_INTERLEAVE, DEFAULT_SESSION_LIMIT
from .models import Bucket, RetentionState, ensure_utc, utc_now
from .scheduler import BaseScheduler, BucketScheduler

logger = logging.getLogger(__name__)


class HasRetention(Protocol):
    @property
    def retention(self) -> RetentionState: ...


T = TypeVar("T", bound=HasRetention)

_default_scheduler = BucketScheduler()


def _overdue_order(items: Sequence[T]) -> List[T]:
    # Earliest next_review_at is the longest overdue; sort is stable.
    return sorted(items, key=lambda item: item.retention.next_review_at)


def _due_items(
    pool: Sequence[T], now: datetime, scheduler: BaseScheduler
) -> List[T]:
    return [item for item in pool if scheduler.is_due(item.retention, now)]


def count_due(
    pool: Sequence[T],
    now: Optional[datetime] = None,
    scheduler: Optional[BaseScheduler] = None,
) -> int:
    """Number of items due at ``now`` (defaults to the current time)."""
    current = ensure_utc(now) if now else utc_now()
    return len(_due_items(pool, current, scheduler or _default_scheduler))


def select_due(
    pool: Sequence[T],
    limit: int = DEFAULT_SESSION_LIMIT,
    now: Optional[datetime] = None,
    scheduler: Optional[BaseScheduler] = None,
    new_interleave: int = DEFAULT_NEW_INTERLEAVE,
) -> List[T]:
    """
    Build a bounded, prioritized review queue from the due items of a pool.

    Hard and Medium words come first, longest overdue first. One New word
    is placed after every ``new_interleave`` of them so first exposures are
    not starved by a review backlog; leftover New words follow, and Easy
    words come last. At most ``limit`` items are returned.

    Args:
        pool: Items to select from.
        limit: Maximum queue length; zero or less yields an empty queue.
        now: Reference time for the due check; defaults to now.
        scheduler: Scheduler deciding due status; defaults to the bucket scheduler.
        new_interleave: Hard/Medium reviews between two New words.

    Returns:
        The ordered queue.
    """
    if limit <= 0:
        return []
    current = ensure_utc(now) if now else utc_now()
    due = _due_items(pool, current, scheduler or _default_scheduler)

    by_bucket_items: Dict[Bucket, List[T]] = {bucket: [] for bucket in Bucket}
    for item in due:
        by_bucket_items[item.retention.bucket].append(item)

    priority = _overdue_order(by_bucket_items[Bucket.Hard]) + _overdue_order(
        by_bucket_items[Bucket.Medium]
    )
    new_words = _overdue_order(by_bucket_items[Bucket.New])
    easy = _overdue_order(by_bucket_items[Bucket.Easy])

    step = max(1, new_interleave)
    queue: List[T] = []
    new_iter = iter(new_words)
    for position, item in enumerate(priority, start=1):
        queue.append(item)
        if position % step == 0:
            next_new = next(new_iter, None)
            if next_new is not None:
                queue.append(next_new)
    queue.extend(new_iter)
    queue.extend(easy)

    logger.debug(
        f"Selected {min(len(queue), limit)} of {len(due)} due items "
        f"(limit {limit})."
    )
    return queue[:limit]


def by_bucket(pool: Sequence[T], bucket: Bucket) -> List[T]:
    """
    All items in ``bucket`` regardless of due status, longest overdue first.
    """
    return _overdue_order(
        [item for item in pool if item.retention.bucket == bucket]
    )


def count_by_bucket(pool: Sequence[T]) -> Dict[Bucket, int]:
    counts = {bucket: 0 for bucket in Bucket}
    for item in pool:
        counts[item.retention.bucket] += 1
    return counts
