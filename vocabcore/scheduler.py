# vocabcore/scheduler.py

"""
Defines the BaseScheduler abstract class and the bucket scheduler that maps
(retention state, rating) to the next retention state.
"""

import datetime
import logging
from abc import ABC, abstractmethod
from typing import Dict, Optional, Union

from pydantic import BaseModel, model_validator

from .constants import (
    DEFAULT_EASY_INTERVAL,
    DEFAULT_HARD_INTERVAL,
    DEFAULT_MEDIUM_INTERVAL,
)
from .models import Bucket, Rating, RetentionState, ensure_utc, utc_now

logger = logging.getLogger(__name__)

RatingInput = Union[Rating, int, str]


class BaseScheduler(ABC):
    """
    Abstract base class for all schedulers in vocabcore.
    """

    @abstractmethod
    def transition(
        self,
        state: RetentionState,
        rating: RatingInput,
        reviewed_at: Optional[datetime.datetime] = None,
    ) -> RetentionState:
        """
        Computes the next retention state of a word from its current state and a rating.

        Args:
            state: The word's current RetentionState.
            rating: The rating given for this review (Hard, Medium or Easy).
            reviewed_at: UTC timestamp of the review; defaults to now.

        Returns:
            A new RetentionState.

        Raises:
            InvalidRatingError: If the rating is not Hard, Medium or Easy.
        """
        pass

    @abstractmethod
    def is_due(
        self, state: RetentionState, now: Optional[datetime.datetime] = None
    ) -> bool:
        pass


class BucketSchedulerConfig(BaseModel):
    """Interval table for the bucket scheduler."""

    hard_interval: datetime.timedelta = DEFAULT_HARD_INTERVAL
    medium_interval: datetime.timedelta = DEFAULT_MEDIUM_INTERVAL
    easy_interval: datetime.timedelta = DEFAULT_EASY_INTERVAL

    @model_validator(mode="after")
    def check_intervals_increase(self) -> "BucketSchedulerConfig":
        if self.hard_interval <= datetime.timedelta(0):
            raise ValueError("hard_interval must be positive.")
        if not (
            self.hard_interval < self.medium_interval < self.easy_interval
        ):
            raise ValueError(
                "Intervals must strictly increase: hard < medium < easy."
            )
        return self

    @classmethod
    def from_settings(cls, settings) -> "BucketSchedulerConfig":
        return cls(
            hard_interval=datetime.timedelta(
                minutes=settings.hard_interval_minutes
            ),
            medium_interval=datetime.timedelta(
                days=settings.medium_interval_days
            ),
            easy_interval=datetime.timedelta(days=settings.easy_interval_days),
        )


class BucketScheduler(BaseScheduler):
    """
    Four-bucket scheduler: New < Hard < Medium < Easy.

    The rating decides the next bucket (Hard keeps or drops a word into
    Hard, Medium advances or regresses it to Medium, Easy moves it to
    Easy) and the bucket decides the interval until the next review.
    """

    RATING_TO_BUCKET = {
        Rating.Hard: Bucket.Hard,
        Rating.Medium: Bucket.Medium,
        Rating.Easy: Bucket.Easy,
    }

    def __init__(self, config: Optional[BucketSchedulerConfig] = None):
        if config is None:
            config = BucketSchedulerConfig()
        self.config = config

    @property
    def intervals(self) -> Dict[Bucket, datetime.timedelta]:
        return {
            Bucket.New: datetime.timedelta(0),
            Bucket.Hard: self.config.hard_interval,
            Bucket.Medium: self.config.medium_interval,
            Bucket.Easy: self.config.easy_interval,
        }

    def interval(self, bucket: Bucket) -> datetime.timedelta:
        return self.intervals[bucket]

    def initialize_retention(
        self, now: Optional[datetime.datetime] = None
    ) -> RetentionState:
        """Retention state for a freshly created word: New and due immediately."""
        return RetentionState(
            bucket=Bucket.New,
            next_review_at=ensure_utc(now) if now else utc_now(),
            last_reviewed_at=None,
        )

    def transition(
        self,
        state: RetentionState,
        rating: RatingInput,
        reviewed_at: Optional[datetime.datetime] = None,
    ) -> RetentionState:
        parsed = Rating.parse(rating)
        ts = ensure_utc(reviewed_at) if reviewed_at else utc_now()
        # Never schedule from a point earlier than the previous review.
        if state.last_reviewed_at is not None and ts < state.last_reviewed_at:
            ts = state.last_reviewed_at

        next_bucket = self.RATING_TO_BUCKET[parsed]
        next_state = RetentionState(
            bucket=next_bucket,
            last_reviewed_at=ts,
            next_review_at=ts + self.interval(next_bucket),
        )
        logger.debug(
            f"Transition {state.bucket.name} --{parsed.name}--> "
            f"{next_bucket.name}, next review at {next_state.next_review_at}"
        )
        return next_state

    def is_due(
        self, state: RetentionState, now: Optional[datetime.datetime] = None
    ) -> bool:
        """A New word is always due; any other word once its review time has passed."""
        if state.bucket == Bucket.New:
            return True
        current = ensure_utc(now) if now else utc_now()
        return current >= state.next_review_at


_default_scheduler = BucketScheduler()


def initialize_retention(
    now: Optional[datetime.datetime] = None,
) -> RetentionState:
    return _default_scheduler.initialize_retention(now)


def transition(
    state: RetentionState,
    rating: RatingInput,
    reviewed_at: Optional[datetime.datetime] = None,
) -> RetentionState:
    return _default_scheduler.transition(state, rating, reviewed_at)


def is_due(
    state: RetentionState, now: Optional[datetime.datetime] = None
) -> bool:
    return _default_scheduler.is_due(state, now)
