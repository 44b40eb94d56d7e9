"""vocabcore - bucket-based spaced repetition for vocabulary collections."""

from .models import (
    Bucket,
    Collection,
    Conjugation,
    Rating,
    RetentionState,
    ReviewEntry,
    WordPair,
)
from .scheduler import BucketScheduler, initialize_retention, is_due, transition
from .pool import dedupe
from .selector import count_by_bucket, count_due, select_due
from .persistence import CollectionStore, InMemoryCollectionStore, WriteQueue
from .rating import RatingSink
from .review_session import SequentialReviewSession
from .matching import MatchingSession
from .review_manager import ReviewManager
from .db import VocabularyDatabase
from .parser import YAMLProcessor, YAMLProcessorConfig

__all__ = [
    "Bucket",
    "Collection",
    "Conjugation",
    "Rating",
    "RetentionState",
    "ReviewEntry",
    "WordPair",
    "BucketScheduler",
    "initialize_retention",
    "is_due",
    "transition",
    "dedupe",
    "count_by_bucket",
    "count_due",
    "select_due",
    "CollectionStore",
    "InMemoryCollectionStore",
    "WriteQueue",
    "RatingSink",
    "SequentialReviewSession",
    "MatchingSession",
    "ReviewManager",
    "VocabularyDatabase",
    "YAMLProcessor",
    "YAMLProcessorConfig",
]
