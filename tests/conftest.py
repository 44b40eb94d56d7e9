from datetime import datetime, timedelta, timezone
from typing import Generator, Optional

import pytest

from vocabcore.config import Settings
from vocabcore.db import VocabularyDatabase
from vocabcore.models import Bucket, Collection, RetentionState, WordPair
from vocabcore.persistence import InMemoryCollectionStore, WriteQueue
from vocabcore.rating import RatingSink
from vocabcore.repository import CollectionRepository
from vocabcore.review_manager import ReviewManager
from vocabcore.scheduler import BucketScheduler

NOW = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)


class FakeClock:
    """Callable clock whose time only moves when a test advances it."""

    def __init__(self, start: datetime = NOW):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


def make_word(
    source: str,
    target: str,
    bucket: Bucket = Bucket.New,
    next_review_at: Optional[datetime] = None,
    last_reviewed_at: Optional[datetime] = None,
    word_id: Optional[str] = None,
) -> WordPair:
    """
    Build a WordPair in the given bucket.

    next_review_at defaults to NOW, so non-New words are due exactly at NOW.
    """
    data = {
        "source": source,
        "target": target,
        "retention": RetentionState(
            bucket=bucket,
            next_review_at=next_review_at or NOW,
            last_reviewed_at=last_reviewed_at,
        ),
    }
    if word_id is not None:
        data["id"] = word_id
    return WordPair(**data)


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def settings() -> Settings:
    return Settings(_env_file=None)


@pytest.fixture
def animals() -> Collection:
    return Collection(
        id="animals",
        title="Animals",
        list_id="german-a1",
        words=[
            make_word("perro", "Hund", word_id="perro"),
            make_word("gato", "Katze", word_id="gato"),
            make_word("casa", "Haus", word_id="casa-animals"),
        ],
    )


@pytest.fixture
def home() -> Collection:
    """Shares "casa"/"Haus" with the animals collection, written differently."""
    return Collection(
        id="home",
        title="Home",
        list_id="german-a1",
        position=1,
        words=[
            make_word("Casa ", "haus", word_id="casa-home"),
            make_word("mesa", "Tisch", word_id="mesa"),
        ],
    )


@pytest.fixture
def store(animals: Collection, home: Collection) -> InMemoryCollectionStore:
    return InMemoryCollectionStore([animals, home])


@pytest.fixture
def repository(animals: Collection, home: Collection) -> CollectionRepository:
    return CollectionRepository([animals, home])


@pytest.fixture
def write_queue(
    store: InMemoryCollectionStore, repository: CollectionRepository
) -> WriteQueue:
    return WriteQueue(store, repository)


@pytest.fixture
def sink(repository: CollectionRepository, write_queue: WriteQueue) -> RatingSink:
    return RatingSink(repository, BucketScheduler(), write_queue)


@pytest.fixture
def manager(store: InMemoryCollectionStore, settings: Settings) -> ReviewManager:
    review_manager = ReviewManager(store, settings=settings)
    review_manager.load()
    return review_manager


# --- Database Fixtures ---
@pytest.fixture
def memory_db() -> Generator[VocabularyDatabase, None, None]:
    db = VocabularyDatabase(":memory:")
    db.initialize_schema()
    try:
        yield db
    finally:
        db.close_connection()
