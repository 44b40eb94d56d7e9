import random
from datetime import timedelta

import pytest

from vocabcore.config import Settings
from vocabcore.exceptions import AmbiguousWordPairError
from vocabcore.models import Bucket, Collection, Rating
from vocabcore.persistence import InMemoryCollectionStore
from vocabcore.review_manager import ReviewManager

from conftest import NOW, FakeClock, make_word


def _stored_buckets(store: InMemoryCollectionStore):
    return {
        (c.id, w.source): w.retention.bucket
        for c in store.load_collections()
        for w in c.words
    }


def _review_all(session, rating):
    while not session.is_done:
        session.reveal()
        session.rate(rating, reviewed_at=NOW)


def test_load_builds_deduplicated_pool(manager: ReviewManager):
    assert len(manager.repository) == 2
    assert len(manager.pool()) == 4
    assert manager.due_count(NOW) == 4
    assert manager.bucket_counts()[Bucket.New] == 4


def test_review_session_ratings_are_persisted(manager, store):
    session = manager.start_review(now=NOW)
    assert session.total == 4
    _review_all(session, Rating.Easy)

    assert manager.pending_writes == ["animals", "home"]
    assert manager.flush() == 2
    assert manager.pending_writes == []
    assert set(_stored_buckets(store).values()) == {Bucket.Easy}


def test_duplicate_word_is_updated_in_every_collection(manager, store):
    session = manager.start_review(now=NOW)
    while not session.is_done:
        entry = session.current
        session.reveal()
        rating = Rating.Hard if entry.word_pair.source == "casa" else Rating.Medium
        session.rate(rating, reviewed_at=NOW)
    manager.flush()

    buckets = _stored_buckets(store)
    assert buckets[("animals", "casa")] is Bucket.Hard
    assert buckets[("home", "Casa ")] is Bucket.Hard
    assert buckets[("home", "mesa")] is Bucket.Medium


def test_rated_words_leave_the_due_set(manager):
    _review_all(manager.start_review(now=NOW), Rating.Hard)
    assert manager.remaining_due(now=NOW) == []
    later = NOW + timedelta(minutes=10)
    assert len(manager.due_entries(now=later)) == 4


def test_review_limit(manager):
    session = manager.start_review(limit=2, now=NOW)
    assert session.total == 2


def test_bucket_drill_includes_words_not_due(manager):
    _review_all(manager.start_review(now=NOW), Rating.Medium)
    assert manager.due_count(NOW) == 0
    drill = manager.start_bucket_drill(Bucket.Medium)
    assert drill.total == 4
    assert drill.label == "medium"


def test_new_session_sees_previous_ratings(store, settings):
    first = ReviewManager(store, settings=settings)
    first.load()
    _review_all(first.start_review(now=NOW), Rating.Easy)
    first.flush()

    second = ReviewManager(store, settings=settings)
    second.load()
    assert second.due_count(NOW) == 0
    assert second.bucket_counts()[Bucket.Easy] == 4


def test_matching_game_uses_configured_pair_count(store):
    settings = Settings(_env_file=None, pairs_per_game=3, mismatch_delay_ms=250)
    manager = ReviewManager(store, settings=settings)
    manager.load()
    game = manager.start_matching(now=NOW, rng=random.Random(0), clock=FakeClock())
    assert len(game.entries) == 3
    assert len(game.deck) == 6
    assert game.mismatch_delay == timedelta(milliseconds=250)


def test_matching_round_rates_and_persists(manager, store):
    game = manager.start_matching(limit=2, now=NOW, clock=FakeClock())
    for pair_id in list(game.entries):
        game.flip(f"{pair_id}-source")
        game.flip(f"{pair_id}-target")
    for pair_id in game.found:
        game.rate(pair_id, Rating.Easy, reviewed_at=NOW)
    manager.flush()

    assert game.is_complete
    assert manager.due_count(NOW) == 2
    easy = [k for k, v in _stored_buckets(store).items() if v is Bucket.Easy]
    assert len(easy) == 2


def test_failed_writes_stay_queued(manager, store, monkeypatch):
    def _fail(collection_id, words):
        raise RuntimeError("offline")

    monkeypatch.setattr(store, "persist", _fail)
    _review_all(manager.start_review(limit=1, now=NOW), Rating.Easy)
    assert manager.flush() == 0
    assert manager.pending_writes == ["animals"]


def _shared_id_manager(settings: Settings):
    """Two collections whose different words both use the id "1"."""
    store = InMemoryCollectionStore(
        [
            Collection(id="a", words=[make_word("uno", "eins", word_id="1")]),
            Collection(id="b", words=[make_word("perro", "Hund", word_id="1")]),
        ]
    )
    manager = ReviewManager(store, settings=settings)
    manager.load()
    return manager, store


def test_review_with_shared_word_id_writes_each_owning_collection(settings):
    manager, store = _shared_id_manager(settings)
    assert [e.location for e in manager.due_entries(now=NOW)] == [("a", 0), ("b", 0)]
    session = manager.start_review(now=NOW)

    _review_all(session, Rating.Easy)
    assert [r.locations for r in session.results] == [(("a", 0),), (("b", 0),)]
    manager.flush()

    assert _stored_buckets(store) == {
        ("a", "uno"): Bucket.Easy,
        ("b", "perro"): Bucket.Easy,
    }


def test_matching_with_shared_word_id_keeps_both_words(settings):
    manager, store = _shared_id_manager(settings)
    game = manager.start_matching(limit=10, now=NOW, clock=FakeClock())
    assert sorted(game.entries) == ["a/0", "b/0"]
    assert len(game.deck) == 4

    for pair_key in list(game.entries):
        game.flip(f"{pair_key}-source")
        game.flip(f"{pair_key}-target")
    assert game.is_won
    game.rate("a/0", Rating.Hard, reviewed_at=NOW)
    game.rate("b/0", Rating.Easy, reviewed_at=NOW)
    manager.flush()

    assert _stored_buckets(store) == {
        ("a", "uno"): Bucket.Hard,
        ("b", "perro"): Bucket.Easy,
    }


def test_rating_a_shared_word_id_by_id_is_refused(settings):
    manager, _ = _shared_id_manager(settings)
    with pytest.raises(AmbiguousWordPairError):
        manager.sink.rate("1", Rating.Easy)
    assert manager.pending_writes == []
    assert manager.bucket_counts()[Bucket.New] == 2
