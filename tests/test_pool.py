from vocabcore.models import Bucket, Collection, WordLocation
from vocabcore.pool import build_entries, dedupe, dedupe_key

from conftest import make_word


def _collections(*word_lists):
    return [
        Collection(id=f"c{i}", words=words) for i, words in enumerate(word_lists)
    ]


def test_dedupe_key_ignores_case_and_surrounding_whitespace():
    assert dedupe_key(make_word(" Casa", "HAUS ")) == dedupe_key(make_word("casa", "haus"))
    assert dedupe_key(make_word("casa", "Haus")) != dedupe_key(make_word("casa", "Heim"))


def test_build_entries_follows_collection_then_word_order(animals, home):
    entries = build_entries([animals, home])
    assert [e.location for e in entries] == [
        WordLocation("animals", 0),
        WordLocation("animals", 1),
        WordLocation("animals", 2),
        WordLocation("home", 0),
        WordLocation("home", 1),
    ]
    assert entries[0].word_pair is animals.words[0]


def test_dedupe_keeps_highest_bucket_and_records_other_copies():
    collections = _collections(
        [make_word("casa", "Haus", bucket=Bucket.Hard)],
        [make_word("Casa", "haus", bucket=Bucket.Easy)],
        [make_word("casa ", "Haus", bucket=Bucket.Medium)],
    )
    pool = dedupe(build_entries(collections))

    assert len(pool) == 1
    entry = pool[0]
    assert entry.retention.bucket is Bucket.Easy
    assert entry.location == WordLocation("c1", 0)
    assert set(entry.also_in) == {WordLocation("c0", 0), WordLocation("c2", 0)}


def test_dedupe_tie_keeps_first_encountered():
    collections = _collections(
        [make_word("casa", "Haus", bucket=Bucket.Medium, word_id="first")],
        [make_word("casa", "Haus", bucket=Bucket.Medium, word_id="second")],
    )
    pool = dedupe(build_entries(collections))
    assert [e.word_pair.id for e in pool] == ["first"]
    assert pool[0].also_in == (WordLocation("c1", 0),)


def test_dedupe_does_not_merge_different_translations():
    collections = _collections(
        [make_word("banco", "Bank")],
        [make_word("banco", "Sitzbank")],
    )
    assert len(dedupe(build_entries(collections))) == 2


def test_dedupe_preserves_first_appearance_order():
    collections = _collections(
        [make_word("uno", "eins"), make_word("dos", "zwei")],
        [make_word("tres", "drei"), make_word("uno", "eins", bucket=Bucket.Easy)],
    )
    pool = dedupe(build_entries(collections))
    assert [e.word_pair.source for e in pool] == ["uno", "dos", "tres"]
    assert pool[0].location == WordLocation("c1", 1)


def test_dedupe_is_idempotent(animals, home):
    once = dedupe(build_entries([animals, home]))
    twice = dedupe(once)
    assert [(e.location, e.also_in) for e in twice] == [
        (e.location, e.also_in) for e in once
    ]
    assert len({dedupe_key(e.word_pair) for e in twice}) == len(twice)


def test_dedupe_of_empty_input():
    assert dedupe([]) == []
