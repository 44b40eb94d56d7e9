import random
from datetime import timedelta

import pytest

from vocabcore.exceptions import (
    AlreadyRatedError,
    InvalidRatingError,
    SessionStateError,
    UnknownCardError,
)
from vocabcore.matching import (
    CardFace,
    CardState,
    FlipResult,
    MatchingSession,
    build_deck,
)
from vocabcore.models import Bucket, Rating
from vocabcore.pool import dedupe

DELAY = timedelta(milliseconds=900)


@pytest.fixture
def entries(repository):
    return dedupe(repository.entries())


@pytest.fixture
def game(entries, sink, clock) -> MatchingSession:
    return MatchingSession(
        entries[:2], sink, mismatch_delay=DELAY, rng=random.Random(7), clock=clock
    )


def _src(pair_id: str) -> str:
    return f"{pair_id}-source"


def _tgt(pair_id: str) -> str:
    return f"{pair_id}-target"


def _win(game: MatchingSession) -> None:
    for pair_id in list(game.entries):
        game.flip(_src(pair_id))
        game.flip(_tgt(pair_id))


def test_build_deck_has_two_faces_per_pair(entries):
    pairs = {e.word_pair.id: e.word_pair for e in entries}
    deck = build_deck(pairs, random.Random(1))
    assert len(deck) == 2 * len(pairs)
    for key, pair in pairs.items():
        faces = {c.face: c.text for c in deck if c.pair_key == key}
        assert faces == {CardFace.SOURCE: pair.source, CardFace.TARGET: pair.target}


def test_build_deck_shuffle_is_reproducible(entries):
    pairs = {e.word_pair.id: e.word_pair for e in entries}
    first = [c.key for c in build_deck(pairs, random.Random(3))]
    second = [c.key for c in build_deck(pairs, random.Random(3))]
    assert first == second


def test_all_cards_start_face_down(game):
    assert len(game.board()) == 4
    assert all(state is CardState.FACE_DOWN for _, state in game.board())


def test_matching_pair_is_cleared(game):
    assert game.flip(_src("perro")) is FlipResult.SELECTED
    assert game.face_up == [_src("perro")]
    assert game.flip(_tgt("perro")) is FlipResult.MATCH
    assert game.state_of(_src("perro")) is CardState.CLEARED
    assert game.state_of(_tgt("perro")) is CardState.CLEARED
    assert game.found == ["perro"]
    assert game.moves == 1
    assert game.face_up == []


def test_flipping_the_same_card_twice_is_ignored(game):
    game.flip(_src("perro"))
    assert game.flip(_src("perro")) is FlipResult.IGNORED
    assert game.moves == 0


def test_mismatch_stays_face_up_until_delay_passes(game, clock):
    game.flip(_src("perro"))
    assert game.flip(_tgt("gato")) is FlipResult.MISMATCH
    assert game.has_pending
    assert game.state_of(_src("perro")) is CardState.FACE_UP

    # Flips during the display are ignored.
    assert game.flip(_src("gato")) is FlipResult.IGNORED
    assert game.resolve_pending() is False

    clock.advance(milliseconds=900)
    assert game.flip(_src("gato")) is FlipResult.SELECTED
    assert not game.has_pending
    assert game.state_of(_src("perro")) is CardState.FACE_DOWN
    assert game.state_of(_tgt("gato")) is CardState.FACE_DOWN
    assert game.moves == 1


def test_resolve_pending_force(game):
    game.flip(_src("perro"))
    game.flip(_tgt("gato"))
    assert game.resolve_pending(force=True) is True
    assert game.face_up == []
    assert game.resolve_pending(force=True) is False


def test_cleared_cards_cannot_be_flipped(game):
    game.flip(_src("perro"))
    game.flip(_tgt("perro"))
    assert game.flip(_src("perro")) is FlipResult.IGNORED


def test_unknown_card_raises(game):
    with pytest.raises(UnknownCardError):
        game.flip("nope-source")
    with pytest.raises(UnknownCardError):
        game.state_of("nope-source")


def test_win_and_carousel(game):
    _win(game)
    assert game.is_won
    assert [p.id for p in game.found_pairs()] == ["perro", "gato"]
    assert game.carousel_item().id == "gato"
    game.carousel_previous()
    assert game.carousel_item().id == "perro"
    game.carousel_previous()
    assert game.carousel_index == 0
    game.carousel_next()
    game.carousel_next()
    assert game.carousel_item().id == "gato"


def test_rating_before_win_is_rejected(game):
    game.flip(_src("perro"))
    game.flip(_tgt("perro"))
    with pytest.raises(SessionStateError):
        game.rate("perro", Rating.Easy)


def test_each_found_word_is_rated_once(game, repository, write_queue):
    _win(game)
    assert not game.is_complete
    result = game.rate("perro", Rating.Easy)
    assert result.after.bucket is Bucket.Easy
    assert game.is_rated("perro")
    assert game.unrated() == ["gato"]
    assert write_queue.pending == ["animals"]

    with pytest.raises(AlreadyRatedError):
        game.rate("perro", Rating.Hard)
    assert repository.pair_at(repository.locate("perro")).retention.bucket is Bucket.Easy

    game.rate("gato", "difficult")
    assert game.is_complete
    assert len(game.results) == 2


def test_rating_word_not_in_game(game):
    _win(game)
    with pytest.raises(UnknownCardError):
        game.rate("mesa", Rating.Easy)


def test_invalid_rating_in_game(game):
    _win(game)
    with pytest.raises(InvalidRatingError):
        game.rate("perro", "perfect")
    assert not game.is_rated("perro")


def test_empty_game_is_complete_but_not_won(sink, clock):
    game = MatchingSession([], sink, clock=clock)
    assert game.deck == []
    assert not game.is_won
    assert game.is_complete
    assert game.carousel_item() is None


def test_repeated_entries_are_ignored(entries, sink, clock):
    game = MatchingSession([entries[0], entries[0]], sink, clock=clock)
    assert len(game.deck) == 2
