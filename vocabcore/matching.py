"""
Memory-matching game used as an alternative review front-end.

Each word pair contributes two cards, its source text and its target
text. Players flip two cards at a time; a pair of cards showing the same
word is cleared and added to the "found" carousel. Once every pair is
found, each found word can be rated once through the shared RatingSink.
"""

import logging
import random
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Callable, Dict, List, Mapping, Optional, Sequence, Set, Tuple
from uuid import UUID, uuid4

from .constants import DEFAULT_MISMATCH_DELAY
from .exceptions import (
    AlreadyRatedError,
    SessionStateError,
    UnknownCardError,
)
from .models import Rating, ReviewEntry, WordLocation, WordPair, ensure_utc, utc_now
from .rating import RatingResult, RatingSink
from .scheduler import RatingInput

logger = logging.getLogger(__name__)


class CardFace(str, Enum):
    SOURCE = "source"
    TARGET = "target"


class CardState(str, Enum):
    FACE_DOWN = "face_down"
    FACE_UP = "face_up"
    CLEARED = "cleared"


class FlipResult(str, Enum):
    IGNORED = "ignored"
    SELECTED = "selected"
    MATCH = "match"
    MISMATCH = "mismatch"


@dataclass(frozen=True)
class MatchCard:
    key: str
    pair_key: str
    face: CardFace
    text: str


@dataclass
class _PendingMismatch:
    keys: Tuple[str, str]
    resolve_at: datetime


def pair_key_for(entry: ReviewEntry, shared_ids: Set[str]) -> str:
    """The word id, or its location when another word in play uses the same id."""
    if entry.word_pair.id in shared_ids:
        return f"{entry.collection_id}/{entry.index}"
    return entry.word_pair.id


def build_deck(
    pairs: Mapping[str, WordPair], rng: Optional[random.Random] = None
) -> List[MatchCard]:
    """Two cards per word pair, keyed by its pair key, shuffled."""
    deck: List[MatchCard] = []
    for pair_key, pair in pairs.items():
        deck.append(
            MatchCard(
                key=f"{pair_key}-{CardFace.SOURCE.value}",
                pair_key=pair_key,
                face=CardFace.SOURCE,
                text=pair.source,
            )
        )
        deck.append(
            MatchCard(
                key=f"{pair_key}-{CardFace.TARGET.value}",
                pair_key=pair_key,
                face=CardFace.TARGET,
                text=pair.target,
            )
        )
    (rng or random.Random()).shuffle(deck)
    return deck


class MatchingSession:
    """
    Two-card-flip memory game over a working set of review entries.
    """

    def __init__(
        self,
        entries: Sequence[ReviewEntry],
        sink: RatingSink,
        mismatch_delay: timedelta = DEFAULT_MISMATCH_DELAY,
        rng: Optional[random.Random] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """
        Args:
            entries: Working set; each distinct word location yields two cards.
            sink: Receives the ratings given after the win.
            mismatch_delay: How long a mismatched pair stays face-up.
            rng: Random source for shuffling the deck.
            clock: Returns the current time; defaults to UTC now.
        """
        self.session_uuid: UUID = uuid4()
        self.sink = sink
        self.mismatch_delay = mismatch_delay
        self._clock = clock or utc_now

        unique: Dict[WordLocation, ReviewEntry] = {}
        for entry in entries:
            if entry.location in unique:
                logger.warning(
                    f"Word at {entry.location} given twice to matching session; "
                    "ignoring copy."
                )
                continue
            unique[entry.location] = entry
        id_counts: Dict[str, int] = {}
        for entry in unique.values():
            id_counts[entry.word_pair.id] = id_counts.get(entry.word_pair.id, 0) + 1
        shared_ids = {pair_id for pair_id, count in id_counts.items() if count > 1}

        # Keyed by pair key, in working-set order.
        self.entries: Dict[str, ReviewEntry] = {
            pair_key_for(entry, shared_ids): entry for entry in unique.values()
        }
        self.deck: List[MatchCard] = build_deck(
            {key: entry.word_pair for key, entry in self.entries.items()}, rng
        )
        self._cards: Dict[str, MatchCard] = {card.key: card for card in self.deck}
        self._states: Dict[str, CardState] = {
            card.key: CardState.FACE_DOWN for card in self.deck
        }
        self._face_up: List[str] = []
        self._pending: Optional[_PendingMismatch] = None

        self.moves = 0
        self.found: List[str] = []
        self.carousel_index = 0
        self._rated: Set[str] = set()
        self.results: List[RatingResult] = []

        logger.info(
            f"Matching session {self.session_uuid} with "
            f"{len(self.entries)} word pairs."
        )

    def _now(self) -> datetime:
        return ensure_utc(self._clock())

    # --- Board ---

    def state_of(self, card_key: str) -> CardState:
        try:
            return self._states[card_key]
        except KeyError:
            raise UnknownCardError(f"No card '{card_key}' on this board.") from None

    def board(self) -> List[Tuple[MatchCard, CardState]]:
        return [(card, self._states[card.key]) for card in self.deck]

    @property
    def face_up(self) -> List[str]:
        return list(self._face_up)

    @property
    def has_pending(self) -> bool:
        return self._pending is not None

    def resolve_pending(self, force: bool = False) -> bool:
        """
        Turn a displayed mismatch face-down once its delay has passed.

        Returns:
            bool: True if a pending pair was turned face-down.
        """
        if self._pending is None:
            return False
        if not force and self._now() < self._pending.resolve_at:
            return False
        for key in self._pending.keys:
            self._states[key] = CardState.FACE_DOWN
        self._face_up = []
        self._pending = None
        return True

    def flip(self, card_key: str) -> FlipResult:
        """
        Flip a card face-up.

        Flips are ignored while a mismatched pair is still displayed, for
        cleared cards, and for a card that is already face-up.

        Raises:
            UnknownCardError: If the key is not on the board.
        """
        card = self._cards.get(card_key)
        if card is None:
            raise UnknownCardError(f"No card '{card_key}' on this board.")

        if self._pending is not None and not self.resolve_pending():
            return FlipResult.IGNORED
        if len(self._face_up) >= 2:
            return FlipResult.IGNORED
        if self._states[card_key] is not CardState.FACE_DOWN:
            return FlipResult.IGNORED

        self._states[card_key] = CardState.FACE_UP
        self._face_up.append(card_key)
        if len(self._face_up) == 1:
            return FlipResult.SELECTED

        self.moves += 1
        first, second = (self._cards[k] for k in self._face_up)
        if first.pair_key == second.pair_key and first.key != second.key:
            for key in self._face_up:
                self._states[key] = CardState.CLEARED
            self._face_up = []
            self.found.append(first.pair_key)
            self.carousel_index = len(self.found) - 1
            logger.debug(f"Matched {first.pair_key} on move {self.moves}.")
            if self.is_won:
                logger.info(
                    f"Matching session {self.session_uuid} won in "
                    f"{self.moves} moves."
                )
            return FlipResult.MATCH

        self._pending = _PendingMismatch(
            keys=(first.key, second.key),
            resolve_at=self._now() + self.mismatch_delay,
        )
        return FlipResult.MISMATCH

    @property
    def is_won(self) -> bool:
        return bool(self.entries) and len(self.found) == len(self.entries)

    # --- Found carousel ---

    def found_pairs(self) -> List[WordPair]:
        return [self.entries[pair_key].word_pair for pair_key in self.found]

    def carousel_item(self) -> Optional[WordPair]:
        if not self.found:
            return None
        pair_key = self.found[min(self.carousel_index, len(self.found) - 1)]
        return self.entries[pair_key].word_pair

    def carousel_next(self) -> None:
        if self.found:
            self.carousel_index = min(len(self.found) - 1, self.carousel_index + 1)

    def carousel_previous(self) -> None:
        self.carousel_index = max(0, self.carousel_index - 1)

    # --- Rating round ---

    def is_rated(self, pair_key: str) -> bool:
        return pair_key in self._rated

    def unrated(self) -> List[str]:
        return [pair_key for pair_key in self.found if pair_key not in self._rated]

    @property
    def is_complete(self) -> bool:
        """True once every found word is rated, or when there was nothing to play."""
        if not self.entries:
            return True
        return self.is_won and not self.unrated()

    def rate(
        self,
        pair_key: str,
        rating: RatingInput,
        reviewed_at: Optional[datetime] = None,
    ) -> RatingResult:
        """
        Rate a found word after the game is won. Each word can be rated once.

        ``pair_key`` is the word pair id, or the word's "collection/index"
        location when another word in the game shares its id (see ``found``).

        Raises:
            InvalidRatingError: For an unknown rating; nothing changes.
            SessionStateError: If the game is not won yet.
            UnknownCardError: If the word was not found in this session.
            AlreadyRatedError: If the word was already rated.
        """
        parsed = Rating.parse(rating)
        if not self.is_won:
            raise SessionStateError("Words can be rated once every pair is found.")
        if pair_key not in self.found:
            raise UnknownCardError(
                f"Word pair '{pair_key}' was not found in this session."
            )
        if pair_key in self._rated:
            raise AlreadyRatedError(
                f"Word pair '{pair_key}' was already rated in this session."
            )

        result = self.sink.rate_at(
            self.entries[pair_key].location, parsed, reviewed_at
        )
        self._rated.add(pair_key)
        self.results.append(result)
        return result
