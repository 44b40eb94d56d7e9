"""
In-memory arena of the latest known collection snapshots.

Sessions refer to words by (collection id, index) into this arena, and
every persistence write reads the collection from here at write time.
"""

import logging
from typing import Dict, Iterable, Iterator, List, Optional

from .exceptions import (
    AmbiguousWordPairError,
    CollectionNotFoundError,
    WordPairNotFoundError,
)
from .models import Collection, RetentionState, ReviewEntry, WordLocation, WordPair
from .pool import build_entries, dedupe_key

logger = logging.getLogger(__name__)


class CollectionRepository:
    """Holds collections by id and locates word pairs inside them."""

    def __init__(self, collections: Optional[Iterable[Collection]] = None):
        self._collections: Dict[str, Collection] = {}
        self._index: Dict[str, List[WordLocation]] = {}
        if collections is not None:
            self.load(collections)

    def load(self, collections: Iterable[Collection]) -> int:
        """
        Replace the held collections.

        Returns:
            int: Number of collections loaded.
        """
        self._collections = {}
        for collection in collections:
            if collection.id in self._collections:
                logger.warning(
                    f"Collection {collection.id} loaded twice; keeping the first copy."
                )
                continue
            self._collections[collection.id] = collection
        self._rebuild_index()
        logger.info(
            f"Loaded {len(self._collections)} collections with "
            f"{sum(len(c.words) for c in self._collections.values())} words."
        )
        return len(self._collections)

    def _rebuild_index(self) -> None:
        self._index = {}
        for collection in self._collections.values():
            for index, word_pair in enumerate(collection.words):
                self._index.setdefault(word_pair.id, []).append(
                    WordLocation(collection.id, index)
                )
        for word_pair_id, locations in self._index.items():
            if len(locations) > 1:
                logger.warning(
                    f"Word pair id {word_pair_id} is used at {locations}; "
                    "it can only be rated by location."
                )

    def __iter__(self) -> Iterator[Collection]:
        return iter(self._collections.values())

    def __len__(self) -> int:
        return len(self._collections)

    def get(self, collection_id: str) -> Collection:
        try:
            return self._collections[collection_id]
        except KeyError:
            raise CollectionNotFoundError(
                f"Collection '{collection_id}' is not loaded."
            ) from None

    def entries(self) -> List[ReviewEntry]:
        return build_entries(self._collections.values())

    def word_pairs(self) -> List[WordPair]:
        return [word for c in self._collections.values() for word in c.words]

    def locate(self, word_pair_id: str) -> WordLocation:
        """
        Find the only word holding ``word_pair_id``.

        Raises:
            WordPairNotFoundError: If no loaded word has the id.
            AmbiguousWordPairError: If several loaded words share the id.
        """
        locations = self._index.get(word_pair_id)
        if not locations:
            raise WordPairNotFoundError(
                f"Word pair '{word_pair_id}' is not in any loaded collection."
            )
        if len(locations) > 1:
            raise AmbiguousWordPairError(
                f"Word pair id '{word_pair_id}' is used at {locations}."
            )
        return locations[0]

    def pair_at(self, location: WordLocation) -> WordPair:
        collection = self.get(location.collection_id)
        try:
            return collection.words[location.index]
        except IndexError:
            raise WordPairNotFoundError(
                f"No word at index {location.index} of collection "
                f"'{location.collection_id}'."
            ) from None

    def duplicates_of(self, location: WordLocation) -> List[WordLocation]:
        """Other locations holding the same (source, target) as ``location``."""
        key = dedupe_key(self.pair_at(location))
        found: List[WordLocation] = []
        for collection in self._collections.values():
            for index, word_pair in enumerate(collection.words):
                candidate = WordLocation(collection.id, index)
                if candidate != location and dedupe_key(word_pair) == key:
                    found.append(candidate)
        return found

    def set_retention(
        self, location: WordLocation, state: RetentionState
    ) -> WordPair:
        """Store a new retention state on the word at ``location``, in place."""
        word_pair = self.pair_at(location)
        word_pair.retention = state
        return word_pair
