"""
Builds the reviewable pool from stored collections.

A word imported into several collections is reviewed once: the copies are
merged into a single ReviewEntry carrying the most advanced retention state.
"""

import logging
from typing import Dict, Iterable, List, Tuple

from .models import Collection, ReviewEntry, WordLocation, WordPair

logger = logging.getLogger(__name__)

DedupeKey = Tuple[str, str]


def _normalize_for_comparison(text: str) -> str:
    return text.strip().lower()


def dedupe_key(word_pair: WordPair) -> DedupeKey:
    """Identity of a word across collections: trimmed, case-insensitive (source, target)."""
    return (
        _normalize_for_comparison(word_pair.source),
        _normalize_for_comparison(word_pair.target),
    )


def build_entries(collections: Iterable[Collection]) -> List[ReviewEntry]:
    """
    Create one ReviewEntry per word slot, in collection order then word order.

    Entries reference the word pairs held by the collections; nothing is copied.
    """
    entries: List[ReviewEntry] = []
    for collection in collections:
        for index, word_pair in enumerate(collection.words):
            entries.append(
                ReviewEntry(
                    collection_id=collection.id,
                    index=index,
                    word_pair=word_pair,
                )
            )
    return entries


def dedupe(entries: Iterable[ReviewEntry]) -> List[ReviewEntry]:
    """
    Merge entries that share a dedupe key into one entry per key.

    The kept entry is the one whose bucket has the highest rank; ties keep
    the first encountered. Locations of the merged copies are recorded in
    the kept entry's ``also_in`` so ratings can reach every copy. Output
    order follows the first appearance of each key.
    """
    winners: Dict[DedupeKey, ReviewEntry] = {}
    merged_locations: Dict[DedupeKey, List[WordLocation]] = {}
    total = 0

    for entry in entries:
        total += 1
        key = dedupe_key(entry.word_pair)
        current = winners.get(key)
        if current is None:
            winners[key] = entry
            merged_locations[key] = list(entry.locations)
            continue

        for location in entry.locations:
            if location not in merged_locations[key]:
                merged_locations[key].append(location)
        if entry.retention.bucket > current.retention.bucket:
            winners[key] = entry

    result: List[ReviewEntry] = []
    for key, winner in winners.items():
        also_in = tuple(
            loc for loc in merged_locations[key] if loc != winner.location
        )
        if also_in == winner.also_in:
            result.append(winner)
        else:
            result.append(
                ReviewEntry(
                    collection_id=winner.collection_id,
                    index=winner.index,
                    word_pair=winner.word_pair,
                    also_in=also_in,
                )
            )

    if total != len(result):
        logger.info(
            f"Merged {total - len(result)} duplicate words; "
            f"{len(result)} distinct words in pool."
        )
    return result
