"""
Utility functions for data marshalling between Pydantic models and database rows.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence, Tuple

from pydantic import ValidationError

from ..exceptions import MarshallingError
from ..models import (
    Bucket,
    Collection,
    Conjugation,
    RetentionState,
    WordPair,
    ensure_utc,
)


def to_db_timestamp(ts: Optional[datetime]) -> Optional[datetime]:
    """Timestamps are stored as naive UTC."""
    if ts is None:
        return None
    return ensure_utc(ts).replace(tzinfo=None)


def from_db_timestamp(ts: Optional[datetime]) -> Optional[datetime]:
    if ts is None:
        return None
    return ts.replace(tzinfo=timezone.utc) if ts.tzinfo is None else ensure_utc(ts)


def word_pairs_to_db_params_list(
    collection_id: str, words: Sequence[WordPair]
) -> List[Tuple]:
    """
    Convert the words of a collection into tuples for bulk insertion.

    Returns:
        List[Tuple]: One tuple per word, fields in the order
        (collection_id, word_index, id, source, target, pos, explanation,
        example, conjugation_json, bucket, next_review_at, last_reviewed_at).
    """
    result = []
    for index, word in enumerate(words):
        try:
            conjugation_json = (
                word.conjugation.model_dump_json() if word.conjugation else None
            )
        except (TypeError, ValueError) as e:
            raise MarshallingError(
                f"Failed to serialize conjugation of word {word.id}: {e}",
                original_exception=e,
            ) from e
        result.append(
            (
                collection_id,
                index,
                word.id,
                word.source,
                word.target,
                word.pos.value if word.pos else None,
                word.explanation,
                word.example,
                conjugation_json,
                word.retention.bucket.name,
                to_db_timestamp(word.retention.next_review_at),
                to_db_timestamp(word.retention.last_reviewed_at),
            )
        )
    return result


def db_row_to_word_pair(row_dict: Dict[str, Any]) -> WordPair:
    """
    Create a WordPair from a word_pairs row.

    Raises:
        MarshallingError: If the row cannot be validated into a WordPair.
    """
    try:
        conjugation_json = row_dict.get("conjugation_json")
        retention = RetentionState(
            bucket=Bucket[row_dict["bucket"]],
            next_review_at=from_db_timestamp(row_dict["next_review_at"]),
            last_reviewed_at=from_db_timestamp(row_dict.get("last_reviewed_at")),
        )
        return WordPair(
            id=row_dict["id"],
            source=row_dict["source"],
            target=row_dict["target"],
            pos=row_dict.get("pos"),
            explanation=row_dict.get("explanation"),
            example=row_dict.get("example"),
            conjugation=(
                Conjugation.model_validate_json(conjugation_json)
                if conjugation_json
                else None
            ),
            retention=retention,
        )
    except (KeyError, ValidationError) as e:
        raise MarshallingError(
            f"Failed to parse word pair from DB row: {row_dict}. Error: {e}",
            original_exception=e,
        ) from e


def db_row_to_collection(
    row_dict: Dict[str, Any], words: List[WordPair]
) -> Collection:
    try:
        return Collection(
            id=row_dict["id"],
            title=row_dict.get("title") or "",
            list_id=row_dict.get("list_id"),
            position=row_dict.get("position") or 0,
            words=words,
        )
    except (KeyError, ValidationError) as e:
        raise MarshallingError(
            f"Failed to parse collection from DB row: {row_dict}. Error: {e}",
            original_exception=e,
        ) from e
