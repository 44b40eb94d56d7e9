"""
Data model for words, their retention state and the collections that hold them.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum, IntEnum
from typing import List, NamedTuple, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .exceptions import InvalidRatingError


def ensure_utc(ts: datetime) -> datetime:
    """Ensures the given datetime is UTC. Assumes UTC if naive."""
    if ts.tzinfo is None or ts.tzinfo.utcoffset(ts) is None:
        return ts.replace(tzinfo=timezone.utc)
    if ts.tzinfo != timezone.utc:
        return ts.astimezone(timezone.utc)
    return ts


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Bucket(IntEnum):
    """
    Retention-confidence class of a word. The integer value is its rank.
    """

    New = 0
    Hard = 1
    Medium = 2
    Easy = 3


class Rating(IntEnum):
    """
    The user's rating of their recall after seeing the answer.
    """

    Hard = 1
    Medium = 2
    Easy = 3

    @classmethod
    def parse(cls, value: Union["Rating", int, str]) -> "Rating":
        """
        Convert user input into a Rating.

        Accepts a Rating, an int between 1 and 3, or a case-insensitive name
        ("hard", "medium", "easy", or the older "difficult" for Hard).

        Raises:
            InvalidRatingError: If the value names no rating.
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, bool):
            raise InvalidRatingError(f"Invalid rating: {value!r}.")
        if isinstance(value, int):
            try:
                return cls(value)
            except ValueError:
                raise InvalidRatingError(
                    f"Invalid rating: {value}. Must be 1-3 (1=Hard, 2=Medium, 3=Easy)."
                ) from None
        if isinstance(value, str):
            name = value.strip().lower()
            if name == "difficult":
                return cls.Hard
            if name.isdigit():
                return cls.parse(int(name))
            try:
                return cls[name.capitalize()]
            except KeyError:
                pass
        raise InvalidRatingError(
            f"Invalid rating: {value!r}. Must be one of hard, medium, easy."
        )


class PartOfSpeech(str, Enum):
    verb = "verb"
    noun = "noun"
    adj = "adj"
    other = "other"


class ConjugationSection(BaseModel):
    model_config = ConfigDict(extra="forbid")

    title: str
    rows: List[Tuple[str, str]] = Field(default_factory=list)


class Conjugation(BaseModel):
    """Structured conjugation table attached to a verb."""

    model_config = ConfigDict(extra="forbid")

    infinitive: Optional[str] = None
    translation: Optional[str] = None
    sections: List[ConjugationSection] = Field(default_factory=list)


class RetentionState(BaseModel):
    """
    Per-word scheduling record. Only the scheduler produces new states.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    bucket: Bucket = Field(
        default=Bucket.New,
        description="Current retention bucket.",
    )
    next_review_at: datetime = Field(
        default_factory=utc_now,
        description="UTC timestamp at which the word becomes due.",
    )
    last_reviewed_at: Optional[datetime] = Field(
        default=None,
        description="UTC timestamp of the last rating (None if never rated).",
    )

    @field_validator("next_review_at", "last_reviewed_at")
    @classmethod
    def normalize_to_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(v) if v is not None else None


class WordPair(BaseModel):
    """
    A learnable unit: source text, target text and supporting material.
    """

    model_config = ConfigDict(validate_assignment=True, extra="forbid")

    id: str = Field(
        default_factory=lambda: uuid.uuid4().hex,
        min_length=1,
        description="Stable identifier of the word pair.",
    )
    source: str = Field(..., description="Source-language text (card front).")
    target: str = Field(..., description="Target-language text (card back).")
    pos: Optional[PartOfSpeech] = Field(
        default=None, description="Part-of-speech tag."
    )
    explanation: Optional[str] = None
    example: Optional[str] = None
    conjugation: Optional[Conjugation] = None
    retention: RetentionState = Field(
        default_factory=RetentionState,
        description="Scheduling state; a new word is due immediately.",
    )

    @field_validator("source", "target")
    @classmethod
    def must_not_be_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Text must not be blank.")
        return v


class Collection(BaseModel):
    """
    An ordered, named group of word pairs, persisted as a unit.
    """

    model_config = ConfigDict(validate_assignment=True, extra="forbid")

    id: str = Field(..., min_length=1)
    title: str = Field(default="")
    list_id: Optional[str] = Field(
        default=None, description="Owning list, None if unlisted."
    )
    position: int = Field(default=0, ge=0)
    words: List[WordPair] = Field(default_factory=list)


class WordLocation(NamedTuple):
    """Where a word pair lives: its collection and index in that collection."""

    collection_id: str
    index: int


@dataclass
class ReviewEntry:
    """
    Ties a word pair back to the collection slot it came from.

    ``word_pair`` is the object held by the owning collection, so rating
    updates are visible through the entry. ``also_in`` lists verbatim
    duplicates in other collections that were merged into this entry.
    """

    collection_id: str
    index: int
    word_pair: WordPair
    also_in: Tuple[WordLocation, ...] = field(default_factory=tuple)

    @property
    def location(self) -> WordLocation:
        return WordLocation(self.collection_id, self.index)

    @property
    def locations(self) -> Tuple[WordLocation, ...]:
        return (self.location,) + self.also_in

    @property
    def retention(self) -> RetentionState:
        return self.word_pair.retention
