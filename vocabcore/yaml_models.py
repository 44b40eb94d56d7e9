"""
Defines the Pydantic models and dataclasses for YAML collection files.
"""

import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, List, Optional

from pydantic import (
    BaseModel as PydanticBaseModel,
    ConfigDict,
    Field,
    field_validator,
)

from .models import Conjugation, PartOfSpeech

_SLUG_STRIP = re.compile(r"[^a-z0-9]+")


def slugify(text: str) -> str:
    """Lowercase kebab-case identifier derived from a title."""
    return _SLUG_STRIP.sub("-", text.lower()).strip("-")


# --- Internal Pydantic Models for Raw YAML Validation ---


class _RawYAMLWordEntry(PydanticBaseModel):
    id: Optional[str] = Field(default=None)
    source: str = Field(..., min_length=1)
    target: str = Field(..., min_length=1)
    pos: Optional[PartOfSpeech] = Field(default=None)
    explanation: Optional[str] = Field(default=None)
    example: Optional[str] = Field(default=None)
    conjugation: Optional[Conjugation] = Field(default=None)

    model_config = ConfigDict(extra="forbid")

    @field_validator("pos", mode="before")
    @classmethod
    def normalize_pos(cls, v: Any) -> Any:
        """Accept part-of-speech tags in any case ("Verb", " NOUN ")."""
        if isinstance(v, str):
            return v.strip().lower()
        return v


class _RawYAMLCollectionFile(PydanticBaseModel):
    collection: str = Field(..., min_length=1)
    id: Optional[str] = Field(default=None)
    list: Optional[str] = Field(default=None)
    position: int = Field(default=0, ge=0)
    # Entries are validated one by one so a bad word does not reject the file.
    words: List[Any] = Field(..., min_length=1)

    model_config = ConfigDict(extra="forbid")


# --- Custom Error Reporting Dataclass ---
@dataclass
class YAMLProcessingError(Exception):
    file_path: Path
    message: str
    word_index: Optional[int] = None
    word_snippet: Optional[str] = None

    def __str__(self) -> str:
        context_parts = [f"File: {self.file_path.name}"]
        if self.word_index is not None:
            context_parts.append(f"Word Index: {self.word_index}")
        if self.word_snippet:
            snippet = (
                (self.word_snippet[:47] + "...")
                if len(self.word_snippet) > 50
                else self.word_snippet
            )
            context_parts.append(f"Word: '{snippet}'")
        return f"{' | '.join(context_parts)} | Error: {self.message}"


@dataclass
class YAMLProcessorConfig:
    """Configuration for the YAML processing workflow."""

    source_directory: Path
    fail_fast: bool = False
