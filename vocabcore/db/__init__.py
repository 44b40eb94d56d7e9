"""Database package for vocabcore.

DuckDB-backed implementation of the CollectionStore contract.
Only VocabularyDatabase is exported as the public API.
"""

from .database import VocabularyDatabase

__all__ = ["VocabularyDatabase"]
