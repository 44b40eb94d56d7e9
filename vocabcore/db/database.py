"""
DuckDB database interactions for vocabcore.
Implements VocabularyDatabase, the persistent CollectionStore.
"""

import duckdb
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

from . import db_utils
from .connection import ConnectionHandler
from .schema_manager import SchemaManager
from ..exceptions import (
    CollectionNotFoundError,
    CollectionOperationError,
    DuplicateWordIdError,
    MarshallingError,
)
from ..models import Collection, WordPair
from ..persistence import CollectionStore
from ..pool import dedupe_key

# --- Logging Setup ---
logger = logging.getLogger(__name__)

# --- Helper Functions ---


def _rows_to_dicts(cursor: duckdb.DuckDBPyConnection) -> List[Dict[str, Any]]:
    """Convert cursor results to list of dictionaries using column names."""
    rows = cursor.fetchall()
    if not rows:
        return []
    description = cursor.description
    if description is None:
        return []
    columns = [desc[0] for desc in description]
    return [dict(zip(columns, row)) for row in rows]


class VocabularyDatabase(CollectionStore):
    """
    Facade for the database subsystem, providing a high-level interface for
    collection storage. Coordinates the ConnectionHandler, SchemaManager
    and the marshalling helpers. Intended for use as a context manager.
    """

    def __init__(self, db_path: Union[str, Path], read_only: bool = False):
        """
        Args:
            db_path (str | Path): Path to the database file. Use ':memory:' for an in-memory database.
            read_only (bool): If True, open the database in read-only mode.
        """
        self._handler = ConnectionHandler(db_path=db_path, read_only=read_only)
        self._schema_manager = SchemaManager(self._handler)
        logger.info(
            f"VocabularyDatabase initialized for DB at: {self._handler.db_path_resolved}"  # noqa: E501
        )

    @property
    def db_path_resolved(self) -> Path:
        return self._handler.db_path_resolved

    @property
    def read_only(self) -> bool:
        return self._handler.read_only

    def get_connection(self) -> duckdb.DuckDBPyConnection:
        return self._handler.get_connection()

    def close_connection(self) -> None:
        self._handler.close_connection()

    def __enter__(self) -> "VocabularyDatabase":
        """
        Open the connection and create the schema if a new writable database was created.
        """
        self.get_connection()
        if self._handler.is_new_db and not self._handler.read_only:
            self.initialize_schema()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Ensures the connection is closed on exiting the context."""
        self.close_connection()

    def initialize_schema(self, force_recreate_tables: bool = False) -> None:
        self._schema_manager.initialize_schema(
            force_recreate_tables=force_recreate_tables
        )

    # --- Collection Operations ---

    _UPSERT_COLLECTION_SQL = """
        INSERT INTO collections (id, title, list_id, position, modified_at)
        VALUES ($1, $2, $3, $4, $5)
        ON CONFLICT (id) DO UPDATE SET
            title = EXCLUDED.title,
            list_id = EXCLUDED.list_id,
            position = EXCLUDED.position,
            modified_at = EXCLUDED.modified_at;
        """

    _INSERT_WORD_SQL = """
        INSERT INTO word_pairs (collection_id, word_index, id, source, target,
                                pos, explanation, example, conjugation_json,
                                bucket, next_review_at, last_reviewed_at)
        VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10, $11, $12);
        """

    def _now(self) -> datetime:
        return db_utils.to_db_timestamp(datetime.now(timezone.utc))

    def _replace_words(
        self,
        cursor: duckdb.DuckDBPyConnection,
        collection_id: str,
        params: List[Tuple],
    ) -> None:
        cursor.execute(
            "DELETE FROM word_pairs WHERE collection_id = $1;", (collection_id,)
        )
        if params:
            cursor.executemany(self._INSERT_WORD_SQL, params)

    def _rollback_quietly(self, conn, context: str) -> None:
        if conn and not getattr(conn, "closed", True):
            try:
                conn.rollback()
                logger.info(f"Transaction rolled back due to error in {context}.")
            except duckdb.Error as rb_err:
                logger.error(
                    f"Failed to rollback transaction during {context}: {rb_err}"
                )

    def upsert_collection(
        self, collection: Collection, preserve_retention: bool = True
    ) -> int:
        """
        Insert or replace a collection and its words.

        Parameters:
            collection (Collection): Collection to store.
            preserve_retention (bool): For words already stored in this collection
                (same source and target, compared case-insensitively), keep the
                stored id and retention state instead of the incoming ones.

        Returns:
            int: Number of words stored.

        Raises:
            CollectionOperationError: If marshalling or the database operation fails.
            DuplicateWordIdError: If a word id is stored in another collection.
        """
        words = list(collection.words)
        if preserve_retention:
            existing = self.get_collection(collection.id)
            if existing is not None:
                words = self._merge_existing(existing.words, words)

        clashes = self.word_id_owners(
            [word.id for word in words], exclude_collection_id=collection.id
        )
        if clashes:
            details = ", ".join(
                f"'{word_id}' (in '{owner}')" for word_id, owner in clashes.items()
            )
            raise DuplicateWordIdError(
                f"Collection {collection.id} reuses word ids of other "
                f"collections: {details}"
            )

        try:
            params = db_utils.word_pairs_to_db_params_list(collection.id, words)
        except MarshallingError as e:
            raise CollectionOperationError(
                "Failed to prepare word data for database operation.",
                original_exception=e,
            ) from e

        conn = self.get_connection()
        try:
            with conn.cursor() as cursor:
                cursor.begin()
                cursor.execute(
                    self._UPSERT_COLLECTION_SQL,
                    (
                        collection.id,
                        collection.title,
                        collection.list_id,
                        collection.position,
                        self._now(),
                    ),
                )
                self._replace_words(cursor, collection.id, params)
                cursor.commit()
        except duckdb.Error as e:
            logger.error(f"Error during upsert of collection {collection.id}: {e}")
            self._rollback_quietly(conn, "collection upsert")
            raise CollectionOperationError(
                f"Collection upsert failed: {e}", original_exception=e
            ) from e
        logger.info(f"Stored collection {collection.id} with {len(words)} words.")
        return len(words)

    @staticmethod
    def _merge_existing(
        stored: Sequence[WordPair], incoming: Sequence[WordPair]
    ) -> List[WordPair]:
        by_key = {dedupe_key(word): word for word in stored}
        merged: List[WordPair] = []
        for word in incoming:
            previous = by_key.get(dedupe_key(word))
            if previous is None:
                merged.append(word)
            else:
                merged.append(
                    word.model_copy(
                        update={"id": previous.id, "retention": previous.retention}
                    )
                )
        return merged

    def persist(self, collection_id: str, words: Sequence[WordPair]) -> None:
        """
        Replace the stored words of an existing collection in one transaction.

        Writing the same words twice leaves the same rows, so retries are safe.

        Raises:
            CollectionNotFoundError: If the collection does not exist.
            CollectionOperationError: If the database operation fails.
        """
        try:
            params = db_utils.word_pairs_to_db_params_list(collection_id, words)
        except MarshallingError as e:
            raise CollectionOperationError(
                "Failed to prepare word data for database operation.",
                original_exception=e,
            ) from e

        conn = self.get_connection()
        try:
            with conn.cursor() as cursor:
                cursor.begin()
                row = cursor.execute(
                    "SELECT COUNT(*) FROM collections WHERE id = $1;",
                    (collection_id,),
                ).fetchone()
                if not row or row[0] == 0:
                    cursor.rollback()
                    raise CollectionNotFoundError(
                        f"Collection '{collection_id}' does not exist."
                    )
                cursor.execute(
                    "UPDATE collections SET modified_at = $1 WHERE id = $2;",
                    (self._now(), collection_id),
                )
                self._replace_words(cursor, collection_id, params)
                cursor.commit()
        except duckdb.Error as e:
            logger.error(f"Error persisting collection {collection_id}: {e}")
            self._rollback_quietly(conn, "collection persist")
            raise CollectionOperationError(
                f"Failed to persist collection {collection_id}: {e}",
                original_exception=e,
            ) from e
        logger.debug(f"Persisted {len(params)} words of collection {collection_id}.")

    def _fetch_words(self, collection_id: Optional[str] = None) -> Dict[str, List[WordPair]]:
        conn = self.get_connection()
        sql = "SELECT * FROM word_pairs"
        params: List[Any] = []
        if collection_id is not None:
            sql += " WHERE collection_id = $1"
            params.append(collection_id)
        sql += " ORDER BY collection_id, word_index;"
        cursor = conn.execute(sql, params)
        grouped: Dict[str, List[WordPair]] = {}
        for row in _rows_to_dicts(cursor):
            grouped.setdefault(row["collection_id"], []).append(
                db_utils.db_row_to_word_pair(row)
            )
        return grouped

    def word_id_owners(
        self,
        word_ids: Sequence[str],
        exclude_collection_id: Optional[str] = None,
    ) -> Dict[str, str]:
        """
        Map each of ``word_ids`` that is stored to the collection holding it.

        Raises:
            CollectionOperationError: On database errors.
        """
        if not word_ids:
            return {}
        sql = "SELECT id, collection_id FROM word_pairs WHERE list_contains($1, id)"
        params: List[Any] = [list(word_ids)]
        if exclude_collection_id is not None:
            sql += " AND collection_id <> $2"
            params.append(exclude_collection_id)
        sql += " ORDER BY collection_id, word_index;"
        try:
            rows = self.get_connection().execute(sql, params).fetchall()
        except duckdb.Error as e:
            logger.error(f"Error looking up word ids: {e}")
            raise CollectionOperationError(
                f"Failed to look up word ids: {e}", original_exception=e
            ) from e
        owners: Dict[str, str] = {}
        for word_id, collection_id in rows:
            owners.setdefault(word_id, collection_id)
        return owners

    def get_collection(self, collection_id: str) -> Optional[Collection]:
        """
        Fetch one collection with its words, or None if it does not exist.

        Raises:
            CollectionOperationError: On database or parsing errors.
        """
        conn = self.get_connection()
        try:
            cursor = conn.execute(
                "SELECT * FROM collections WHERE id = $1;", (collection_id,)
            )
            rows = _rows_to_dicts(cursor)
            if not rows:
                return None
            words = self._fetch_words(collection_id).get(collection_id, [])
            return db_utils.db_row_to_collection(rows[0], words)
        except MarshallingError as e:
            raise CollectionOperationError(
                f"Failed to parse collection {collection_id} from database.",
                original_exception=e,
            ) from e
        except duckdb.Error as e:
            logger.error(f"Error fetching collection {collection_id}: {e}")
            raise CollectionOperationError(
                f"Failed to fetch collection: {e}", original_exception=e
            ) from e

    def get_all_collections(self) -> List[Collection]:
        """
        All collections ordered by list, position and id, words in stored order.
        """
        conn = self.get_connection()
        try:
            cursor = conn.execute(
                "SELECT * FROM collections ORDER BY list_id NULLS FIRST, position, id;"
            )
            rows = _rows_to_dicts(cursor)
            if not rows:
                return []
            words_by_collection = self._fetch_words()
            return [
                db_utils.db_row_to_collection(
                    row, words_by_collection.get(row["id"], [])
                )
                for row in rows
            ]
        except MarshallingError as e:
            raise CollectionOperationError(
                "Failed to parse collections from database.",
                original_exception=e,
            ) from e
        except duckdb.Error as e:
            logger.error(f"Error fetching all collections: {e}")
            raise CollectionOperationError(
                f"Failed to get all collections: {e}", original_exception=e
            ) from e

    def load_collections(self) -> List[Collection]:
        return self.get_all_collections()
