import duckdb
import logging
from pathlib import Path
from typing import Optional, Union

from ..exceptions import DatabaseConnectionError

logger = logging.getLogger(__name__)

MEMORY_PATH = ":memory:"


class ConnectionHandler:
    """
    Owns the single DuckDB connection behind a VocabularyDatabase.

    The connection is opened lazily on first use and can be reopened after
    close_connection().
    """

    def __init__(self, db_path: Union[str, Path], read_only: bool = False):
        """
        Args:
            db_path: Vocabulary database file, or ":memory:" in any case.
            read_only: Open the file without write access. Not allowed for
                an in-memory database, which would always be empty.
        """
        self.is_memory: bool = str(db_path).lower() == MEMORY_PATH
        if self.is_memory and read_only:
            raise DatabaseConnectionError(
                "An in-memory vocabulary database cannot be opened read-only."
            )
        self.db_path_resolved: Path = (
            Path(MEMORY_PATH) if self.is_memory else Path(db_path).expanduser().resolve()
        )
        self.read_only: bool = read_only
        self.is_new_db: bool = False
        self._connection: Optional[duckdb.DuckDBPyConnection] = None
        logger.debug(f"Vocabulary database location: {self.db_path_resolved}")

    def _prepare_location(self) -> None:
        if self.is_memory:
            self.is_new_db = True
            return
        exists = self.db_path_resolved.exists()
        if self.read_only and not exists:
            raise DatabaseConnectionError(
                f"Vocabulary database not found: {self.db_path_resolved}"
            )
        self.is_new_db = not exists
        if not exists:
            self.db_path_resolved.parent.mkdir(parents=True, exist_ok=True)

    def get_connection(self) -> duckdb.DuckDBPyConnection:
        """
        Return the open connection, connecting first when needed.

        Raises:
            DatabaseConnectionError: If the file is missing in read-only mode
                or DuckDB refuses the connection (for example a lock held by
                another process).
        """
        if self._connection is not None:
            return self._connection
        self._prepare_location()
        try:
            self._connection = duckdb.connect(
                database=str(self.db_path_resolved), read_only=self.read_only
            )
        except duckdb.Error as e:
            raise DatabaseConnectionError(
                f"Could not open vocabulary database {self.db_path_resolved}: {e}",
                original_exception=e,
            ) from e
        logger.info(
            f"Opened {'new' if self.is_new_db else 'existing'} vocabulary "
            f"database at {self.db_path_resolved}"
        )
        return self._connection

    def close_connection(self) -> None:
        """Close the connection if open; a later get_connection() reopens it."""
        if self._connection is None:
            return
        try:
            self._connection.close()
            logger.debug(f"Closed vocabulary database {self.db_path_resolved}")
        except duckdb.Error as e:
            logger.error(f"Error closing vocabulary database: {e}")
        finally:
            self._connection = None
