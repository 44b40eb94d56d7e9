import duckdb
import logging

from .connection import ConnectionHandler
from . import schema
from ..exceptions import DatabaseConnectionError, SchemaInitializationError

logger = logging.getLogger(__name__)


class SchemaManager:
    """Manages the database schema initialization and maintenance."""

    def __init__(self, handler: ConnectionHandler):
        self._handler = handler

    def initialize_schema(self, force_recreate_tables: bool = False) -> None:
        """
        Initializes the database schema inside a transaction. Skips in
        read-only mode. Can force recreation of tables, which deletes all
        existing data.
        """
        if self._handler.read_only:
            if force_recreate_tables:
                raise DatabaseConnectionError(
                    "Cannot force_recreate_tables in read-only mode."
                )
            logger.warning(
                "Attempting to initialize schema in read-only mode. Skipping."
            )
            return

        conn = self._handler.get_connection()
        try:
            with conn.cursor() as cursor:
                cursor.begin()
                if force_recreate_tables:
                    logger.warning(
                        f"Forcing table recreation for {self._handler.db_path_resolved}. "
                        "ALL EXISTING DATA WILL BE LOST."
                    )
                    cursor.execute("DROP TABLE IF EXISTS word_pairs;")
                    cursor.execute("DROP TABLE IF EXISTS collections;")
                cursor.execute(schema.DB_SCHEMA_SQL)
                cursor.commit()
            logger.info(
                f"Database schema at {self._handler.db_path_resolved} initialized "
                "successfully (or already exists)."
            )
        except duckdb.Error as e:
            logger.error(
                f"Error initializing database schema at {self._handler.db_path_resolved}: {e}"
            )
            raise SchemaInitializationError(
                f"Failed to initialize schema: {e}", original_exception=e
            ) from e
