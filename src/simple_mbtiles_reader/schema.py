# %%
#|export
import logging
import sqlite3
from typing import Dict

from .errors import SchemaError

logger = logging.getLogger(__name__)

TILES_SCHEMA: Dict[str, str] = {
    "zoom_level": "INTEGER",
    "tile_column": "INTEGER",
    "tile_row": "INTEGER",
    "tile_data": "BLOB",
}

METADATA_SCHEMA: Dict[str, str] = {
    "name": "TEXT",
    "value": "TEXT",
}


def check_table(conn: sqlite3.Connection, table: str, schema: Dict[str, str]) -> None:
    """Check that `table` exists and declares every column in `schema` with its type.

    `table` may also be a view. Extra columns are ignored.
    """
    cursor = conn.execute(
        "SELECT 1 FROM sqlite_master WHERE type IN ('table', 'view') AND name = ?",
        (table,),
    )
    if cursor.fetchone() is None:
        raise SchemaError(table, f"Invalid MBTiles file: Missing {table} table")

    # table names come from the fixed schemas above, never from the caller
    columns = {
        name: (declared_type or "").upper()
        for _, name, declared_type, *_ in conn.execute(f"PRAGMA table_info({table})")
    }
    for column, expected_type in schema.items():
        element = f"{table}.{column}"
        if column not in columns:
            raise SchemaError(element, f"Invalid MBTiles file: Missing column '{element}'")
        if columns[column] != expected_type:
            raise SchemaError(
                element,
                f"Invalid MBTiles file: Column '{element}' should have type "
                f"{expected_type}, but instead has type {columns[column] or 'none'}",
            )


def check_schema(conn: sqlite3.Connection) -> None:
    check_table(conn, "tiles", TILES_SCHEMA)
    check_table(conn, "metadata", METADATA_SCHEMA)
    logger.debug("MBTiles schema check passed")
