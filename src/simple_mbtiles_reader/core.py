# %%
#|export
import asyncio
import logging
import sqlite3
from pathlib import Path
from typing import AsyncIterator, Iterator, Optional, Union

from .errors import ClosedHandleError, OpenError, TileNotFoundError
from .metadata import MBTilesMetadata, parse_metadata
from .schema import check_schema
from .tiles import Tile, flip_y, tile_from_row

logger = logging.getLogger(__name__)

Source = Union[str, Path, sqlite3.Connection]

GET_TILE_SQL = (
    "SELECT zoom_level, tile_column, tile_row, tile_data FROM tiles "
    "WHERE zoom_level = ? AND tile_column = ? AND tile_row = ?"
)
ALL_TILES_SQL = "SELECT zoom_level, tile_column, tile_row, tile_data FROM tiles"


def connect_readonly(db_path: Path) -> sqlite3.Connection:
    """Open an existing MBTiles file without ever creating or writing it"""
    if not db_path.is_file():
        raise OpenError(db_path, f"Unable to open MBTiles file {db_path}: file not found")
    try:
        return sqlite3.connect(f"{db_path.resolve().as_uri()}?mode=ro", uri=True)
    except sqlite3.Error as e:
        raise OpenError(db_path, f"Unable to open MBTiles file {db_path}: {e}") from e


class MBTiles:
    """Read-only view of an MBTiles file.

    Tiles are addressed with XYZ coordinates. The metadata is validated and
    completed once, when the file is opened.
    """

    def __init__(self, source: Source):
        if isinstance(source, sqlite3.Connection):
            self.db_path: Optional[Path] = None
            self._conn = source
        else:
            self.db_path = Path(source)
            self._conn = connect_readonly(self.db_path)
        self._closed = False

        try:
            self._metadata = self._validate()
        except Exception:
            self._conn.close()
            self._closed = True
            raise
        logger.info(f"Opened MBTiles '{self._metadata.name}' from {self.db_path or 'connection'}")

    def _validate(self) -> MBTilesMetadata:
        try:
            # Forces SQLite to read the header before any schema checks
            self._conn.execute("SELECT COUNT(*) FROM sqlite_master").fetchone()
            check_schema(self._conn)
            return parse_metadata(self._conn)
        except sqlite3.ProgrammingError as e:
            # e.g. an adopted connection that was already closed
            raise OpenError(self.db_path, f"Unable to open MBTiles connection: {e}") from e
        except sqlite3.DatabaseError as e:
            raise OpenError(self.db_path, f"MBTiles file is corrupt: {e}", corrupt=True) from e

    def _connection(self) -> sqlite3.Connection:
        if self._closed:
            raise ClosedHandleError()
        return self._conn

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def metadata(self) -> MBTilesMetadata:
        self._connection()
        return self._metadata

    def get_tile(self, z: int, x: int, y: int) -> Tile:
        """Fetch the tile at XYZ coordinates z/x/y"""
        conn = self._connection()
        if z < 0:
            raise TileNotFoundError(z, x, y)
        tms_y = flip_y(z, y)
        logger.debug(f"Tile request - XYZ:{z}/{x}/{y} -> TMS:{z}/{x}/{tms_y}")
        try:
            row = conn.execute(GET_TILE_SQL, (z, x, tms_y)).fetchone()
        except OverflowError:
            # Outside SQLite's integer range, so no row can match
            row = None
        if row is None:
            raise TileNotFoundError(z, x, y)
        return tile_from_row(row)

    def __iter__(self) -> "TileCursor":
        return TileCursor(self)

    def __len__(self) -> int:
        return self._connection().execute("SELECT COUNT(*) FROM tiles").fetchone()[0]

    def to_stream(self) -> AsyncIterator[Tile]:
        """Async iterator over all tiles, yielding to the event loop between tiles"""
        return _stream_tiles(TileCursor(self))

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._conn.close()
        logger.info(f"Closed MBTiles {self.db_path or 'connection'}")

    def __enter__(self) -> "MBTiles":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def __repr__(self) -> str:
        state = "closed" if self._closed else "open"
        return f"<MBTiles {self.db_path or 'connection'} ({state})>"


class TileCursor(Iterator[Tile]):
    """One full scan of the tiles table in storage order.

    Every cursor runs its own query, so several can be active on the same
    MBTiles at once.
    """

    def __init__(self, mbtiles: MBTiles):
        self._mbtiles = mbtiles
        self._rows = mbtiles._connection().execute(ALL_TILES_SQL)
        self._done = False

    def __iter__(self) -> "TileCursor":
        return self

    def __next__(self) -> Tile:
        if self._done:
            raise StopIteration
        self._mbtiles._connection()
        row = self._rows.fetchone()
        if row is None:
            self._done = True
            self._rows.close()
            raise StopIteration
        return tile_from_row(row)


async def _stream_tiles(cursor: TileCursor) -> AsyncIterator[Tile]:
    for tile in cursor:
        yield tile
        await asyncio.sleep(0)


def open(source: Source) -> MBTiles:
    """Open an MBTiles file path, or adopt an open sqlite3 connection"""
    return MBTiles(source)
