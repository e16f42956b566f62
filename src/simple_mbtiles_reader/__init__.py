from .core import MBTiles, TileCursor, open
from .errors import (
    ClosedHandleError,
    InvalidTileDataError,
    MBTilesError,
    MetadataError,
    OpenError,
    SchemaError,
    TileNotFoundError,
)
from .metadata import MBTilesMetadata
from .tiles import Tile, flip_y
from .tiletype import TileFormat

__all__ = [
    "MBTiles",
    "TileCursor",
    "open",
    "MBTilesMetadata",
    "Tile",
    "TileFormat",
    "flip_y",
    "MBTilesError",
    "OpenError",
    "SchemaError",
    "MetadataError",
    "TileNotFoundError",
    "InvalidTileDataError",
    "ClosedHandleError",
]
