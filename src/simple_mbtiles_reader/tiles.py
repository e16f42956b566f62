# %%
#|export
from dataclasses import dataclass
from typing import Optional, Tuple

from .errors import InvalidTileDataError
from .tiletype import TileFormat, sniff

TileRow = Tuple[int, int, int, Optional[bytes]]


def flip_y(zoom: int, y: int) -> int:
    """Convert between TMS and XYZ tile coordinates"""
    return (1 << zoom) - 1 - y


@dataclass(frozen=True)
class Tile:
    z: int
    x: int
    y: int
    data: bytes
    format: TileFormat


def tile_from_row(row: TileRow) -> Tile:
    """Build a Tile from a (zoom_level, tile_column, tile_row, tile_data) row"""
    z, x, tms_y, data = row
    # MBTiles rows are TMS
    y = flip_y(z, tms_y)
    if not data:
        raise InvalidTileDataError(z, x, y, "empty payload")
    tile_format = sniff(data)
    if tile_format is None:
        raise InvalidTileDataError(z, x, y, "unrecognised format")
    return Tile(z=z, x=x, y=y, data=bytes(data), format=tile_format)
