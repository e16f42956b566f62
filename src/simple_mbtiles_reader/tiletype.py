# %%
#|export
"""Tile format detection from the leading bytes of a tile payload."""
from enum import Enum
from typing import Optional


class TileFormat(str, Enum):
    PNG = "png"
    JPG = "jpg"
    WEBP = "webp"
    PBF = "pbf"

    def __str__(self) -> str:
        return self.value


PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"
JPG_SIGNATURE = b"\xff\xd8\xff"
JPG_END = b"\xff\xd9"
GZIP_MAGIC = b"\x1f\x8b"
ZLIB_MAGIC = b"\x78\x9c"
# Tag of field 3 (layers, length-delimited) in an uncompressed vector tile
MVT_LAYER_TAG = 0x1A


def sniff(data: Optional[bytes]) -> Optional[TileFormat]:
    """Return the format of a tile payload, or None if it is not recognised"""
    if not data:
        return None
    if data[:8] == PNG_SIGNATURE:
        return TileFormat.PNG
    if data[:3] == JPG_SIGNATURE and data[-2:] == JPG_END:
        return TileFormat.JPG
    if data[:4] == b"RIFF" and data[8:12] == b"WEBP":
        return TileFormat.WEBP
    # Vector tiles are usually stored gzip or zlib compressed
    if data[:2] in (GZIP_MAGIC, ZLIB_MAGIC):
        return TileFormat.PBF
    # Uncompressed vector tiles, as written by mapbox_vector_tile.encode
    if data[0] == MVT_LAYER_TAG:
        return TileFormat.PBF
    return None
