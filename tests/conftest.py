# %% [markdown]
"""
Shared fixtures: builders for temporary MBTiles files and sample tile payloads.
"""

# %%
import gzip
import sqlite3
from pathlib import Path
from typing import Callable, Iterable, Optional, Sequence, Tuple

import mapbox_vector_tile
import pytest
from shapely.geometry import Point

TILES_SQL = "CREATE TABLE tiles (zoom_level integer, tile_column integer, tile_row integer, tile_data blob)"
METADATA_SQL = "CREATE TABLE metadata (name text, value text)"

PNG_TILE = b"\x89PNG\r\n\x1a\n\x00\x00\x00\rIHDR" + bytes(17)
JPG_TILE = b"\xff\xd8\xff\xe0\x00\x10JFIF\x00\x01\x01\x00\xff\xd9"
WEBP_TILE = b"RIFF\x1a\x00\x00\x00WEBPVP8 \x0e\x00\x00\x00"

MetadataRows = Sequence[Tuple[str, Optional[str]]]
TileRows = Iterable[Tuple[int, int, int, Optional[bytes]]]

# %%
def create_dummy_vector_tile() -> bytes:
    """Create a simple vector tile with a single point feature"""
    layers = [{
        "name": "test_layer",
        "features": [{
            "geometry": Point(0, 0),
            "properties": {"name": "test_point"},
        }],
    }]
    return mapbox_vector_tile.encode(layers)


def build_mbtiles(
    path: Path,
    metadata: MetadataRows = (("name", "test_tiles"),),
    tiles: TileRows = (),
    tiles_sql: Optional[str] = TILES_SQL,
    metadata_sql: Optional[str] = METADATA_SQL,
) -> Path:
    """Write an MBTiles file; tiles are (zoom_level, tile_column, tms tile_row, tile_data)"""
    metadata, tiles = list(metadata), list(tiles)
    conn = sqlite3.connect(str(path))
    try:
        if tiles_sql:
            conn.execute(tiles_sql)
        if metadata_sql:
            conn.execute(metadata_sql)
        if metadata_sql and metadata:
            conn.executemany("INSERT INTO metadata (name, value) VALUES (?, ?)", metadata)
        if tiles_sql and tiles:
            conn.executemany(
                "INSERT INTO tiles (zoom_level, tile_column, tile_row, tile_data) VALUES (?, ?, ?, ?)",
                tiles,
            )
        conn.commit()
    finally:
        conn.close()
    return path

# %%
@pytest.fixture
def vector_tile() -> bytes:
    return create_dummy_vector_tile()


@pytest.fixture
def make_mbtiles(tmp_path) -> Callable[..., Path]:
    """Factory building a fresh MBTiles file in the test's temp directory"""
    counter = iter(range(1000))

    def _make(**kwargs) -> Path:
        return build_mbtiles(tmp_path / f"test_{next(counter)}.mbtiles", **kwargs)

    return _make


@pytest.fixture
def raster_mbtiles(make_mbtiles) -> Path:
    """Raster tileset with two zoom-1 tiles stored in TMS rows 0 and 1"""
    return make_mbtiles(
        metadata=[("name", "raster"), ("format", "png")],
        tiles=[
            (1, 0, 0, PNG_TILE),
            (1, 0, 1, JPG_TILE),
            (2, 3, 1, WEBP_TILE),
        ],
    )


@pytest.fixture
def vector_mbtiles(make_mbtiles, vector_tile) -> Path:
    return make_mbtiles(
        metadata=[
            ("name", "test_tiles"),
            ("format", "pbf"),
            ("json", '{"vector_layers": [{"id": "test_layer", "fields": {"name": "String"}}]}'),
            ("version", "2"),
        ],
        tiles=[
            (0, 0, 0, vector_tile),
            (1, 1, 1, gzip.compress(vector_tile)),
        ],
    )
