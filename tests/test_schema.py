# %% [markdown]
"""
Structural checks run when an MBTiles file is opened.
"""

# %%
import sqlite3

import pytest

from simple_mbtiles_reader import MBTiles, SchemaError
from simple_mbtiles_reader.schema import check_schema

from conftest import PNG_TILE

METADATA = [("name", "schema"), ("format", "png")]

# %%
def test_missing_tiles_table(make_mbtiles):
    path = make_mbtiles(metadata=METADATA, tiles_sql=None)
    with pytest.raises(SchemaError, match="tiles") as excinfo:
        MBTiles(path)
    assert excinfo.value.element == "tiles"


def test_missing_metadata_table(make_mbtiles):
    path = make_mbtiles(metadata_sql=None, tiles=[(0, 0, 0, PNG_TILE)])
    with pytest.raises(SchemaError) as excinfo:
        MBTiles(path)
    assert excinfo.value.element == "metadata"


def test_empty_database_file(tmp_path):
    path = tmp_path / "empty.mbtiles"
    path.write_bytes(b"")
    with pytest.raises(SchemaError) as excinfo:
        MBTiles(path)
    assert excinfo.value.element == "tiles"


def test_missing_column(make_mbtiles):
    path = make_mbtiles(
        metadata=METADATA,
        tiles_sql="CREATE TABLE tiles (zoom_level integer, tile_column integer, tile_row integer)",
    )
    with pytest.raises(SchemaError, match="tiles.tile_data") as excinfo:
        MBTiles(path)
    assert excinfo.value.element == "tiles.tile_data"


def test_wrong_column_type(make_mbtiles):
    path = make_mbtiles(
        metadata=METADATA,
        tiles_sql="CREATE TABLE tiles (zoom_level INTEGER, tile_column INTEGER, tile_row TEXT, tile_data BLOB)",
    )
    with pytest.raises(SchemaError) as excinfo:
        MBTiles(path)
    assert excinfo.value.element == "tiles.tile_row"
    assert "INTEGER" in str(excinfo.value)


def test_wrong_metadata_column_type(make_mbtiles):
    path = make_mbtiles(
        metadata=METADATA,
        metadata_sql="CREATE TABLE metadata (name TEXT, value BLOB)",
        tiles=[(0, 0, 0, PNG_TILE)],
    )
    with pytest.raises(SchemaError) as excinfo:
        MBTiles(path)
    assert excinfo.value.element == "metadata.value"


def test_untyped_column(make_mbtiles):
    path = make_mbtiles(
        metadata=METADATA,
        tiles_sql="CREATE TABLE tiles (zoom_level INTEGER, tile_column INTEGER, tile_row INTEGER, tile_data)",
    )
    with pytest.raises(SchemaError) as excinfo:
        MBTiles(path)
    assert excinfo.value.element == "tiles.tile_data"


def test_extra_columns_and_upper_case_types(make_mbtiles):
    path = make_mbtiles(
        metadata=METADATA,
        tiles_sql=(
            "CREATE TABLE tiles (zoom_level INTEGER, tile_column INTEGER, tile_row INTEGER, "
            "tile_data BLOB, tile_id TEXT)"
        ),
        metadata_sql="CREATE TABLE metadata (name TEXT, value TEXT, comment TEXT)",
    )
    conn = sqlite3.connect(str(path))
    conn.execute("INSERT INTO tiles (zoom_level, tile_column, tile_row, tile_data) VALUES (0, 0, 0, ?)", (PNG_TILE,))
    conn.commit()
    conn.close()

    with MBTiles(path) as mbtiles:
        assert mbtiles.get_tile(0, 0, 0).data == PNG_TILE


def test_deduplicated_tiles_view(tmp_path):
    """Files that store tiles as a view over map/images are accepted"""
    path = tmp_path / "dedup.mbtiles"
    conn = sqlite3.connect(str(path))
    conn.executescript("""
        CREATE TABLE metadata (name text, value text);
        CREATE TABLE map (zoom_level INTEGER, tile_column INTEGER, tile_row INTEGER, tile_id TEXT);
        CREATE TABLE images (tile_data BLOB, tile_id TEXT);
        CREATE VIEW tiles AS
            SELECT map.zoom_level AS zoom_level, map.tile_column AS tile_column,
                   map.tile_row AS tile_row, images.tile_data AS tile_data
            FROM map JOIN images ON images.tile_id = map.tile_id;
    """)
    conn.execute("INSERT INTO metadata VALUES ('name', 'dedup')")
    conn.execute("INSERT INTO images VALUES (?, 'a')", (PNG_TILE,))
    conn.executemany("INSERT INTO map VALUES (1, ?, ?, 'a')", [(0, 0), (1, 1)])
    conn.commit()
    conn.close()

    with MBTiles(path) as mbtiles:
        assert mbtiles.metadata.format == "png"
        assert len(list(mbtiles)) == 2


def test_check_schema_directly(raster_mbtiles):
    conn = sqlite3.connect(str(raster_mbtiles))
    try:
        check_schema(conn)
    finally:
        conn.close()
