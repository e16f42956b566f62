# %%
#|export
"""Parse the MBTiles `metadata` table into a complete metadata record.

Optional fields that are missing from the table (minzoom, maxzoom, bounds,
center and format) are derived from the tiles themselves, so a record returned
by `parse_metadata` always carries every required field.
"""
import copy
import json
import logging
import math
import sqlite3
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, Iterator, Mapping, Optional, Tuple

import mercantile

from .errors import MetadataError
from .tiles import flip_y
from .tiletype import sniff

logger = logging.getLogger(__name__)

Bounds = Tuple[float, float, float, float]
Center = Tuple[float, float, float]

WORLD_BOUNDS: Bounds = (-180.0, -90.0, 180.0, 90.0)
LAYER_TYPES = ("overlay", "baselayer")

ZOOM_KEYS = ("minzoom", "maxzoom")
# center may leave out its zoom
COORDINATE_KEYS = {"bounds": (4,), "center": (2, 3)}
STRING_KEYS = ("format", "attribution", "description", "version", "type")


@dataclass(frozen=True)
class MBTilesMetadata:
    name: str
    minzoom: int
    maxzoom: int
    bounds: Bounds
    center: Center
    format: Optional[str] = None
    scheme: str = "xyz"
    attribution: Optional[str] = None
    description: Optional[str] = None
    version: Optional[str] = None
    type: Optional[str] = None
    extra: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))

    def to_dict(self) -> Dict[str, Any]:
        """Flatten into one mapping: typed fields first, then extra keys in source order"""
        result: Dict[str, Any] = {"name": self.name}
        if self.format is not None:
            result["format"] = self.format
        result["scheme"] = self.scheme
        result["minzoom"] = self.minzoom
        result["maxzoom"] = self.maxzoom
        result["bounds"] = list(self.bounds)
        result["center"] = list(self.center)
        for key in ("attribution", "description", "version", "type"):
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        for key, value in self.extra.items():
            result.setdefault(key, copy.deepcopy(value))
        return result

    def __getitem__(self, key: str) -> Any:
        return self.to_dict()[key]

    def __contains__(self, key: object) -> bool:
        return key in self.to_dict()

    def __iter__(self) -> Iterator[str]:
        return iter(self.to_dict())

    def get(self, key: str, default: Any = None) -> Any:
        return self.to_dict().get(key, default)


# %%
def _invalid(name: str, value: Any) -> MetadataError:
    return MetadataError(name, f"Invalid MBTiles file: Invalid {name} metadata: {value!r}")


def parse_zoom(name: str, value: Any) -> int:
    if isinstance(value, bool):
        raise _invalid(name, value)
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    text = str(value).strip()
    try:
        return int(text, 10)
    except ValueError:
        pass
    # Whole numbers written as decimals, e.g. "14.0"
    try:
        number = float(text)
    except ValueError as e:
        raise _invalid(name, value) from e
    if not number.is_integer():
        raise _invalid(name, value)
    return int(number)


def parse_coordinates(name: str, value: Any) -> Tuple[float, ...]:
    """Parse `bounds` or `center` from a comma separated string or a JSON array"""
    parts = value.split(",") if isinstance(value, str) else value
    if not isinstance(parts, (list, tuple)) or len(parts) not in COORDINATE_KEYS[name]:
        raise _invalid(name, value)
    numbers = []
    for part in parts:
        if isinstance(part, bool):
            raise _invalid(name, value)
        try:
            number = float(part)
        except (TypeError, ValueError) as e:
            raise _invalid(name, value) from e
        if not math.isfinite(number):
            raise _invalid(name, value)
        numbers.append(number)
    return tuple(numbers)


def parse_json_row(value: Optional[str]) -> Dict[str, Any]:
    try:
        parsed = json.loads(value) if value is not None else None
    except ValueError as e:
        raise MetadataError("json", f"Invalid MBTiles file: Invalid json metadata: {e}") from e
    if not isinstance(parsed, dict):
        raise MetadataError("json", "Invalid MBTiles file: json metadata must be an object")
    return parsed


def coerce_value(name: str, value: Any) -> Any:
    """Apply the typed-field rules to a value that came from the json row"""
    if value is None:
        return None
    if name in ZOOM_KEYS:
        return parse_zoom(name, value)
    if name in COORDINATE_KEYS:
        return parse_coordinates(name, value)
    if name in STRING_KEYS and not isinstance(value, str):
        return str(value)
    return value


def read_metadata_rows(conn: sqlite3.Connection) -> Tuple[Dict[str, Any], bool]:
    """Read the metadata table into a single mapping.

    Returns the merged values and whether any `json` row was present. Later
    rows override earlier ones, except that fields from `json` rows only fill
    in keys that no named row sets.
    """
    named: Dict[str, Any] = {}
    from_json: Dict[str, Any] = {}
    has_json = False

    for name, value in conn.execute("SELECT name, value FROM metadata"):
        if name is None:
            continue
        if name == "json":
            # The json row lets nested and non-string values live in metadata
            has_json = True
            from_json = {**parse_json_row(value), **from_json}
        elif name in ZOOM_KEYS:
            named[name] = parse_zoom(name, value)
        elif name in COORDINATE_KEYS:
            named[name] = parse_coordinates(name, value)
        else:
            named[name] = value

    merged = {key: coerce_value(key, value) for key, value in from_json.items()}
    merged.update(named)
    return merged, has_json


# %%
def derive_zoom_range(conn: sqlite3.Connection) -> Tuple[Optional[int], Optional[int]]:
    return conn.execute("SELECT MIN(zoom_level), MAX(zoom_level) FROM tiles").fetchone()


def clamp(value: float, low: float, high: float) -> float:
    return min(max(value, low), high)


def derive_bounds(conn: sqlite3.Connection, zoom: int) -> Bounds:
    """Bounding box of the tiles stored at `zoom`, limited to the world extent"""
    min_x, min_y, max_x, max_y = conn.execute(
        "SELECT MIN(tile_column), MIN(tile_row), MAX(tile_column), MAX(tile_row) "
        "FROM tiles WHERE zoom_level = ?",
        (zoom,),
    ).fetchone()
    if min_x is None or min_y is None:
        logger.warning(f"No tiles at zoom {zoom} to derive bounds from, using the world extent")
        return WORLD_BOUNDS

    # Tile aligned, so a tileset holding only the zoom 0 tile always spans the world
    south_west = mercantile.bounds(min_x, flip_y(zoom, min_y), zoom)
    north_east = mercantile.bounds(max_x, flip_y(zoom, max_y), zoom)

    # Tilesets may contain tiles past the edge of the world
    west, south, east, north = WORLD_BOUNDS
    return (
        clamp(south_west.west, west, east),
        clamp(south_west.south, south, north),
        clamp(north_east.east, west, east),
        clamp(north_east.north, south, north),
    )


def derive_center(bounds: Bounds, minzoom: int, maxzoom: int) -> Center:
    west, south, east, north = bounds
    zoom_range = maxzoom - minzoom
    zoom = maxzoom if zoom_range <= 1 else math.floor(zoom_range * 0.5) + minzoom
    return ((east - west) / 2 + west, (north - south) / 2 + south, float(zoom))


def derive_format(conn: sqlite3.Connection) -> Optional[str]:
    row = conn.execute("SELECT tile_data FROM tiles WHERE tile_data IS NOT NULL LIMIT 1").fetchone()
    if row is None:
        return None
    tile_format = sniff(row[0])
    return tile_format.value if tile_format is not None else None


# %%
def parse_metadata(conn: sqlite3.Connection) -> MBTilesMetadata:
    values, has_json = read_metadata_rows(conn)

    name = values.pop("name", None)
    if not name:
        raise MetadataError("name", "Invalid MBTiles file: Missing name metadata")
    name = str(name)

    # Tiles are always handed out as XYZ, whatever the file claims
    stored_scheme = values.pop("scheme", None)
    if stored_scheme not in (None, "xyz"):
        logger.info(f"Ignoring stored scheme '{stored_scheme}', tiles are served as xyz")

    tile_format = values.pop("format", None)
    if tile_format == "pbf" and not has_json:
        raise MetadataError("json", "Invalid MBTiles file: Missing json metadata")

    minzoom = values.pop("minzoom", None)
    maxzoom = values.pop("maxzoom", None)
    if minzoom is None or maxzoom is None:
        min_level, max_level = derive_zoom_range(conn)
        if minzoom is None:
            if min_level is None:
                raise MetadataError("minzoom", "Invalid MBTiles file: No tiles to derive minzoom from")
            minzoom = min_level
            logger.info(f"Derived minzoom={minzoom} from tiles")
        if maxzoom is None:
            if max_level is None:
                raise MetadataError("maxzoom", "Invalid MBTiles file: No tiles to derive maxzoom from")
            maxzoom = max_level
            logger.info(f"Derived maxzoom={maxzoom} from tiles")

    bounds = values.pop("bounds", None)
    if bounds is None:
        bounds = derive_bounds(conn, minzoom)
        logger.info(f"Derived bounds={list(bounds)} from tiles at zoom {minzoom}")

    center = values.pop("center", None)
    if center is None:
        center = derive_center(bounds, minzoom, maxzoom)
        logger.info(f"Derived center={list(center)}")
    elif len(center) == 2:
        center = (*center, derive_center(bounds, minzoom, maxzoom)[2])
        logger.info(f"Derived center zoom={center[2]}")

    if tile_format is None:
        tile_format = derive_format(conn)
        if tile_format is not None:
            logger.info(f"Derived format={tile_format} from tile data")
        else:
            logger.warning("Could not determine tile format: no recognisable tile data")

    layer_type = values.pop("type", None)
    if layer_type is not None and layer_type not in LAYER_TYPES:
        logger.warning(f"Unexpected layer type '{layer_type}', expected one of {LAYER_TYPES}")

    return MBTilesMetadata(
        name=name,
        format=tile_format,
        minzoom=minzoom,
        maxzoom=maxzoom,
        bounds=bounds,
        center=center,
        attribution=values.pop("attribution", None),
        description=values.pop("description", None),
        version=values.pop("version", None),
        type=layer_type,
        extra=MappingProxyType(values),
    )
