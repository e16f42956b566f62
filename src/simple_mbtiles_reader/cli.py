# %%
import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional, Tuple

from .config import Config
from .core import MBTiles
from .errors import MBTilesError

logger = logging.getLogger(__name__)

# %%
def parse_tile_coords(value: str) -> Tuple[int, int, int]:
    """Parse a `Z/X/Y` tile address, ignoring a trailing file extension"""
    parts = value.split('.')[0].split('/')
    if len(parts) != 3:
        raise ValueError(f"Expected Z/X/Y, got '{value}'")
    z, x, y = (int(p) for p in parts)
    return z, x, y

def run(config: Config) -> int:
    with MBTiles(config.mbtiles_file) as mbtiles:
        if config.tile:
            z, x, y = parse_tile_coords(config.tile)
            tile = mbtiles.get_tile(z, x, y)
            output = config.output or Path(f"{z}_{x}_{y}.{tile.format.value}")
            output.write_bytes(tile.data)
            logger.info(f"Wrote tile {z}/{x}/{y} ({len(tile.data)} bytes) to {output}")
            print(output)
        elif config.list_tiles:
            for tile in mbtiles:
                print(f"{tile.z}/{tile.x}/{tile.y} {tile.format.value} {len(tile.data)}")
        else:
            print(json.dumps(mbtiles.metadata.to_dict(), indent=2))
    return 0

# %%
def main(argv: Optional[List[str]] = None):
    parser = argparse.ArgumentParser(description="Simple MBTiles Reader")
    parser.add_argument("mbtiles_file", type=str, nargs='?', help="Path to MBTiles file")
    parser.add_argument("--tile", type=str, help="Extract the tile at Z/X/Y (XYZ addressing)")
    parser.add_argument("--output", type=str, help="Where to write the extracted tile (default: Z_X_Y.<format>)")
    parser.add_argument("--list", dest="list_tiles", action="store_true", help="List every tile in storage order")
    parser.add_argument("--log-level", type=str, default="WARNING", help="Logging level (default: WARNING)")
    args = parser.parse_args(argv)
    
    if not args.mbtiles_file:
        print("No mbtiles file specified")
        sys.exit(2)
    
    config = Config(
        mbtiles_file=Path(args.mbtiles_file),
        tile=args.tile,
        output=Path(args.output) if args.output else None,
        list_tiles=args.list_tiles,
        log_level=args.log_level.upper()
    )
    logging.basicConfig(level=config.log_level)
    
    try:
        sys.exit(run(config))
    except (MBTilesError, ValueError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

# %%
if __name__ == "__main__":
    main()
