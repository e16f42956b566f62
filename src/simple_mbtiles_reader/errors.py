# %%
#|export
from pathlib import Path
from typing import Optional, Union


class MBTilesError(Exception):
    """Base class for every error raised while reading an MBTiles file"""


class OpenError(MBTilesError):
    """The file is missing, unreadable, or not a valid SQLite database"""

    def __init__(self, path: Optional[Union[str, Path]], message: str, corrupt: bool = False):
        self.path = path
        self.corrupt = corrupt
        super().__init__(message)


class SchemaError(MBTilesError):
    def __init__(self, element: str, message: str):
        self.element = element
        super().__init__(message)


class MetadataError(MBTilesError):
    def __init__(self, field: str, message: str):
        self.field = field
        super().__init__(message)


class TileNotFoundError(MBTilesError, LookupError):
    def __init__(self, z: int, x: int, y: int):
        self.z, self.x, self.y = z, x, y
        super().__init__(f"Tile not found: {z}/{x}/{y}")


class InvalidTileDataError(MBTilesError, ValueError):
    """The tile row exists but its payload is empty or not a known tile format"""

    def __init__(self, z: int, x: int, y: int, reason: str = ""):
        self.z, self.x, self.y = z, x, y
        self.reason = reason
        message = f"Invalid tile data for tile {z}/{x}/{y}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class ClosedHandleError(MBTilesError, RuntimeError):
    def __init__(self, message: str = "The MBTiles file has been closed"):
        super().__init__(message)
