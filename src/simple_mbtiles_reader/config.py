# %%
#|export
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

@dataclass
class Config:
    mbtiles_file: Path
    tile: Optional[str] = None
    output: Optional[Path] = None
    list_tiles: bool = False
    log_level: str = "WARNING"
