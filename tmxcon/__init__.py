"""
tmxcon - Tiled TMX to console tile map converter

Decodes the tile layers of TMX maps (csv, base64, gzip, zlib), resolves
global tile ids against the map's tilesets and exports each layer as a
console-native tile map binary, optionally compressed with the GBA BIOS
formats.
"""

__version__ = "0.1.0"

from .errors import TmxconError
from .exporter import LayerExporter
from .models import NIL_TILE, Layer, Map, ResolvedTile, Tileset
from .resolver import infer_tileset, resolve_gid
from .targets import ExportTarget, GBATarget, get_target
from .tmx_reader import read_tmx
