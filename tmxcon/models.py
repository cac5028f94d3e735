"""
Data model for decoded TMX maps.

The reader fills in the raw fields (names, sizes, encoded payloads,
properties); the decode pass in resolver.py fills in the derived ones
(resolved tiles, the layer's tileset, empty flag, nil tile). Nothing is
mutated after that.
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, List, NamedTuple, Optional, Union
from .constants import (
    GBA_BACKGROUNDS,
    PROP_AFFINE,
    PROP_BG,
    PROP_BITMAP,
    PROP_NIL_TILE,
)
from .errors import PropertyError, PropertyUnavailable, UnknownCompression, UnknownEncoding
from .logging_config import get_logger
from .properties import Properties, get_property

logger = get_logger('models')


class Encoding(Enum):
    """How a layer's tile ids are stored in the <data> element."""
    INLINE = "inline"  # <tile gid="..."/> children
    CSV = "csv"
    BASE64 = "base64"

    @classmethod
    def from_name(cls, name: Optional[str]) -> 'Encoding':
        """Parse a <data encoding="..."> value. A missing attribute means inline."""
        if not name or name == "xml":
            return cls.INLINE
        try:
            return cls(name)
        except ValueError:
            raise UnknownEncoding(f"Invalid encoding scheme: '{name}'") from None


class Compression(Enum):
    """Compression applied to base64 layer data."""
    NONE = "none"
    GZIP = "gzip"
    ZLIB = "zlib"

    @classmethod
    def from_name(cls, name: Optional[str]) -> 'Compression':
        """Parse a <data compression="..."> value. A missing attribute means none."""
        if not name:
            return cls.NONE
        try:
            return cls(name)
        except ValueError:
            raise UnknownCompression(f"Invalid compression method: '{name}'") from None


@dataclass
class TilesetImage:
    """Image reference of a spritesheet tileset."""
    source: str
    trans: Optional[str] = None
    width: Optional[int] = None
    height: Optional[int] = None
    path: Optional[Path] = None  # source resolved against the TMX/TSX directory


@dataclass(eq=False)
class Tileset:
    """
    A tileset owning the global ids [first_gid, first_gid + tile_count).

    Tilesets compare by identity: two tilesets with the same fields loaded
    into one map are still different tilesets.
    """
    first_gid: int
    name: str = ""
    tile_count: int = 0
    tile_width: int = 0
    tile_height: int = 0
    spacing: int = 0
    margin: int = 0
    columns: int = 0
    source: Optional[str] = None  # TSX path, if external
    image: Optional[TilesetImage] = None
    properties: Properties = field(default_factory=Properties)
    tile_properties: Dict[int, Properties] = field(default_factory=dict)

    @property
    def end_gid(self) -> int:
        """One past the last global id owned by this tileset."""
        return self.first_gid + self.tile_count

    def __repr__(self) -> str:
        return f"Tileset(name={self.name!r}, first_gid={self.first_gid}, tile_count={self.tile_count})"


@dataclass(frozen=True)
class ResolvedTile:
    """
    A grid cell: a tile of one tileset with its flip flags, or nil.

    Use NIL_TILE for empty cells rather than building nil tiles by hand.
    """
    tileset: Optional[Tileset] = None
    local_id: int = 0
    horizontal_flip: bool = False
    vertical_flip: bool = False
    diagonal_flip: bool = False
    nil: bool = False


NIL_TILE = ResolvedTile(nil=True)


@dataclass(frozen=True)
class LayerOptions:
    """Export switches read once from a layer's properties."""
    bitmap: bool = False
    affine: bool = False
    nil_tile: Optional[int] = None  # None: use the tileset's tile count
    bg: Optional[int] = None

    @classmethod
    def from_properties(cls, layer_name: str, properties: Properties) -> 'LayerOptions':
        """
        Read Bitmap, Affine, NilTile and BG.

        Missing properties take their defaults. Properties defined more than
        once, or with values that cannot be used, also fall back to the
        default, with a warning.
        """
        return cls(
            bitmap=_flag(layer_name, properties, PROP_BITMAP),
            affine=_flag(layer_name, properties, PROP_AFFINE),
            nil_tile=_integer(layer_name, properties, PROP_NIL_TILE, range(0x10000)),
            bg=_integer(layer_name, properties, PROP_BG, GBA_BACKGROUNDS),
        )


def _lookup(layer_name: str, properties: Properties, name: str) -> Optional[str]:
    try:
        return get_property(properties, name)
    except PropertyUnavailable:
        return None
    except PropertyError as e:
        logger.warning(f"Layer '{layer_name}': {e}, using default")
        return None


def _flag(layer_name: str, properties: Properties, name: str) -> bool:
    return _lookup(layer_name, properties, name) == "true"


def _integer(layer_name: str, properties: Properties, name: str, valid: range) -> Optional[int]:
    value = _lookup(layer_name, properties, name)
    if value is None:
        return None
    try:
        number = int(value.strip(), 10)
    except ValueError:
        number = None
    if number is None or number not in valid:
        logger.warning(f"Layer '{layer_name}': ignoring {name}={value!r}")
        return None
    return number


@dataclass(eq=False)
class Layer:
    """
    A tile layer.

    payload holds the <data> text for csv/base64 layers, or the list of ids
    read from <tile> children for inline layers.
    """
    name: str
    width: int
    height: int
    encoding: Encoding = Encoding.INLINE
    compression: Compression = Compression.NONE
    payload: Union[bytes, List[int]] = b""
    properties: Properties = field(default_factory=Properties)
    opacity: float = 1.0
    visible: bool = True
    options: LayerOptions = field(default_factory=LayerOptions)

    # Derived by the decode pass
    tiles: List[ResolvedTile] = field(default_factory=list)
    tileset: Optional[Tileset] = None
    empty: bool = True
    nil_tile: Optional[int] = None

    @property
    def mixed(self) -> bool:
        """True if the layer draws from more than one tileset."""
        return self.tileset is None and not self.empty


class Point(NamedTuple):
    x: float
    y: float


@dataclass
class MapObject:
    """An object of an object group."""
    id: int = 0
    name: str = ""
    type: str = ""
    x: float = 0.0
    y: float = 0.0
    width: float = 0.0
    height: float = 0.0
    gid: int = 0
    visible: bool = True
    properties: Properties = field(default_factory=Properties)
    polygon: Optional[List[Point]] = None
    polyline: Optional[List[Point]] = None


@dataclass
class ObjectGroup:
    name: str = ""
    color: str = ""
    opacity: float = 1.0
    visible: bool = True
    properties: Properties = field(default_factory=Properties)
    objects: List[MapObject] = field(default_factory=list)


@dataclass
class Map:
    """A TMX map: grid size, tilesets in firstgid order, layers and objects."""
    width: int
    height: int
    tile_width: int = 0
    tile_height: int = 0
    version: str = ""
    orientation: str = "orthogonal"
    properties: Properties = field(default_factory=Properties)
    tilesets: List[Tileset] = field(default_factory=list)
    layers: List[Layer] = field(default_factory=list)
    object_groups: List[ObjectGroup] = field(default_factory=list)
    path: Optional[Path] = None

    @property
    def cell_count(self) -> int:
        return self.width * self.height
