"""
GID resolution and the per-map decode pass.

A global id (GID) carries three flip flags in its top bits and a bare id that
falls into exactly one tileset's range. Tilesets are assumed to be sorted by
first_gid with non-overlapping ranges, as Tiled writes them; this is not
verified.
"""

from typing import List, Optional, Sequence, Tuple
from .constants import (
    GID_BARE_MASK,
    GID_DIAGONAL_FLIP,
    GID_HORIZONTAL_FLIP,
    GID_VERTICAL_FLIP,
)
from .errors import InvalidGID
from .models import NIL_TILE, Layer, LayerOptions, Map, ResolvedTile, Tileset
from .payload import decode_payload
from .logging_config import get_logger

logger = get_logger('resolver')


def resolve_gid(gid: int, tilesets: Sequence[Tileset]) -> ResolvedTile:
    """
    Resolve a raw GID to its tileset, local id and flip flags.

    Args:
        gid: Raw 32-bit tile id, flip flags included
        tilesets: The map's tilesets, in ascending first_gid order

    Returns:
        NIL_TILE for bare id 0, otherwise the resolved tile

    Raises:
        InvalidGID: If the bare id is below every tileset's first_gid
    """
    bare = gid & GID_BARE_MASK
    if bare == 0:
        return NIL_TILE

    # Last tileset starting at or below the id owns it
    for tileset in reversed(tilesets):
        if tileset.first_gid <= bare:
            return ResolvedTile(
                tileset=tileset,
                local_id=bare - tileset.first_gid,
                horizontal_flip=bool(gid & GID_HORIZONTAL_FLIP),
                vertical_flip=bool(gid & GID_VERTICAL_FLIP),
                diagonal_flip=bool(gid & GID_DIAGONAL_FLIP),
            )

    raise InvalidGID(f"Invalid GID {gid:#010x}: no tileset owns bare id {bare}")


def infer_tileset(tiles: Sequence[ResolvedTile]) -> Tuple[Optional[Tileset], bool]:
    """
    Find the single tileset a layer draws from.

    Returns:
        (tileset, empty): (tileset, False) if every non-nil tile uses one tileset,
        (None, True) if every tile is nil, (None, False) if tilesets are mixed
    """
    found: Optional[Tileset] = None
    for tile in tiles:
        if tile.nil:
            continue
        if found is None:
            found = tile.tileset
        elif tile.tileset is not found:
            return None, False

    if found is None:
        return None, True
    return found, False


def decode_layer(tmx_map: Map, layer: Layer) -> None:
    """
    Fill in a layer's derived fields: tiles, tileset, empty flag, options and nil tile.

    Raises:
        TmxFormatError: If the payload cannot be decoded or a GID is invalid
    """
    gids = decode_payload(layer.payload, layer.encoding, layer.compression, tmx_map.width, tmx_map.height)

    tiles: List[ResolvedTile] = [resolve_gid(gid, tmx_map.tilesets) for gid in gids]
    tileset, empty = infer_tileset(tiles)

    layer.tiles = tiles
    layer.tileset = tileset
    layer.empty = empty
    layer.options = LayerOptions.from_properties(layer.name, layer.properties)

    if layer.options.nil_tile is not None:
        layer.nil_tile = layer.options.nil_tile
    elif tileset is not None:
        layer.nil_tile = tileset.tile_count

    if tileset is not None:
        logger.debug(f"Layer '{layer.name}': tileset '{tileset.name}', nil tile {layer.nil_tile}")
    elif empty:
        logger.debug(f"Layer '{layer.name}': empty")
    else:
        logger.debug(f"Layer '{layer.name}': uses more than one tileset")


def decode_layers(tmx_map: Map) -> None:
    """Run the decode pass over every layer of a map. The first failure aborts."""
    for layer in tmx_map.layers:
        decode_layer(tmx_map, layer)
