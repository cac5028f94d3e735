"""
Export targets - one class per console describing its tile map entries.

A target tells the exporter how many tiles a layer may use, how a resolved
tile becomes a screenblock entry and in which byte order entries are
written. New consoles add a subclass and a TARGETS entry; the exporter does
not change.
"""

from abc import ABC, abstractmethod
from typing import Dict, Type
from .constants import (
    GBA_HFLIP,
    GBA_MAX_TILES_AFFINE,
    GBA_MAX_TILES_REGULAR,
    GBA_TILE_INDEX_MASK,
    GBA_VFLIP,
)
from .errors import EntryOverflow, UnknownTarget
from .models import Layer, Map, ResolvedTile


class ExportTarget(ABC):
    """Capabilities of a target console."""

    name: str = ""

    # struct byte order prefix: '<' little endian, '>' big endian
    byte_order: str = '<'

    @abstractmethod
    def max_tiles(self, tmx_map: Map, layer: Layer) -> int:
        """Maximum number of tiles a layer's tileset may hold."""

    @abstractmethod
    def entry_format(self, tmx_map: Map, layer: Layer) -> str:
        """struct format character of one entry ('B', 'H', ...)."""

    @abstractmethod
    def tile_entry(self, tmx_map: Map, layer: Layer, tile: ResolvedTile) -> int:
        """Convert a resolved tile (or nil) to the target's entry value."""

    def entry_size(self, tmx_map: Map, layer: Layer) -> int:
        return {'B': 1, 'H': 2, 'I': 4}[self.entry_format(tmx_map, layer)]


class GBATarget(ExportTarget):
    """
    Game Boy Advance backgrounds.

    Regular (text) layers use 16-bit entries: bits 0-9 tile index, bit 10
    horizontal flip, bit 11 vertical flip. Affine layers (Affine=true) use
    8-bit entries without flip bits. Diagonal flips cannot be represented
    and are dropped. The palette bank bits 12-15 are left at 0.
    """

    name = "gba"
    byte_order = '<'

    def max_tiles(self, tmx_map: Map, layer: Layer) -> int:
        # One index is kept for the nil tile
        if layer.options.affine:
            return GBA_MAX_TILES_AFFINE
        return GBA_MAX_TILES_REGULAR

    def entry_format(self, tmx_map: Map, layer: Layer) -> str:
        if layer.options.affine:
            return 'B'
        return 'H'

    def tile_entry(self, tmx_map: Map, layer: Layer, tile: ResolvedTile) -> int:
        affine = layer.options.affine
        limit = 0xFF if affine else GBA_TILE_INDEX_MASK

        if tile.nil:
            if layer.nil_tile > (0xFF if affine else 0xFFFF):
                raise EntryOverflow(f"Layer '{layer.name}': nil tile {layer.nil_tile} does not fit the entry")
            return layer.nil_tile

        if tile.local_id > limit:
            raise EntryOverflow(
                f"Layer '{layer.name}': tile {tile.local_id} of '{tile.tileset.name}' exceeds index {limit}"
            )

        entry = tile.local_id
        if affine:
            return entry
        if tile.horizontal_flip:
            entry |= GBA_HFLIP
        if tile.vertical_flip:
            entry |= GBA_VFLIP
        return entry


TARGETS: Dict[str, Type[ExportTarget]] = {
    GBATarget.name: GBATarget,
}


def get_target(name: str) -> ExportTarget:
    """
    Create the export target registered under a console name.

    Raises:
        UnknownTarget: If no target has that name
    """
    target_class = TARGETS.get(name.lower())
    if target_class is None:
        raise UnknownTarget(f"No such console: '{name}' (available: {', '.join(TARGETS)})")
    return target_class()
