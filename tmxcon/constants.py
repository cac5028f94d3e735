"""
Constants for the TMX format and the console targets.

This module contains the magic numbers shared by the decoder, the resolver
and the exporters.
"""

# GID flip flags (top 3 bits of a 32-bit global tile id)
GID_HORIZONTAL_FLIP = 0x80000000
GID_VERTICAL_FLIP = 0x40000000
GID_DIAGONAL_FLIP = 0x20000000
GID_FLIP_MASK = GID_HORIZONTAL_FLIP | GID_VERTICAL_FLIP | GID_DIAGONAL_FLIP
GID_BARE_MASK = 0xFFFFFFFF & ~GID_FLIP_MASK

# Size of one raw tile id in a base64 payload
GID_SIZE_BYTES = 4
UINT32_MAX = 0xFFFFFFFF

# GBA screenblock entry (text backgrounds)
GBA_TILE_INDEX_MASK = 0x03FF  # Bits 0-9: Tile index
GBA_HFLIP = 1 << 10           # Bit 10: Horizontal flip
GBA_VFLIP = 1 << 11           # Bit 11: Vertical flip

# Highest usable tile index per layer kind. One slot is kept free for the nil tile.
GBA_MAX_TILES_REGULAR = 511
GBA_MAX_TILES_AFFINE = 255

# Hardware background numbers a layer may be assigned to
GBA_BACKGROUNDS = range(4)

# File names
TMX_EXT = ".tmx"
LAYER_EXT = ".layer"
MANIFEST_EXT = ".map.json"

# Layer property keys
PROP_BITMAP = "Bitmap"
PROP_NIL_TILE = "NilTile"
PROP_COMPRESSION = "Compression"
PROP_AFFINE = "Affine"
PROP_BG = "BG"
