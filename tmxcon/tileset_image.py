"""
Tileset image inspection.

Old TMX files omit the tilecount attribute, so the tile count may have to be
derived from the spritesheet size. The manifest also reports how many bits
per pixel a tileset needs on the GBA (4bpp for up to 16 colors, 8bpp for up
to 256).
"""

from typing import Optional, Tuple
from PIL import Image
from .models import Tileset
from .logging_config import get_logger

logger = get_logger('tileset_image')


def image_size(tileset: Tileset) -> Optional[Tuple[int, int]]:
    """
    Get the spritesheet size in pixels.

    Uses the width/height declared in the TMX when present, otherwise opens
    the image.

    Returns:
        (width, height), or None if the tileset has no readable image
    """
    image = tileset.image
    if image is None:
        return None

    if image.width and image.height:
        return image.width, image.height

    if image.path is None or not image.path.exists():
        logger.warning(f"Tileset '{tileset.name}': image {image.source} not found")
        return None

    # Image.open only reads the header; no pixel data is decoded here.
    with Image.open(image.path) as img:
        return img.size


def count_tiles(tileset: Tileset) -> int:
    """
    Count the tiles of a spritesheet tileset from its image size.

    Returns:
        Number of tiles, or 0 if the image or tile size is unknown
    """
    size = image_size(tileset)
    if size is None or tileset.tile_width <= 0 or tileset.tile_height <= 0:
        return 0

    width, height = size
    margin, spacing = tileset.margin, tileset.spacing
    columns = (width - 2 * margin + spacing) // (tileset.tile_width + spacing)
    rows = (height - 2 * margin + spacing) // (tileset.tile_height + spacing)
    return max(columns, 0) * max(rows, 0)


def detect_bpp(tileset: Tileset) -> Optional[int]:
    """
    Determine the GBA color depth a tileset needs.

    Indexed images are judged by the highest palette index in use, other
    images by their number of distinct colors.

    Returns:
        4, 8, or None if the image is missing or has more than 256 colors
    """
    image = tileset.image
    if image is None or image.path is None or not image.path.exists():
        return None

    with Image.open(image.path) as img:
        if img.mode == 'P':
            _, hi = img.getextrema()
            colors = hi + 1
        else:
            found = img.getcolors(maxcolors=256)
            if found is None:
                logger.warning(f"Tileset '{tileset.name}' has more than 256 colors")
                return None
            colors = len(found)

    if colors <= 16:
        return 4
    return 8
