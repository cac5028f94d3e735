"""
Exception types raised while loading TMX maps and exporting layers.

Every failure here is fatal to the file being processed; the CLI logs it and
moves on to the next file.
"""


class TmxconError(Exception):
    """Base class for all tmxcon errors."""


# =============================================================================
# Format errors (structurally invalid input, abort the current map)
# =============================================================================

class TmxFormatError(TmxconError, ValueError):
    """The map file cannot be decoded."""


class UnknownEncoding(TmxFormatError):
    """The layer data uses an encoding other than inline, csv or base64."""


class UnknownCompression(TmxFormatError):
    """The layer data uses a compression other than gzip or zlib."""


class InvalidLength(TmxFormatError):
    """The decoded layer data does not cover exactly width*height tiles."""


class MalformedInteger(TmxFormatError):
    """A CSV token is not an unsigned 32-bit decimal integer."""


class InvalidGID(TmxFormatError):
    """A global tile id is smaller than every tileset's first gid."""


class MalformedPoints(TmxFormatError):
    """A polygon or polyline point string is not a list of x,y pairs."""


class InvalidTileset(TmxFormatError):
    """A tileset element (or its external TSX file) is unusable."""


# =============================================================================
# Property errors
# =============================================================================

class PropertyError(TmxconError):
    """A property lookup did not yield exactly one value."""


class PropertyUnavailable(PropertyError):
    """The property does not exist."""


class PropertyNotUnique(PropertyError):
    """The property is defined more than once."""


# =============================================================================
# Export errors
# =============================================================================

class ExportError(TmxconError):
    """A layer cannot be exported to the target console."""


class MultipleTilesets(ExportError):
    """A layer must use tiles from only one tileset."""


class EmptyLayer(ExportError):
    """The layer is empty; its tileset cannot be determined."""


class TooManyTiles(ExportError):
    """The layer's tileset has more tiles than the target can address."""


class InvalidCompressionMethod(ExportError):
    """The requested compression method is not in the registry."""


class WrongFileExtension(ExportError):
    """Input files must have the .tmx extension."""


class UnknownTarget(ExportError):
    """No export target is registered under the requested console name."""


class EntryOverflow(ExportError):
    """A tile index or nil tile does not fit the target's entry width."""


class DuplicateOutput(ExportError):
    """Two layers of a map would be written to the same file."""


# =============================================================================
# Compression errors
# =============================================================================

class CompressionError(TmxconError):
    """The data cannot be represented in the selected compression format."""
