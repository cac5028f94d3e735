"""
Layer exporter - writes each tile layer of a map as a console tile map binary.

Every layer goes to its own file, <map>.<layer>.layer, holding either one
entry per cell (indexed mode) or one presence bit per cell (Bitmap=true),
optionally wrapped in a GBA BIOS compression format (Compression=<method>).

Layer data is fully encoded before its file is opened, so a layer that fails
a check leaves no file behind. Layers are independent: a failure on one layer
does not remove files already written for earlier layers.
"""

import struct
from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Union
from .compression import CompressionMethod, Compressor, get_compression_method
from .constants import PROP_COMPRESSION, TMX_EXT
from .errors import (
    DuplicateOutput,
    EmptyLayer,
    MultipleTilesets,
    PropertyUnavailable,
    TooManyTiles,
    WrongFileExtension,
)
from .models import Layer, Map, ResolvedTile
from .properties import get_property
from .targets import ExportTarget
from .tileset_image import detect_bpp
from .tmx_reader import read_tmx
from .utils import layer_output_path, manifest_output_path, save_json
from .logging_config import get_logger

logger = get_logger('exporter')


def pack_bitmap(tiles: Sequence[ResolvedTile]) -> bytes:
    """
    Pack one presence bit per cell, 8 cells per byte.

    Cell 8*i + j sets bit j of byte i; the last byte is zero padded.
    """
    out = bytearray((len(tiles) + 7) // 8)
    for index, tile in enumerate(tiles):
        if not tile.nil:
            out[index >> 3] |= 1 << (index & 7)
    return bytes(out)


def encode_entries(target: ExportTarget, tmx_map: Map, layer: Layer) -> bytes:
    """Encode every cell with the target's entry format and byte order."""
    entry = struct.Struct(target.byte_order + target.entry_format(tmx_map, layer))
    out = bytearray()
    for tile in layer.tiles:
        out += entry.pack(target.tile_entry(tmx_map, layer, tile))
    return bytes(out)


def check_layer(target: ExportTarget, tmx_map: Map, layer: Layer) -> None:
    """
    Verify a layer can be exported in indexed mode.

    Raises:
        EmptyLayer: If every cell is nil
        MultipleTilesets: If the layer uses more than one tileset
        TooManyTiles: If the tileset is larger than the target allows
    """
    if layer.tileset is None:
        if layer.empty:
            raise EmptyLayer(f"Layer '{layer.name}' is empty; tileset cannot be determined")
        raise MultipleTilesets(f"Layer '{layer.name}' must use tiles from only one tileset")

    max_tiles = target.max_tiles(tmx_map, layer)
    if layer.tileset.tile_count > max_tiles:
        raise TooManyTiles(
            f"Layer '{layer.name}': tileset '{layer.tileset.name}' has "
            f"{layer.tileset.tile_count} tiles, at most {max_tiles} allowed"
        )


def layer_compression(layer: Layer) -> Optional[CompressionMethod]:
    """
    Compression method requested by a layer's Compression property.

    Raises:
        InvalidCompressionMethod: If the method is not in the registry
        PropertyNotUnique: If Compression is defined more than once
    """
    try:
        name = get_property(layer.properties, PROP_COMPRESSION)
    except PropertyUnavailable:
        return None
    if not name:
        return None
    return get_compression_method(name)


def check_destinations(layers: Sequence[Layer], destinations: Sequence[Path]) -> None:
    """
    Make sure every layer gets a file of its own.

    Raises:
        DuplicateOutput: If two layers share a name, or their names sanitize
            to the same file name
    """
    owners: Dict[Path, str] = {}
    for layer, destination in zip(layers, destinations):
        if destination in owners:
            raise DuplicateOutput(
                f"Layers '{owners[destination]}' and '{layer.name}' would both be written to {destination.name}"
            )
        owners[destination] = layer.name


class LayerExporter:
    """Exports TMX maps layer by layer for one target console."""

    def __init__(
        self,
        target: ExportTarget,
        output_dir: Optional[Path] = None,
        jobs: int = 1,
        manifest: bool = False
    ):
        """
        Args:
            target: Console to export for
            output_dir: Directory for output files (default: beside each map)
            jobs: Number of layers exported in parallel
            manifest: Also write a <map>.map.json manifest
        """
        self.target = target
        self.output_dir = Path(output_dir) if output_dir is not None else None
        self.jobs = max(1, jobs)
        self.manifest = manifest

    def export_file(self, filename: Union[str, Path]) -> List[Path]:
        """
        Load a .tmx file and export all of its layers.

        Returns:
            Paths of the written files

        Raises:
            WrongFileExtension: If the file is not a .tmx file
        """
        path = Path(filename)
        if path.suffix != TMX_EXT:
            raise WrongFileExtension(f"{path}: the file extension must be {TMX_EXT}")

        tmx_map = read_tmx(path)
        return self.export_map(tmx_map)

    def export_map(self, tmx_map: Map) -> List[Path]:
        """
        Export every layer of a decoded map.

        Returns:
            Paths of the written files, in layer order (manifest last)
        """
        map_path = tmx_map.path or Path("map.tmx")
        if self.output_dir is not None:
            self.output_dir.mkdir(parents=True, exist_ok=True)

        destinations = [layer_output_path(map_path, layer.name, self.output_dir) for layer in tmx_map.layers]
        check_destinations(tmx_map.layers, destinations)

        if self.jobs == 1 or len(tmx_map.layers) < 2:
            written = [
                self.export_layer(tmx_map, layer, destination)
                for layer, destination in zip(tmx_map.layers, destinations)
            ]
        else:
            written = self._export_parallel(tmx_map, destinations)

        if self.manifest:
            manifest_path = manifest_output_path(map_path, self.output_dir)
            save_json(self.build_manifest(tmx_map, destinations), str(manifest_path))
            logger.info(f"  Wrote {manifest_path}")
            written.append(manifest_path)

        return written

    def _export_parallel(self, tmx_map: Map, destinations: List[Path]) -> List[Path]:
        errors: Dict[int, Exception] = {}
        with ThreadPoolExecutor(max_workers=self.jobs) as executor:
            futures = {
                executor.submit(self.export_layer, tmx_map, layer, destination): index
                for index, (layer, destination) in enumerate(zip(tmx_map.layers, destinations))
            }
            for future in as_completed(futures):
                index = futures[future]
                try:
                    future.result()
                except Exception as e:
                    errors[index] = e

        if errors:
            # Report the failure of the earliest layer, as a sequential run would
            raise errors[min(errors)]
        return destinations

    def export_layer(self, tmx_map: Map, layer: Layer, destination: Path) -> Path:
        """
        Encode one layer and write it to destination.

        Raises:
            ExportError: If the layer cannot be represented on the target
            PropertyNotUnique: If Compression is defined more than once
        """
        compression = layer_compression(layer)

        if layer.options.bitmap:
            data = pack_bitmap(layer.tiles)
        else:
            check_layer(self.target, tmx_map, layer)
            data = encode_entries(self.target, tmx_map, layer)

        with open(destination, 'wb') as f:
            if compression is None:
                f.write(data)
            else:
                with Compressor(f, compression) as sink:
                    sink.write(data)

        mode = "bitmap" if layer.options.bitmap else "indexed"
        packing = f", {compression.value}" if compression else ""
        logger.info(f"  Wrote {destination} ({mode}{packing})")
        return destination

    def build_manifest(self, tmx_map: Map, destinations: List[Path]) -> Dict[str, Any]:
        """Describe the exported map: sizes, layer files, tilesets and objects."""
        layers = []
        for layer, destination in zip(tmx_map.layers, destinations):
            compression = layer_compression(layer)
            layers.append({
                "name": layer.name,
                "file": destination.name,
                "mode": "bitmap" if layer.options.bitmap else "indexed",
                "entry_size": None if layer.options.bitmap else self.target.entry_size(tmx_map, layer),
                "affine": layer.options.affine,
                "compression": compression.value if compression else None,
                "tileset": layer.tileset.name if layer.tileset else None,
                "nil_tile": layer.nil_tile,
                "bg": layer.options.bg,
            })

        return {
            "console": self.target.name,
            "width": tmx_map.width,
            "height": tmx_map.height,
            "tile_width": tmx_map.tile_width,
            "tile_height": tmx_map.tile_height,
            "layers": layers,
            "tilesets": [
                {
                    "name": tileset.name,
                    "first_gid": tileset.first_gid,
                    "tile_count": tileset.tile_count,
                    "image": tileset.image.source if tileset.image else None,
                    "bpp": detect_bpp(tileset),
                }
                for tileset in tmx_map.tilesets
            ],
            "object_groups": [
                {
                    "name": group.name,
                    "objects": [
                        {
                            "name": obj.name,
                            "type": obj.type,
                            "x": obj.x,
                            "y": obj.y,
                            "width": obj.width,
                            "height": obj.height,
                            "polygon": [list(p) for p in obj.polygon] if obj.polygon is not None else None,
                            "polyline": [list(p) for p in obj.polyline] if obj.polyline is not None else None,
                        }
                        for obj in group.objects
                    ],
                }
                for group in tmx_map.object_groups
            ],
        }
