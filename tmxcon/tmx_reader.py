"""
TMX reader - loads Tiled TMX maps (and external TSX tilesets) into the data model.

This module handles the markup side: attributes, properties, tilesets, layers
and object groups. Tile data is decoded afterwards by the decode pass in
resolver.py, so a map returned by read_tmx() is fully resolved.
"""

import xml.etree.ElementTree as ET
from pathlib import Path
from typing import List, Union
from .errors import InvalidTileset, MalformedPoints
from .models import (
    Compression,
    Encoding,
    Layer,
    Map,
    MapObject,
    ObjectGroup,
    Point,
    Tileset,
    TilesetImage,
)
from .properties import Properties
from .resolver import decode_layers
from .tileset_image import count_tiles
from .logging_config import get_logger

logger = get_logger('tmx_reader')


def read_tmx(path: Union[str, Path]) -> Map:
    """
    Load a TMX file and decode all of its layers.

    Args:
        path: Path to the .tmx file

    Returns:
        Map with resolved tiles on every layer

    Raises:
        TmxFormatError: If the map content is invalid
        OSError: If the map or one of its TSX files cannot be read
        xml.etree.ElementTree.ParseError: If the markup is not well formed
    """
    return TmxReader().read(Path(path))


class TmxReader:
    """Builds Map objects from TMX markup."""

    def read(self, path: Path) -> Map:
        """Read and decode a map file."""
        root = ET.parse(path).getroot()
        tmx_map = self.parse(root, path.parent)
        tmx_map.path = path
        decode_layers(tmx_map)
        logger.debug(
            f"Loaded {path.name}: {tmx_map.width}x{tmx_map.height}, "
            f"{len(tmx_map.tilesets)} tilesets, {len(tmx_map.layers)} layers"
        )
        return tmx_map

    def parse(self, root: ET.Element, base_dir: Path) -> Map:
        """
        Build a Map from a <map> element without decoding tile data.

        Args:
            root: The <map> element
            base_dir: Directory relative paths (TSX files, images) are resolved against
        """
        tmx_map = Map(
            width=_int(root, 'width'),
            height=_int(root, 'height'),
            tile_width=_int(root, 'tilewidth'),
            tile_height=_int(root, 'tileheight'),
            version=root.get('version', ''),
            orientation=root.get('orientation', 'orthogonal'),
            properties=read_properties(root),
        )

        for elem in root.findall('tileset'):
            tmx_map.tilesets.append(self.read_tileset(elem, base_dir))

        self._read_layers(root, tmx_map)
        return tmx_map

    def read_tileset(self, elem: ET.Element, base_dir: Path) -> Tileset:
        """
        Read an embedded tileset, or the TSX file an external one points to.

        The firstgid always comes from the map's element, never from the TSX.
        """
        if 'firstgid' not in elem.attrib:
            raise InvalidTileset("Tileset without firstgid")
        first_gid = _int(elem, 'firstgid')

        source = elem.get('source')
        if source:
            tsx_path = base_dir / source
            elem = ET.parse(tsx_path).getroot()
            base_dir = tsx_path.parent
            if elem.tag != 'tileset':
                raise InvalidTileset(f"{tsx_path} is not a tileset file")

        tileset = Tileset(
            first_gid=first_gid,
            name=elem.get('name', ''),
            tile_count=_int(elem, 'tilecount'),
            tile_width=_int(elem, 'tilewidth'),
            tile_height=_int(elem, 'tileheight'),
            spacing=_int(elem, 'spacing'),
            margin=_int(elem, 'margin'),
            columns=_int(elem, 'columns'),
            source=source,
            properties=read_properties(elem),
        )

        img_elem = elem.find('image')
        if img_elem is not None:
            image_source = img_elem.get('source', '')
            tileset.image = TilesetImage(
                source=image_source,
                trans=img_elem.get('trans'),
                width=_int(img_elem, 'width') or None,
                height=_int(img_elem, 'height') or None,
                path=(base_dir / image_source) if image_source else None,
            )

        tile_elems = elem.findall('tile')
        for tile_elem in tile_elems:
            tileset.tile_properties[_int(tile_elem, 'id')] = read_properties(tile_elem)

        if not tileset.tile_count:
            tileset.tile_count = count_tiles(tileset) or len(tile_elems)
            logger.debug(f"Tileset '{tileset.name}' has no tilecount, using {tileset.tile_count}")

        return tileset

    def _read_layers(self, parent: ET.Element, tmx_map: Map) -> None:
        # Group layers are flattened in document order
        for elem in parent:
            if elem.tag == 'layer':
                tmx_map.layers.append(self.read_layer(elem, tmx_map))
            elif elem.tag == 'objectgroup':
                tmx_map.object_groups.append(self.read_object_group(elem))
            elif elem.tag == 'group':
                self._read_layers(elem, tmx_map)

    def read_layer(self, elem: ET.Element, tmx_map: Map) -> Layer:
        """Read a tile layer's attributes and its still-encoded data."""
        layer = Layer(
            name=elem.get('name', ''),
            width=tmx_map.width,
            height=tmx_map.height,
            opacity=_float(elem, 'opacity', 1.0),
            visible=elem.get('visible', '1') != '0',
            properties=read_properties(elem),
        )

        data = elem.find('data')
        if data is None:
            layer.payload = []
            return layer

        layer.encoding = Encoding.from_name(data.get('encoding'))
        layer.compression = Compression.from_name(data.get('compression'))
        if layer.encoding is Encoding.INLINE:
            layer.payload = [_int(tile, 'gid') for tile in data.findall('tile')]
        else:
            layer.payload = (data.text or '').encode('ascii', errors='replace')
            if layer.compression is not Compression.NONE and layer.encoding is not Encoding.BASE64:
                logger.debug(f"Layer '{layer.name}': compression ignored for {layer.encoding.value} data")
        return layer

    def read_object_group(self, elem: ET.Element) -> ObjectGroup:
        """Read an object group and its objects' shapes."""
        group = ObjectGroup(
            name=elem.get('name', ''),
            color=elem.get('color', ''),
            opacity=_float(elem, 'opacity', 1.0),
            visible=elem.get('visible', '1') != '0',
            properties=read_properties(elem),
        )

        for obj_elem in elem.findall('object'):
            obj = MapObject(
                id=_int(obj_elem, 'id'),
                name=obj_elem.get('name', ''),
                type=obj_elem.get('type', obj_elem.get('class', '')),
                x=_float(obj_elem, 'x'),
                y=_float(obj_elem, 'y'),
                width=_float(obj_elem, 'width'),
                height=_float(obj_elem, 'height'),
                gid=_int(obj_elem, 'gid'),
                visible=obj_elem.get('visible', '1') != '0',
                properties=read_properties(obj_elem),
            )
            polygon = obj_elem.find('polygon')
            if polygon is not None:
                obj.polygon = decode_points(polygon.get('points', ''))
            polyline = obj_elem.find('polyline')
            if polyline is not None:
                obj.polyline = decode_points(polyline.get('points', ''))
            group.objects.append(obj)

        return group


def read_properties(elem: ET.Element) -> Properties:
    """
    Read the <properties> child of an element.

    Multi-line string values are stored as element text instead of a value
    attribute.
    """
    properties = Properties()
    props_elem = elem.find('properties')
    if props_elem is None:
        return properties

    for prop in props_elem.findall('property'):
        value = prop.get('value')
        if value is None:
            value = prop.text or ''
        properties.add(prop.get('name', ''), value)
    return properties


def decode_points(points: str) -> List[Point]:
    """
    Parse a polygon/polyline point list such as "0,0 32,0 32,16".

    Raises:
        MalformedPoints: If a pair is not two comma separated numbers
    """
    result = []
    for pair in points.split():
        parts = pair.split(',')
        if len(parts) != 2:
            raise MalformedPoints(f"Invalid point '{pair}' in '{points}'")
        try:
            result.append(Point(float(parts[0]), float(parts[1])))
        except ValueError:
            raise MalformedPoints(f"Invalid point '{pair}' in '{points}'") from None
    return result


def _int(elem: ET.Element, name: str, default: int = 0) -> int:
    value = elem.get(name)
    if value is None or value == '':
        return default
    try:
        return int(value)
    except ValueError:
        # Tiled writes some sizes as floats
        return int(float(value))


def _float(elem: ET.Element, name: str, default: float = 0.0) -> float:
    value = elem.get(name)
    if value is None or value == '':
        return default
    return float(value)
