import base64
import gzip
import struct
import zlib


def encode_base64(gids, compression=None):
    """Encode raw gids the way Tiled writes base64 layer data."""
    raw = struct.pack(f'<{len(gids)}I', *gids)
    if compression == 'zlib':
        raw = zlib.compress(raw)
    elif compression == 'gzip':
        raw = gzip.compress(raw)
    return base64.b64encode(raw).decode('ascii')


def layer_xml(name, gids, encoding='csv', compression=None, properties=None):
    props = ''
    if properties:
        items = properties.items() if isinstance(properties, dict) else properties
        props = '<properties>' + ''.join(
            f'<property name="{key}" value="{value}"/>' for key, value in items
        ) + '</properties>'

    if encoding == 'csv':
        data = '<data encoding="csv">\n' + ','.join(str(g) for g in gids) + '\n</data>'
    elif encoding == 'base64':
        attr = f' compression="{compression}"' if compression else ''
        data = f'<data encoding="base64"{attr}>\n   {encode_base64(gids, compression)}\n  </data>'
    else:
        data = '<data>' + ''.join(f'<tile gid="{g}"/>' for g in gids) + '</data>'

    return f'<layer name="{name}">{props}{data}</layer>'


def tileset_xml(first_gid=1, tile_count=16, name='tiles'):
    return (
        f'<tileset firstgid="{first_gid}" name="{name}" tilewidth="8" tileheight="8" '
        f'tilecount="{tile_count}" columns="4"/>'
    )


def map_xml(width, height, layers, tilesets=None, extra=''):
    if tilesets is None:
        tilesets = [tileset_xml()]
    return (
        '<?xml version="1.0" encoding="UTF-8"?>\n'
        f'<map version="1.10" orientation="orthogonal" width="{width}" height="{height}" '
        'tilewidth="8" tileheight="8">'
        + ''.join(tilesets) + ''.join(layers) + extra +
        '</map>'
    )
