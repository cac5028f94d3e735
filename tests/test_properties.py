import logging

import pytest

from tmxcon.errors import PropertyNotUnique, PropertyUnavailable
from tmxcon.models import LayerOptions
from tmxcon.properties import Properties, get_property


def test_get_property():
    props = Properties([('Bitmap', 'true'), ('NilTile', '3')])
    assert get_property(props, 'NilTile') == '3'


def test_missing_property():
    with pytest.raises(PropertyUnavailable):
        get_property(Properties(), 'Bitmap')


def test_repeated_property():
    props = Properties([('Compression', 'LZ77'), ('Compression', 'RLE')])
    with pytest.raises(PropertyNotUnique):
        get_property(props, 'Compression')


def test_properties_keep_document_order():
    props = Properties()
    props.add('a', '1')
    props.add('b', '2')
    props.add('a', '3')
    assert props.get_all('a') == ['1', '3']
    assert list(props) == [('a', '1'), ('b', '2'), ('a', '3')]
    assert 'b' in props
    assert len(props) == 3


def test_layer_options_defaults():
    options = LayerOptions.from_properties('BG1', Properties())
    assert options == LayerOptions(bitmap=False, affine=False, nil_tile=None, bg=None)


def test_layer_options_values():
    props = Properties([('Bitmap', 'true'), ('Affine', 'true'), ('NilTile', '42'), ('BG', '3')])
    options = LayerOptions.from_properties('BG1', props)
    assert options == LayerOptions(bitmap=True, affine=True, nil_tile=42, bg=3)


def test_flags_require_lowercase_true():
    props = Properties([('Bitmap', 'yes'), ('Affine', 'True')])
    options = LayerOptions.from_properties('BG1', props)
    assert options.bitmap is False
    assert options.affine is False


def test_repeated_flag_falls_back_to_default(caplog):
    props = Properties([('Bitmap', 'true'), ('Bitmap', 'true')])
    with caplog.at_level(logging.WARNING, logger='tmxcon'):
        options = LayerOptions.from_properties('BG1', props)
    assert options.bitmap is False
    assert 'not unique' in caplog.text


@pytest.mark.parametrize("value", ["abc", "-1", "65536", ""])
def test_unusable_nil_tile_falls_back_to_default(value):
    options = LayerOptions.from_properties('BG1', Properties([('NilTile', value)]))
    assert options.nil_tile is None


def test_bg_out_of_range_is_dropped():
    options = LayerOptions.from_properties('BG1', Properties([('BG', '4')]))
    assert options.bg is None
