import pytest

from tmxcon.errors import EntryOverflow, UnknownTarget
from tmxcon.models import NIL_TILE, Layer, LayerOptions, Map, ResolvedTile, Tileset
from tmxcon.targets import GBATarget, get_target


@pytest.fixture
def target():
    return GBATarget()


@pytest.fixture
def tileset():
    return Tileset(first_gid=1, name='tiles', tile_count=16)


def make_layer(affine=False, nil_tile=16):
    layer = Layer(name='BG0', width=2, height=2)
    layer.options = LayerOptions(affine=affine)
    layer.nil_tile = nil_tile
    return layer


def tile(tileset, local_id, h=False, v=False, d=False):
    return ResolvedTile(tileset=tileset, local_id=local_id,
                        horizontal_flip=h, vertical_flip=v, diagonal_flip=d)


def test_get_target():
    assert isinstance(get_target('gba'), GBATarget)
    assert isinstance(get_target('GBA'), GBATarget)


def test_unknown_target():
    with pytest.raises(UnknownTarget):
        get_target('nds')


@pytest.mark.parametrize("h,v,expected", [
    (False, False, 5),
    (True, False, 5 | 0x400),
    (False, True, 5 | 0x800),
    (True, True, 5 | 0xC00),
])
def test_regular_entry_flips(target, tileset, h, v, expected):
    layer = make_layer()
    assert target.tile_entry(Map(2, 2), layer, tile(tileset, 5, h, v)) == expected


def test_diagonal_flip_is_dropped(target, tileset):
    layer = make_layer()
    assert target.tile_entry(Map(2, 2), layer, tile(tileset, 3, d=True)) == 3


def test_affine_entry_has_no_flip_bits(target, tileset):
    layer = make_layer(affine=True)
    assert target.tile_entry(Map(2, 2), layer, tile(tileset, 7, h=True, v=True)) == 7


def test_nil_entry(target):
    assert target.tile_entry(Map(2, 2), make_layer(nil_tile=16), NIL_TILE) == 16
    assert target.tile_entry(Map(2, 2), make_layer(affine=True, nil_tile=0), NIL_TILE) == 0


def test_entry_formats(target):
    assert target.entry_format(Map(2, 2), make_layer()) == 'H'
    assert target.entry_size(Map(2, 2), make_layer()) == 2
    assert target.entry_format(Map(2, 2), make_layer(affine=True)) == 'B'
    assert target.entry_size(Map(2, 2), make_layer(affine=True)) == 1


def test_max_tiles(target):
    assert target.max_tiles(Map(2, 2), make_layer()) == 511
    assert target.max_tiles(Map(2, 2), make_layer(affine=True)) == 255


def test_index_overflow(target, tileset):
    with pytest.raises(EntryOverflow):
        target.tile_entry(Map(2, 2), make_layer(), tile(tileset, 1024))


def test_affine_index_overflow(target, tileset):
    with pytest.raises(EntryOverflow):
        target.tile_entry(Map(2, 2), make_layer(affine=True), tile(tileset, 256))


def test_affine_nil_overflow(target):
    with pytest.raises(EntryOverflow):
        target.tile_entry(Map(2, 2), make_layer(affine=True, nil_tile=300), NIL_TILE)
