from pathlib import Path

import pytest

from tmxcon.models import Tileset

from helpers import map_xml


@pytest.fixture
def write_tmx(tmp_path):
    """Write a TMX file into tmp_path and return its path."""
    def _write(name, width, height, layers, tilesets=None, extra=''):
        path = Path(tmp_path) / name
        path.write_text(map_xml(width, height, layers, tilesets, extra), encoding='utf-8')
        return path
    return _write


@pytest.fixture
def tileset16():
    return Tileset(first_gid=1, name='tiles', tile_count=16)
