"""
Utility functions for tmxcon.
"""

import json
import os
from pathlib import Path
from typing import Any, Dict, Optional
from .constants import LAYER_EXT, MANIFEST_EXT


def save_json(data: Dict[str, Any], filepath: str, indent: int = 2) -> None:
    """Save data to a JSON file."""
    os.makedirs(os.path.dirname(filepath) or '.', exist_ok=True)
    with open(filepath, 'w', encoding='utf-8') as f:
        json.dump(data, f, indent=indent, ensure_ascii=False)


def sanitize_filename(name: str) -> str:
    """Convert a name to a safe filename."""
    invalid_chars = '<>:"/\\|?*'
    for char in invalid_chars:
        name = name.replace(char, '_')
    return name


def output_dir_for(map_path: Path, output_dir: Optional[Path]) -> Path:
    """Directory exported files go to: output_dir, or the map's own directory."""
    return Path(output_dir) if output_dir is not None else map_path.parent


def layer_output_path(map_path: Path, layer_name: str, output_dir: Optional[Path] = None) -> Path:
    """
    Output file of a layer, e.g. maps/hello.tmx + "BG2" -> maps/hello.BG2.layer.
    """
    filename = f"{map_path.stem}.{sanitize_filename(layer_name)}{LAYER_EXT}"
    return output_dir_for(map_path, output_dir) / filename


def manifest_output_path(map_path: Path, output_dir: Optional[Path] = None) -> Path:
    """Output file of a map's manifest, e.g. maps/hello.tmx -> maps/hello.map.json."""
    return output_dir_for(map_path, output_dir) / f"{map_path.stem}{MANIFEST_EXT}"
