"""
Free-form name/value properties attached to maps, tilesets, layers and objects.

A TMX element may repeat a property name, so values are kept as an ordered
list of pairs and looked up by name. Consumers that need one value use
get_property(), which treats "missing" and "defined twice" as errors.
"""

from typing import Iterator, List, Optional, Tuple
from .errors import PropertyNotUnique, PropertyUnavailable


class Properties:
    """Ordered, multi-valued property list."""

    def __init__(self, items: Optional[List[Tuple[str, str]]] = None):
        self._items: List[Tuple[str, str]] = list(items or [])

    def add(self, name: str, value: str) -> None:
        """Append a property; an existing one with the same name is kept."""
        self._items.append((name, value))

    def get_all(self, name: str) -> List[str]:
        """All values defined for name, in document order."""
        return [value for key, value in self._items if key == name]

    def __contains__(self, name: str) -> bool:
        return any(key == name for key, _ in self._items)

    def __iter__(self) -> Iterator[Tuple[str, str]]:
        return iter(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __repr__(self) -> str:
        return f"Properties({self._items!r})"


def get_property(properties: Properties, name: str) -> str:
    """
    Get the single value of a property.

    Args:
        properties: Property list to search
        name: Property name

    Returns:
        The property value

    Raises:
        PropertyUnavailable: If the property is not defined
        PropertyNotUnique: If the property is defined more than once
    """
    values = properties.get_all(name)
    if len(values) > 1:
        raise PropertyNotUnique(f"Property '{name}' is not unique ({len(values)} values)")
    if not values:
        raise PropertyUnavailable(f"Property '{name}' does not exist")
    return values[0]
