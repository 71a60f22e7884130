# File: shadow_translate/db/entity.py
"""
Entity records materialised from query rows.

An Entity is a thin property bag with attribute access and dirty tracking,
enough for the save pipeline to know which columns changed.
"""

from datetime import datetime, date
from typing import Any, Dict, Iterator, Optional, Set

_INTERNAL = frozenset({"_properties", "_dirty", "_new", "_source"})


class Entity:
    """
    A single record of a table.

    Attributes are read from the underlying property mapping; unknown
    attributes raise AttributeError, while ``get`` returns a default.
    """

    def __init__(
        self,
        properties: Optional[Dict[str, Any]] = None,
        source: Optional[str] = None,
        new: bool = True,
    ):
        object.__setattr__(self, "_properties", dict(properties or {}))
        object.__setattr__(self, "_dirty", set(self._properties) if new else set())
        object.__setattr__(self, "_new", new)
        object.__setattr__(self, "_source", source)

    def __getattr__(self, name: str) -> Any:
        properties = object.__getattribute__(self, "_properties")
        if name in properties:
            return properties[name]
        raise AttributeError(f"{self.__class__.__name__} has no property '{name}'")

    def __setattr__(self, name: str, value: Any) -> None:
        if name in _INTERNAL:
            object.__setattr__(self, name, value)
        else:
            self.set(name, value)

    def __getitem__(self, name: str) -> Any:
        return self._properties[name]

    def __setitem__(self, name: str, value: Any) -> None:
        self.set(name, value)

    def __contains__(self, name: object) -> bool:
        return name in self._properties

    def __iter__(self) -> Iterator[str]:
        return iter(self._properties)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Entity):
            return NotImplemented
        return self._source == other._source and self.to_dict() == other.to_dict()

    def __repr__(self) -> str:
        return f"<Entity({self._source or '?'}) {self._properties!r}>"

    def get(self, name: str, default: Any = None) -> Any:
        return self._properties.get(name, default)

    def set(self, name: str, value: Any) -> None:
        """Set a property and mark it dirty."""
        self._properties[name] = value
        self._dirty.add(name)

    def is_new(self) -> bool:
        return self._new

    def set_new(self, new: bool) -> None:
        object.__setattr__(self, "_new", new)

    def is_dirty(self, name: Optional[str] = None) -> bool:
        if name is None:
            return bool(self._dirty)
        return name in self._dirty

    def set_dirty(self, name: str, dirty: bool = True) -> None:
        if dirty:
            self._dirty.add(name)
        else:
            self._dirty.discard(name)

    def dirty_fields(self) -> Set[str]:
        return set(self._dirty)

    def clean(self) -> None:
        """Forget all pending changes."""
        self._dirty.clear()

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert the entity to a plain dictionary.

        Nested entities (associations, translations) are converted too.
        """
        return {key: _plain(value) for key, value in self._properties.items()}


def _plain(value: Any) -> Any:
    if isinstance(value, Entity):
        return value.to_dict()
    if isinstance(value, dict):
        return {k: _plain(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_plain(v) for v in value]
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return value
