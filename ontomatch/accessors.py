"""
Capability accessor registry.

A structural pattern such as ``{"a": SubClassOf, "super_class": "?x"}``
asks a record for its ``super_class`` capability. Instead of guessing a
method name at runtime, each record kind registers the capabilities it
exposes:

    registry = AccessorRegistry()
    registry.register_fields(SubClassOf, "sub_class", "super_class")

    @registry.capability(SubClassOf, "classes")
    def _classes(axiom):
        return {axiom.sub_class, axiom.super_class}

Lookup walks the record type's MRO, so a capability registered on a base
class is inherited by every subclass unless the subclass overrides it.
"""

import operator
import re
from typing import Any, Callable, Dict, List, Optional

Accessor = Callable[[Any], Any]

_CAMEL_BOUNDARY = re.compile(r'(?<=[a-z0-9])([A-Z])')


def canonical_key(key: str) -> str:
    """
    Normalise a capability key to snake_case.

    Examples:
        canonical_key("superClass")  -> "super_class"
        canonical_key("super_class") -> "super_class"
        canonical_key("property")    -> "property"
    """
    return _CAMEL_BOUNDARY.sub(r'_\1', key).lower()


class AccessorRegistry:
    """Maps (record kind, capability key) to an accessor function."""

    def __init__(self):
        self._accessors: Dict[type, Dict[str, Accessor]] = {}

    def register(self, kind: type, key: str, accessor: Accessor) -> 'AccessorRegistry':
        """Register ``accessor`` as capability ``key`` of ``kind``."""
        if not isinstance(kind, type):
            raise TypeError(f"register: kind must be a class, got {kind!r}")
        if not callable(accessor):
            raise TypeError(f"register: accessor for '{key}' must be callable")
        self._accessors.setdefault(kind, {})[canonical_key(key)] = accessor
        return self

    def register_fields(self, kind: type, *names: str) -> 'AccessorRegistry':
        """Register plain attribute getters for each field name."""
        for name in names:
            self.register(kind, name, operator.attrgetter(name))
        return self

    def capability(self, kind: type, key: str) -> Callable[[Accessor], Accessor]:
        """Decorator form of register()."""
        def decorator(func: Accessor) -> Accessor:
            self.register(kind, key, func)
            return func
        return decorator

    def resolve(self, record: Any, key: str) -> Optional[Accessor]:
        """
        Find the accessor for ``key`` on ``record``.

        Returns None when no class in the record's MRO exposes the key.
        A missing capability is a normal non-match for the matcher, never
        an error.
        """
        key = canonical_key(key)
        for klass in type(record).__mro__:
            table = self._accessors.get(klass)
            if table and key in table:
                return table[key]
        return None

    def keys_for(self, kind: type) -> List[str]:
        """List every capability key visible on ``kind``, sorted."""
        keys = set()
        for klass in kind.__mro__:
            keys.update(self._accessors.get(klass, {}))
        return sorted(keys)

    def copy(self) -> 'AccessorRegistry':
        """Create an independent copy of this registry."""
        new_registry = AccessorRegistry()
        new_registry._accessors = {kind: table.copy() for kind, table in self._accessors.items()}
        return new_registry

    def __contains__(self, kind: type) -> bool:
        """Check if any capability is registered directly on ``kind``."""
        return kind in self._accessors

    def __len__(self) -> int:
        """Number of record kinds with registered capabilities."""
        return len(self._accessors)

    def __repr__(self) -> str:
        return f"AccessorRegistry({len(self._accessors)} kinds)"
