"""
Export registry - ordered list of exported instances.

Lookups are linear scans in registration order; insertion order is the
only tie-break between matching exports.
"""

import array
import collections
import logging
from typing import Any, Iterator, List, Optional, Tuple

from .decorators import get_export_key
from .records import Export

logger = logging.getLogger("exporthub.registry")

# Instances of these are collections, never services
_CONTAINER_TYPES = (
    list,
    tuple,
    set,
    frozenset,
    dict,
    collections.deque,
    array.array,
)


def is_exportable(instance: Any) -> bool:
    """
    Check that ``instance`` is a single concrete object.

    Built-in containers and instances of parameterized generics
    (``Box[int]()``) are rejected.

    Parameterized generics are recognized by the ``__orig_class__``
    attribute typing stores on the instance. Classes with ``__slots__``
    cannot hold it, so ``Box[int]()`` of a slotted generic is accepted
    like a plain ``Box()``.
    """
    if isinstance(instance, _CONTAINER_TYPES):
        return False
    if getattr(instance, "__orig_class__", None) is not None:
        return False
    return True


def make_export(instance: Any) -> Export:
    """Build the record for ``instance`` from its runtime type."""
    declared_type = type(instance)
    return Export(
        declared_type=declared_type,
        instance=instance,
        key=get_export_key(declared_type),
    )


class ExportRegistry:
    """
    Append/remove list of export records.

    Not thread-safe on its own; the owning injector serializes access.
    """

    __slots__ = ("_exports",)

    def __init__(self):
        self._exports: List[Export] = []

    def append(self, export: Export) -> None:
        self._exports.append(export)
        logger.debug("Export added: %s (total=%d)", export.describe(), len(self._exports))

    def remove_instance(self, instance: Any) -> List[Export]:
        """
        Remove every record holding ``instance``.

        Returns:
            Removed records in registration order (empty if none)
        """
        removed = [e for e in self._exports if e.instance is instance]
        if removed:
            self._exports = [e for e in self._exports if e.instance is not instance]
            logger.debug(
                "Export removed: %s x%d (total=%d)",
                removed[0].describe(), len(removed), len(self._exports),
            )
        return removed

    def find_instance(self, instance: Any) -> List[Export]:
        """Records currently holding ``instance``."""
        return [e for e in self._exports if e.instance is instance]

    def contains_instance(self, instance: Any) -> bool:
        return any(e.instance is instance for e in self._exports)

    def snapshot(self) -> Tuple[Export, ...]:
        """Immutable copy of the current records."""
        return tuple(self._exports)

    def first(self, predicate) -> Optional[Export]:
        for export in self._exports:
            if predicate(export):
                return export
        return None

    def clear(self) -> List[Export]:
        removed, self._exports = self._exports, []
        return removed

    def __iter__(self) -> Iterator[Export]:
        return iter(tuple(self._exports))

    def __len__(self) -> int:
        return len(self._exports)

    def __repr__(self) -> str:
        return f"ExportRegistry(exports={len(self._exports)})"
