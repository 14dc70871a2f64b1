"""
Record types shared by the registry, resolver and subscription manager.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Optional


class ImportShape(str, Enum):
    """Value shape expected by an import slot."""

    SCALAR = "scalar"          # One instance or None
    ARRAY = "array"            # list[T]
    COLLECTION = "collection"  # tuple[T, ...] / Sequence[T]


@dataclass(eq=False, slots=True)
class Export:
    """
    One registered instance.

    Records compare by identity: the same instance exported twice yields
    two distinct records.
    """

    declared_type: type
    instance: Any
    key: Optional[str] = None

    @property
    def has_key(self) -> bool:
        return self.key is not None

    def describe(self) -> str:
        name = f"{self.declared_type.__module__}.{self.declared_type.__qualname__}"
        if self.key is not None:
            return f"{name} (key={self.key})"
        return name


@dataclass(frozen=True, slots=True)
class ImportSlot:
    """
    A write slot on a consumer.

    ``setter`` receives the fully resolved value: the first match (or None)
    for SCALAR, a list for ARRAY and a tuple for COLLECTION.
    """

    name: str
    item_type: Optional[type]
    shape: ImportShape
    setter: Callable[[Any], None]
    key: Optional[str] = None

    @property
    def empty(self) -> Any:
        """Value a cleared slot holds."""
        if self.shape is ImportShape.ARRAY:
            return []
        if self.shape is ImportShape.COLLECTION:
            return ()
        return None

    def pack(self, instances: tuple) -> Any:
        """Copy matched instances into the container this slot expects."""
        if self.shape is ImportShape.ARRAY:
            return list(instances)
        if self.shape is ImportShape.COLLECTION:
            return tuple(instances)
        return instances[0] if instances else None

    def describe(self) -> str:
        item = self.item_type.__qualname__ if self.item_type is not None else "object"
        text = f"{self.name}: {self.shape.value}[{item}]"
        if self.key is not None:
            text += f" (key={self.key})"
        return text


@dataclass(eq=False, slots=True)
class Subscription:
    """Standing registration keeping ``target.<slot>`` in sync with exports."""

    target: Any
    slot: ImportSlot

    @property
    def member(self) -> str:
        return self.slot.name

    def is_for(self, target: Any, member: Optional[str] = None) -> bool:
        if self.target is not target:
            return False
        return member is None or self.slot.name == member
