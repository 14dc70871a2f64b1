"""
Resolution engine - matches requests against the export registry.

A request is either a key (``str``) or a type. Keyed requests match only
exports carrying exactly that key; type requests match only unkeyed
exports whose declared type is the requested type or a subclass /
implementation of it.
"""

import logging
from typing import Any, Callable, Optional, Tuple, Union

from .records import Export, ImportSlot
from .registry import ExportRegistry

logger = logging.getLogger("exporthub.resolution")

Token = Union[type, str]


def is_assignable(declared_type: type, requested: type) -> bool:
    """True when an instance of ``declared_type`` satisfies ``requested``."""
    if declared_type is requested:
        return True
    try:
        return issubclass(declared_type, requested)
    except TypeError:
        # Non-runtime protocols and other types issubclass() rejects
        return False


def matches(export: Export, requested: Optional[type], key: Optional[str] = None) -> bool:
    """
    Matching predicate shared by pull resolution and notification.

    Args:
        export: Candidate record
        requested: Requested type (ignored when ``key`` is given)
        key: Optional lookup key
    """
    if key is not None:
        return export.key == key
    if export.key is not None or requested is None:
        return False
    return is_assignable(export.declared_type, requested)


def split_token(token: Token) -> Tuple[Optional[type], Optional[str]]:
    """
    Normalize a public lookup argument into (type, key).

    Raises:
        TypeError: If ``token`` is neither a class nor a string
    """
    if isinstance(token, str):
        return None, token or None
    if isinstance(token, type):
        return token, None
    raise TypeError(
        f"Lookup token must be a class or a string key, got {type(token).__name__}"
    )


class Resolver:
    """
    Resolves requests against an :class:`ExportRegistry`.

    Every result is a snapshot; later registry changes never alter a
    sequence that was already returned.
    """

    __slots__ = ("_registry", "_warn_on_ambiguous", "_on_ambiguous")

    def __init__(
        self,
        registry: ExportRegistry,
        *,
        warn_on_ambiguous: bool = True,
        on_ambiguous: Optional[Callable[[Token, int], None]] = None,
    ):
        self._registry = registry
        self._warn_on_ambiguous = warn_on_ambiguous
        self._on_ambiguous = on_ambiguous

    def find(self, requested: Optional[type], key: Optional[str] = None) -> Tuple[Export, ...]:
        """All matching records in registration order."""
        return tuple(e for e in self._registry if matches(e, requested, key))

    def get_first(self, token: Token) -> Any:
        """
        First matching instance, or None.

        Several matches are not an error: the earliest registration wins
        and a warning is logged.
        """
        requested, key = split_token(token)
        found = self.find(requested, key)
        if not found:
            return None

        if len(found) > 1:
            if self._warn_on_ambiguous:
                logger.warning(
                    "Multiple exports of %s: %d matches, returning the first (%s)",
                    _describe_token(token), len(found), found[0].describe(),
                )
            if self._on_ambiguous is not None:
                self._on_ambiguous(token, len(found))

        return found[0].instance

    def get_all(self, token: Token) -> Tuple[Any, ...]:
        """All matching instances in registration order."""
        requested, key = split_token(token)
        return tuple(e.instance for e in self.find(requested, key))

    def has_export(self, token: Token) -> bool:
        requested, key = split_token(token)
        return self._registry.first(lambda e: matches(e, requested, key)) is not None

    def resolve_slot(self, slot: ImportSlot) -> Any:
        """Full value for ``slot`` against the current registry contents."""
        instances = tuple(e.instance for e in self.find(slot.item_type, slot.key))
        return slot.pack(instances)


def _describe_token(token: Token) -> str:
    if isinstance(token, type):
        return f"type {token.__module__}.{token.__qualname__}"
    return f"key '{token}'"
