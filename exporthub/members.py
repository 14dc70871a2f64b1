"""
Import slot discovery.

Turns the import metadata declared on a consumer class into
:class:`~exporthub.records.ImportSlot` objects bound to one instance.
Three declaration styles are supported::

    class Consumer:
        # 1. Annotated attribute
        logger: Annotated[Optional[ILogger], Import()]

        # 2. Decorated single-argument method
        @imports(list[ISink])
        def set_sinks(self, sinks):
            ...

        # 3. Explicit slot table
        def __import_slots__(self):
            yield make_slot("cache", Optional[ICache], self._set_cache)

Per-class declarations are computed once and cached; the setters are
bound per instance.
"""

import collections.abc
import inspect
import logging
import types
from dataclasses import dataclass
from typing import (
    Annotated,
    Any,
    Callable,
    Dict,
    Optional,
    Tuple,
    Union,
    get_args,
    get_origin,
    get_type_hints,
)

from .decorators import Import
from .errors import ImportDeclarationError
from .records import ImportShape, ImportSlot

logger = logging.getLogger("exporthub.members")

_COLLECTION_ORIGINS = frozenset((
    collections.abc.Sequence,
    collections.abc.Collection,
    collections.abc.Iterable,
))

_BARE_CONTAINERS = frozenset((list, tuple, set, frozenset, dict))

_declaration_cache: Dict[type, Tuple["_Declaration", ...]] = {}


@dataclass(frozen=True, slots=True)
class _Declaration:
    name: str
    kind: str  # "attribute" or "method"
    item_type: type
    shape: ImportShape
    key: Optional[str]


def parse_shape(
    annotation: Any,
    owner: str = "<slot>",
    member: str = "<member>",
) -> Tuple[ImportShape, type]:
    """
    Derive the import shape and item type from a declared value type.

    Returns:
        Tuple of (shape, item_type)

    Raises:
        ImportDeclarationError: If the type cannot hold a match set
    """
    if annotation is Any:
        return ImportShape.SCALAR, object

    origin = get_origin(annotation)
    args = get_args(annotation)

    if origin is Annotated:
        return parse_shape(args[0], owner, member)

    if origin is Union or origin is types.UnionType:
        non_none = [a for a in args if a is not type(None)]
        if len(non_none) != 1:
            raise ImportDeclarationError(
                owner, member, "only Optional[T] unions can be imported", annotation
            )
        return parse_shape(non_none[0], owner, member)

    if origin is list:
        return ImportShape.ARRAY, _item_type(args, annotation, owner, member)

    if origin is tuple:
        if len(args) != 2 or args[1] is not Ellipsis:
            raise ImportDeclarationError(
                owner, member, "fixed-length tuples cannot hold a match set; use tuple[T, ...]", annotation
            )
        return ImportShape.COLLECTION, _item_type(args[:1], annotation, owner, member)

    if origin in _COLLECTION_ORIGINS:
        return ImportShape.COLLECTION, _item_type(args, annotation, owner, member)

    if origin is not None:
        raise ImportDeclarationError(
            owner, member, f"unsupported container {origin!r}", annotation
        )

    if annotation in _BARE_CONTAINERS or annotation in _COLLECTION_ORIGINS:
        raise ImportDeclarationError(
            owner, member, "collection declared without an item type", annotation
        )

    if not isinstance(annotation, type):
        raise ImportDeclarationError(
            owner, member, "declared type is not a class", annotation
        )

    return ImportShape.SCALAR, annotation


def _item_type(args: tuple, annotation: Any, owner: str, member: str) -> type:
    if len(args) != 1:
        raise ImportDeclarationError(
            owner, member, "collection declared without an item type", annotation
        )
    item = args[0]
    if item is Any:
        return object
    if not isinstance(item, type) or get_origin(item) is not None:
        raise ImportDeclarationError(
            owner, member, "collection items must be a single class", annotation
        )
    return item


def make_slot(
    name: str,
    annotation: Any,
    setter: Callable[[Any], None],
    *,
    key: Optional[str] = None,
) -> ImportSlot:
    """
    Build a slot for ``__import_slots__`` tables.

    Example:
        def __import_slots__(self):
            yield make_slot("sinks", list[ISink], self._set_sinks)
    """
    shape, item_type = parse_shape(annotation, "<slot>", name)
    return ImportSlot(
        name=name,
        item_type=item_type,
        shape=shape,
        setter=setter,
        key=key or None,
    )


def discover_slots(instance: Any) -> Dict[str, ImportSlot]:
    """
    Collect every import slot declared for ``instance``.

    Returns:
        Ordered dict of member name -> slot bound to ``instance``

    Raises:
        ImportDeclarationError: If a declaration cannot be resolved
    """
    cls = type(instance)
    slots: Dict[str, ImportSlot] = {}

    for decl in _declarations(cls):
        slots[decl.name] = ImportSlot(
            name=decl.name,
            item_type=decl.item_type,
            shape=decl.shape,
            setter=_bind_setter(instance, decl),
            key=decl.key,
        )

    table = getattr(instance, "__import_slots__", None)
    if table is not None:
        for slot in table():
            if not isinstance(slot, ImportSlot):
                raise ImportDeclarationError(
                    cls.__qualname__, "__import_slots__",
                    f"expected ImportSlot entries, got {type(slot).__name__}",
                )
            slots.pop(slot.name, None)
            slots[slot.name] = slot

    return slots


def declared_imports(cls: type) -> Tuple[Tuple[str, ImportShape, type, Optional[str]], ...]:
    """
    Class-level import declarations as (name, shape, item_type, key).

    ``__import_slots__`` tables are per instance and not included.
    """
    return tuple((d.name, d.shape, d.item_type, d.key) for d in _declarations(cls))


def _bind_setter(instance: Any, decl: _Declaration) -> Callable[[Any], None]:
    name = decl.name

    if decl.kind == "method":
        def call_method(value: Any) -> None:
            getattr(instance, name)(value)
        return call_method

    def set_attribute(value: Any) -> None:
        setattr(instance, name, value)
    return set_attribute


def _declarations(cls: type) -> Tuple[_Declaration, ...]:
    cached = _declaration_cache.get(cls)
    if cached is not None:
        return cached

    owner = cls.__qualname__
    found: Dict[str, _Declaration] = {}

    for name, hint in _attribute_hints(cls).items():
        marker = _import_marker(hint)
        if marker is None:
            continue
        shape, item_type = parse_shape(hint, owner, name)
        found[name] = _Declaration(name, "attribute", item_type, shape, marker.key)

    for klass in reversed(cls.__mro__):
        for name, value in vars(klass).items():
            if not isinstance(value, types.FunctionType):
                continue
            spec = getattr(value, "__import_spec__", None)
            if spec is None:
                # Overridden without metadata
                if name in found and found[name].kind == "method":
                    del found[name]
                continue
            annotation, marker = spec
            annotation = _method_annotation(value, annotation, owner, name)
            shape, item_type = parse_shape(annotation, owner, name)
            found.pop(name, None)
            found[name] = _Declaration(name, "method", item_type, shape, marker.key)

    declarations = tuple(found.values())
    _declaration_cache[cls] = declarations
    logger.debug("Discovered %d import slot(s) on %s", len(declarations), owner)
    return declarations


def _attribute_hints(cls: type) -> Dict[str, Any]:
    """
    Evaluated class annotations, markers included.

    When evaluation fails the raw annotations are scanned instead; any
    string or marker among them turns the failure into an
    ImportDeclarationError.
    """
    try:
        return get_type_hints(cls, include_extras=True)
    except Exception as e:
        error = e

    owner = cls.__qualname__
    for klass in cls.__mro__:
        try:
            annotations = inspect.get_annotations(klass)
        except Exception:
            annotations = None
        if annotations is None or any(
            isinstance(raw, str) or _import_marker(raw) is not None
            for raw in annotations.values()
        ):
            raise ImportDeclarationError(
                owner, "<annotations>", f"annotations cannot be evaluated: {error}"
            ) from error
    return {}


def _import_marker(hint: Any) -> Optional[Import]:
    if get_origin(hint) is not Annotated:
        return None
    for meta in get_args(hint)[1:]:
        if isinstance(meta, Import):
            return meta
    return None


def _method_annotation(func: Callable[..., Any], annotation: Any, owner: str, name: str) -> Any:
    params = list(inspect.signature(func).parameters.values())[1:]
    if len(params) != 1:
        raise ImportDeclarationError(
            owner, name, f"import methods take exactly one argument, got {len(params)}"
        )
    if annotation is not None:
        return annotation

    try:
        hints = get_type_hints(func, include_extras=True)
    except Exception as e:
        raise ImportDeclarationError(
            owner, name, f"annotations cannot be evaluated: {e}"
        ) from e

    declared = hints.get(params[0].name)
    if declared is None:
        raise ImportDeclarationError(
            owner, name, "parameter has no annotation; pass the type to @imports()"
        )
    return declared


def clear_declaration_cache() -> None:
    """Forget cached per-class declarations."""
    _declaration_cache.clear()
