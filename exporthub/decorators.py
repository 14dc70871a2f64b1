"""
Declarative export/import metadata.
"""

from dataclasses import dataclass
from typing import Any, Callable, Optional, Type, TypeVar


T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class Import:
    """
    Import metadata marker.

    Usage:
        class Consumer:
            logger: Annotated[Optional[ILogger], Import()]
            sinks: Annotated[list[ISink], Import()]
            main_db: Annotated[Optional[Database], Import(key="main")]
    """

    key: Optional[str] = None

    def __post_init__(self):
        # Empty keys mean "no key"
        if self.key == "":
            object.__setattr__(self, "key", None)


def export(
    cls: Optional[Type[T]] = None,
    *,
    key: Optional[str] = None,
):
    """
    Decorator to attach export metadata to a class.

    Instances of the class (and of its subclasses) exported with
    ``add_export`` are tagged with ``key`` and become resolvable only by
    that key.

    Args:
        key: Optional lookup key

    Example:
        @export(key="audit")
        class AuditLog:
            ...
    """
    def decorator(klass: Type[T]) -> Type[T]:
        klass.__export_key__ = key or None  # type: ignore
        return klass

    if cls is not None:
        return decorator(cls)
    return decorator


def imports(
    annotation: Optional[Any] = None,
    *,
    key: Optional[str] = None,
) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """
    Decorator to mark a single-argument method as an import slot.

    The method is called with the resolved value every time the slot is
    assigned. When ``annotation`` is omitted it is read from the method's
    only parameter.

    Example:
        class Dashboard:
            @imports(list[IWidget])
            def set_widgets(self, widgets):
                self.layout(widgets)
    """
    def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
        func.__import_spec__ = (annotation, Import(key=key))  # type: ignore
        return func

    return decorator


def get_export_key(cls: type) -> Optional[str]:
    """Export key declared on ``cls`` or one of its bases."""
    return getattr(cls, "__export_key__", None) or None
