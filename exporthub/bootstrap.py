"""
Service bootstrapper - loads declared services into an injector once.

Classes decorated with :func:`service` are recorded in a
:class:`ServiceTable` at import time. On first use the injector asks its
:class:`Bootstrapper` to produce one instance per class, preferring, in
order:

1. an instance already exported,
2. a singleton stored on the class itself (``Config.instance = Config()``),
3. a resource file (``@service(resource="settings/mail")``),
4. the default constructor.

A service that cannot be produced is logged and left out; startup is
never aborted.
"""

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Sequence, Type, TypeVar, Union

import yaml

from .decorators import get_export_key

logger = logging.getLogger("exporthub.bootstrap")

T = TypeVar("T")

_RESOURCE_SUFFIXES = (".yaml", ".yml", ".json")


@dataclass(frozen=True, slots=True)
class ServiceMeta:
    """Bootstrap declaration of one service class."""

    cls: type
    resource: Optional[str] = None
    abort_load: bool = False

    @property
    def name(self) -> str:
        return f"{self.cls.__module__}.{self.cls.__qualname__}"


class ServiceTable:
    """Explicit, load-time populated list of service classes."""

    __slots__ = ("_entries",)

    def __init__(self):
        self._entries: List[ServiceMeta] = []

    def register(
        self,
        cls: type,
        *,
        resource: Optional[str] = None,
        abort_load: bool = False,
    ) -> ServiceMeta:
        """Declare ``cls``; declaring it again replaces the earlier entry in place."""
        meta = ServiceMeta(cls=cls, resource=resource or None, abort_load=abort_load)
        for index, existing in enumerate(self._entries):
            if existing.cls is cls:
                self._entries[index] = meta
                return meta
        self._entries.append(meta)
        return meta

    def unregister(self, cls: type) -> bool:
        before = len(self._entries)
        self._entries = [m for m in self._entries if m.cls is not cls]
        return len(self._entries) != before

    def get(self, cls: type) -> Optional[ServiceMeta]:
        for meta in self._entries:
            if meta.cls is cls:
                return meta
        return None

    def clear(self) -> None:
        self._entries.clear()

    def __iter__(self) -> Iterator[ServiceMeta]:
        return iter(list(self._entries))

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, cls: object) -> bool:
        return self.get(cls) is not None  # type: ignore[arg-type]


default_table = ServiceTable()


def service(
    cls: Optional[Type[T]] = None,
    *,
    resource: Optional[str] = None,
    abort_load: bool = False,
    table: Optional[ServiceTable] = None,
):
    """
    Decorator to declare a class as a bootstrapped service.

    Args:
        resource: Resource name (``"mail"`` or ``"settings/mail"``) whose
            mapping is passed to the constructor as keyword arguments
        abort_load: If True, the class is only exported through a static
            singleton, never constructed
        table: Target table (defaults to the process-wide table)

    Example:
        @service(resource="settings/mail")
        class MailSettings:
            def __init__(self, host: str, port: int = 25):
                ...
    """
    def decorator(klass: Type[T]) -> Type[T]:
        meta = (table if table is not None else default_table).register(
            klass, resource=resource, abort_load=abort_load,
        )
        klass.__service_meta__ = meta  # type: ignore
        return klass

    if cls is not None:
        return decorator(cls)
    return decorator


class ResourceLoader:
    """
    Reads service resources from YAML/JSON files.

    ``load("settings/mail")`` looks for ``settings/mail.yaml``,
    ``settings/mail.yml`` and ``settings/mail.json`` under each search path
    in order.
    """

    def __init__(self, paths: Sequence[Union[str, Path]] = ("resources",)):
        self.paths = [Path(p) for p in paths]

    def find(self, name: str) -> Optional[Path]:
        relative = name.strip("/")
        for base in self.paths:
            direct = base / relative
            if direct.suffix in _RESOURCE_SUFFIXES and direct.is_file():
                return direct
            for suffix in _RESOURCE_SUFFIXES:
                candidate = base / f"{relative}{suffix}"
                if candidate.is_file():
                    return candidate
        return None

    def load(self, name: str) -> Optional[Dict[str, Any]]:
        """
        Load resource ``name``.

        Returns:
            Mapping of constructor arguments, or None if no file exists
        """
        path = self.find(name)
        if path is None:
            return None

        with open(path) as f:
            if path.suffix == ".json":
                data = json.load(f)
            else:
                data = yaml.safe_load(f)

        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ValueError(f"Resource {path} must contain a mapping, got {type(data).__name__}")
        return data


def find_static_instance(cls: type) -> Optional[Any]:
    """First attribute in ``cls``'s own namespace holding an instance of exactly ``cls``."""
    for value in vars(cls).values():
        if type(value) is cls:
            return value
    return None


class Bootstrapper:
    """
    Runs the service table against an injector exactly once.

    ``is_loaded`` is set as soon as loading starts, so lookups issued by
    the services themselves do not trigger a second pass.
    """

    def __init__(
        self,
        table: Optional[ServiceTable] = None,
        loader: Optional[ResourceLoader] = None,
    ):
        self.table = table if table is not None else default_table
        self.loader = loader or ResourceLoader()
        self.is_loaded = False
        self.is_loading = False

    def load_services(self, injector: Any) -> List[Any]:
        """
        Export one instance per declared service.

        Returns:
            Instances exported by this call
        """
        if self.is_loaded or self.is_loading:
            return []

        self.is_loaded = True
        self.is_loading = True
        loaded: List[Any] = []
        try:
            for meta in self.table:
                instance = self._load(injector, meta)
                if instance is not None:
                    loaded.append(instance)
        finally:
            self.is_loading = False

        logger.debug("Bootstrapped %d of %d service(s)", len(loaded), len(self.table))
        return loaded

    def reset(self) -> None:
        """Allow ``load_services`` to run again."""
        self.is_loaded = False

    def _load(self, injector: Any, meta: ServiceMeta) -> Optional[Any]:
        cls = meta.cls
        token = get_export_key(cls) or cls

        if injector.get_first(token) is not None:
            logger.debug("Service %s already exported", meta.name)
            return None

        instance = find_static_instance(cls)
        if instance is not None:
            injector.add_export(instance)
            return instance

        if meta.abort_load:
            logger.debug("Service %s has abort_load set; skipping", meta.name)
            return None

        if meta.resource:
            try:
                data = self.loader.load(meta.resource)
            except (OSError, ValueError, yaml.YAMLError) as e:
                logger.error("Resource %s for service %s cannot be read: %s", meta.resource, meta.name, e)
                return None
            if data is None:
                logger.warning("Resource %s for service %s is not found", meta.resource, meta.name)
                return None
            try:
                instance = cls(**data)
            except Exception:
                logger.exception("Failed to create instance of %s from resource %s", meta.name, meta.resource)
                return None
        else:
            logger.warning("Service %s should have a singleton instance attribute", meta.name)
            try:
                instance = cls()
            except Exception:
                logger.exception("Failed to create instance of %s", meta.name)
                return None

        injector.add_export(instance)
        return instance
