"""
Process-wide default injector.

Module-level helpers that forward to one lazily created
:class:`~exporthub.core.Injector`, configured from the environment and
bootstrapped from the default service table::

    from exporthub import add_export, get_first

    add_export(ConsoleLogger())
    logger = get_first(ILogger)
"""

import threading
from typing import Any, Optional, Tuple

from .bootstrap import Bootstrapper, ResourceLoader, default_table
from .config import ConfigLoader, HubConfig
from .core import Injector
from .resolution import Token

_default: Optional[Injector] = None
_default_lock = threading.Lock()


def create_injector(config: Optional[HubConfig] = None) -> Injector:
    """Injector wired to the default service table."""
    config = config or ConfigLoader.load()
    bootstrapper = Bootstrapper(default_table, ResourceLoader(config.resource_paths))
    return Injector(config, bootstrapper=bootstrapper)


def get_injector() -> Injector:
    """The process-wide injector, created on first use."""
    global _default
    if _default is None:
        with _default_lock:
            if _default is None:
                _default = create_injector()
    return _default


def set_injector(injector: Optional[Injector]) -> Optional[Injector]:
    """
    Replace the process-wide injector.

    Returns:
        The previous injector (not shut down)
    """
    global _default
    with _default_lock:
        previous, _default = _default, injector
    return previous


def reset_injector() -> None:
    """Shut down and forget the process-wide injector."""
    previous = set_injector(None)
    if previous is not None:
        previous.shutdown()


def add_export(instance: Any) -> None:
    get_injector().add_export(instance)


def remove_export(instance: Any) -> None:
    get_injector().remove_export(instance)


def get_first(token: Token) -> Any:
    return get_injector().get_first(token)


def get_all(token: Token) -> Tuple[Any, ...]:
    return get_injector().get_all(token)


def has_export(token: Token) -> bool:
    return get_injector().has_export(token)


def subscribe(instance: Any, member: Optional[str] = None) -> None:
    get_injector().subscribe(instance, member)


def unsubscribe(instance: Any, member: Optional[str] = None) -> None:
    get_injector().unsubscribe(instance, member)


def import_into(instance: Any, member: Optional[str] = None) -> None:
    get_injector().import_into(instance, member)
