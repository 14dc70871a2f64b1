"""
ExportHub Testing - isolated injectors and event capture.

Provides :func:`isolated_injector`, :func:`override_export` and
:class:`RecordingListener` for tests that must not share the
process-wide injector.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Iterator, List, Optional

from .bootstrap import Bootstrapper, ServiceTable
from .config import HubConfig
from .core import Injector
from .default import set_injector
from .diagnostics import HubEvent, HubEventType


class RecordingListener:
    """
    Diagnostic listener that keeps every event for assertions.

    Usage::

        events = RecordingListener()
        injector.diagnostics.add_listener(events)
        injector.add_export(svc)
        assert events.of_type(HubEventType.EXPORT_ADDED)
    """

    def __init__(self):
        self.events: List[HubEvent] = []

    def on_event(self, event: HubEvent) -> None:
        self.events.append(event)

    def of_type(self, event_type: HubEventType) -> List[HubEvent]:
        return [e for e in self.events if e.type == event_type]

    def members_updated(self) -> List[str]:
        return [
            e.member for e in self.events
            if e.type == HubEventType.MEMBER_UPDATED and e.member is not None
        ]

    def clear(self) -> None:
        self.events.clear()


@contextmanager
def isolated_injector(
    config: Optional[HubConfig] = None,
    *,
    table: Optional[ServiceTable] = None,
    install: bool = False,
) -> Iterator[Injector]:
    """
    Fresh injector shut down on exit.

    Args:
        config: Optional config (defaults to HubConfig())
        table: Optional service table to bootstrap from
        install: Also make it the process-wide injector for the block

    Usage::

        with isolated_injector() as injector:
            injector.add_export(FakeMailer())
            ...
    """
    bootstrapper = Bootstrapper(table) if table is not None else None
    injector = Injector(config, bootstrapper=bootstrapper)
    previous = set_injector(injector) if install else None
    try:
        yield injector
    finally:
        if install:
            set_injector(previous)
        injector.shutdown()


@contextmanager
def override_export(injector: Injector, stand_in: Any) -> Iterator[Any]:
    """
    Export ``stand_in`` for the duration of the block.

    Subscribed consumers are re-resolved on entry and again on exit, so
    collection imports include the stand-in only inside the block.

    Usage::

        with override_export(injector, FakeClock()):
            assert consumer.clock is not None
    """
    injector.add_export(stand_in)
    try:
        yield stand_in
    finally:
        injector.remove_export(stand_in)
