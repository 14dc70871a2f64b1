"""
Test helpers: isolated injectors, export overrides, event recording.
"""

from typing import Annotated, Optional

from exporthub import HubEventType, Import, get_injector
from exporthub.testing import RecordingListener, isolated_injector, override_export


class Clock:
    pass


class FakeClock(Clock):
    pass


class Scheduler:
    clock: Annotated[Optional[Clock], Import()] = None
    clocks: Annotated[tuple[Clock, ...], Import()] = ()


class TestIsolatedInjector:

    def test_shut_down_on_exit(self):
        scheduler = Scheduler()
        with isolated_injector() as hub:
            hub.add_export(Clock())
            hub.subscribe(scheduler)
            assert scheduler.clock is not None

        assert hub.closed is True
        assert scheduler.clock is None

    def test_install_swaps_default(self):
        outer = get_injector()
        with isolated_injector(install=True) as hub:
            assert get_injector() is hub
        assert get_injector() is outer


class TestOverrideExport:

    def test_stand_in_only_inside_block(self, injector):
        real = Clock()
        injector.add_export(real)
        scheduler = Scheduler()
        injector.subscribe(scheduler)

        with override_export(injector, FakeClock()) as fake:
            assert scheduler.clocks == (real, fake)
            assert scheduler.clock is real

        assert scheduler.clocks == (real,)
        assert injector.has_export(FakeClock) is False

    def test_scalar_sees_stand_in_when_alone(self, injector):
        scheduler = Scheduler()
        injector.subscribe(scheduler)

        with override_export(injector, FakeClock()) as fake:
            assert scheduler.clock is fake

        assert scheduler.clock is None


class TestRecordingListener:

    def test_filters(self, injector):
        events = RecordingListener()
        injector.diagnostics.add_listener(events)
        injector.subscribe(Scheduler())
        injector.add_export(Clock())

        assert len(events.of_type(HubEventType.EXPORT_ADDED)) == 1
        assert events.members_updated() == ["clock", "clocks", "clock", "clocks"]

        events.clear()
        assert events.events == []
