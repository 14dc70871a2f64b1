"""
Export registry, exportability rules and duplicate export policies.
"""

import array
import collections
import logging
from typing import Generic, TypeVar

import pytest

from exporthub import (
    DuplicateExportError,
    DuplicatePolicy,
    HubConfig,
    HubEventType,
    Injector,
    InvalidExportError,
    export,
)
from exporthub.registry import ExportRegistry, is_exportable, make_export

T = TypeVar("T")


class Service:
    pass


class Box(Generic[T]):
    pass


@export(key="primary")
class Primary:
    pass


# ============================================================================
# Exportability
# ============================================================================

class TestExportability:

    @pytest.mark.parametrize("value", [
        [],
        (1, 2),
        {1},
        frozenset(),
        {"a": 1},
        collections.deque(),
        array.array("i"),
        Box[int](),
    ])
    def test_containers_rejected(self, value):
        assert is_exportable(value) is False

    @pytest.mark.parametrize("value", [Service(), Box(), "text", 42])
    def test_single_objects_accepted(self, value):
        assert is_exportable(value) is True

    def test_slotted_generic_cannot_be_told_apart(self):
        class SlottedBox(Generic[T]):
            __slots__ = ()

        assert is_exportable(SlottedBox[int]()) is True
        assert is_exportable(SlottedBox()) is True

    def test_rejected_export_is_logged(self, injector, events, caplog):
        with caplog.at_level(logging.ERROR, logger="exporthub.core"):
            injector.add_export([Service()])

        assert injector.exports() == ()
        assert "not valid exports" in caplog.text
        rejected = events.of_type(HubEventType.EXPORT_REJECTED)
        assert len(rejected) == 1
        assert isinstance(rejected[0].error, InvalidExportError)

    def test_strict_raises(self, injector):
        with pytest.raises(InvalidExportError):
            injector.add_export((Service(),), strict=True)


# ============================================================================
# Records
# ============================================================================

class TestExportRegistry:

    def test_make_export_uses_runtime_type_and_key(self):
        record = make_export(Primary())
        assert record.declared_type is Primary
        assert record.key == "primary"
        assert record.has_key is True
        assert "key=primary" in record.describe()

    def test_remove_returns_every_record(self):
        registry = ExportRegistry()
        svc, other = Service(), Service()
        registry.append(make_export(svc))
        registry.append(make_export(other))
        registry.append(make_export(svc))

        removed = registry.remove_instance(svc)

        assert len(removed) == 2
        assert [e.instance for e in registry] == [other]
        assert registry.contains_instance(svc) is False

    def test_iteration_is_over_a_copy(self):
        registry = ExportRegistry()
        registry.append(make_export(Service()))
        for record in registry:
            registry.append(make_export(Service()))
        assert len(registry) == 2

    def test_snapshot_and_clear(self):
        registry = ExportRegistry()
        registry.append(make_export(Service()))
        snapshot = registry.snapshot()

        cleared = registry.clear()

        assert len(snapshot) == 1
        assert len(cleared) == 1
        assert len(registry) == 0


# ============================================================================
# Duplicate policies
# ============================================================================

class TestDuplicatePolicy:

    def test_allow_keeps_both_records(self, caplog):
        hub = Injector(HubConfig(duplicate_policy=DuplicatePolicy.ALLOW))
        svc = Service()
        with caplog.at_level(logging.WARNING, logger="exporthub.core"):
            hub.add_export(svc)
            hub.add_export(svc)

        assert hub.get_all(Service) == (svc, svc)
        assert "multiple times" in caplog.text

        hub.remove_export(svc)
        assert hub.get_all(Service) == ()

    def test_ignore_keeps_one_record(self):
        hub = Injector(HubConfig(duplicate_policy="ignore"))
        svc = Service()
        hub.add_export(svc)
        hub.add_export(svc)
        assert hub.get_all(Service) == (svc,)

    def test_replace_moves_to_end(self):
        hub = Injector(HubConfig(duplicate_policy=DuplicatePolicy.REPLACE))
        svc, other = Service(), Service()
        hub.add_export(svc)
        hub.add_export(other)
        hub.add_export(svc)
        assert hub.get_all(Service) == (other, svc)

    def test_raise(self):
        hub = Injector(HubConfig(duplicate_policy=DuplicatePolicy.RAISE))
        svc = Service()
        hub.add_export(svc)

        with pytest.raises(DuplicateExportError) as exc_info:
            hub.add_export(svc)

        assert exc_info.value.instance is svc
        assert hub.get_all(Service) == (svc,)
