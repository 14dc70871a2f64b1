"""
Injector - the export hub context object.

Owns the export registry, the resolver and the subscription manager and
serializes every public operation under one re-entrant lock, so
notification always observes a consistent registry.

Mutations issued from inside a member setter (a subscriber reacting to
an update by exporting or removing something) are queued and processed
in order once the current operation has delivered all of its updates.
"""

import logging
import threading
from collections import deque
from typing import Any, Callable, Deque, Dict, Optional, Tuple

from .config import DuplicatePolicy, HubConfig
from .diagnostics import HubDiagnostics, HubEventType
from .errors import (
    DuplicateExportError,
    ExportHubError,
    ImportDeclarationError,
    InjectorClosedError,
    InvalidExportError,
)
from .members import discover_slots
from .records import Export, ImportSlot, Subscription
from .registry import ExportRegistry, is_exportable, make_export
from .resolution import Resolver, Token
from .subscriptions import SubscriptionManager

logger = logging.getLogger("exporthub.core")


class Injector:
    """
    Process-local registry of exports and live imports.

    Example:
        injector = Injector()
        injector.add_export(ConsoleLogger())
        injector.get_first(ILogger)       # -> the ConsoleLogger
        injector.subscribe(consumer)      # consumer.logger kept up to date
    """

    __slots__ = (
        "_config",
        "_lock",
        "_registry",
        "_resolver",
        "_subscriptions",
        "_diagnostics",
        "_bootstrapper",
        "_dispatching",
        "_pending",
        "_closed",
    )

    def __init__(
        self,
        config: Optional[HubConfig] = None,
        *,
        bootstrapper: Optional[Any] = None,
        diagnostics: Optional[HubDiagnostics] = None,
    ):
        self._config = config or HubConfig()
        self._lock = threading.RLock()
        self._registry = ExportRegistry()
        self._diagnostics = diagnostics or HubDiagnostics()
        self._resolver = Resolver(
            self._registry,
            warn_on_ambiguous=self._config.warn_on_ambiguous,
            on_ambiguous=self._ambiguous,
        )
        self._subscriptions = SubscriptionManager()
        self._bootstrapper = bootstrapper if self._config.auto_bootstrap else None
        self._dispatching = False
        self._pending: Deque[Callable[[], None]] = deque()
        self._closed = False

    @property
    def config(self) -> HubConfig:
        return self._config

    @property
    def diagnostics(self) -> HubDiagnostics:
        return self._diagnostics

    # ------------------------------------------------------------------
    # Exporting
    # ------------------------------------------------------------------

    def add_export(self, instance: Any, *, strict: bool = False) -> None:
        """
        Export ``instance`` under its runtime type and notify subscribers.

        Collections and parameterized containers are rejected: logged and
        ignored, or raised as InvalidExportError when ``strict`` is set.

        Raises:
            InjectorClosedError: After ``shutdown()``
        """
        with self._lock:
            self._check_open("add an export")
            self._ensure_bootstrapped()
            if self._dispatching:
                self._pending.append(lambda: self._add_locked(instance, strict))
                return
            self._add_locked(instance, strict)
            self._drain()

    def remove_export(self, instance: Any) -> None:
        """
        Remove every record of ``instance`` and re-resolve affected imports.

        No-op if ``instance`` was never exported.
        """
        with self._lock:
            self._ensure_bootstrapped()
            if self._dispatching:
                self._pending.append(lambda: self._remove_locked(instance))
                return
            self._remove_locked(instance)
            self._drain()

    def _add_locked(self, instance: Any, strict: bool) -> None:
        if not is_exportable(instance):
            error = InvalidExportError(type(instance))
            self._diagnostics.emit(
                HubEventType.EXPORT_REJECTED, token=type(instance), instance=instance, error=error,
            )
            if strict:
                raise error
            logger.error(
                "Collections and parameterized containers are not valid exports; "
                "export individually or a container (%s)", type(instance).__qualname__,
            )
            return

        existing = self._registry.find_instance(instance)
        if existing:
            policy = self._config.duplicate_policy
            if policy is DuplicatePolicy.RAISE:
                raise DuplicateExportError(instance, len(existing))
            logger.warning(
                "Export is being added multiple times: %s (policy=%s)",
                existing[0].describe(), policy.value,
            )
            if policy is DuplicatePolicy.IGNORE:
                return
            if policy is DuplicatePolicy.REPLACE:
                self._remove_locked(instance)

        export = make_export(instance)
        self._registry.append(export)
        self._diagnostics.emit(
            HubEventType.EXPORT_ADDED, token=export.declared_type, key=export.key, instance=instance,
        )
        self._notify(export)

    def _remove_locked(self, instance: Any) -> None:
        removed = self._registry.remove_instance(instance)
        for export in removed:
            self._diagnostics.emit(
                HubEventType.EXPORT_REMOVED, token=export.declared_type, key=export.key, instance=instance,
            )
            self._notify(export)

    # ------------------------------------------------------------------
    # Resolving
    # ------------------------------------------------------------------

    def get_first(self, token: Token) -> Any:
        """First export matching a type or key, or None."""
        with self._lock:
            self._ensure_bootstrapped()
            return self._resolver.get_first(token)

    def get_all(self, token: Token) -> Tuple[Any, ...]:
        """All exports matching a type or key, in registration order."""
        with self._lock:
            self._ensure_bootstrapped()
            return self._resolver.get_all(token)

    def has_export(self, token: Token) -> bool:
        with self._lock:
            self._ensure_bootstrapped()
            return self._resolver.has_export(token)

    def exports(self) -> Tuple[Export, ...]:
        """Snapshot of all export records."""
        with self._lock:
            self._ensure_bootstrapped()
            return self._registry.snapshot()

    # ------------------------------------------------------------------
    # Importing / subscribing
    # ------------------------------------------------------------------

    def import_into(self, instance: Any, member: Optional[str] = None) -> None:
        """Resolve and assign import slots once, without keeping them live."""
        with self._lock:
            self._check_open("import into an instance")
            self._ensure_bootstrapped()
            slots = self._select_slots(instance, member)

            def run() -> None:
                for slot in slots:
                    self._assign(instance, slot)

            self._dispatch(run)
            self._drain()

    def subscribe(self, instance: Any, member: Optional[str] = None) -> None:
        """
        Assign import slots now and keep them in sync with later changes.

        Args:
            instance: Consumer declaring import metadata
            member: Optional single member name

        Raises:
            ImportDeclarationError: If metadata is unresolvable or ``member``
                declares no import
            InjectorClosedError: After ``shutdown()``
        """
        with self._lock:
            self._check_open("subscribe")
            self._ensure_bootstrapped()
            slots = self._select_slots(instance, member)

            def run() -> None:
                for slot in slots:
                    self._assign(instance, slot)
                    self._subscriptions.add(instance, slot)
                    self._diagnostics.emit(
                        HubEventType.SUBSCRIBED, token=slot.item_type, key=slot.key,
                        instance=instance, member=slot.name,
                    )

            self._dispatch(run)
            self._drain()

    def unsubscribe(self, instance: Any, member: Optional[str] = None) -> None:
        """
        Stop live updates and clear the affected members.

        Scalars become None, lists [] and tuples (). Unsubscribing
        something that is not subscribed is a no-op.
        """
        with self._lock:
            removed = self._subscriptions.remove(instance, member)
            if not removed:
                return

            def run() -> None:
                for subscription in removed:
                    self._clear(subscription)
                    self._diagnostics.emit(
                        HubEventType.UNSUBSCRIBED, token=subscription.slot.item_type,
                        key=subscription.slot.key, instance=instance, member=subscription.member,
                    )

            self._dispatch(run)
            self._drain()

    def subscriptions(self) -> Tuple[Subscription, ...]:
        """Snapshot of live subscriptions."""
        with self._lock:
            return self._subscriptions.snapshot()

    def is_subscribed(self, instance: Any, member: Optional[str] = None) -> bool:
        with self._lock:
            return any(s.is_for(instance, member) for s in self._subscriptions.snapshot())

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def shutdown(self) -> None:
        """
        Unsubscribe everything and drop all export records.

        Exported instances are not disposed; their lifetime belongs to the
        exporter. A shut down injector is empty for lookups and raises
        InjectorClosedError from add_export, subscribe and import_into.
        """
        with self._lock:
            if self._closed:
                return
            self._closed = True
            removed = self._subscriptions.clear()

            def run() -> None:
                for subscription in removed:
                    self._clear(subscription)

            self._dispatch(run)
            self._registry.clear()
            self._pending.clear()
            logger.debug("Injector shut down (%d subscriptions cleared)", len(removed))

    @property
    def closed(self) -> bool:
        return self._closed

    def __enter__(self) -> "Injector":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        self.shutdown()
        return False

    def __repr__(self) -> str:
        return (
            f"Injector(exports={len(self._registry)}, "
            f"subscriptions={len(self._subscriptions)})"
        )

    # ------------------------------------------------------------------
    # Internals (lock held)
    # ------------------------------------------------------------------

    def _check_open(self, operation: str) -> None:
        if self._closed:
            raise InjectorClosedError(operation)

    def _ensure_bootstrapped(self) -> None:
        if self._closed:
            return
        if self._bootstrapper is not None and not self._bootstrapper.is_loaded:
            self._bootstrapper.load_services(self)

    def _select_slots(self, instance: Any, member: Optional[str]) -> Tuple[ImportSlot, ...]:
        slots: Dict[str, ImportSlot] = discover_slots(instance)
        if member is None:
            return tuple(slots.values())
        slot = slots.get(member)
        if slot is None:
            raise ImportDeclarationError(
                type(instance).__qualname__, member, "member declares no import metadata",
            )
        return (slot,)

    def _notify(self, export: Export) -> None:
        affected = self._subscriptions.affected_by(export)
        if not affected:
            return

        def run() -> None:
            for subscription in affected:
                # An earlier setter may have unsubscribed it
                if self._subscriptions.is_live(subscription):
                    self._assign(subscription.target, subscription.slot)

        self._dispatch(run)

    def _dispatch(self, run: Callable[[], Any]) -> None:
        """Run setter calls with re-entrant mutations deferred."""
        outer = not self._dispatching
        self._dispatching = True
        try:
            run()
        finally:
            if outer:
                self._dispatching = False

    def _drain(self) -> None:
        while self._pending and not self._dispatching:
            operation = self._pending.popleft()
            try:
                operation()
            except ExportHubError as e:
                logger.error("Deferred export change failed: %s", e)

    def _assign(self, target: Any, slot: ImportSlot) -> None:
        value = self._resolver.resolve_slot(slot)
        self._write(target, slot, value)

    def _clear(self, subscription: Subscription) -> None:
        self._write(subscription.target, subscription.slot, subscription.slot.empty)

    def _write(self, target: Any, slot: ImportSlot, value: Any) -> None:
        try:
            slot.setter(value)
        except Exception as e:
            logger.exception(
                "Failed to assign %s.%s", type(target).__qualname__, slot.name,
            )
            self._diagnostics.emit(
                HubEventType.MEMBER_UPDATED, token=slot.item_type, key=slot.key,
                instance=target, member=slot.name, error=e,
            )
            return
        self._diagnostics.emit(
            HubEventType.MEMBER_UPDATED, token=slot.item_type, key=slot.key,
            instance=target, member=slot.name,
        )

    def _ambiguous(self, token: Token, count: int) -> None:
        self._diagnostics.emit(
            HubEventType.AMBIGUOUS_RESOLUTION,
            token=token if isinstance(token, type) else None,
            key=token if isinstance(token, str) else None,
            metadata={"matches": count},
        )
