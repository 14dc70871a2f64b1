"""
Hub Diagnostics - Observability and event tracking for injectors.
"""

import dataclasses
import logging
import time
from enum import Enum
from typing import Any, Dict, List, Optional, Protocol

logger = logging.getLogger("exporthub.diagnostics")


class HubEventType(Enum):
    """Types of hub events."""
    EXPORT_ADDED = "export_added"
    EXPORT_REJECTED = "export_rejected"
    EXPORT_REMOVED = "export_removed"
    SUBSCRIBED = "subscribed"
    UNSUBSCRIBED = "unsubscribed"
    MEMBER_UPDATED = "member_updated"
    AMBIGUOUS_RESOLUTION = "ambiguous_resolution"


@dataclasses.dataclass
class HubEvent:
    """A diagnostic event in the hub."""
    type: HubEventType
    timestamp: float = dataclasses.field(default_factory=time.time)
    token: Optional[Any] = None
    key: Optional[str] = None
    instance: Optional[Any] = None
    member: Optional[str] = None
    error: Optional[Exception] = None
    metadata: Dict[str, Any] = dataclasses.field(default_factory=dict)


class DiagnosticListener(Protocol):
    """Interface for hub diagnostic listeners."""
    def on_event(self, event: HubEvent) -> None:
        """Called when a hub event occurs."""
        ...


class ConsoleDiagnosticListener:
    """Diagnostic listener that writes events to the diagnostics logger."""
    def __init__(self, log_level: int = logging.DEBUG):
        self.log_level = log_level

    def on_event(self, event: HubEvent) -> None:
        if event.type == HubEventType.EXPORT_ADDED:
            logger.log(self.log_level, f"Exported {_name(event.token)} (key={event.key})")
        elif event.type == HubEventType.EXPORT_REMOVED:
            logger.log(self.log_level, f"Removed export {_name(event.token)} (key={event.key})")
        elif event.type == HubEventType.EXPORT_REJECTED:
            logger.log(logging.ERROR, f"✗ Rejected export {_name(event.token)}: {event.error}")
        elif event.type == HubEventType.SUBSCRIBED:
            logger.log(self.log_level, f"Subscribed {_name(type(event.instance))}.{event.member}")
        elif event.type == HubEventType.UNSUBSCRIBED:
            logger.log(self.log_level, f"Unsubscribed {_name(type(event.instance))}.{event.member}")
        elif event.type == HubEventType.MEMBER_UPDATED:
            if event.error is not None:
                logger.log(logging.ERROR, f"✗ Failed to update {_name(type(event.instance))}.{event.member}: {event.error}")
            else:
                logger.log(self.log_level, f"✓ Updated {_name(type(event.instance))}.{event.member}")
        elif event.type == HubEventType.AMBIGUOUS_RESOLUTION:
            logger.log(logging.WARNING, f"Ambiguous lookup of {_name(event.token)}: {event.metadata.get('matches')} matches")


class HubDiagnostics:
    """Coordinator for hub diagnostic listeners."""
    def __init__(self):
        self._listeners: List[DiagnosticListener] = []

    def add_listener(self, listener: DiagnosticListener) -> None:
        """Add a diagnostic listener."""
        self._listeners.append(listener)

    def remove_listener(self, listener: DiagnosticListener) -> None:
        """Remove a diagnostic listener (no-op if absent)."""
        self._listeners = [l for l in self._listeners if l is not listener]

    def emit(self, event_type: HubEventType, **kwargs) -> None:
        """Emit a diagnostic event to all listeners."""
        if not self._listeners:
            return
        event = HubEvent(type=event_type, **kwargs)
        for listener in list(self._listeners):
            try:
                listener.on_event(event)
            except Exception as e:
                # Diagnostics should never break the registry
                logger.error(f"Diagnostic listener error: {e}")


def _name(token: Any) -> str:
    if isinstance(token, type):
        return token.__qualname__
    return repr(token)
