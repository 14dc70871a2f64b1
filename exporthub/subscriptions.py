"""
Subscription manager - bookkeeping for live imports.

Holds (target, slot) pairs and answers which of them an export change
affects. Assignment itself is driven by the injector so that it happens
under the injector's lock.
"""

import logging
from typing import Any, List, Optional, Tuple

from .records import Export, ImportSlot, Subscription
from .resolution import matches

logger = logging.getLogger("exporthub.subscriptions")


class SubscriptionManager:
    """
    Ordered list of live subscriptions.

    Targets are held strongly: a consumer that is discarded without
    unsubscribing stays referenced until it is unsubscribed.
    """

    __slots__ = ("_subscriptions",)

    def __init__(self):
        self._subscriptions: List[Subscription] = []

    def add(self, target: Any, slot: ImportSlot) -> Subscription:
        """
        Record a subscription.

        Re-subscribing the same member replaces the previous entry in place.
        """
        subscription = Subscription(target=target, slot=slot)
        for index, existing in enumerate(self._subscriptions):
            if existing.is_for(target, slot.name):
                self._subscriptions[index] = subscription
                logger.debug("Subscription replaced: %s", _describe(subscription))
                return subscription

        self._subscriptions.append(subscription)
        logger.debug("Subscription added: %s", _describe(subscription))
        return subscription

    def remove(self, target: Any, member: Optional[str] = None) -> List[Subscription]:
        """
        Drop subscriptions of ``target`` (optionally one member).

        Returns:
            Removed subscriptions (empty if none matched)
        """
        removed = [s for s in self._subscriptions if s.is_for(target, member)]
        if removed:
            self._subscriptions = [s for s in self._subscriptions if not s.is_for(target, member)]
            for subscription in removed:
                logger.debug("Subscription removed: %s", _describe(subscription))
        return removed

    def affected_by(self, export: Export) -> List[Subscription]:
        """Subscriptions whose shape and key match ``export``."""
        return [
            s for s in self._subscriptions
            if matches(export, s.slot.item_type, s.slot.key)
        ]

    def is_live(self, subscription: Subscription) -> bool:
        return any(s is subscription for s in self._subscriptions)

    def for_target(self, target: Any) -> List[Subscription]:
        return [s for s in self._subscriptions if s.target is target]

    def snapshot(self) -> Tuple[Subscription, ...]:
        return tuple(self._subscriptions)

    def clear(self) -> List[Subscription]:
        removed, self._subscriptions = self._subscriptions, []
        return removed

    def __len__(self) -> int:
        return len(self._subscriptions)

    def __repr__(self) -> str:
        return f"SubscriptionManager(subscriptions={len(self._subscriptions)})"


def _describe(subscription: Subscription) -> str:
    return f"{type(subscription.target).__qualname__}.{subscription.slot.describe()}"
