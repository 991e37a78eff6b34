"""Synchronous publish/subscribe feed for roster changes."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, FrozenSet, List, Optional

logger = logging.getLogger("appointme.events")


class ServiceEvent(str, Enum):
    """Names of the events published by the user service."""

    USER_CREATED = "userCreated"
    USER_UPDATED = "userUpdated"
    USER_DELETED = "userDeleted"
    USERS_CHANGED = "usersChanged"
    USERS_LOADED = "usersLoaded"
    USERS_SAVED = "usersSaved"
    BULK_IMPORT = "bulkImport"
    ERROR = "error"


Listener = Callable[[ServiceEvent, Any], None]


@dataclass(eq=False)
class Subscription:
    """Handle returned by :meth:`EventBus.subscribe`."""

    bus: "EventBus"
    listener: Listener
    events: Optional[FrozenSet[ServiceEvent]] = None
    active: bool = field(default=True)

    def wants(self, event: ServiceEvent) -> bool:
        return self.events is None or event in self.events

    def unsubscribe(self) -> None:
        if self.active:
            self.bus._remove(self)


class EventBus:
    """Delivers every published event to the matching listeners in registration order."""

    def __init__(self) -> None:
        self._subscriptions: List[Subscription] = []

    def __len__(self) -> int:
        return len(self._subscriptions)

    def subscribe(self, listener: Listener, *events: ServiceEvent | str) -> Subscription:
        """Register ``listener`` for ``events``, or for every event when none are given."""

        scope = frozenset(ServiceEvent(event) for event in events) if events else None
        subscription = Subscription(bus=self, listener=listener, events=scope)
        self._subscriptions.append(subscription)
        return subscription

    def unsubscribe(self, listener: Listener) -> bool:
        """Remove every subscription registered for ``listener``."""

        matches = [sub for sub in self._subscriptions if sub.listener == listener]
        for subscription in matches:
            self._remove(subscription)
        return bool(matches)

    def _remove(self, subscription: Subscription) -> None:
        subscription.active = False
        if subscription in self._subscriptions:
            self._subscriptions.remove(subscription)

    def publish(self, event: ServiceEvent, payload: Any = None) -> None:
        # Iterate over a copy so listeners may unsubscribe while being notified.
        for subscription in list(self._subscriptions):
            if not subscription.active or not subscription.wants(event):
                continue
            try:
                subscription.listener(event, payload)
            except Exception:
                logger.exception("Listener %r failed while handling %s", subscription.listener, event.value)


__all__ = ["EventBus", "Listener", "ServiceEvent", "Subscription"]
