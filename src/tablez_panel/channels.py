"""Named event channels for driver telemetry.

Subscribing returns a :class:`Subscription` handle. Cancelling it is
idempotent and stops delivery immediately, including for events emitted
later in the same loop iteration.
"""

import logging
from typing import Any, Callable, Dict, List

LOG = logging.getLogger("tablez.channels")

POINTER = 'pointer'
BUTTON = 'button'

Callback = Callable[[Any], None]


class Subscription:
    """Handle for one listener on one channel."""

    def __init__(self, channels: 'EventChannels', name: str, callback: Callback):
        self._channels = channels
        self.name = name
        self.callback = callback
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def cancel(self) -> None:
        """Stop receiving events. Safe to call more than once."""
        if not self._active:
            return
        self._active = False
        self._channels._remove(self)

    def deliver(self, payload: Any) -> None:
        if self._active:
            self.callback(payload)

    def __enter__(self) -> 'Subscription':
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.cancel()


class EventChannels:
    """Registry of channel listeners."""

    def __init__(self):
        self._listeners: Dict[str, List[Subscription]] = {}

    def subscribe(self, name: str, callback: Callback) -> Subscription:
        """Add a long-lived listener to a channel."""
        sub = Subscription(self, name, callback)
        self._listeners.setdefault(name, []).append(sub)
        return sub

    def listener_count(self, name: str) -> int:
        """Number of active listeners on a channel."""
        return len(self._listeners.get(name, []))

    def emit(self, name: str, payload: Any) -> None:
        """Deliver payload to every active listener of a channel."""
        # Copy: callbacks may cancel subscriptions while we iterate
        for sub in list(self._listeners.get(name, [])):
            try:
                sub.deliver(payload)
            except Exception:
                LOG.exception("Listener on %r failed", name)

    def _remove(self, sub: Subscription) -> None:
        listeners = self._listeners.get(sub.name)
        if listeners and sub in listeners:
            listeners.remove(sub)
