"""
Event Bus — in-process notifications about heartbeat delivery.

The dispatcher publishes two kinds of event:

  heartbeat_outcome  (heartbeat, outcome)  one per completed send
  heartbeat_skipped  (heartbeat, reason)   one per suppressed send,
                                           reason is "cooldown" or "rate_limited"

Handlers run synchronously on the event loop thread. A failing handler is
logged and never reaches the dispatcher.
"""

import logging
from typing import TYPE_CHECKING, Callable, Dict, List

if TYPE_CHECKING:
    from wakabeat.core.heartbeat import Heartbeat
    from wakabeat.core.interpreter import Outcome

logger = logging.getLogger("wakabeat.events")

HEARTBEAT_OUTCOME = "heartbeat_outcome"
HEARTBEAT_SKIPPED = "heartbeat_skipped"

EVENT_TYPES = frozenset({HEARTBEAT_OUTCOME, HEARTBEAT_SKIPPED})

Handler = Callable[..., None]


class EventBus:
    """Synchronous bus for heartbeat outcome and skip notifications."""

    def __init__(self):
        self._handlers: Dict[str, List[Handler]] = {t: [] for t in EVENT_TYPES}

    def on(self, event_type: str, handler: Handler):
        """Subscribe to HEARTBEAT_OUTCOME or HEARTBEAT_SKIPPED."""
        if event_type not in EVENT_TYPES:
            raise ValueError(f"Unknown heartbeat event '{event_type}'")
        self._handlers[event_type].append(handler)

    def outcome(self, heartbeat: "Heartbeat", outcome: "Outcome"):
        self._emit(HEARTBEAT_OUTCOME, heartbeat=heartbeat, outcome=outcome)

    def skipped(self, heartbeat: "Heartbeat", reason: str):
        self._emit(HEARTBEAT_SKIPPED, heartbeat=heartbeat, reason=reason)

    def _emit(self, event_type: str, **payload):
        for handler in self._handlers[event_type]:
            try:
                handler(**payload)
            except Exception as e:
                logger.error(f"Heartbeat event handler failed ({event_type}): {e}", exc_info=True)

    def clear(self):
        """Drop every subscription."""
        for handlers in self._handlers.values():
            handlers.clear()
