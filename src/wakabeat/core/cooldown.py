"""
Cooldown Gate — suppress heartbeats that arrive too soon after the last send.

The gate itself is advisory and stateless; DispatchState holds the one
piece of dedup state and is owned by a single dispatcher.
"""

from dataclasses import dataclass, field

from wakabeat.core.heartbeat import Heartbeat

DEFAULT_COOLDOWN_SECONDS = 1.0
DEFAULT_RATE_LIMIT_BACKOFF_SECONDS = 60.0


def should_send(
    candidate: Heartbeat,
    last_sent: Heartbeat,
    is_forced_write: bool,
    cooldown_seconds: float = DEFAULT_COOLDOWN_SECONDS,
) -> bool:
    """True if the candidate is worth sending.

    Forced writes always pass. Otherwise the candidate must be at least
    `cooldown_seconds` newer than the last sent heartbeat.
    """
    if is_forced_write:
        return True
    return candidate.time - last_sent.time >= cooldown_seconds


@dataclass
class DispatchState:
    """Dedup state for one dispatcher.

    last_sent:
    - most recently dispatched heartbeat (optimistic, before confirmation)
    - starts at the sentinel so the first heartbeat always passes
    backoff_until:
    - wall-clock time until which non-forced sends are held back (429)
    """
    last_sent: Heartbeat = field(default_factory=Heartbeat.sentinel)
    backoff_until: float = 0.0

    def record(self, heartbeat: Heartbeat) -> Heartbeat:
        """Optimistically mark a heartbeat as sent; return the value it replaced."""
        previous = self.last_sent
        self.last_sent = heartbeat
        return previous

    def rollback(self, heartbeat: Heartbeat, previous: Heartbeat) -> bool:
        """Undo `record(heartbeat)` unless something newer was recorded since.

        Identity, not equality: two distinct sends may carry equal fields.
        """
        if self.last_sent is not heartbeat:
            return False
        self.last_sent = previous
        return True

    def back_off(self, now: float, seconds: float):
        self.backoff_until = max(self.backoff_until, now + seconds)

    def backing_off(self, now: float) -> bool:
        return now < self.backoff_until
