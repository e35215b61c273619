"""
Dispatch Engine — turns activity events into delivered heartbeats.

build -> cooldown gate -> optimistic record -> transport (task) -> interpret
-> reconcile. Everything up to the optimistic record runs synchronously in
`dispatch()`, so a second event inside the cooldown window is suppressed even
while the first request is still in flight.

All state changes happen on the event loop that calls `dispatch()`:
completions are tasks on the same loop, so no locking is needed.
"""

import asyncio
import logging
import time
from typing import Callable, Optional, Set

from wakabeat.core.cooldown import (
    DEFAULT_COOLDOWN_SECONDS,
    DEFAULT_RATE_LIMIT_BACKOFF_SECONDS,
    DispatchState,
    should_send,
)
from wakabeat.core.events import EventBus
from wakabeat.core.heartbeat import Heartbeat, build_heartbeat
from wakabeat.core.interpreter import Outcome, OutcomeKind, interpret, report_outcome
from wakabeat.core.transport import HeartbeatTransport
from wakabeat.types import ActivityEvent, ConfigSnapshot, HttpResult

logger = logging.getLogger("wakabeat.dispatcher")


class HeartbeatDispatcher:
    """Owns the dedup state and the in-flight sends for one editor session."""

    def __init__(
        self,
        config: ConfigSnapshot,
        transport: Optional[HeartbeatTransport] = None,
        *,
        cooldown_seconds: float = DEFAULT_COOLDOWN_SECONDS,
        rate_limit_backoff_seconds: float = DEFAULT_RATE_LIMIT_BACKOFF_SECONDS,
        state: Optional[DispatchState] = None,
        bus: Optional[EventBus] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.config = config
        self.transport = transport or HeartbeatTransport()
        self.cooldown_seconds = cooldown_seconds
        self.rate_limit_backoff_seconds = rate_limit_backoff_seconds
        self.state = state or DispatchState()
        self.bus = bus or EventBus()
        self._clock = clock
        self._tasks: Set[asyncio.Task] = set()
        # Debug only raises verbosity; it never changes what gets sent
        self._verbose_level = logging.INFO if config.debug else logging.DEBUG

        # Config is a snapshot: decide once whether we are live
        if not config.enabled:
            logger.info("Explicitly disabled, heartbeats will not be sent")
            self.active = False
        elif not config.api_key:
            logger.warning("API key is not set, heartbeats will not be sent")
            self.active = False
        else:
            self.active = True
            logger.log(
                self._verbose_level,
                f"Dispatcher ready: project={config.project_name!r}, cooldown={cooldown_seconds}s",
            )

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def dispatch(self, event: ActivityEvent) -> Optional[asyncio.Task]:
        """Handle one activity event without blocking.

        Must be called from the event loop thread. Returns the delivery task
        (resolving to the Outcome) or None if nothing was sent.
        """
        if not self.active:
            return None

        heartbeat = build_heartbeat(event, self.config, clock=self._clock)

        if not event.is_forced_write and self.state.backing_off(heartbeat.time):
            self._skip(heartbeat, "rate_limited")
            return None

        if not should_send(heartbeat, self.state.last_sent, event.is_forced_write, self.cooldown_seconds):
            self._skip(heartbeat, "cooldown")
            return None

        previous = self.state.record(heartbeat)
        logger.log(self._verbose_level, f"Sending heartbeat... {heartbeat.to_wire()}")

        task = asyncio.get_running_loop().create_task(self._deliver(heartbeat, previous))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    def _skip(self, heartbeat: Heartbeat, reason: str):
        logger.log(
            self._verbose_level,
            f"Skip this heartbeat ({reason}): {heartbeat.time}, last={self.state.last_sent.time}",
        )
        self.bus.skipped(heartbeat, reason)

    async def _deliver(self, heartbeat: Heartbeat, previous: Heartbeat) -> Outcome:
        try:
            result = await self.transport.send(heartbeat, self.config.api_key)
        except Exception as e:
            # Transport bugs must not escape into the host
            logger.error(f"Transport failed unexpectedly: {e}", exc_info=True)
            result = HttpResult.unreachable(error=f"{type(e).__name__}: {e}")

        outcome = interpret(result)

        if outcome.rolls_back and not self.state.rollback(heartbeat, previous):
            logger.debug("Rollback skipped, a newer heartbeat was recorded since")
        if outcome.kind == OutcomeKind.RATE_LIMITED:
            self.state.back_off(self._clock(), self.rate_limit_backoff_seconds)

        report_outcome(outcome, heartbeat, verbose=self.config.debug)
        self.bus.outcome(heartbeat, outcome)
        return outcome

    async def drain(self):
        """Wait for every in-flight send to finish."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def close(self):
        """Shutdown hook: drain in-flight sends, then release the HTTP session."""
        if self._tasks:
            logger.info(f"Waiting for {len(self._tasks)} in-flight heartbeat(s)...")
        await self.drain()
        await self.transport.close()
