"""
wakabeat Daemon — watch project files and report heartbeats until stopped.

SENSE (drain file activity) -> DISPATCH (one event at a time) -> sleep.
"""

import asyncio
import logging
import signal
import time
from typing import List, Optional

from wakabeat.core.config import WakabeatConfig
from wakabeat.core.dispatcher import HeartbeatDispatcher
from wakabeat.core.transport import HeartbeatTransport
from wakabeat.sensors.editor import EditorActivity, activity_event
from wakabeat.sensors.watcher import FileActivitySensor

logger = logging.getLogger("wakabeat")


class WakabeatDaemon:
    """Main daemon process."""

    def __init__(self, config: Optional[WakabeatConfig] = None, paths: Optional[List[str]] = None):
        self.config = config or WakabeatConfig.load()
        self.running = False
        self.start_time: Optional[float] = None
        self.snapshot = self.config.snapshot()
        self.dispatcher = HeartbeatDispatcher(
            self.snapshot,
            HeartbeatTransport(
                api_url=self.config.api.api_url,
                timeout_seconds=self.config.api.timeout_seconds,
            ),
            cooldown_seconds=self.config.dispatch.cooldown_seconds,
            rate_limit_backoff_seconds=self.config.dispatch.rate_limit_backoff_seconds,
        )
        watch_paths = paths or self.config.watch.paths or [self.config.project.root]
        self.sensor = FileActivitySensor(watch_paths, self.config.watch.ignore_patterns)

    def run(self):
        """Start the daemon. Blocks until shutdown."""
        if not self.dispatcher.active:
            logger.warning("wakabeat is inactive (disabled or no API key), nothing to do")
            return

        self.running = True
        self.start_time = time.time()

        logger.info("wakabeat starting")
        logger.info(f"   Project: {self.snapshot.project_name} ({self.snapshot.branch})")
        logger.info(f"   API: {self.config.api.api_url}")
        logger.info(f"   Cooldown: {self.dispatcher.cooldown_seconds}s")

        try:
            asyncio.run(self._main_loop())
        except KeyboardInterrupt:
            logger.info("wakabeat interrupted, shutting down")
        finally:
            self.running = False

    async def _main_loop(self):
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, self._handle_shutdown)
            except (NotImplementedError, RuntimeError):
                pass

        self.sensor.start()
        try:
            # Startup heartbeat: editor open, no file active yet
            self.dispatcher.dispatch(activity_event(EditorActivity.STARTUP))

            while self.running:
                for event in self.sensor.drain():
                    self.dispatcher.dispatch(event)
                await asyncio.sleep(self.config.watch.poll_interval_seconds)
        finally:
            logger.info("Shutting down...")
            self.sensor.stop()
            await self.dispatcher.close()

    def _handle_shutdown(self):
        """Handle shutdown signal from asyncio loop."""
        logger.info("Received shutdown signal, initiating shutdown")
        self.running = False
