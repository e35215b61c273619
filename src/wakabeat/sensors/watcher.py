"""
File Activity Sensor — turn filesystem changes into ActivityEvents.

watchdog delivers events on its own thread; the handler only buffers them.
The daemon drains the buffer on the event loop, so dispatch state is only
ever touched from one thread.
"""

import fnmatch
import logging
import threading
import time
from pathlib import Path
from typing import Dict, List, Optional

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from wakabeat.types import ActivityEvent

logger = logging.getLogger("wakabeat.sensors")

# watchdog event type -> our change type
_EVENT_TYPES = {
    "created": "created",
    "modified": "modified",
    "deleted": "deleted",
    "moved": "moved",
    "closed": "modified",
}

# A modification is a save on disk
_WRITE_TYPES = frozenset({"modified"})


class _WatchdogHandler(FileSystemEventHandler):
    """Collects file events from watchdog into a thread-safe buffer."""

    def __init__(self, ignore_patterns: List[str]):
        super().__init__()
        self._ignore_patterns = ignore_patterns
        self._lock = threading.Lock()
        self._buffer: List[dict] = []

    def _should_ignore(self, path: str) -> bool:
        name = Path(path).name
        for pattern in self._ignore_patterns:
            if '*' in pattern or '?' in pattern:
                if fnmatch.fnmatch(name, pattern) or fnmatch.fnmatch(path, pattern):
                    return True
            elif pattern in Path(path).parts:
                return True
        return False

    def on_any_event(self, event: FileSystemEvent):
        if event.is_directory:
            return
        # Moves count as activity on the destination
        src = getattr(event, "dest_path", "") or event.src_path
        if isinstance(src, bytes):
            src = src.decode()
        if self._should_ignore(src):
            return
        etype = _EVENT_TYPES.get(event.event_type)
        if not etype:
            return
        with self._lock:
            self._buffer.append({"path": src, "type": etype, "time": time.time()})

    def drain(self) -> List[dict]:
        """Drain buffered events (thread-safe)."""
        with self._lock:
            events = self._buffer
            self._buffer = []
        # Deduplicate: keep last event per path
        seen: Dict[str, dict] = {}
        for e in events:
            seen.pop(e["path"], None)
            seen[e["path"]] = e
        return list(seen.values())


def to_activity(change: dict) -> ActivityEvent:
    return ActivityEvent(
        source_path=str(Path(change["path"]).resolve()),
        is_forced_write=change["type"] in _WRITE_TYPES,
        timestamp=change.get("time", time.time()),
    )


class FileActivitySensor:
    """Watch project directories with watchdog (event-driven, not polling)."""

    def __init__(self, paths: List[str], ignore_patterns: Optional[List[str]] = None):
        self.paths = paths
        self._handler = _WatchdogHandler(ignore_patterns or [])
        self._observer: Optional[Observer] = None

    def start(self) -> int:
        """Start the observer; returns how many paths are being watched."""
        self._observer = Observer()
        watched = 0
        for watch_path in self.paths:
            resolved = Path(watch_path).expanduser()
            if resolved.exists():
                self._observer.schedule(self._handler, str(resolved), recursive=True)
                watched += 1
            else:
                logger.warning(f"Watch path does not exist: {resolved}")

        self._observer.daemon = True
        self._observer.start()
        logger.info(f"Watching {watched} path(s) via watchdog")
        return watched

    def drain(self) -> List[ActivityEvent]:
        """Activity since the last drain, oldest first, one per path."""
        changes = self._handler.drain()
        if changes:
            logger.debug(f"FileActivitySensor: {len(changes)} changes detected")
        return [to_activity(c) for c in changes]

    def stop(self):
        if self._observer:
            self._observer.stop()
            self._observer.join(timeout=5)
            self._observer = None
            logger.info("FileActivitySensor stopped")
