"""
wakabeat Type Definitions — structured types for data flowing through the system.

Use these instead of raw dicts for activity notifications, configuration
snapshots and transport results.
"""

import time
from dataclasses import dataclass, field
from typing import Optional


# ─── Host Input ──────────────────────────────────────────────

@dataclass(frozen=True)
class ActivityEvent:
    """An activity notification from the host editor."""
    source_path: str = ""  # empty = no file currently active
    is_forced_write: bool = False  # explicit save, bypasses cooldown
    timestamp: float = field(default_factory=time.time)


@dataclass(frozen=True)
class ConfigSnapshot:
    """Read-only view of the user configuration, taken once at startup."""
    api_key: str = ""
    enabled: bool = True
    debug: bool = False
    project_name: str = ""
    branch: str = "master"


# ─── Transport Output ────────────────────────────────────────

@dataclass(frozen=True)
class HttpResult:
    """Raw result of one heartbeat submission."""
    status: Optional[int] = None  # None = no response at all
    body: str = ""
    # Transport failure, or why a received body could not be decoded
    error: Optional[str] = None

    @classmethod
    def unreachable(cls, error: Optional[str] = None) -> "HttpResult":
        return cls(status=None, body="", error=error)

    @property
    def reachable(self) -> bool:
        return bool(self.status)
