"""
Heartbeat — the unit of telemetry, plus the builder and the wire codec.

A heartbeat is derived from an ActivityEvent and the ConfigSnapshot. Only
`entity`, `time` and `is_write` vary per event; every other field is fixed
by the snapshot or by the integration itself.
"""

import json
import time
from dataclasses import asdict, dataclass
from typing import Callable

from wakabeat.core.schemas import HEARTBEAT_FIELDS, HeartbeatPayload
from wakabeat.types import ActivityEvent, ConfigSnapshot

ENTITY_TYPE = "file"
PLUGIN_NAME = "unity-wakatime"
LANGUAGE = "unity"
NO_ACTIVE_FILE = "Unsaved Scene"


@dataclass(frozen=True)
class Heartbeat:
    entity: str
    type: str
    time: float
    project: str
    branch: str
    plugin: str
    language: str
    is_write: bool
    is_debugging: bool

    @classmethod
    def sentinel(cls) -> "Heartbeat":
        """Placeholder for "nothing sent yet", older than any real heartbeat."""
        return cls(
            entity="",
            type=ENTITY_TYPE,
            time=float("-inf"),
            project="",
            branch="",
            plugin=PLUGIN_NAME,
            language=LANGUAGE,
            is_write=False,
            is_debugging=False,
        )

    def to_wire(self) -> HeartbeatPayload:
        return HeartbeatPayload(**asdict(self))

    @classmethod
    def from_wire(cls, payload: dict) -> "Heartbeat":
        missing = [k for k in HEARTBEAT_FIELDS if k not in payload]
        if missing:
            raise ValueError(f"Heartbeat payload missing fields: {', '.join(missing)}")
        return cls(**{k: payload[k] for k in HEARTBEAT_FIELDS})

    def __str__(self) -> str:
        return f"{self.entity}, {self.type}, {self.time}"


def build_heartbeat(
    event: ActivityEvent,
    config: ConfigSnapshot,
    clock: Callable[[], float] = time.time,
) -> Heartbeat:
    """Build the canonical heartbeat for an activity event.

    `time` is the processing time, not the event's own timestamp.
    The source path is used as-is; resolving it is the host's job.
    """
    return Heartbeat(
        entity=event.source_path or NO_ACTIVE_FILE,
        type=ENTITY_TYPE,
        time=float(clock()),
        project=config.project_name,
        branch=config.branch,
        plugin=PLUGIN_NAME,
        language=LANGUAGE,
        is_write=event.is_forced_write,
        is_debugging=config.debug,
    )


def encode_heartbeat(heartbeat: Heartbeat) -> str:
    """JSON request body for a single heartbeat."""
    return json.dumps(heartbeat.to_wire())


def decode_heartbeat(body: str) -> Heartbeat:
    return Heartbeat.from_wire(json.loads(body))
