"""
Wire schemas — single source of truth for the heartbeat API payloads.

Using TypedDicts so the builder, transport and interpreter reference the
same field names.
"""

from typing import Optional, TypedDict


class HeartbeatPayload(TypedDict):
    entity: str
    type: str
    time: float
    project: str
    branch: str
    plugin: str
    language: str
    is_write: bool
    is_debugging: bool


class HeartbeatResponseData(TypedDict):
    id: str
    entity: str
    type: str
    time: float


class ApiEnvelope(TypedDict):
    error: Optional[str]
    data: Optional[HeartbeatResponseData]


# Field name constants, use these instead of string literals
FIELD_ERROR = "error"
FIELD_DATA = "data"

HEARTBEAT_FIELDS = tuple(HeartbeatPayload.__annotations__)
RESPONSE_DATA_FIELDS = tuple(HeartbeatResponseData.__annotations__)

# Literal error value the API uses for an already-recorded heartbeat
DUPLICATE_ERROR = "Duplicate"
