"""
Response Interpreter — classify a transport result into an Outcome.

Classification is purely a function of the HttpResult. The debug flag never
changes which branch runs; it only controls how much gets logged.

Order matters:
1. no response          -> NETWORK_UNREACHABLE
2. 429                  -> RATE_LIMITED (body ignored)
3. 400/401/403/404      -> CLIENT_ERROR
4. 500                  -> SERVER_ERROR
5. other non-2xx        -> UNKNOWN_STATUS
6. empty body           -> NETWORK_UNREACHABLE (never decoded)
7. undecodable envelope -> MALFORMED_RESPONSE
8. envelope error field -> DUPLICATE / OTHER_API_ERROR, else ACCEPTED
"""

import json
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from wakabeat.core.heartbeat import Heartbeat
from wakabeat.core.schemas import (
    DUPLICATE_ERROR,
    FIELD_DATA,
    FIELD_ERROR,
    RESPONSE_DATA_FIELDS,
    ApiEnvelope,
    HeartbeatResponseData,
)
from wakabeat.types import HttpResult

logger = logging.getLogger("wakabeat.interpreter")

CLIENT_ERROR_CODES = frozenset({400, 401, 403, 404})
RATE_LIMITED_CODE = 429
SERVER_ERROR_CODE = 500


class OutcomeKind(str, Enum):
    ACCEPTED = "accepted"
    DUPLICATE = "duplicate"
    OTHER_API_ERROR = "other_api_error"
    RATE_LIMITED = "rate_limited"
    CLIENT_ERROR = "client_error"
    SERVER_ERROR = "server_error"
    NETWORK_UNREACHABLE = "network_unreachable"
    MALFORMED_RESPONSE = "malformed_response"
    UNKNOWN_STATUS = "unknown_status"


# Severity per outcome kind, independent of the debug flag
OUTCOME_LEVELS = {
    OutcomeKind.ACCEPTED: logging.DEBUG,
    OutcomeKind.DUPLICATE: logging.INFO,
    OutcomeKind.OTHER_API_ERROR: logging.WARNING,
    OutcomeKind.RATE_LIMITED: logging.WARNING,
    OutcomeKind.CLIENT_ERROR: logging.ERROR,
    OutcomeKind.SERVER_ERROR: logging.WARNING,
    OutcomeKind.NETWORK_UNREACHABLE: logging.WARNING,
    OutcomeKind.MALFORMED_RESPONSE: logging.ERROR,
    OutcomeKind.UNKNOWN_STATUS: logging.CRITICAL,
}

ROLLBACK_KINDS = frozenset({OutcomeKind.DUPLICATE, OutcomeKind.OTHER_API_ERROR})

# Outcomes that point at a configuration or protocol problem
ERROR_KINDS = frozenset({
    OutcomeKind.OTHER_API_ERROR,
    OutcomeKind.CLIENT_ERROR,
    OutcomeKind.MALFORMED_RESPONSE,
    OutcomeKind.UNKNOWN_STATUS,
})


class MalformedEnvelope(ValueError):
    """Response body is not a valid API envelope."""


@dataclass(frozen=True)
class Outcome:
    kind: OutcomeKind
    status: Optional[int] = None
    message: str = ""
    data: Optional[HeartbeatResponseData] = None
    body: str = ""

    @property
    def rolls_back(self) -> bool:
        """Whether the send should be treated as never having happened."""
        return self.kind in ROLLBACK_KINDS

    @property
    def is_error(self) -> bool:
        return self.kind in ERROR_KINDS

    @property
    def level(self) -> int:
        return OUTCOME_LEVELS[self.kind]


def decode_envelope(body: str) -> ApiEnvelope:
    """Decode and shape-check a response body.

    Raises MalformedEnvelope for anything that is not an object carrying
    `error` (str or null) and/or `data` (object with id/entity/type/time, or null).
    """
    try:
        raw = json.loads(body)
    except (ValueError, RecursionError) as e:
        raise MalformedEnvelope(f"invalid JSON: {e}") from e

    if not isinstance(raw, dict):
        raise MalformedEnvelope(f"expected a JSON object, got {type(raw).__name__}")
    if FIELD_ERROR not in raw and FIELD_DATA not in raw:
        raise MalformedEnvelope("envelope has neither 'error' nor 'data'")

    error = raw.get(FIELD_ERROR)
    if error is not None and not isinstance(error, str):
        raise MalformedEnvelope(f"'error' must be a string or null, got {type(error).__name__}")

    data = raw.get(FIELD_DATA)
    if data is not None:
        if not isinstance(data, dict):
            raise MalformedEnvelope(f"'data' must be an object or null, got {type(data).__name__}")
        missing = [k for k in RESPONSE_DATA_FIELDS if k not in data]
        if missing:
            raise MalformedEnvelope(f"'data' missing fields: {', '.join(missing)}")
        if not isinstance(data["time"], (int, float)) or isinstance(data["time"], bool):
            raise MalformedEnvelope("'data.time' must be a number")
        try:
            time_ = float(data["time"])
        except OverflowError as e:
            raise MalformedEnvelope("'data.time' is out of range") from e
        data = HeartbeatResponseData(
            id=str(data["id"]),
            entity=str(data["entity"]),
            type=str(data["type"]),
            time=time_,
        )

    return ApiEnvelope(error=error, data=data)


def interpret(result: HttpResult) -> Outcome:
    """Classify a transport result. Never raises."""
    status = result.status

    if not result.reachable:
        return Outcome(
            OutcomeKind.NETWORK_UNREACHABLE,
            message=result.error or "no response",
        )

    if status == RATE_LIMITED_CODE:
        return Outcome(OutcomeKind.RATE_LIMITED, status=status, body=result.body)

    if status in CLIENT_ERROR_CODES:
        return Outcome(
            OutcomeKind.CLIENT_ERROR,
            status=status,
            message=_error_hint(result.body),
            body=result.body,
        )

    if status == SERVER_ERROR_CODE:
        return Outcome(OutcomeKind.SERVER_ERROR, status=status, body=result.body)

    if not 200 <= status <= 299:
        return Outcome(
            OutcomeKind.UNKNOWN_STATUS,
            status=status,
            message=f"unable to decide what to do with status {status}",
            body=result.body,
        )

    if not result.body:
        return Outcome(OutcomeKind.NETWORK_UNREACHABLE, status=status, message="empty response body")

    if result.error is not None:
        return Outcome(OutcomeKind.MALFORMED_RESPONSE, status=status, message=result.error, body=result.body)

    try:
        envelope = decode_envelope(result.body)
    except MalformedEnvelope as e:
        return Outcome(OutcomeKind.MALFORMED_RESPONSE, status=status, message=str(e), body=result.body)

    error = envelope["error"]
    if error == DUPLICATE_ERROR:
        return Outcome(OutcomeKind.DUPLICATE, status=status, message=error, body=result.body)
    if error is not None:
        return Outcome(OutcomeKind.OTHER_API_ERROR, status=status, message=error, body=result.body)

    return Outcome(OutcomeKind.ACCEPTED, status=status, data=envelope["data"], body=result.body)


def _error_hint(body: str) -> str:
    """Best-effort error text from a 4xx body; never raises."""
    if not body:
        return ""
    try:
        raw = json.loads(body)
    except (ValueError, RecursionError):
        return body[:200]
    if isinstance(raw, dict) and isinstance(raw.get(FIELD_ERROR), str):
        return raw[FIELD_ERROR]
    return body[:200]


_MESSAGES = {
    OutcomeKind.ACCEPTED: "Sent heartbeat",
    OutcomeKind.DUPLICATE: "Duplicate heartbeat",
    OutcomeKind.OTHER_API_ERROR: "Failed to send heartbeat to WakaTime",
    OutcomeKind.RATE_LIMITED: "Too many requests, cooling down",
    OutcomeKind.CLIENT_ERROR: "Heartbeat rejected, check the API key and API URL",
    OutcomeKind.SERVER_ERROR: "WakaTime server error, heartbeat dropped",
    OutcomeKind.NETWORK_UNREACHABLE: (
        "Network is unreachable. Consider disabling wakabeat if you're working offline"
    ),
    OutcomeKind.MALFORMED_RESPONSE: "Could not decode WakaTime response",
    OutcomeKind.UNKNOWN_STATUS: "Unexpected WakaTime status",
}


def report_outcome(outcome: Outcome, heartbeat: Heartbeat, verbose: bool = False):
    """Emit one structured log record for an outcome.

    Severity comes from the outcome kind. `verbose` only appends the raw
    response body.
    """
    parts = [_MESSAGES[outcome.kind]]
    if outcome.status is not None:
        parts.append(f"status={outcome.status}")
    if outcome.message:
        parts.append(outcome.message)
    if outcome.kind == OutcomeKind.ACCEPTED and outcome.data:
        parts.append(f"id={outcome.data['id']}")
    parts.append(f"entity={heartbeat.entity}")
    msg = " | ".join(parts)
    if verbose and outcome.body:
        msg += f"\nRaw response: {outcome.body[:500]}"

    logger.log(
        outcome.level,
        msg,
        extra={
            "event": "heartbeat_outcome",
            "outcome": outcome.kind.value,
            "status": outcome.status,
            "entity": heartbeat.entity,
            "rollback": outcome.rolls_back,
        },
    )
