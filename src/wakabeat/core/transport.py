"""
Heartbeat Transport — the bridge between wakabeat and the WakaTime API.

One POST per heartbeat to `users/current/heartbeats`, API key in the query
string. The transport never interprets the response; it hands back the
status and body (or an unreachable result) for the interpreter to classify.
"""

import asyncio
import logging
from typing import Optional

import aiohttp

from wakabeat.core.heartbeat import Heartbeat, encode_heartbeat
from wakabeat.types import HttpResult

logger = logging.getLogger("wakabeat.transport")

DEFAULT_API_URL = "https://api.wakatime.com/api/v1/"
HEARTBEATS_PATH = "users/current/heartbeats"
DEFAULT_TIMEOUT_SECONDS = 10


class HeartbeatTransport:
    """Submits heartbeats to the ingestion endpoint via aiohttp."""

    def __init__(self, api_url: str = DEFAULT_API_URL, timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS):
        self.api_url = api_url
        self.timeout_seconds = timeout_seconds
        self._session: Optional[aiohttp.ClientSession] = None

    @property
    def endpoint(self) -> str:
        return self.api_url.rstrip("/") + "/" + HEARTBEATS_PATH

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession()
        return self._session

    async def send(self, heartbeat: Heartbeat, api_key: str) -> HttpResult:
        """
        Submit a single heartbeat.

        Args:
            heartbeat: The heartbeat to serialize as the JSON request body
            api_key: Static credential, sent as the `api_key` query parameter

        Returns:
            HttpResult with the status and raw text body, or an unreachable
            result when no response arrived (connection error, timeout)
        """
        session = await self._get_session()

        headers = {
            "Content-Type": "application/json",
        }

        try:
            async with session.post(
                self.endpoint,
                data=encode_heartbeat(heartbeat),
                params={"api_key": api_key},
                headers=headers,
                timeout=aiohttp.ClientTimeout(total=self.timeout_seconds),
            ) as resp:
                raw = await resp.read()
                logger.debug(f"POST {self.endpoint} -> {resp.status} ({len(raw)} bytes)")
                return _decode_body(resp.status, raw, resp.charset or "utf-8")

        except aiohttp.ClientError as e:
            logger.debug(f"Heartbeat connection error: {e}")
            return HttpResult.unreachable(error=f"{type(e).__name__}: {e}")
        except asyncio.TimeoutError:
            logger.debug(f"Heartbeat timed out after {self.timeout_seconds}s")
            return HttpResult.unreachable(error=f"timeout after {self.timeout_seconds}s")

    async def close(self):
        if self._session and not self._session.closed:
            await self._session.close()


def _decode_body(status: int, raw: bytes, charset: str) -> HttpResult:
    """Keep the status even when the body is not valid text."""
    try:
        return HttpResult(status=status, body=raw.decode(charset))
    except (UnicodeDecodeError, LookupError) as e:
        return HttpResult(
            status=status,
            body=raw.decode("utf-8", errors="replace"),
            error=f"undecodable body: {e}",
        )
