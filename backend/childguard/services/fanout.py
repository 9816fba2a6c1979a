"""Real-time notification fanout over WebSocket channels.

Events are addressed to channels: ``subject:<id>`` for everyone watching a
child and ``user:<id>`` for a single guardian. Delivery is best-effort and
at-most-once; a failed send drops the socket and is never reported back to
the publisher.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from collections import defaultdict
from collections.abc import Iterable
from typing import Any, Protocol

from fastapi import WebSocket

logger = logging.getLogger(__name__)

ALERT_NEW = "alert:new"
SOS_NEW = "sos:new"
RISK_ASSESSED = "risk:assessed"
LOCATION_UPDATE = "location:update"


def subject_channel(subject_id) -> str:
    return f"subject:{subject_id}"


def user_channel(user_id) -> str:
    return f"user:{user_id}"


class NotificationFanout(Protocol):
    def publish(self, channel: str, event: str, payload: dict[str, Any]) -> None:
        ...


class NullFanout:
    """Fanout that delivers nothing (scripts, tests, no live clients)."""

    def publish(self, channel: str, event: str, payload: dict[str, Any]) -> None:
        return None


class ChannelHub:
    """Channel-addressed registry of live WebSocket connections.

    ``publish`` may be called from worker threads (sync routes run in a
    threadpool); sends are scheduled onto the event loop bound at startup
    and never awaited by the caller.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._channels: dict[str, set[WebSocket]] = defaultdict(set)
        self._loop: asyncio.AbstractEventLoop | None = None

    def bind(self, loop: asyncio.AbstractEventLoop) -> None:
        self._loop = loop

    def close(self) -> None:
        with self._lock:
            self._channels.clear()
        self._loop = None

    async def connect(self, ws: WebSocket, channels: Iterable[str]) -> list[str]:
        await ws.accept()
        joined = sorted(set(channels))
        with self._lock:
            for ch in joined:
                self._channels[ch].add(ws)
        logger.info("Socket joined %d channels", len(joined))
        return joined

    def disconnect(self, ws: WebSocket) -> None:
        with self._lock:
            for ch in list(self._channels):
                self._channels[ch].discard(ws)
                if not self._channels[ch]:
                    del self._channels[ch]

    def subscribers(self, channel: str) -> int:
        with self._lock:
            return len(self._channels.get(channel, ()))

    def publish(self, channel: str, event: str, payload: dict[str, Any]) -> None:
        with self._lock:
            targets = list(self._channels.get(channel, ()))
        if not targets or self._loop is None or self._loop.is_closed():
            return
        message = {"event": event, "channel": channel, "data": payload}
        asyncio.run_coroutine_threadsafe(self._deliver(targets, message), self._loop)

    async def _deliver(self, targets: list[WebSocket], message: dict[str, Any]) -> None:
        for ws in targets:
            try:
                await ws.send_json(message)
            except Exception as e:
                logger.info("Dropping dead socket on %s: %s", message["channel"], e)
                self.disconnect(ws)


def publish_safely(fanout: NotificationFanout, channels: Iterable[str], event: str, payload: dict[str, Any]) -> None:
    """Publish to each channel; a delivery failure never reaches the caller."""
    for channel in channels:
        try:
            fanout.publish(channel, event, payload)
        except Exception:
            logger.warning("Failed to publish %s on %s", event, channel, exc_info=True)
