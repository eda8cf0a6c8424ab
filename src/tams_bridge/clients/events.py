"""
Event Channel

Persistent websocket connection delivering marker and segment events
from the streaming backend. Messages are JSON objects of the form
``{"type": ..., "data": ...}`` dispatched to callbacks registered per
event type.

The channel runs a background reader task. It reconnects after an
unexpected drop according to a ReconnectPolicy and is only released by
an explicit ``disconnect()``.
"""

import asyncio
import json
import logging
from collections import defaultdict
from contextlib import suppress
from dataclasses import dataclass
from typing import Any, Callable

import aiohttp

from ..errors import TamsApiError

logger = logging.getLogger(__name__)

EVENT_TYPES = ("marker_created", "marker_updated", "marker_deleted", "segment_added")

EventCallback = Callable[[Any], None]


@dataclass
class ReconnectPolicy:
    """
    Bounded reconnection schedule.

    Attributes:
        max_attempts: Attempts before giving up
        base_delay: Seconds multiplied by the attempt number
    """
    max_attempts: int = 5
    base_delay: float = 1.0

    def delay_for(self, attempt: int) -> float:
        return self.base_delay * attempt


class EventChannel:
    """
    Websocket event channel with bounded reconnection.

    Example:
        channel = EventChannel("ws://localhost:3000/ws")
        channel.subscribe("marker_created", on_marker)
        await channel.connect()
        ...
        await channel.disconnect()
    """

    def __init__(
        self,
        url: str,
        policy: ReconnectPolicy | None = None,
        heartbeat: float | None = 30.0,
    ):
        self.url = url
        self.policy = policy or ReconnectPolicy()
        self.heartbeat = heartbeat
        self.reconnect_attempts = 0
        self._listeners: dict[str, list[EventCallback]] = defaultdict(list)
        self._session: aiohttp.ClientSession | None = None
        self._ws: aiohttp.ClientWebSocketResponse | None = None
        self._task: asyncio.Task | None = None
        self._closing = False

    @property
    def connected(self) -> bool:
        return self._ws is not None and not self._ws.closed

    def subscribe(self, event_type: str, callback: EventCallback) -> None:
        self._listeners[event_type].append(callback)

    def unsubscribe(self, event_type: str, callback: EventCallback) -> None:
        listeners = self._listeners.get(event_type)
        if listeners and callback in listeners:
            listeners.remove(callback)

    def listener_count(self, event_type: str | None = None) -> int:
        if event_type is not None:
            return len(self._listeners.get(event_type, []))
        return sum(len(callbacks) for callbacks in self._listeners.values())

    async def connect(self) -> None:
        """
        Open the websocket and start the reader task.

        Raises:
            TamsApiError: If the initial connection fails
        """
        if self.connected:
            return
        self._closing = False
        await self._open()
        self._task = asyncio.create_task(self._run())

    async def _open(self) -> None:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession()
        try:
            self._ws = await self._session.ws_connect(self.url, heartbeat=self.heartbeat)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise TamsApiError(f"Cannot connect to event channel {self.url}: {e}") from e
        self.reconnect_attempts = 0
        logger.info(f"Connected to event channel {self.url}")

    async def _run(self) -> None:
        while True:
            await self._read_until_closed()
            if self._closing:
                return
            logger.info(f"Event channel {self.url} disconnected")
            if not await self._reconnect():
                return

    async def _read_until_closed(self) -> None:
        ws = self._ws
        if ws is None:
            return
        try:
            async for message in ws:
                if message.type == aiohttp.WSMsgType.TEXT:
                    self.dispatch(message.data)
                elif message.type == aiohttp.WSMsgType.ERROR:
                    logger.warning(f"Event channel error: {ws.exception()}")
                    break
        except aiohttp.ClientError as e:
            logger.warning(f"Event channel read failed: {e}")

    async def _reconnect(self) -> bool:
        """Retry the connection per policy. Returns True once reconnected."""
        while self.reconnect_attempts < self.policy.max_attempts:
            self.reconnect_attempts += 1
            delay = self.policy.delay_for(self.reconnect_attempts)
            logger.warning(
                f"Reconnecting to {self.url} in {delay:.1f}s "
                f"({self.reconnect_attempts}/{self.policy.max_attempts})"
            )
            await asyncio.sleep(delay)
            if self._closing:
                return False
            try:
                await self._open()
                return True
            except TamsApiError as e:
                logger.warning(str(e))

        logger.error(f"Giving up on event channel {self.url} after {self.policy.max_attempts} attempts")
        return False

    def dispatch(self, raw: str) -> None:
        """Decode one message and notify the listeners of its type."""
        try:
            message = json.loads(raw)
        except ValueError as e:
            logger.warning(f"Ignoring malformed event message: {e}")
            return
        if not isinstance(message, dict) or "type" not in message:
            logger.warning("Ignoring event message without a type")
            return

        for callback in list(self._listeners.get(message["type"], ())):
            try:
                callback(message.get("data"))
            except Exception:
                logger.exception(f"Listener for {message['type']} failed")

    async def disconnect(self) -> None:
        """Stop reconnecting, close the socket and drop all listeners."""
        self._closing = True
        if self._task is not None:
            self._task.cancel()
            with suppress(asyncio.CancelledError):
                await self._task
            self._task = None
        if self._ws is not None:
            await self._ws.close()
            self._ws = None
        if self._session is not None:
            await self._session.close()
            self._session = None
        self._listeners.clear()
        self.reconnect_attempts = 0
