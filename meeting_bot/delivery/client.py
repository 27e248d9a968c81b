# FilePath: "/meeting_bot/delivery/client.py"
# Project: Meeting Bot Fleet (MBF)
# Description: Per-destination transports. Request/response over aiohttp and persistent
#              WebSocket connections shared through an explicit connection pool.
# Author: "MBF Maintainers"
# Date created: "19/10/2026"
# Version: "v.1.0.0"

import asyncio
import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Awaitable, Callable, Dict, Optional

import aiohttp
import websockets
from websockets.exceptions import ConnectionClosed
from websockets.protocol import State

from ..errors import DeliveryError
from ..status import utcnow

logger = logging.getLogger("meeting_bot.delivery")

Connector = Callable[[str], Awaitable[Any]]


@dataclass
class DeliveryResult:
    """Outcome of one send to one destination"""
    success: bool
    url: str
    status_code: Optional[int] = None
    error_message: Optional[str] = None
    timestamp: datetime = field(default_factory=utcnow)


class DeliveryClient(ABC):
    """Transport for one class of destination URLs."""

    @abstractmethod
    async def send(self, url: str, payload: Any) -> DeliveryResult:
        pass

    async def close(self) -> None:
        pass


# ==========================
# Request / response (HTTP)
# ==========================

class HttpDeliveryClient(DeliveryClient):
    """
    Best-effort JSON POST. Never raises: a non-2xx response or a transport error
    is reported in the returned ``DeliveryResult``.
    """

    def __init__(self, session: Optional[aiohttp.ClientSession] = None, timeout_seconds: float = 30, pool_size: int = 100):
        self._session = session
        self._owns_session = session is None
        self.timeout_seconds = timeout_seconds
        self.pool_size = pool_size

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            connector = aiohttp.TCPConnector(limit=self.pool_size, ttl_dns_cache=300, use_dns_cache=True)
            self._session = aiohttp.ClientSession(
                connector=connector,
                timeout=aiohttp.ClientTimeout(total=self.timeout_seconds),
            )
            self._owns_session = True
        return self._session

    async def send(self, url: str, payload: Any) -> DeliveryResult:
        try:
            session = self._get_session()
            async with session.post(url, json=payload, headers={"Content-Type": "application/json"}) as resp:
                if 200 <= resp.status < 300:
                    return DeliveryResult(success=True, url=url, status_code=resp.status)

                logger.warning(f"HTTP request to {url} failed with status {resp.status}")
                return DeliveryResult(success=False, url=url, status_code=resp.status, error_message=resp.reason)

        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error(f"Error sending HTTP request to {url}: {e!r}")
            return DeliveryResult(success=False, url=url, error_message=str(e) or type(e).__name__)

    async def close(self) -> None:
        if self._session is not None and self._owns_session and not self._session.closed:
            await self._session.close()
        self._session = None


# ==========================
# Persistent stream (WebSocket)
# ==========================

async def connect_websocket(url: str) -> Any:
    return await websockets.connect(url, ping_interval=30, ping_timeout=10, close_timeout=10, open_timeout=10)


def _is_open(connection: Any) -> bool:
    return getattr(connection, "state", None) is State.OPEN


class StreamConnectionPool:
    """
    Live persistent-stream connections keyed by destination URL.

    A connection is opened lazily on the first ``acquire``, reused while open and
    evicted on error or close. Callers that ask for a URL whose connection is
    still being opened await the same attempt instead of opening a second one.
    No lock: all mutation happens on one event loop between awaits.
    """

    def __init__(self, connector: Optional[Connector] = None):
        self._connector = connector or connect_websocket
        self._connections: Dict[str, Any] = {}
        self._pending: Dict[str, asyncio.Future] = {}
        self._watchers: Dict[str, asyncio.Task] = {}

    def __contains__(self, url: str) -> bool:
        return url in self._connections

    def __len__(self) -> int:
        return len(self._connections)

    async def acquire(self, url: str) -> Any:
        connection = self._connections.get(url)
        if connection is not None:
            if _is_open(connection):
                return connection
            await self.evict(url)

        pending = self._pending.get(url)
        if pending is None:
            pending = asyncio.ensure_future(self._open(url))
            self._pending[url] = pending
        return await asyncio.shield(pending)

    async def _open(self, url: str) -> Any:
        try:
            connection = await self._connector(url)
        finally:
            self._pending.pop(url, None)

        logger.info(f"WebSocket connection established to {url}")
        self._connections[url] = connection
        self._watchers[url] = asyncio.create_task(self._watch(url, connection))
        return connection

    async def _watch(self, url: str, connection: Any) -> None:
        """Drains inbound frames and forgets the connection once it closes."""
        try:
            async for message in connection:
                logger.debug(f"Message from {url}: {message}")
        except ConnectionClosed:
            pass
        except Exception as e:
            logger.warning(f"WebSocket watcher for {url} stopped: {e!r}")
        finally:
            if self._connections.get(url) is connection:
                del self._connections[url]
                self._watchers.pop(url, None)
                logger.info(f"WebSocket connection closed for {url}")

    async def evict(self, url: str) -> None:
        connection = self._connections.pop(url, None)
        watcher = self._watchers.pop(url, None)
        if watcher is not None and watcher is not asyncio.current_task():
            watcher.cancel()
        if connection is not None:
            try:
                await connection.close()
            except Exception as e:
                logger.debug(f"Ignoring error while closing {url}: {e!r}")
            logger.info(f"Evicted WebSocket connection for {url}")

    async def close_all(self) -> None:
        for url in list(self._connections):
            await self.evict(url)


class StreamDeliveryClient(DeliveryClient):
    """Sends JSON text frames over pooled connections. Raises ``DeliveryError`` on failure."""

    def __init__(self, pool: Optional[StreamConnectionPool] = None):
        self.pool = pool or StreamConnectionPool()

    async def send(self, url: str, payload: Any) -> DeliveryResult:
        try:
            connection = await self.pool.acquire(url)
        except Exception as e:
            raise DeliveryError(url, f"Could not connect to {url}: {e!r}") from e

        try:
            await connection.send(json.dumps(payload))
        except Exception as e:
            await self.pool.evict(url)
            raise DeliveryError(url, f"Send to {url} failed: {e!r}") from e

        return DeliveryResult(success=True, url=url)

    async def close(self) -> None:
        await self.pool.close_all()
