import asyncio
import json

import pytest
from websockets.protocol import State

from meeting_bot.delivery.client import StreamConnectionPool, StreamDeliveryClient
from meeting_bot.errors import DeliveryError

URL = "ws://sink.example/api/ws/bot"


class FakeConnection:
    def __init__(self):
        self.state = State.OPEN
        self.sent = []
        self.fail_send = None
        self._closed = asyncio.Event()

    async def send(self, message):
        if self.fail_send:
            raise self.fail_send
        self.sent.append(message)

    async def close(self):
        self.state = State.CLOSED
        self._closed.set()

    def __aiter__(self):
        return self

    async def __anext__(self):
        await self._closed.wait()
        raise StopAsyncIteration


class Connector:
    def __init__(self, delay=0):
        self.delay = delay
        self.opened = []

    async def __call__(self, url):
        await asyncio.sleep(self.delay)
        connection = FakeConnection()
        self.opened.append(connection)
        return connection


@pytest.mark.asyncio
async def test_open_connection_is_reused():
    connector = Connector()
    pool = StreamConnectionPool(connector)

    first = await pool.acquire(URL)
    second = await pool.acquire(URL)

    assert first is second
    assert len(connector.opened) == 1
    await pool.close_all()


@pytest.mark.asyncio
async def test_concurrent_acquire_shares_in_flight_attempt():
    connector = Connector(delay=0.02)
    pool = StreamConnectionPool(connector)

    a, b = await asyncio.gather(pool.acquire(URL), pool.acquire(URL))

    assert a is b
    assert len(connector.opened) == 1
    await pool.close_all()


@pytest.mark.asyncio
async def test_closed_connection_is_replaced():
    connector = Connector()
    pool = StreamConnectionPool(connector)

    first = await pool.acquire(URL)
    await first.close()
    await asyncio.sleep(0)
    second = await pool.acquire(URL)

    assert second is not first
    assert len(connector.opened) == 2
    await pool.close_all()


@pytest.mark.asyncio
async def test_watcher_forgets_connection_closed_by_peer():
    pool = StreamConnectionPool(Connector())

    connection = await pool.acquire(URL)
    assert URL in pool
    await connection.close()
    for _ in range(5):
        await asyncio.sleep(0)

    assert URL not in pool


@pytest.mark.asyncio
async def test_failed_connect_leaves_nothing_pending():
    async def refuse(url):
        raise OSError("connection refused")

    pool = StreamConnectionPool(refuse)
    with pytest.raises(OSError):
        await pool.acquire(URL)

    assert URL not in pool
    assert pool._pending == {}


@pytest.mark.asyncio
async def test_stream_client_sends_json_frame():
    connector = Connector()
    client = StreamDeliveryClient(StreamConnectionPool(connector))

    result = await client.send(URL, {"event": "caption"})

    assert result.success is True
    assert json.loads(connector.opened[0].sent[0]) == {"event": "caption"}
    await client.close()
    assert len(client.pool) == 0


@pytest.mark.asyncio
async def test_stream_client_evicts_on_send_failure():
    connector = Connector()
    pool = StreamConnectionPool(connector)
    client = StreamDeliveryClient(pool)
    connection = await pool.acquire(URL)
    connection.fail_send = ConnectionResetError("reset")

    with pytest.raises(DeliveryError) as exc:
        await client.send(URL, {"event": "caption"})

    assert exc.value.url == URL
    assert URL not in pool
    assert connection.state is State.CLOSED
