# tests/test_client.py

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator

import pytest
import pytest_asyncio

from todo_sync.sync.client import CommandClient, CommandConnectionError, ConnectionFailure



class PeerServer:
    """Tiny TCP peer: records the commands it receives and replies with `reply`."""

    def __init__(self, reply: bytes, *, close_after_reply: bool = True) -> None:
        self.reply = reply
        self.close_after_reply = close_after_reply
        self.received: list[str] = []
        self.connections = 0
        self.server: asyncio.base_events.Server | None = None

    async def _handle(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        self.connections += 1
        data = b""
        while b"|END" not in data:
            chunk = await reader.read(1024)
            if not chunk:
                break
            data += chunk
        if not data:
            writer.close()
            return
        self.received.append(data.decode("utf-8"))
        writer.write(self.reply)
        await writer.drain()
        if not self.close_after_reply:
            # Stall until the client gives up and hangs up.
            await reader.read()
        writer.close()

    @property
    def port(self) -> int:
        assert self.server is not None
        return self.server.sockets[0].getsockname()[1]

    async def start(self) -> None:
        self.server = await asyncio.start_server(self._handle, "127.0.0.1", 0)

    async def stop(self) -> None:
        if self.server is not None:
            self.server.close()
            await self.server.wait_closed()


@pytest_asyncio.fixture()
async def peer() -> AsyncIterator[PeerServer]:
    srv = PeerServer(b"DATE,20250115\r\nBuy milk,false\r\n|END")
    await srv.start()
    try:
        yield srv
    finally:
        await srv.stop()


@pytest.mark.asyncio
async def test_execute_sends_command_and_returns_payload(peer: PeerServer) -> None:
    client = CommandClient("127.0.0.1", peer.port)

    payload = await client.execute("GETALL|END")

    assert payload == "DATE,20250115\r\nBuy milk,false\r\n"
    assert peer.received == ["GETALL|END"]


@pytest.mark.asyncio
async def test_one_connection_per_command(peer: PeerServer) -> None:
    client = CommandClient("127.0.0.1", peer.port)

    await client.execute("GETALL|END")
    await client.execute("ADD|DATE20250115|TASKx!STATEfalse|END")

    assert peer.connections == 2
    assert peer.received[1] == "ADD|DATE20250115|TASKx!STATEfalse|END"


@pytest.mark.asyncio
async def test_response_without_terminator_is_still_returned() -> None:
    srv = PeerServer(b"Buy milk,false", close_after_reply=True)
    await srv.start()
    try:
        client = CommandClient("127.0.0.1", srv.port)
        assert await client.execute("GETALL|END") == "Buy milk,false"
    finally:
        await srv.stop()


@pytest.mark.asyncio
async def test_refused_connection_raises_connection_error() -> None:
    srv = PeerServer(b"")
    await srv.start()
    port = srv.port
    await srv.stop()

    client = CommandClient("127.0.0.1", port)
    with pytest.raises(CommandConnectionError) as info:
        await client.execute("GETALL|END")

    assert isinstance(info.value, ConnectionError)
    assert info.value.failure in (ConnectionFailure.REFUSED, ConnectionFailure.OTHER)
    assert info.value.command == "GETALL"


@pytest.mark.asyncio
async def test_connect_timeout(monkeypatch: pytest.MonkeyPatch) -> None:
    async def never_connects(*args, **kwargs):
        await asyncio.sleep(10)

    monkeypatch.setattr(asyncio, "open_connection", never_connects)
    client = CommandClient("10.255.255.1", 11111, connect_timeout=0.05)

    with pytest.raises(CommandConnectionError) as info:
        await client.execute("GETALL|END")
    assert info.value.failure is ConnectionFailure.TIMEOUT


@pytest.mark.asyncio
async def test_read_timeout_when_peer_stalls() -> None:
    srv = PeerServer(b"partial", close_after_reply=False)
    await srv.start()
    try:
        client = CommandClient("127.0.0.1", srv.port, read_timeout=0.1)
        with pytest.raises(CommandConnectionError) as info:
            await client.execute("GETALL|END")
        assert info.value.failure is ConnectionFailure.TIMEOUT
    finally:
        await srv.stop()


@pytest.mark.asyncio
async def test_probe(peer: PeerServer) -> None:
    assert await CommandClient("127.0.0.1", peer.port).probe() is True

    port = peer.port
    await peer.stop()
    peer.server = None
    assert await CommandClient("127.0.0.1", port, connect_timeout=0.5).probe() is False
