# src/todo_sync/sync/client.py

"""
One-shot command client.

Each command gets its own TCP connection: connect (bounded by a timeout),
write the command, read one framed response, close. Failures surface as
CommandConnectionError and are never retried here; retry policy belongs to
the sync engine.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from enum import StrEnum

from .protocol import command_kind_of, read_frame

logger = logging.getLogger(__name__)

DEFAULT_CONNECT_TIMEOUT = 5.0


class ConnectionFailure(StrEnum):
    REFUSED = "refused"
    RESET = "reset"
    TIMEOUT = "timeout"
    OTHER = "other"


class CommandConnectionError(ConnectionError):
    """The peer could not be reached or dropped the exchange."""

    def __init__(
        self,
        failure: ConnectionFailure,
        *,
        host: str,
        port: int,
        command: str = "",
        detail: str = "",
    ) -> None:
        self.failure = failure
        self.host = host
        self.port = port
        self.command = command
        msg = f"{command or 'connection'} to {host}:{port} failed ({failure.value})"
        if detail:
            msg = f"{msg}: {detail}"
        super().__init__(msg)


def _classify(exc: BaseException) -> ConnectionFailure:
    if isinstance(exc, (asyncio.TimeoutError, TimeoutError)):
        return ConnectionFailure.TIMEOUT
    if isinstance(exc, ConnectionRefusedError):
        return ConnectionFailure.REFUSED
    if isinstance(exc, (ConnectionResetError, ConnectionAbortedError, BrokenPipeError, asyncio.IncompleteReadError)):
        return ConnectionFailure.RESET
    return ConnectionFailure.OTHER


class CommandClient:
    """
    TCP implementation of the CommandTransport port.

    connect_timeout bounds connection setup only. read_timeout (None = wait until
    the peer sends the terminator or closes) bounds the response read.
    """

    def __init__(
        self,
        host: str,
        port: int,
        *,
        connect_timeout: float = DEFAULT_CONNECT_TIMEOUT,
        read_timeout: float | None = None,
    ) -> None:
        self.host = host
        self.port = int(port)
        self.connect_timeout = max(0.01, float(connect_timeout))
        self.read_timeout = read_timeout

    @property
    def endpoint(self) -> str:
        return f"{self.host}:{self.port}"

    async def _connect(self) -> tuple[asyncio.StreamReader, asyncio.StreamWriter]:
        return await asyncio.wait_for(
            asyncio.open_connection(self.host, self.port),
            timeout=self.connect_timeout,
        )

    async def execute(self, command: str) -> str:
        verb = command_kind_of(command)
        logger.debug("Sending %s to %s", verb, self.endpoint)

        try:
            reader, writer = await self._connect()
        except (OSError, asyncio.TimeoutError) as exc:
            failure = _classify(exc)
            logger.info("Connect to %s failed (%s) for %s", self.endpoint, failure.value, verb)
            raise CommandConnectionError(
                failure, host=self.host, port=self.port, command=verb, detail=str(exc)
            ) from exc

        try:
            writer.write(command.encode("utf-8"))
            await writer.drain()
            if self.read_timeout is None:
                response = await read_frame(reader)
            else:
                response = await asyncio.wait_for(read_frame(reader), timeout=self.read_timeout)
        except (OSError, asyncio.TimeoutError, asyncio.IncompleteReadError) as exc:
            failure = _classify(exc)
            logger.info("Exchange with %s failed (%s) for %s", self.endpoint, failure.value, verb)
            raise CommandConnectionError(
                failure, host=self.host, port=self.port, command=verb, detail=str(exc)
            ) from exc
        finally:
            writer.close()
            with contextlib.suppress(Exception):
                await writer.wait_closed()

        logger.debug("%s response from %s: %d chars", verb, self.endpoint, len(response))
        return response

    async def probe(self) -> bool:
        """True if a connection to the peer can be opened right now."""
        try:
            _reader, writer = await self._connect()
        except (OSError, asyncio.TimeoutError):
            return False
        writer.close()
        with contextlib.suppress(Exception):
            await writer.wait_closed()
        return True
