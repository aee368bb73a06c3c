"""
asyncio TCP transport for NAPS Pay terminals.
"""

import asyncio
import logging
from typing import Any, Optional

from ..core.config import DEFAULT_DRAIN_TIMEOUT
from ..core.exceptions import TransportError
from .base import Connection, Transport

logger = logging.getLogger(__name__)

READ_CHUNK_SIZE = 8192


class TcpConnection(Connection):
    """An open stream pair to one terminal."""

    def __init__(
        self,
        host: str,
        port: int,
        reader: asyncio.StreamReader,
        writer: asyncio.StreamWriter,
    ):
        self.host = host
        self.port = port
        self.reader = reader
        self.writer = writer
        self._closed = False

    @property
    def is_closed(self) -> bool:
        return self._closed or self.writer.is_closing()

    def mark_closed(self) -> None:
        self._closed = True

    def __repr__(self) -> str:
        state = "closed" if self.is_closed else "open"
        return f"TcpConnection({self.host}:{self.port}, {state})"


class AsyncioTcpTransport(Transport):
    """
    Raw TCP transport built on asyncio streams.

    Args:
        drain_timeout: Secondary read timeout used to collect the rest of a
            message once its first bytes have arrived.
    """

    def __init__(self, drain_timeout: float = DEFAULT_DRAIN_TIMEOUT):
        self.drain_timeout = drain_timeout

    async def open(self, host: str, port: int, timeout: float) -> TcpConnection:
        try:
            reader, writer = await asyncio.wait_for(
                asyncio.open_connection(host, port), timeout=timeout
            )
        except asyncio.TimeoutError:
            raise TransportError(
                f"Connection timeout after {timeout:.1f}s to {host}:{port}"
            )
        except OSError as e:
            raise TransportError(f"Failed to connect to {host}:{port}: {e}") from e

        logger.debug("Connected to terminal %s:%s", host, port)
        return TcpConnection(host, port, reader, writer)

    async def send(self, connection: Connection, data: bytes) -> None:
        conn = self._check(connection)
        try:
            conn.writer.write(data)
            await conn.writer.drain()
        except (ConnectionError, OSError) as e:
            raise TransportError(f"Connection error while sending: {e}") from e
        logger.debug("Sent %d bytes to %s:%s", len(data), conn.host, conn.port)

    async def receive(self, connection: Connection, timeout: float) -> bytes:
        conn = self._check(connection)

        # The first read may take minutes while the customer presents a card.
        try:
            first = await asyncio.wait_for(conn.reader.read(READ_CHUNK_SIZE), timeout=timeout)
        except asyncio.TimeoutError:
            raise TransportError(f"Read timeout after {timeout:.1f}s waiting for terminal")
        except (ConnectionError, OSError) as e:
            raise TransportError(f"Connection error while receiving: {e}") from e

        if not first:
            raise TransportError("Connection closed by terminal")

        chunks = [first]
        while True:
            try:
                chunk = await asyncio.wait_for(
                    conn.reader.read(READ_CHUNK_SIZE), timeout=self.drain_timeout
                )
            except asyncio.TimeoutError:
                # No more data within the drain window: message complete
                break
            except (ConnectionError, OSError) as e:
                logger.debug("Stream error while draining, keeping received data: %s", e)
                break
            if not chunk:
                break
            chunks.append(chunk)

        data = b"".join(chunks)
        logger.debug("Received %d bytes from %s:%s", len(data), conn.host, conn.port)
        return data

    async def close(self, connection: Optional[Any]) -> None:
        """Best-effort close; errors are swallowed."""
        if not isinstance(connection, TcpConnection) or connection._closed:
            return
        connection.mark_closed()
        try:
            connection.writer.close()
            await connection.writer.wait_closed()
        except Exception as e:  # noqa: BLE001 - close must never raise
            logger.debug("Ignoring error while closing %r: %s", connection, e)

    @staticmethod
    def _check(connection: Connection) -> TcpConnection:
        if not isinstance(connection, TcpConnection) or connection.is_closed:
            raise TransportError("No active connection")
        return connection
