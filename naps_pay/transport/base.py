"""
Transport contract consumed by the payment client.

A transport moves raw bytes to and from one terminal. It knows nothing about
TLV or the payment flow. Every failure must surface as ``TransportError``
whose message mentions "timeout" or "connection" when that is the cause.
"""

from abc import ABC, abstractmethod
from typing import Any


class Connection(ABC):
    """Handle for one open terminal connection."""

    @property
    @abstractmethod
    def is_closed(self) -> bool:
        """True once the connection has been closed by either side."""


class Transport(ABC):
    """Abstract byte transport to a NAPS Pay terminal."""

    @abstractmethod
    async def open(self, host: str, port: int, timeout: float) -> Connection:
        """Open a connection, failing with TransportError after ``timeout`` seconds."""

    @abstractmethod
    async def send(self, connection: Connection, data: bytes) -> None:
        """Write ``data`` to the connection."""

    @abstractmethod
    async def receive(self, connection: Connection, timeout: float) -> bytes:
        """
        Read one logical message.

        Blocks until at least one byte is available or ``timeout`` elapses,
        then drains whatever else arrives within a short secondary timeout,
        since a message may be split across several reads.
        """

    @abstractmethod
    async def close(self, connection: Any) -> None:
        """Close the connection. Must never raise."""
