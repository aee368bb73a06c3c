"""
Tests for the asyncio TCP transport against a local fake terminal.
"""

import asyncio

import pytest

from naps_pay.client import NapsPayClient, PaymentRequest
from naps_pay.core.config import NapsConfig
from naps_pay.core.exceptions import TransportError
from naps_pay.protocol import parse_tlv
from naps_pay.transport import AsyncioTcpTransport

from .conftest import MASKED_PAN, authorization_response, confirmation_response


class FakeTerminal:
    """Local TCP server replaying scripted responses, optionally in fragments."""

    def __init__(self, responses, fragment_delay: float = 0.0, fragment_size: int = 0):
        self.responses = list(responses)
        self.fragment_delay = fragment_delay
        self.fragment_size = fragment_size
        self.received = []
        self.server = None

    async def _handle(self, reader, writer):
        try:
            for response in self.responses:
                data = await reader.read(8192)
                if not data:
                    break
                self.received.append(data)
                if response is None:
                    continue
                await self._write(writer, response)
            await reader.read(8192)
        finally:
            writer.close()

    async def _write(self, writer, response: bytes):
        if not self.fragment_size:
            writer.write(response)
            await writer.drain()
            return
        for start in range(0, len(response), self.fragment_size):
            writer.write(response[start : start + self.fragment_size])
            await writer.drain()
            await asyncio.sleep(self.fragment_delay)

    async def __aenter__(self):
        self.server = await asyncio.start_server(self._handle, "127.0.0.1", 0)
        return self

    async def __aexit__(self, *exc_info):
        self.server.close()
        await self.server.wait_closed()

    @property
    def port(self) -> int:
        return self.server.sockets[0].getsockname()[1]


class TestAsyncioTcpTransport:
    @pytest.mark.asyncio
    async def test_send_and_receive(self):
        """Test a request is delivered and the answer read back."""
        response = authorization_response()
        async with FakeTerminal([response]) as terminal:
            transport = AsyncioTcpTransport(drain_timeout=0.1)
            connection = await transport.open("127.0.0.1", terminal.port, timeout=2.0)

            await transport.send(connection, b"001003001")
            data = await transport.receive(connection, timeout=2.0)
            await transport.close(connection)

        assert data == response
        assert terminal.received == [b"001003001"]
        assert connection.is_closed

    @pytest.mark.asyncio
    async def test_fragmented_response_reassembled(self):
        """Test chunks arriving within the drain window form one message."""
        response = confirmation_response()
        async with FakeTerminal([response], fragment_delay=0.02, fragment_size=40) as terminal:
            transport = AsyncioTcpTransport(drain_timeout=0.3)
            connection = await transport.open("127.0.0.1", terminal.port, timeout=2.0)

            await transport.send(connection, b"001003002")
            data = await transport.receive(connection, timeout=2.0)
            await transport.close(connection)

        assert data == response

    @pytest.mark.asyncio
    async def test_read_timeout(self):
        """Test a silent terminal produces a timeout TransportError."""
        async with FakeTerminal([None]) as terminal:
            transport = AsyncioTcpTransport(drain_timeout=0.1)
            connection = await transport.open("127.0.0.1", terminal.port, timeout=2.0)
            await transport.send(connection, b"001003001")

            with pytest.raises(TransportError, match="timeout"):
                await transport.receive(connection, timeout=0.2)
            await transport.close(connection)

    @pytest.mark.asyncio
    async def test_peer_close_before_data(self):
        """Test a terminal hanging up without answering is a connection error."""

        async def hang_up(reader, writer):
            await reader.read(8192)
            writer.close()

        server = await asyncio.start_server(hang_up, "127.0.0.1", 0)
        port = server.sockets[0].getsockname()[1]
        try:
            transport = AsyncioTcpTransport()
            connection = await transport.open("127.0.0.1", port, timeout=2.0)
            await transport.send(connection, b"001003001")

            with pytest.raises(TransportError, match="Connection closed"):
                await transport.receive(connection, timeout=2.0)
            await transport.close(connection)
        finally:
            server.close()
            await server.wait_closed()

    @pytest.mark.asyncio
    async def test_connection_refused(self):
        """Test an unreachable port is reported as a connect failure."""
        server = await asyncio.start_server(lambda r, w: None, "127.0.0.1", 0)
        port = server.sockets[0].getsockname()[1]
        server.close()
        await server.wait_closed()

        with pytest.raises(TransportError, match="Failed to connect"):
            await AsyncioTcpTransport().open("127.0.0.1", port, timeout=2.0)

    @pytest.mark.asyncio
    async def test_close_is_idempotent(self):
        async with FakeTerminal([]) as terminal:
            transport = AsyncioTcpTransport()
            connection = await transport.open("127.0.0.1", terminal.port, timeout=2.0)

            await transport.close(connection)
            await transport.close(connection)
            await transport.close(None)

        assert connection.is_closed

    @pytest.mark.asyncio
    async def test_send_after_close(self):
        async with FakeTerminal([]) as terminal:
            transport = AsyncioTcpTransport()
            connection = await transport.open("127.0.0.1", terminal.port, timeout=2.0)
            await transport.close(connection)

            with pytest.raises(TransportError, match="No active connection"):
                await transport.send(connection, b"001003001")


class TestClientOverTcp:
    @pytest.mark.asyncio
    async def test_two_phase_payment(self):
        """Test a full payment against the fake terminal."""
        responses = [authorization_response(), confirmation_response()]
        async with FakeTerminal(responses) as terminal:
            config = NapsConfig(
                host="127.0.0.1",
                port=terminal.port,
                drain_timeout=0.1,
                notifications_enabled=False,
            )
            async with NapsPayClient(config) as client:
                result = await client.process_payment(
                    PaymentRequest(amount="25.00", register_id="02", cashier_id="00007")
                )

        assert result.success is True
        assert result.masked_card_number == MASKED_PAN
        payment, confirmation = (parse_tlv(message) for message in terminal.received)
        assert payment["002"] == "2500"
        assert payment["003"] == "0200007"
        assert confirmation["008"] == "123456"
