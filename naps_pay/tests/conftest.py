"""
Shared fixtures for NAPS Pay tests.
"""

from typing import Any, List, Optional
from unittest.mock import AsyncMock, Mock

import pytest

from naps_pay.core.config import NapsConfig
from naps_pay.core.exceptions import TransportError
from naps_pay.integrations.gateway_notifier import GatewayNotifier
from naps_pay.protocol.m2m_tlv import build_tlv
from naps_pay.transport.base import Connection, Transport

PAN = "5167940123453315"
MASKED_PAN = "516794******3315"


class FakeConnection(Connection):
    def __init__(self):
        self.closed = False

    @property
    def is_closed(self) -> bool:
        return self.closed


class FakeTransport(Transport):
    """
    Scripted transport.

    ``responses`` are returned by successive ``receive`` calls. An exception
    instance in the list is raised instead.
    """

    def __init__(self, responses: Optional[List[Any]] = None, open_error: Optional[Exception] = None):
        self.responses = list(responses or [])
        self.open_error = open_error
        self.sent: List[bytes] = []
        self.opened: List[FakeConnection] = []
        self.open_timeouts: List[float] = []
        self.receive_timeouts: List[float] = []
        self.close_calls = 0

    async def open(self, host: str, port: int, timeout: float) -> Connection:
        self.open_timeouts.append(timeout)
        if self.open_error is not None:
            raise self.open_error
        connection = FakeConnection()
        self.opened.append(connection)
        return connection

    async def send(self, connection: Connection, data: bytes) -> None:
        if connection.is_closed:
            raise TransportError("No active connection")
        self.sent.append(data)

    async def receive(self, connection: Connection, timeout: float) -> bytes:
        self.receive_timeouts.append(timeout)
        if not self.responses:
            raise TransportError("Read timeout after 1.0s waiting for terminal")
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    async def close(self, connection: Any) -> None:
        self.close_calls += 1
        if isinstance(connection, FakeConnection):
            connection.closed = True


def authorization_response(code: str = "000", stan: Optional[str] = "123456") -> bytes:
    elements = [("001", "101"), ("013", code)]
    if stan is not None:
        elements.append(("008", stan))
    return build_tlv(elements)


def print_data() -> str:
    return build_tlv(
        [
            ("030", "01"),
            ("031", "G"),
            ("032", "C"),
            ("033", "NAPS TERMINAL"),
            ("030", "03"),
            ("032", "G"),
            ("033", f"CARTE {PAN}"),
        ]
    ).decode()


def confirmation_response(code: str = "000") -> bytes:
    return build_tlv(
        [
            ("001", "102"),
            ("013", code),
            ("008", "123456"),
            ("009", "A1B2C3"),
            ("007", PAN),
            ("014", "2712"),
            ("015", "C"),
            ("018", "JOHN DOE"),
            ("003", "0100001"),
            ("004", "000001"),
            ("016", "15032024"),
            ("017", "143025"),
            ("010", print_data()),
        ]
    )


@pytest.fixture
def config():
    """Terminal configuration used across client tests."""
    return NapsConfig(host="192.168.1.100", port=4444, timeout=120.0, confirmation_timeout=40.0)


@pytest.fixture
def notifier():
    """Notifier double that records calls without touching the network."""
    mock = Mock(spec=GatewayNotifier)
    mock.notify = AsyncMock(return_value=True)
    return mock


@pytest.fixture
def approved_transport():
    """Transport scripted for a full approved two-phase payment."""
    return FakeTransport([authorization_response(), confirmation_response()])
