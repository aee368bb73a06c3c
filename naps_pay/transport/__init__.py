"""
Terminal transports.
"""

from naps_pay.transport.base import Connection, Transport
from naps_pay.transport.tcp import AsyncioTcpTransport, TcpConnection

__all__ = [
    "Connection",
    "Transport",
    "AsyncioTcpTransport",
    "TcpConnection",
]
