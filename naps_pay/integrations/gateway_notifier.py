"""
TKPay Gateway Notifier

Reports every completed transaction to the TKPay backend. Delivery is
fire-and-forget: a failed notification never changes a payment outcome.
"""

import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import aiohttp

from ..client.models import PaymentRequest, PaymentResult
from ..core import __version__
from ..core.config import DEFAULT_GATEWAY_URL, DEFAULT_NOTIFICATION_TIMEOUT
from ..monitoring.metrics import NOTIFICATION_COUNTER

logger = logging.getLogger(__name__)

NOTIFICATION_ENDPOINT = "/v1/transactions/notify"
USER_AGENT = f"TKPayNaps-Python/{__version__}"
CURRENCY = "MAD"


def get_platform() -> str:
    return f"python-{sys.platform}"


def build_notification(
    terminal_host: str,
    request: PaymentRequest,
    result: PaymentResult,
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    """
    Build the notification payload for one transaction.

    Only the masked card number is ever included.
    """
    now = now or datetime.now(timezone.utc)
    return {
        "terminal_host": terminal_host,
        "amount": float(request.decimal_amount),
        "currency": CURRENCY,
        "response_code": result.response_code,
        "stan": result.stan,
        "auth_number": result.auth_number,
        "masked_card_number": result.masked_card_number,
        "card_expiry": result.card_expiry,
        "entry_mode": result.entry_mode,
        "cardholder_name": result.cardholder_name,
        "ncai": result.ncai or request.ncai,
        "register_id": request.register_id,
        "cashier_id": request.cashier_id,
        "sequence": result.sequence or request.sequence,
        "transaction_date": result.transaction_date,
        "transaction_time": result.transaction_time,
        "success": result.success,
        "error_message": result.error,
        "sdk_version": __version__,
        "platform": get_platform(),
        "timestamp": now.isoformat(timespec="milliseconds").replace("+00:00", "Z"),
    }


class GatewayNotifier:
    """
    Posts transaction notifications to the TKPay gateway.

    Args:
        terminal_host: Host of the terminal that processed the transactions
        gateway_url: Gateway base URL
        timeout: Total request timeout in seconds
    """

    def __init__(
        self,
        terminal_host: str,
        gateway_url: str = DEFAULT_GATEWAY_URL,
        timeout: float = DEFAULT_NOTIFICATION_TIMEOUT,
    ):
        self.terminal_host = terminal_host
        self.gateway_url = gateway_url.rstrip("/")
        self.timeout = timeout

    @property
    def endpoint(self) -> str:
        return f"{self.gateway_url}{NOTIFICATION_ENDPOINT}"

    async def notify(self, request: PaymentRequest, result: PaymentResult) -> bool:
        """
        Send one notification.

        Returns:
            True if the gateway accepted it. Never raises.
        """
        try:
            payload = build_notification(self.terminal_host, request, result)
            sent = await self._post(payload)
        except Exception as e:
            logger.debug("Background notification failed: %s", e)
            sent = False

        NOTIFICATION_COUNTER.labels(status="sent" if sent else "failed").inc()
        return sent

    async def _post(self, payload: Dict[str, Any]) -> bool:
        headers = {"Content-Type": "application/json", "User-Agent": USER_AGENT}
        async with aiohttp.ClientSession() as session:
            async with session.post(
                self.endpoint,
                json=payload,
                headers=headers,
                timeout=aiohttp.ClientTimeout(total=self.timeout),
            ) as response:
                if response.status >= 400:
                    logger.debug("Gateway rejected notification: HTTP %s", response.status)
                    return False
                return True

    def __repr__(self) -> str:
        return f"GatewayNotifier(endpoint={self.endpoint!r})"
