"""
NAPS Pay Client

Drives the two-phase M2M payment flow against one terminal:

1. Payment request (001) -> authorization response carrying the STAN
2. Confirmation request (002) on the same connection -> final response
   carrying card details and print data

Every completed transaction is reported to the TKPay gateway in the
background.
"""

import asyncio
import logging
from typing import Optional, Set

from ..core.config import NapsConfig
from ..core.exceptions import (
    ErrorCode,
    InvalidResponseError,
    NapsError,
    classify_transport_error,
)
from ..integrations.gateway_notifier import GatewayNotifier
from ..monitoring.metrics import PHASE_DURATION, TRANSACTION_COUNTER
from ..protocol.m2m_codes import M2mTag, is_approved
from ..protocol.m2m_tlv import (
    TlvParser,
    build_confirmation_request,
    build_payment_request,
    describe_fields,
)
from ..protocol.masking import mask_card_numbers_in_text
from ..transport.base import Connection, Transport
from ..transport.tcp import AsyncioTcpTransport
from .models import (
    VALID_TRANSITIONS,
    PaymentRequest,
    PaymentResult,
    PaymentState,
    SequenceCounter,
)

logger = logging.getLogger(__name__)

# Upper bound for aclose() to wait on in-flight notifications
NOTIFICATION_DRAIN_TIMEOUT = 5.0


class NapsPayClient:
    """
    NAPS Pay terminal client.

    Example:
        client = NapsPayClient(NapsConfig(host="192.168.1.100"))
        result = await client.process_payment(
            PaymentRequest(amount=Decimal("100.00"), register_id="01", cashier_id="00001")
        )
        if result.success:
            print(result.stan, result.masked_card_number)

    Args:
        config: Terminal configuration
        transport: Byte transport, defaults to AsyncioTcpTransport
        notifier: Gateway notifier, defaults to one built from config.
            Ignored when notifications are disabled.
    """

    def __init__(
        self,
        config: NapsConfig,
        transport: Optional[Transport] = None,
        notifier: Optional[GatewayNotifier] = None,
    ):
        self.config = config
        self.transport = transport or AsyncioTcpTransport(drain_timeout=config.drain_timeout)

        if not config.notifications_enabled:
            self.notifier = None
        else:
            self.notifier = notifier or GatewayNotifier(
                terminal_host=config.host,
                gateway_url=config.gateway_url,
                timeout=config.notification_timeout,
            )

        self._parser = TlvParser(encoding=config.encoding)
        self._sequence = SequenceCounter()
        self._connection: Optional[Connection] = None
        self._lock: Optional[asyncio.Lock] = None
        self._notification_tasks: Set[asyncio.Task] = set()
        self._state = PaymentState.IDLE

    @property
    def state(self) -> PaymentState:
        return self._state

    def generate_sequence(self) -> str:
        """Next 6-digit sequence number for this client."""
        return self._sequence.next()

    async def process_payment(self, request: PaymentRequest) -> PaymentResult:
        """
        Process a payment transaction.

        Args:
            request: Payment request

        Returns:
            PaymentResult. Declined payments are returned, not raised.

        Raises:
            NapsValidationError: Malformed request, nothing was sent
            InvalidResponseError: Terminal response is missing required fields
            NapsTimeoutError / NapsConnectionError / NapsError: Transport failure
        """
        request.validate()

        # Bound to the running loop on first use
        if self._lock is None:
            self._lock = asyncio.Lock()

        async with self._lock:
            self._state = PaymentState.IDLE
            try:
                result = await self._run(request)
            except NapsError as e:
                self._transition(PaymentState.COMPLETED)
                TRANSACTION_COUNTER.labels(outcome="error").inc()
                logger.error("Payment failed: %s", e)
                raise
            except Exception as e:
                self._transition(PaymentState.COMPLETED)
                TRANSACTION_COUNTER.labels(outcome="error").inc()
                logger.exception("Payment failed unexpectedly")
                raise NapsError(
                    str(e) or type(e).__name__, error_code=ErrorCode.UNKNOWN_ERROR
                ) from e
            finally:
                await self._close_connection()

            self._transition(PaymentState.COMPLETED)

        TRANSACTION_COUNTER.labels(outcome="approved" if result.success else "declined").inc()
        self._schedule_notification(request, result)
        return result

    async def _run(self, request: PaymentRequest) -> PaymentResult:
        ncai = request.ncai
        sequence = request.sequence or self.generate_sequence()

        logger.info(
            "Processing payment: amount=%s ncai=%s sequence=%s",
            request.decimal_amount,
            ncai,
            sequence,
        )

        # Phase 1: authorization
        self._transition(PaymentState.AWAITING_AUTHORIZATION)
        payment_message = build_payment_request(
            request.decimal_amount, ncai, sequence, encoding=self.config.encoding
        )
        with PHASE_DURATION.labels(phase="authorization").time():
            response = await self._exchange(payment_message, self.config.timeout, new=True)

        fields = self._parser.parse(response)
        self._log_fields("Authorization response", fields)

        response_code = fields.get(M2mTag.RESPONSE_CODE.tag)
        if not response_code:
            raise InvalidResponseError("No response code in authorization response", fields)

        if not is_approved(response_code):
            result = PaymentResult.declined(response_code, fields)
            logger.warning("Payment declined: %s (code %s)", result.error, response_code)
            return result

        stan = fields.get(M2mTag.STAN.tag)
        if not stan:
            raise InvalidResponseError("No STAN in authorization response", fields)

        # Phase 2: confirmation
        self._transition(PaymentState.AWAITING_CONFIRMATION)
        confirmation_message = build_confirmation_request(
            stan, ncai, sequence, encoding=self.config.encoding
        )
        with PHASE_DURATION.labels(phase="confirmation").time():
            response = await self._exchange(
                confirmation_message, self.config.confirmation_timeout
            )

        fields = self._parser.parse(response)
        self._log_fields("Confirmation response", fields)

        result = PaymentResult.confirmed(fields, encoding=self.config.encoding)
        logger.info(
            "Payment approved: stan=%s auth=%s card=%s",
            result.stan,
            result.auth_number,
            result.masked_card_number,
        )
        return result

    async def _exchange(self, message: bytes, timeout: float, new: bool = False) -> bytes:
        """Send one message and wait for the answer, opening a connection if asked."""
        try:
            if new:
                await self._close_connection()
                self._connection = await self.transport.open(
                    self.config.host, self.config.port, self.config.timeout
                )
            if self._connection is None:
                raise NapsError("No active connection", error_code=ErrorCode.CONNECTION_FAILED)

            self._log_payload("Sending", message)
            await self.transport.send(self._connection, message)
            response = await self.transport.receive(self._connection, timeout)
            logger.debug("Received %d bytes", len(response))
            return response
        except NapsError:
            raise
        except Exception as e:
            raise classify_transport_error(e) from e

    async def test_connection(self) -> bool:
        """
        Check that the terminal accepts TCP connections.

        Returns:
            True if a connection could be opened. Never raises.
        """
        connection = None
        try:
            connection = await self.transport.open(
                self.config.host, self.config.port, self.config.test_connection_timeout
            )
            return True
        except Exception as e:
            logger.debug("Terminal %s:%s unreachable: %s", self.config.host, self.config.port, e)
            return False
        finally:
            if connection is not None:
                await self.transport.close(connection)

    async def aclose(self) -> None:
        """Close any held connection and wait briefly for pending notifications."""
        await self._close_connection()

        pending = [task for task in self._notification_tasks if not task.done()]
        if pending:
            _, not_done = await asyncio.wait(pending, timeout=NOTIFICATION_DRAIN_TIMEOUT)
            for task in not_done:
                task.cancel()
            if not_done:
                logger.debug("Cancelled %d pending notifications", len(not_done))

    async def __aenter__(self) -> "NapsPayClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()

    def _transition(self, new_state: PaymentState) -> None:
        if new_state not in VALID_TRANSITIONS[self._state]:
            raise NapsError(
                f"Invalid payment state transition: {self._state.value} -> {new_state.value}",
                error_code=ErrorCode.UNKNOWN_ERROR,
            )
        logger.debug("Payment state: %s -> %s", self._state.value, new_state.value)
        self._state = new_state

    async def _close_connection(self) -> None:
        connection, self._connection = self._connection, None
        if connection is not None:
            await self.transport.close(connection)

    def _schedule_notification(self, request: PaymentRequest, result: PaymentResult) -> None:
        if self.notifier is None:
            return
        try:
            task = asyncio.create_task(self.notifier.notify(request, result))
        except Exception as e:
            logger.debug("Failed to schedule notification: %s", e)
            return
        self._notification_tasks.add(task)
        task.add_done_callback(self._notification_done)

    def _notification_done(self, task: asyncio.Task) -> None:
        self._notification_tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.debug("Background notification failed: %s", task.exception())

    def _log_payload(self, direction: str, payload: bytes) -> None:
        # Raw responses are never logged, only their decoded (masked) fields
        if logger.isEnabledFor(logging.DEBUG):
            text = payload.decode(self.config.encoding, errors="replace")
            logger.debug("%s: %s", direction, mask_card_numbers_in_text(text))

    def _log_fields(self, label: str, fields) -> None:
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug("%s:\n  %s", label, "\n  ".join(describe_fields(fields)))

    def __repr__(self) -> str:
        return f"NapsPayClient({self.config.host}:{self.config.port}, state={self._state.value})"
