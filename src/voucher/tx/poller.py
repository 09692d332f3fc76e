"""
Submission & Seal Poller - submits transactions and waits for a terminal status.

Polling is bounded by a deadline and can be abandoned at any time, either
by cancelling the awaiting task or through a cancel event.
"""

import asyncio
from dataclasses import dataclass
from typing import Optional

import structlog

from voucher.config import VoucherConfig, get_config
from voucher.core.models import TransactionResult, TransactionStatus
from voucher.core.transaction import Transaction
from voucher.errors import VoucherError
from voucher.node.interface import GatewayError, LedgerGateway

logger = structlog.get_logger(__name__)


class SealTimeoutError(VoucherError):
    """Raised when a transaction does not reach a terminal status in time."""

    def __init__(
        self,
        transaction_id: str,
        timeout: float,
        last_status: Optional[TransactionStatus] = None,
        attempts: int = 0,
    ):
        status = last_status.value if last_status else "none"
        super().__init__(
            f"Transaction {transaction_id} not sealed after {timeout}s "
            f"({attempts} polls, last status: {status})"
        )
        self.transaction_id = transaction_id
        self.timeout = timeout
        self.last_status = last_status
        self.attempts = attempts


class TransactionExpiredError(VoucherError):
    """Raised when a transaction expires before being executed."""

    def __init__(self, transaction_id: str):
        super().__init__(
            f"Transaction {transaction_id} expired: reference block is too old"
        )
        self.transaction_id = transaction_id


class PollCancelledError(VoucherError):
    """Raised when waiting is abandoned through the cancel event."""

    def __init__(self, transaction_id: str):
        super().__init__(f"Stopped waiting for transaction {transaction_id}")
        self.transaction_id = transaction_id


class UnsignedTransactionError(VoucherError):
    """Raised when submitting a transaction that lacks required signatures."""
    pass


@dataclass
class _PollState:
    attempts: int = 0
    last_status: Optional[TransactionStatus] = None


class SealPoller:
    """Submits transactions and polls their results until they are terminal."""

    def __init__(
        self,
        gateway: LedgerGateway,
        config: Optional[VoucherConfig] = None,
    ):
        self.gateway = gateway
        self.config = config or get_config()

    async def submit(self, tx: Transaction) -> str:
        """
        Submit a signed transaction.

        Submission errors are not retried: a retry needs a rebuilt
        transaction with a fresh sequence number.

        Returns:
            Transaction id

        Raises:
            UnsignedTransactionError: If required signatures are missing
            TransactionSubmitError: If the ledger rejects the transaction
        """
        if not tx.is_submittable:
            raise UnsignedTransactionError(
                "Transaction is missing required payload or envelope signatures"
            )

        transaction_id = await self.gateway.send_transaction(tx)
        logger.info(
            "transaction_submitted",
            tx_id=transaction_id,
            proposer=tx.proposal_key.address.hex,
            sequence_number=tx.proposal_key.sequence_number,
        )
        return transaction_id

    async def await_terminal(
        self,
        transaction_id: str,
        poll_interval: Optional[float] = None,
        timeout: Optional[float] = None,
        cancel: Optional[asyncio.Event] = None,
    ) -> TransactionResult:
        """
        Wait for a transaction to become SEALED or EXPIRED.

        Args:
            transaction_id: Id of the submitted transaction
            poll_interval: Seconds between polls (configured default if None)
            timeout: Maximum seconds to wait (configured default if None)
            cancel: Event that abandons the wait when set

        Returns:
            The sealed transaction result (which may carry an error message)

        Raises:
            SealTimeoutError: If no terminal status is seen before the deadline
            TransactionExpiredError: If the transaction expired
            PollCancelledError: If ``cancel`` was set
        """
        interval = self.config.poll_interval_seconds if poll_interval is None else poll_interval
        budget = self.config.seal_timeout_seconds if timeout is None else timeout
        state = _PollState()

        try:
            result = await asyncio.wait_for(
                self._poll(transaction_id, interval, cancel or asyncio.Event(), state),
                timeout=budget,
            )
        except asyncio.TimeoutError:
            logger.warning(
                "tx_seal_timeout",
                tx_id=transaction_id,
                attempts=state.attempts,
                last_status=state.last_status.value if state.last_status else None,
            )
            raise SealTimeoutError(
                transaction_id, budget, state.last_status, state.attempts
            ) from None

        if result.status == TransactionStatus.EXPIRED:
            logger.warning("tx_expired", tx_id=transaction_id)
            raise TransactionExpiredError(transaction_id)

        logger.info(
            "tx_sealed",
            tx_id=transaction_id,
            attempts=state.attempts,
            events=len(result.events),
            error=result.error_message or None,
        )
        return result

    async def _poll(
        self,
        transaction_id: str,
        interval: float,
        cancel: asyncio.Event,
        state: _PollState,
    ) -> TransactionResult:
        while True:
            if cancel.is_set():
                raise PollCancelledError(transaction_id)

            state.attempts += 1
            try:
                result = await self.gateway.get_transaction_result(transaction_id)
            except GatewayError as e:
                logger.warning(
                    "seal_poll_retry",
                    tx_id=transaction_id,
                    attempt=state.attempts,
                    error=str(e),
                )
            else:
                if result.status != state.last_status:
                    logger.debug(
                        "tx_status_changed",
                        tx_id=transaction_id,
                        status=result.status.value,
                    )
                state.last_status = result.status
                if result.status.is_terminal:
                    return result

            try:
                await asyncio.wait_for(cancel.wait(), timeout=interval)
            except asyncio.TimeoutError:
                continue
            raise PollCancelledError(transaction_id)
