"""
Event Verifier - checks that a sealed transaction is an official token transfer.

A token transfer emits exactly two events from the token contract: a
withdrawal from the payer followed by a deposit to the recipient, both
for the same amount.
"""

from decimal import Decimal
from typing import Any, Optional

import structlog

from voucher.core.amount import require_ufix64, scale
from voucher.core.models import Address, Event, TransactionResult, TransactionStatus
from voucher.errors import VoucherError

logger = structlog.get_logger(__name__)


def _same_amount(actual: Decimal, expected: Decimal) -> bool:
    # Value and scale both have to match: 12.5 is not 12.50000000.
    return actual == expected and scale(actual) == scale(expected)


class VerificationError(VoucherError):
    """Base class for transfer verification failures."""
    pass


class TransactionNotSealedError(VerificationError):
    """Raised when the transaction is not sealed."""

    def __init__(self, status: TransactionStatus):
        super().__init__(f"Transaction is not sealed (status: {status.value})")
        self.status = status


class TransactionExecutionError(VerificationError):
    """Raised when a sealed transaction carries a ledger error message."""

    def __init__(self, error_message: str, transaction_id: Optional[str] = None):
        prefix = f"Transaction {transaction_id} failed" if transaction_id else "Transaction failed"
        super().__init__(f"{prefix}: {error_message}")
        self.error_message = error_message
        self.transaction_id = transaction_id


class UnofficialTransferError(VerificationError):
    """Raised when the event stream is not an official token transfer."""
    pass


class UnexpectedEventCountError(UnofficialTransferError):
    """Raised when a transfer does not emit exactly two events."""

    def __init__(self, token: str, count: int):
        super().__init__(
            f"This is not an official {token} transferTokens event: "
            f"expected 2 events, got {count}"
        )
        self.count = count


class UnexpectedEventTypeError(UnofficialTransferError):
    """Raised when an event does not have the expected type."""

    def __init__(self, token: str, position: int, expected: str, actual: str):
        super().__init__(
            f"This is not an official {token} transferTokens event: "
            f"event {position} is {actual}, expected {expected}"
        )
        self.position = position
        self.expected = expected
        self.actual = actual


class MalformedEventError(VerificationError):
    """Raised when an event lacks a field or a field has the wrong type."""

    def __init__(self, event_type: str, field_name: str, reason: str):
        super().__init__(f"Malformed {event_type} event: field '{field_name}' {reason}")
        self.event_type = event_type
        self.field_name = field_name


class AmountMismatchError(VerificationError):
    """Raised when a transferred amount differs from the expected amount."""

    def __init__(self, token: str, side: str, expected: Decimal, actual: Decimal):
        super().__init__(
            f"{side.capitalize()} {token} amount does not match: "
            f"expected {expected}, got {actual}"
        )
        self.side = side
        self.expected = expected
        self.actual = actual


class WrongSourceError(VerificationError):
    """Raised when tokens were withdrawn from an unexpected account."""

    def __init__(self, expected: Address, actual: Any):
        super().__init__(f"Withdrawn from wrong address: expected {expected}, got {actual}")
        self.expected = expected
        self.actual = actual


class WrongDestinationError(VerificationError):
    """Raised when tokens were deposited to an unexpected account."""

    def __init__(self, expected: Address, actual: Any):
        super().__init__(f"Deposited to wrong address: expected {expected}, got {actual}")
        self.expected = expected
        self.actual = actual


def require_success(result: TransactionResult, transaction_id: Optional[str] = None) -> None:
    """
    Check that a result is sealed without a ledger error.

    Raises:
        TransactionNotSealedError: If the status is not SEALED
        TransactionExecutionError: If the ledger reported an error
    """
    if result.status != TransactionStatus.SEALED:
        raise TransactionNotSealedError(result.status)
    if result.error_message:
        raise TransactionExecutionError(result.error_message, transaction_id)


class EventVerifier:
    """
    Verifies token transfer events.

    Attributes:
        token_address: Address of the token contract
        contract_name: Name of the token contract
    """

    def __init__(self, token_address: Address, contract_name: str = "FUSD"):
        self.token_address = token_address
        self.contract_name = contract_name

    @property
    def withdrawn_type(self) -> str:
        return f"A.{self.token_address.hex}.{self.contract_name}.TokensWithdrawn"

    @property
    def deposited_type(self) -> str:
        return f"A.{self.token_address.hex}.{self.contract_name}.TokensDeposited"

    def verify_transfer(
        self,
        result: TransactionResult,
        expected_payer: Address,
        expected_amount: Decimal,
        expected_recipient: Address,
    ) -> None:
        """
        Verify that a transaction result is a transfer of ``expected_amount``
        from ``expected_payer`` to ``expected_recipient``.

        Raises:
            PrecisionError: If the expected amount is not a UFix64
            VerificationError: Subclass naming the failed check
        """
        require_ufix64(expected_amount, self.contract_name)
        require_success(result)

        events = result.events
        if len(events) != 2:
            raise UnexpectedEventCountError(self.contract_name, len(events))

        withdrawn, deposited = events
        if withdrawn.type != self.withdrawn_type:
            raise UnexpectedEventTypeError(
                self.contract_name, 0, self.withdrawn_type, withdrawn.type
            )
        if deposited.type != self.deposited_type:
            raise UnexpectedEventTypeError(
                self.contract_name, 1, self.deposited_type, deposited.type
            )

        amount_from = self._amount(withdrawn)
        if not _same_amount(amount_from, expected_amount):
            raise AmountMismatchError(self.contract_name, "withdrawn", expected_amount, amount_from)

        source = self._address(withdrawn, "from")
        if source != expected_payer:
            raise WrongSourceError(expected_payer, source)

        amount_to = self._amount(deposited)
        if not _same_amount(amount_to, expected_amount):
            raise AmountMismatchError(self.contract_name, "deposited", expected_amount, amount_to)

        destination = self._address(deposited, "to")
        if destination != expected_recipient:
            raise WrongDestinationError(expected_recipient, destination)

        logger.info(
            "transfer_verified",
            token=self.contract_name,
            amount=str(expected_amount),
            payer=expected_payer.hex,
            recipient=expected_recipient.hex,
        )

    def _field(self, event: Event, name: str) -> Any:
        try:
            return event.get_field(name)
        except KeyError:
            raise MalformedEventError(event.type, name, "is missing") from None

    def _amount(self, event: Event) -> Decimal:
        value = self._field(event, "amount")
        if not isinstance(value, Decimal):
            raise MalformedEventError(event.type, "amount", "is not a UFix64")
        return value

    def _address(self, event: Event, name: str) -> Any:
        value = self._field(event, name)
        if value is not None and not isinstance(value, Address):
            raise MalformedEventError(event.type, name, "is not an Address")
        return value
