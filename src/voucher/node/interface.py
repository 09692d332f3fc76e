"""
Abstract interface for Flow access node integration.

Defines the contract for ledger access that all gateway adapters must implement.
"""

from abc import ABC, abstractmethod
from typing import Optional

from voucher.core.models import Account, Address, BlockHeader, TransactionResult
from voucher.core.transaction import Transaction
from voucher.errors import VoucherError


class LedgerGateway(ABC):
    """
    Abstract interface for Flow access node access.

    This interface defines the four remote operations the client needs:
    - Account lookup
    - Latest sealed block header lookup
    - Transaction submission
    - Transaction result lookup
    """

    async def connect(self) -> None:
        """Establish connection to the access node."""
        pass

    async def disconnect(self) -> None:
        """Close connection to the access node."""
        pass

    @abstractmethod
    async def get_account(self, address: Address) -> Account:
        """
        Get an account at the latest sealed block.

        Args:
            address: Account address

        Returns:
            Account snapshot including its keys

        Raises:
            AccountNotFoundError: If the account does not exist
            GatewayError: If the request fails
        """
        pass

    @abstractmethod
    async def get_latest_block_header(self) -> BlockHeader:
        """
        Get the header of the latest sealed block.

        Returns:
            Latest sealed block header
        """
        pass

    @abstractmethod
    async def send_transaction(self, tx: Transaction) -> str:
        """
        Submit a signed transaction to the network.

        Args:
            tx: Signed transaction to submit

        Returns:
            Transaction id (hex)

        Raises:
            TransactionSubmitError: If submission fails
        """
        pass

    @abstractmethod
    async def get_transaction_result(self, transaction_id: str) -> TransactionResult:
        """
        Get the current result of a transaction.

        Args:
            transaction_id: Transaction id (hex)

        Returns:
            Current transaction result; may be non-terminal

        Raises:
            GatewayError: If the request fails or the node does not know the transaction
        """
        pass


class GatewayError(VoucherError):
    """Raised when a request to the access node fails."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class AccountNotFoundError(GatewayError):
    """Raised when the requested account does not exist."""
    pass


class TransactionSubmitError(GatewayError):
    """Raised when transaction submission fails."""

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        status_code: Optional[int] = None,
    ):
        super().__init__(message, status_code)
        self.error_code = error_code


class SequenceNumberConflictError(TransactionSubmitError):
    """
    Raised when the ledger rejects a transaction for a stale proposal key sequence number.

    Rebuild the transaction to pick up the current sequence number.
    """
    pass


class MalformedResponseError(VoucherError):
    """Raised when the access node returns a response that cannot be parsed."""
    pass
