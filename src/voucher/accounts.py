"""
Account reads.

Thin layer over the gateway used to look up accounts, balances and the
current state of individual account keys. Nothing is cached: every call
is one remote read, so sequence numbers are always current.
"""

from decimal import Decimal

import structlog

from voucher.core.models import Account, AccountKey, Address
from voucher.errors import VoucherError
from voucher.node.interface import LedgerGateway

logger = structlog.get_logger(__name__)


class KeyIndexError(VoucherError, IndexError):
    """Raised when an account has no key at the requested index."""

    def __init__(self, address: Address, index: int, available: int):
        super().__init__(
            f"Account {address} has no key at index {index} ({available} keys)"
        )
        self.address = address
        self.index = index


class AccountReader:
    """Reads account state from the ledger."""

    def __init__(self, gateway: LedgerGateway):
        self.gateway = gateway

    async def get_account(self, address: Address) -> Account:
        return await self.gateway.get_account(address)

    async def get_balance(self, address: Address) -> Decimal:
        account = await self.gateway.get_account(address)
        return account.balance

    async def get_key(self, address: Address, index: int) -> AccountKey:
        """
        Get the current state of an account key.

        Raises:
            KeyIndexError: If the account has no key at ``index``
        """
        account = await self.gateway.get_account(address)
        key = account.get_key(index)
        if key is None:
            raise KeyIndexError(address, index, len(account.keys))

        if key.revoked:
            logger.warning("account_key_revoked", address=address.hex, key_index=index)

        return key
