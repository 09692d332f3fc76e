"""
Flow Voucher Client

Client-side transaction workflow for Flow: builds and signs transactions,
submits them to an access node, waits for them to seal and verifies
FUSD payment events.
"""

__version__ = "0.1.0"

from voucher.client import AccountCreationResult, CreationFailure, VoucherClient
from voucher.core.models import Account, AccountKey, Address, TransactionResult, TransactionStatus
from voucher.errors import VoucherError

__all__ = [
    "VoucherClient",
    "AccountCreationResult",
    "CreationFailure",
    "Account",
    "AccountKey",
    "Address",
    "TransactionResult",
    "TransactionStatus",
    "VoucherError",
]
