"""
Core data model.

Ledger snapshots, token amounts, JSON-Cadence values and the canonical
transaction encoding.
"""

from voucher.core.amount import PrecisionError, parse_amount
from voucher.core.cadence import Argument
from voucher.core.models import (
    Account,
    AccountKey,
    Address,
    BlockHeader,
    Event,
    HashAlgorithm,
    SignatureAlgorithm,
    TransactionResult,
    TransactionStatus,
)
from voucher.core.transaction import ProposalKey, Transaction, TransactionSignature

__all__ = [
    "Account",
    "AccountKey",
    "Address",
    "Argument",
    "BlockHeader",
    "Event",
    "HashAlgorithm",
    "PrecisionError",
    "ProposalKey",
    "SignatureAlgorithm",
    "Transaction",
    "TransactionResult",
    "TransactionSignature",
    "TransactionStatus",
    "parse_amount",
]
