"""
Ledger Integration Layer.

Provides abstracted access to Flow ledger data and transaction submission.
"""

from voucher.node.interface import LedgerGateway
from voucher.node.rest import FlowRestAdapter

__all__ = [
    "LedgerGateway",
    "FlowRestAdapter",
]
