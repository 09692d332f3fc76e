"""
Transaction module.

Handles transaction construction, signing, submission and verification.
"""

from voucher.tx.builder import TransactionBuilder, TransactionBuildError
from voucher.tx.lifecycle import SealedTransaction, TransactionLifecycle
from voucher.tx.poller import SealPoller
from voucher.tx.signatures import SignatureApplier
from voucher.tx.signer import EcdsaSigner, Signer
from voucher.tx.verifier import EventVerifier

__all__ = [
    "TransactionBuilder",
    "TransactionBuildError",
    "TransactionLifecycle",
    "SealedTransaction",
    "SealPoller",
    "SignatureApplier",
    "EcdsaSigner",
    "Signer",
    "EventVerifier",
]
