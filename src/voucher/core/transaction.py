"""
Transaction model and canonical encoding.

Signing messages and transaction ids are derived from the RLP encoding
of the transaction's canonical form, prefixed with the transaction
domain tag.
"""

import hashlib
from dataclasses import dataclass, field, replace
from typing import List, Optional, Tuple

import rlp

from voucher.core.models import Address
from voucher.errors import InvalidInputError

TRANSACTION_DOMAIN_TAG = b"FLOW-V0.0-transaction".ljust(32, b"\x00")


@dataclass(frozen=True)
class ProposalKey:
    """Key establishing ordering and replay protection for a transaction."""
    address: Address
    key_index: int
    sequence_number: int


@dataclass(frozen=True)
class TransactionSignature:
    """
    A signature attached to a transaction.

    Attributes:
        address: Account that produced the signature
        signer_index: Position of the account in the transaction's signer list
        key_index: Index of the account key used
        signature: Raw signature bytes
    """
    address: Address
    signer_index: int
    key_index: int
    signature: bytes

    def canonical_form(self) -> list:
        return [self.signer_index, self.key_index, self.signature]


@dataclass(frozen=True)
class Transaction:
    """
    A Flow transaction.

    Instances are immutable; signing returns a new transaction with the
    signature attached.
    """
    script: bytes
    arguments: Tuple[bytes, ...]
    reference_block_id: bytes
    gas_limit: int
    proposal_key: ProposalKey
    payer: Address
    authorizers: Tuple[Address, ...]
    payload_signatures: Tuple[TransactionSignature, ...] = field(default_factory=tuple)
    envelope_signatures: Tuple[TransactionSignature, ...] = field(default_factory=tuple)

    @property
    def signers(self) -> List[Address]:
        """Accounts that may sign, deduplicated: proposer, payer, authorizers."""
        seen: List[Address] = []
        for address in (self.proposal_key.address, self.payer, *self.authorizers):
            if address not in seen:
                seen.append(address)
        return seen

    def signer_index(self, address: Address) -> int:
        try:
            return self.signers.index(address)
        except ValueError:
            raise InvalidInputError(f"{address} is not a signer of this transaction") from None

    @property
    def required_payload_signers(self) -> List[Address]:
        """Accounts that must sign the payload: every signer except the payer."""
        return [address for address in self.signers if address != self.payer]

    def has_payload_signature_from(self, address: Address) -> bool:
        return any(sig.address == address for sig in self.payload_signatures)

    @property
    def missing_payload_signers(self) -> List[Address]:
        return [
            address for address in self.required_payload_signers
            if not self.has_payload_signature_from(address)
        ]

    @property
    def is_submittable(self) -> bool:
        """Whether every required payload signature and the payer's envelope signature are present."""
        if self.missing_payload_signers:
            return False
        return self.find_envelope_signature(self.payer) is not None

    # Canonical forms

    def payload_canonical_form(self) -> list:
        return [
            self.script,
            list(self.arguments),
            self.reference_block_id,
            self.gas_limit,
            self.proposal_key.address.value,
            self.proposal_key.key_index,
            self.proposal_key.sequence_number,
            self.payer.value,
            [address.value for address in self.authorizers],
        ]

    def envelope_canonical_form(self) -> list:
        return [
            self.payload_canonical_form(),
            [sig.canonical_form() for sig in self.payload_signatures],
        ]

    def payload_message(self) -> bytes:
        """Bytes signed by payload signers."""
        return TRANSACTION_DOMAIN_TAG + rlp.encode(self.payload_canonical_form())

    def envelope_message(self) -> bytes:
        """Bytes signed by the payer; covers the payload signatures."""
        return TRANSACTION_DOMAIN_TAG + rlp.encode(self.envelope_canonical_form())

    @property
    def id(self) -> str:
        """Content-derived transaction id (hex)."""
        encoded = rlp.encode([
            self.payload_canonical_form(),
            [sig.canonical_form() for sig in self.payload_signatures],
            [sig.canonical_form() for sig in self.envelope_signatures],
        ])
        return hashlib.sha3_256(encoded).hexdigest()

    # Signature attachment

    def with_payload_signature(
        self,
        address: Address,
        key_index: int,
        signature: bytes,
    ) -> "Transaction":
        sig = TransactionSignature(address, self.signer_index(address), key_index, signature)
        return replace(
            self,
            payload_signatures=_sorted_signatures(self.payload_signatures + (sig,)),
        )

    def with_envelope_signature(
        self,
        address: Address,
        key_index: int,
        signature: bytes,
    ) -> "Transaction":
        sig = TransactionSignature(address, self.signer_index(address), key_index, signature)
        return replace(
            self,
            envelope_signatures=_sorted_signatures(self.envelope_signatures + (sig,)),
        )

    def find_envelope_signature(self, address: Address) -> Optional[TransactionSignature]:
        for sig in self.envelope_signatures:
            if sig.address == address:
                return sig
        return None


def _sorted_signatures(
    signatures: Tuple[TransactionSignature, ...],
) -> Tuple[TransactionSignature, ...]:
    return tuple(sorted(signatures, key=lambda s: (s.signer_index, s.key_index)))
