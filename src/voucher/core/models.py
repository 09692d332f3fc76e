"""
Ledger data model.

Read-only snapshots of accounts, keys, blocks and transaction results
as reported by the access node.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional

from voucher.errors import InvalidInputError

ADDRESS_LENGTH = 8


@dataclass(frozen=True)
class Address:
    """
    Fixed-width account address.

    Equality is structural on the raw bytes. ``hex`` renders the address
    without a prefix, which is how addresses appear in event type ids and
    in configuration.
    """
    value: bytes

    def __post_init__(self):
        if len(self.value) != ADDRESS_LENGTH:
            raise InvalidInputError(
                f"Address must be {ADDRESS_LENGTH} bytes, got {len(self.value)}"
            )

    @classmethod
    def from_hex(cls, value: str) -> "Address":
        """Parse a hex address, with or without the 0x prefix."""
        text = value.strip().lower()
        if text.startswith("0x"):
            text = text[2:]
        if not text or len(text) > ADDRESS_LENGTH * 2:
            raise InvalidInputError(f"Invalid address: {value!r}")
        try:
            raw = bytes.fromhex(text.rjust(ADDRESS_LENGTH * 2, "0"))
        except ValueError:
            raise InvalidInputError(f"Invalid address: {value!r}") from None
        return cls(raw)

    @property
    def hex(self) -> str:
        return self.value.hex()

    def __str__(self) -> str:
        return "0x" + self.hex


class SignatureAlgorithm(str, Enum):
    """Signature algorithms supported by account keys."""
    ECDSA_P256 = "ECDSA_P256"
    ECDSA_SECP256K1 = "ECDSA_secp256k1"

    @property
    def code(self) -> int:
        return _SIGNATURE_ALGORITHM_CODES[self]

    @classmethod
    def parse(cls, value: str) -> "SignatureAlgorithm":
        for member in cls:
            if member.value.lower() == str(value).lower():
                return member
        raise InvalidInputError(f"Unsupported signature algorithm: {value}")


class HashAlgorithm(str, Enum):
    """Hash algorithms supported by account keys."""
    SHA2_256 = "SHA2_256"
    SHA3_256 = "SHA3_256"

    @property
    def code(self) -> int:
        return _HASH_ALGORITHM_CODES[self]

    @classmethod
    def parse(cls, value: str) -> "HashAlgorithm":
        for member in cls:
            if member.value.lower() == str(value).lower():
                return member
        raise InvalidInputError(f"Unsupported hash algorithm: {value}")


_SIGNATURE_ALGORITHM_CODES = {
    SignatureAlgorithm.ECDSA_P256: 2,
    SignatureAlgorithm.ECDSA_SECP256K1: 3,
}

_HASH_ALGORITHM_CODES = {
    HashAlgorithm.SHA2_256: 1,
    HashAlgorithm.SHA3_256: 3,
}


@dataclass(frozen=True)
class AccountKey:
    """
    A key registered on an account.

    The sequence number is incremented by the ledger every time the key
    is used as a proposal key, so a snapshot is only valid for one build.
    """
    index: int
    public_key: bytes
    signature_algorithm: SignatureAlgorithm
    hash_algorithm: HashAlgorithm
    weight: int
    sequence_number: int
    revoked: bool = False


@dataclass(frozen=True)
class Account:
    """Account snapshot at the latest sealed block."""
    address: Address
    balance: Decimal
    keys: List[AccountKey] = field(default_factory=list)

    def get_key(self, index: int) -> Optional[AccountKey]:
        for key in self.keys:
            if key.index == index:
                return key
        return None


@dataclass(frozen=True)
class BlockHeader:
    """Header of a sealed block."""
    id: bytes
    height: int
    timestamp: Optional[str] = None


class TransactionStatus(str, Enum):
    """Status of a submitted transaction."""
    UNKNOWN = "unknown"         # Node has not seen the transaction yet
    PENDING = "pending"         # Waiting to be included in a block
    FINALIZED = "finalized"     # Included in a finalized block
    EXECUTED = "executed"       # Executed by execution nodes
    SEALED = "sealed"           # Execution result sealed, final
    EXPIRED = "expired"         # Reference block too old, never executed

    @property
    def is_terminal(self) -> bool:
        return self in (TransactionStatus.SEALED, TransactionStatus.EXPIRED)

    @classmethod
    def parse(cls, value: str) -> "TransactionStatus":
        try:
            return cls(str(value).lower())
        except ValueError:
            return cls.UNKNOWN


@dataclass(frozen=True)
class Event:
    """
    An event emitted while executing a transaction.

    Attributes:
        type: Fully qualified type id, e.g. ``A.<address>.FUSD.TokensWithdrawn``
        fields: Decoded field values in declaration order
        transaction_id: Id of the emitting transaction
        event_index: Position of the event within the transaction
    """
    type: str
    fields: Dict[str, Any] = field(default_factory=dict)
    transaction_id: Optional[str] = None
    event_index: int = 0

    def get_field(self, name: str) -> Any:
        """Get a field value, raising KeyError if the event has no such field."""
        return self.fields[name]


@dataclass(frozen=True)
class TransactionResult:
    """Result of a transaction as reported by the access node."""
    status: TransactionStatus
    error_message: str = ""
    events: List[Event] = field(default_factory=list)
    status_code: int = 0
    block_id: Optional[str] = None

    @property
    def is_sealed(self) -> bool:
        return self.status == TransactionStatus.SEALED

    @property
    def failed(self) -> bool:
        return bool(self.error_message)
