"""
Transaction Signer - produces signatures over signing messages.

Manages the service account private key and signs with the hash
algorithm recorded on the account key.
"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

import structlog

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.asymmetric.utils import (
    decode_dss_signature,
    encode_dss_signature,
)
from cryptography.hazmat.primitives.serialization import Encoding, PublicFormat

from voucher.config import VoucherConfig, get_config
from voucher.core.models import HashAlgorithm, SignatureAlgorithm
from voucher.errors import ConfigurationError, InvalidInputError

logger = structlog.get_logger(__name__)

_CURVES = {
    SignatureAlgorithm.ECDSA_P256: ec.SECP256R1,
    SignatureAlgorithm.ECDSA_SECP256K1: ec.SECP256K1,
}

_HASHES = {
    HashAlgorithm.SHA2_256: hashes.SHA256,
    HashAlgorithm.SHA3_256: hashes.SHA3_256,
}

_SCALAR_LENGTH = 32


class Signer(ABC):
    """Signing capability for one account key."""

    @abstractmethod
    def sign(self, message: bytes, hash_algorithm: HashAlgorithm) -> bytes:
        """
        Sign a message.

        Args:
            message: Domain-tagged signing message
            hash_algorithm: Hash algorithm of the account key

        Returns:
            Raw signature bytes
        """
        pass


class EcdsaSigner(Signer):
    """
    ECDSA signer over P-256 or secp256k1.

    Signatures are deterministic (RFC 6979) and encoded as the 64-byte
    concatenation of r and s.

    Security note: In production, consider using a HSM or
    secure key management service.
    """

    def __init__(
        self,
        signature_algorithm: SignatureAlgorithm = SignatureAlgorithm.ECDSA_P256,
        config: Optional[VoucherConfig] = None,
    ):
        self.config = config or get_config()
        self.signature_algorithm = signature_algorithm
        self._private_key: Optional[ec.EllipticCurvePrivateKey] = None

    def load_key_from_hex(self, private_key_hex: str) -> None:
        """
        Load the private key from its hex encoded scalar.

        Args:
            private_key_hex: 32-byte private scalar in hex
        """
        text = private_key_hex.strip().lower()
        if text.startswith("0x"):
            text = text[2:]
        try:
            scalar = int(text, 16)
        except ValueError:
            raise InvalidInputError("Private key is not valid hex") from None

        curve = _CURVES[self.signature_algorithm]()
        try:
            self._private_key = ec.derive_private_key(scalar, curve)
        except ValueError as e:
            raise InvalidInputError(f"Private key is out of range: {e}") from None
        logger.info(
            "signing_key_loaded",
            algorithm=self.signature_algorithm.value,
            public_key=self.public_key_hex[:16] + "...",
        )

    def load_key_from_file(self, key_path: str) -> None:
        """Load the private key from a file containing its hex encoding."""
        path = Path(key_path)
        if not path.exists():
            raise FileNotFoundError(f"Signing key file not found: {key_path}")
        self.load_key_from_hex(path.read_text())

    def load_from_config(self) -> None:
        """Load signing key from configuration."""
        if not self.config.private_key_hex:
            raise ConfigurationError("No signing key configured")
        self.load_key_from_hex(self.config.private_key_hex)

    @property
    def is_loaded(self) -> bool:
        """Check if a signing key is loaded."""
        return self._private_key is not None

    @property
    def public_key(self) -> bytes:
        """Uncompressed public key point without the 0x04 marker."""
        if not self._private_key:
            raise ConfigurationError("No signing key loaded")
        point = self._private_key.public_key().public_bytes(
            Encoding.X962, PublicFormat.UncompressedPoint
        )
        return point[1:]

    @property
    def public_key_hex(self) -> str:
        return self.public_key.hex()

    @property
    def private_key_hex(self) -> str:
        if not self._private_key:
            raise ConfigurationError("No signing key loaded")
        value = self._private_key.private_numbers().private_value
        return value.to_bytes(_SCALAR_LENGTH, "big").hex()

    def sign(self, message: bytes, hash_algorithm: HashAlgorithm) -> bytes:
        if not self._private_key:
            raise ConfigurationError("No signing key loaded")

        algorithm = ec.ECDSA(_HASHES[hash_algorithm](), deterministic_signing=True)
        der = self._private_key.sign(message, algorithm)
        r, s = decode_dss_signature(der)
        return r.to_bytes(_SCALAR_LENGTH, "big") + s.to_bytes(_SCALAR_LENGTH, "big")


def verify_signature(
    public_key: bytes,
    signature: bytes,
    message: bytes,
    signature_algorithm: SignatureAlgorithm,
    hash_algorithm: HashAlgorithm,
) -> bool:
    """
    Verify a raw r||s signature against an account public key.

    Returns:
        True if the signature is valid
    """
    if len(signature) != 2 * _SCALAR_LENGTH:
        return False

    curve = _CURVES[signature_algorithm]()
    key = ec.EllipticCurvePublicKey.from_encoded_point(curve, b"\x04" + public_key)
    der = encode_dss_signature(
        int.from_bytes(signature[:_SCALAR_LENGTH], "big"),
        int.from_bytes(signature[_SCALAR_LENGTH:], "big"),
    )
    try:
        key.verify(der, message, ec.ECDSA(_HASHES[hash_algorithm]()))
    except InvalidSignature:
        return False
    return True


def generate_test_key(
    signature_algorithm: SignatureAlgorithm = SignatureAlgorithm.ECDSA_P256,
    config: Optional[VoucherConfig] = None,
) -> EcdsaSigner:
    """
    Generate a new random signing key.

    WARNING: Do not use in production. The key is not persisted.

    Returns:
        EcdsaSigner with a new random key
    """
    signer = EcdsaSigner(signature_algorithm, config)
    signer._private_key = ec.generate_private_key(_CURVES[signature_algorithm]())

    logger.warning("test_key_generated", public_key=signer.public_key_hex[:16] + "...")

    return signer
