"""
Signature Applier - attaches payload and envelope signatures.

Authorizers (and a proposer that is not the payer) sign the payload;
the payer signs the envelope, which covers the payload signatures and
therefore has to be computed last.
"""

from typing import Optional, Sequence, Tuple

import structlog

from voucher.accounts import AccountReader
from voucher.core.models import AccountKey, Address
from voucher.core.transaction import Transaction
from voucher.errors import VoucherError
from voucher.tx.signer import Signer

logger = structlog.get_logger(__name__)

Authorization = Tuple[Address, int, Signer]


class SignatureOrderError(VoucherError):
    """Raised when signatures are applied out of order."""
    pass


class SignatureApplier:
    """
    Applies signatures to transactions.

    The hash algorithm used for every signature is the one recorded on the
    signing account key, looked up fresh unless the caller supplies the key.
    """

    def __init__(self, accounts: AccountReader):
        self.accounts = accounts

    async def _resolve_key(
        self,
        address: Address,
        key_index: int,
        account_key: Optional[AccountKey],
    ) -> AccountKey:
        if account_key is not None and account_key.index == key_index:
            return account_key
        return await self.accounts.get_key(address, key_index)

    async def apply_payload_signatures(
        self,
        tx: Transaction,
        authorizations: Sequence[Authorization],
    ) -> Transaction:
        """
        Sign the payload with every given key.

        Entries for the payer are skipped: the payer signs the envelope only.

        Args:
            tx: Transaction to sign
            authorizations: (address, key index, signer) per signing key

        Returns:
            Transaction with the payload signatures attached

        Raises:
            SignatureOrderError: If the transaction already carries an envelope
                signature, an address is not a signer of the transaction, or a
                key has already signed the payload
        """
        if tx.envelope_signatures:
            raise SignatureOrderError(
                "Payload signatures must be applied before the envelope signature"
            )

        self._check_authorizations(tx, authorizations)
        message = tx.payload_message()

        for address, key_index, signer in authorizations:
            if address == tx.payer:
                logger.debug("payload_signature_skipped_for_payer", address=address.hex)
                continue

            key = await self._resolve_key(address, key_index, None)
            signature = signer.sign(message, key.hash_algorithm)
            tx = tx.with_payload_signature(address, key.index, signature)

            logger.debug(
                "payload_signed",
                address=address.hex,
                key_index=key.index,
                hash_algorithm=key.hash_algorithm.value,
            )

        return tx

    def _check_authorizations(
        self,
        tx: Transaction,
        authorizations: Sequence[Authorization],
    ) -> None:
        signers = tx.signers
        signed = {(sig.address, sig.key_index) for sig in tx.payload_signatures}

        for address, key_index, _ in authorizations:
            if address == tx.payer:
                continue
            if address not in signers:
                raise SignatureOrderError(f"{address} is not a signer of this transaction")
            if (address, key_index) in signed:
                raise SignatureOrderError(
                    f"{address} key {key_index} has already signed the payload"
                )
            signed.add((address, key_index))

    async def apply_envelope_signature(
        self,
        tx: Transaction,
        payer: Address,
        key_index: int,
        signer: Signer,
        account_key: Optional[AccountKey] = None,
    ) -> Transaction:
        """
        Sign the envelope as the payer.

        Args:
            tx: Transaction carrying all required payload signatures
            payer: Payer address; must match the transaction's payer
            key_index: Index of the payer key
            signer: Signer for the payer key
            account_key: Already fetched payer key, to avoid another read

        Returns:
            Submittable transaction

        Raises:
            SignatureOrderError: If a required payload signature is missing
        """
        if payer != tx.payer:
            raise SignatureOrderError(f"{payer} is not the payer of this transaction")

        missing = tx.missing_payload_signers
        if missing:
            raise SignatureOrderError(
                "Envelope signature requires payload signatures from: "
                + ", ".join(str(address) for address in missing)
            )

        key = await self._resolve_key(payer, key_index, account_key)
        signature = signer.sign(tx.envelope_message(), key.hash_algorithm)
        tx = tx.with_envelope_signature(payer, key.index, signature)

        logger.debug(
            "envelope_signed",
            payer=payer.hex,
            key_index=key.index,
            hash_algorithm=key.hash_algorithm.value,
        )

        return tx
