"""
Voucher client.

Public operations for paying with FUSD, moving FLOW and creating
accounts on behalf of the service account.
"""

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Optional, Union

import structlog

from voucher.accounts import AccountReader
from voucher.config import VoucherConfig, get_config
from voucher.core.amount import parse_amount
from voucher.core.cadence import Argument
from voucher.core.models import Account, Address, SignatureAlgorithm, TransactionResult
from voucher.errors import ConfigurationError, InvalidInputError
from voucher.node.interface import LedgerGateway
from voucher.node.rest import FlowRestAdapter
from voucher.templates import (
    FLOW_TOKEN_ADDRESS,
    FUNGIBLE_TOKEN_ADDRESS,
    FUSD_ADDRESS,
    TemplateResolver,
)
from voucher.tx.lifecycle import TransactionLifecycle
from voucher.tx.poller import TransactionExpiredError
from voucher.tx.signer import EcdsaSigner, Signer
from voucher.tx.verifier import EventVerifier, require_success

logger = structlog.get_logger(__name__)

ACCOUNT_CREATED_EVENT = "flow.AccountCreated"


class CreationFailure(str, Enum):
    """Why an account could not be created."""
    EXECUTION_ERROR = "execution_error"   # Sealed with a ledger error message
    EXPIRED = "expired"                   # Reference block expired before execution
    MISSING_EVENT = "missing_event"       # Sealed without a usable AccountCreated event


@dataclass(frozen=True)
class AccountCreationResult:
    """
    Outcome of an account creation.

    Exactly one of ``address`` and ``reason`` is set.
    """
    transaction_id: Optional[str]
    address: Optional[Address] = None
    reason: Optional[CreationFailure] = None
    error_message: str = ""

    @property
    def ok(self) -> bool:
        return self.address is not None


def _address(value: Union[str, Address]) -> Address:
    return value if isinstance(value, Address) else Address.from_hex(value)


class VoucherClient:
    """
    Client for the voucher workflows.

    Usage:
        ```python
        async with VoucherClient() as client:
            tx_id = await client.transfer_fusd(sender, recipient, Decimal("10.00000000"))
            await client.verify_fusd_transfer(sender.hex, Decimal("10.00000000"), tx_id)
        ```
    """

    def __init__(
        self,
        config: Optional[VoucherConfig] = None,
        gateway: Optional[LedgerGateway] = None,
        signer: Optional[Signer] = None,
        templates: Optional[TemplateResolver] = None,
    ):
        """
        Initialize the client.

        Args:
            config: Client configuration
            gateway: Custom gateway (REST adapter created from config if not provided)
            signer: Signer for the service account key (loaded from config if not provided)
            templates: Custom template resolver
        """
        self.config = config or get_config()
        self.gateway = gateway or FlowRestAdapter(self.config)
        self.templates = templates or TemplateResolver()
        self.accounts = AccountReader(self.gateway)
        self.lifecycle = TransactionLifecycle(self.gateway, self.config, self.accounts)

        if signer is None and self.config.private_key_hex:
            signer = EcdsaSigner(
                SignatureAlgorithm.parse(self.config.signature_algorithm),
                self.config,
            )
            signer.load_from_config()
        self._signer = signer

    async def __aenter__(self) -> "VoucherClient":
        await self.gateway.connect()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.gateway.disconnect()

    @property
    def signer(self) -> Signer:
        if self._signer is None:
            raise ConfigurationError("No signing key configured")
        return self._signer

    @property
    def account_address(self) -> Address:
        if not self.config.account_address:
            raise ConfigurationError("No service account address configured")
        return Address.from_hex(self.config.account_address)

    def _fusd_verifier(self) -> EventVerifier:
        if not self.config.fusd_address:
            raise ConfigurationError("No FUSD contract address configured")
        return EventVerifier(Address.from_hex(self.config.fusd_address), "FUSD")

    # Transfers

    async def transfer_fusd(
        self,
        sender: Union[str, Address],
        recipient: Union[str, Address],
        amount: Union[str, Decimal],
    ) -> str:
        """
        Transfer FUSD and wait for the transaction to seal.

        Args:
            sender: Paying account (signs with the configured key)
            recipient: Receiving account
            amount: Amount with exactly 8 decimal places

        Returns:
            Transaction id

        Raises:
            PrecisionError: If the amount does not have 8 decimal places
            TransactionExecutionError: If the transfer failed on-chain
        """
        amount = parse_amount(amount, "FUSD")
        sender, recipient = _address(sender), _address(recipient)

        script = self.templates.render(
            "transfer_fusd.cdc.temp",
            {
                FUNGIBLE_TOKEN_ADDRESS: self.config.fungible_token_address,
                FUSD_ADDRESS: self.config.fusd_address,
            },
        )

        sealed = await self.lifecycle.run(
            script.encode("utf-8"),
            [Argument.ufix64(amount), Argument.address(recipient)],
            proposer=sender,
            signer=self.signer,
        )
        require_success(sealed.result, sealed.transaction_id)

        logger.info(
            "fusd_transferred",
            tx_id=sealed.transaction_id,
            sender=sender.hex,
            recipient=recipient.hex,
            amount=str(amount),
        )
        return sealed.transaction_id

    async def verify_fusd_transfer(
        self,
        payer_address: str,
        amount: Union[str, Decimal],
        transaction_id: str,
    ) -> TransactionResult:
        """
        Verify that a transaction paid ``amount`` FUSD from ``payer_address``
        to the service account.

        Args:
            payer_address: Hex address of the payer (0x prefix optional)
            amount: Expected amount with exactly 8 decimal places
            transaction_id: Id of the payment transaction

        Returns:
            The verified transaction result

        Raises:
            PrecisionError: If the amount does not have 8 decimal places
            VerificationError: Subclass naming the failed check
        """
        amount = parse_amount(amount, "FUSD")
        payer = Address.from_hex(payer_address)
        verifier = self._fusd_verifier()
        recipient = self.account_address

        result = await self.lifecycle.poller.await_terminal(transaction_id)
        verifier.verify_transfer(result, payer, amount, recipient)
        return result

    async def transfer_tokens(
        self,
        sender: Union[str, Address],
        recipient: Union[str, Address],
        amount: Union[str, Decimal],
    ) -> str:
        """
        Transfer FLOW and wait for the transaction to seal.

        Returns:
            Transaction id

        Raises:
            PrecisionError: If the amount does not have 8 decimal places
            TransactionExecutionError: If the transfer failed on-chain
        """
        amount = parse_amount(amount, "FLOW")
        sender, recipient = _address(sender), _address(recipient)

        script = self.templates.render(
            "transfer_flow.cdc.temp",
            {
                FUNGIBLE_TOKEN_ADDRESS: self.config.fungible_token_address,
                FLOW_TOKEN_ADDRESS: self.config.flow_token_address,
            },
        )

        sealed = await self.lifecycle.run(
            script.encode("utf-8"),
            [Argument.ufix64(amount), Argument.address(recipient)],
            proposer=sender,
            signer=self.signer,
        )
        require_success(sealed.result, sealed.transaction_id)

        logger.info(
            "flow_transferred",
            tx_id=sealed.transaction_id,
            sender=sender.hex,
            recipient=recipient.hex,
            amount=str(amount),
        )
        return sealed.transaction_id

    # Accounts

    async def create_account(
        self,
        payer: Union[str, Address],
        public_key_hex: str,
    ) -> AccountCreationResult:
        """
        Create an account holding a single full-weight ECDSA_P256 key.

        Args:
            payer: Account paying for the new account
            public_key_hex: Uncompressed public key (64 bytes, hex)

        Returns:
            Result carrying the new address, or the failure reason
        """
        payer = _address(payer)
        public_key_hex = public_key_hex.strip().lower().removeprefix("0x")
        try:
            public_key = bytes.fromhex(public_key_hex)
        except ValueError:
            raise InvalidInputError("Public key is not valid hex") from None
        if len(public_key) != 64:
            raise InvalidInputError(f"Public key must be 64 bytes, got {len(public_key)}")

        try:
            sealed = await self.lifecycle.run(
                self.templates.load("create_account.cdc"),
                [Argument.string(public_key_hex)],
                proposer=payer,
                signer=self.signer,
            )
        except TransactionExpiredError as e:
            logger.warning("account_creation_expired", tx_id=e.transaction_id)
            return AccountCreationResult(
                e.transaction_id, reason=CreationFailure.EXPIRED, error_message=str(e)
            )

        return self._account_creation_result(sealed.transaction_id, sealed.result)

    def _account_creation_result(
        self,
        transaction_id: str,
        result: TransactionResult,
    ) -> AccountCreationResult:
        if result.error_message:
            logger.warning(
                "account_creation_failed",
                tx_id=transaction_id,
                error=result.error_message,
            )
            return AccountCreationResult(
                transaction_id,
                reason=CreationFailure.EXECUTION_ERROR,
                error_message=result.error_message,
            )

        for event in result.events:
            if event.type != ACCOUNT_CREATED_EVENT:
                continue
            address = event.fields.get("address")
            if isinstance(address, Address):
                logger.info("account_created", tx_id=transaction_id, address=address.hex)
                return AccountCreationResult(transaction_id, address=address)

        logger.warning("account_created_event_missing", tx_id=transaction_id)
        return AccountCreationResult(
            transaction_id,
            reason=CreationFailure.MISSING_EVENT,
            error_message=f"No {ACCOUNT_CREATED_EVENT} event with an address",
        )

    async def get_account(self, address: Union[str, Address]) -> Account:
        return await self.accounts.get_account(_address(address))

    async def get_account_balance(self, address: Union[str, Address]) -> Decimal:
        return await self.accounts.get_balance(_address(address))
