"""
Transaction Builder - constructs unsigned transactions.

Assembles script, arguments, proposal key and reference block into a
transaction ready for signing.
"""

from typing import Optional, Sequence

import structlog

from voucher.accounts import AccountReader
from voucher.config import VoucherConfig, get_config
from voucher.core.amount import require_ufix64
from voucher.core.cadence import Argument
from voucher.core.models import Address
from voucher.core.transaction import ProposalKey, Transaction
from voucher.errors import VoucherError
from voucher.node.interface import LedgerGateway

logger = structlog.get_logger(__name__)


class TransactionBuildError(VoucherError):
    """Raised when transaction construction fails."""
    pass


class TransactionBuilder:
    """
    Builds unsigned transactions.

    Every build reads the proposer account and the latest sealed block
    header, so the proposal key sequence number and the reference block are
    current at build time. A sequence number that goes stale before
    submission is reported by the ledger and is not retried here.
    """

    def __init__(
        self,
        gateway: LedgerGateway,
        accounts: Optional[AccountReader] = None,
        config: Optional[VoucherConfig] = None,
    ):
        """
        Initialize the transaction builder.

        Args:
            gateway: Gateway for ledger queries
            accounts: Account reader (created from the gateway if not provided)
            config: Client configuration
        """
        self.gateway = gateway
        self.accounts = accounts or AccountReader(gateway)
        self.config = config or get_config()

    @staticmethod
    def validate_arguments(arguments: Sequence[Argument]) -> None:
        """
        Check argument values that can be validated without the script.

        Raises:
            PrecisionError: If a UFix64 argument does not have 8 decimal places
        """
        for argument in arguments:
            if argument.type == "UFix64":
                require_ufix64(argument.value, "UFix64 argument")

    async def build(
        self,
        script: bytes,
        arguments: Sequence[Argument],
        proposer: Address,
        proposer_key_index: int,
        payer: Address,
        authorizers: Sequence[Address],
        gas_limit: Optional[int] = None,
    ) -> Transaction:
        """
        Build an unsigned transaction.

        Args:
            script: Cadence transaction script
            arguments: Positional script arguments, in script parameter order
            proposer: Account providing the proposal key
            proposer_key_index: Index of the proposal key
            payer: Account paying for the transaction
            authorizers: Accounts authorizing the transaction, in prepare() order
            gas_limit: Computation limit (defaults to the configured limit)

        Returns:
            Unsigned transaction

        Raises:
            PrecisionError: If an amount argument has the wrong precision
            TransactionBuildError: If the transaction shape is invalid
            KeyIndexError: If the proposer has no key at the index
        """
        self.validate_arguments(arguments)

        gas_limit = self.config.gas_limit if gas_limit is None else gas_limit
        if gas_limit <= 0:
            raise TransactionBuildError(f"Gas limit must be positive, got {gas_limit}")
        if not authorizers:
            raise TransactionBuildError("Transaction needs at least one authorizer")
        if not script:
            raise TransactionBuildError("Transaction script is empty")

        encoded_arguments = tuple(argument.encode() for argument in arguments)

        proposal_key = await self.accounts.get_key(proposer, proposer_key_index)
        header = await self.gateway.get_latest_block_header()

        tx = Transaction(
            script=script,
            arguments=encoded_arguments,
            reference_block_id=header.id,
            gas_limit=gas_limit,
            proposal_key=ProposalKey(
                address=proposer,
                key_index=proposal_key.index,
                sequence_number=proposal_key.sequence_number,
            ),
            payer=payer,
            authorizers=tuple(authorizers),
        )

        logger.info(
            "transaction_built",
            proposer=proposer.hex,
            key_index=proposal_key.index,
            sequence_number=proposal_key.sequence_number,
            reference_block=header.id.hex()[:16] + "...",
            arguments=len(encoded_arguments),
        )

        return tx
