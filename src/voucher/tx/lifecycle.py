"""
Transaction Lifecycle - build, sign, submit and await one transaction.

Every public client operation runs through this single skeleton; the
operations differ only in script, arguments and signing topology.
"""

import asyncio
from dataclasses import dataclass
from typing import Optional, Sequence

import structlog

from voucher.accounts import AccountReader
from voucher.config import VoucherConfig, get_config
from voucher.core.cadence import Argument
from voucher.core.models import Address, TransactionResult
from voucher.node.interface import LedgerGateway
from voucher.tx.builder import TransactionBuilder
from voucher.tx.poller import SealPoller
from voucher.tx.signatures import Authorization, SignatureApplier
from voucher.tx.signer import Signer

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class SealedTransaction:
    """Id and terminal result of a transaction that went through the lifecycle."""
    transaction_id: str
    result: TransactionResult


class TransactionLifecycle:
    """
    Runs transactions from script to terminal result.

    The proposer pays for every transaction it proposes. Additional
    authorizers sign the payload through ``co_signers``.
    """

    def __init__(
        self,
        gateway: LedgerGateway,
        config: Optional[VoucherConfig] = None,
        accounts: Optional[AccountReader] = None,
        builder: Optional[TransactionBuilder] = None,
        applier: Optional[SignatureApplier] = None,
        poller: Optional[SealPoller] = None,
    ):
        self.config = config or get_config()
        self.gateway = gateway
        self.accounts = accounts or AccountReader(gateway)
        self.builder = builder or TransactionBuilder(gateway, self.accounts, self.config)
        self.applier = applier or SignatureApplier(self.accounts)
        self.poller = poller or SealPoller(gateway, self.config)

    async def run(
        self,
        script: bytes,
        arguments: Sequence[Argument],
        proposer: Address,
        signer: Signer,
        key_index: Optional[int] = None,
        authorizers: Optional[Sequence[Address]] = None,
        co_signers: Sequence[Authorization] = (),
        poll_interval: Optional[float] = None,
        timeout: Optional[float] = None,
        cancel: Optional[asyncio.Event] = None,
    ) -> SealedTransaction:
        """
        Build, sign, submit and wait for one transaction.

        Args:
            script: Cadence transaction script
            arguments: Positional script arguments
            proposer: Proposer and payer of the transaction
            signer: Signer for the proposer key
            key_index: Proposer key index (configured default if None)
            authorizers: Authorizing accounts (defaults to the proposer alone)
            co_signers: Payload signers for authorizers other than the proposer
            poll_interval: Seconds between result polls
            timeout: Maximum seconds to wait for a terminal status
            cancel: Event that abandons the wait when set

        Returns:
            Transaction id and terminal result
        """
        key_index = self.config.key_index if key_index is None else key_index
        authorizers = list(authorizers) if authorizers else [proposer]

        tx = await self.builder.build(
            script=script,
            arguments=arguments,
            proposer=proposer,
            proposer_key_index=key_index,
            payer=proposer,
            authorizers=authorizers,
        )

        tx = await self.applier.apply_payload_signatures(tx, co_signers)
        tx = await self.applier.apply_envelope_signature(tx, proposer, key_index, signer)

        transaction_id = await self.poller.submit(tx)
        if transaction_id != tx.id:
            logger.debug("tx_id_differs_from_local", tx_id=transaction_id, local_id=tx.id)

        result = await self.poller.await_terminal(
            transaction_id,
            poll_interval=poll_interval,
            timeout=timeout,
            cancel=cancel,
        )
        return SealedTransaction(transaction_id, result)
