"""
Pytest configuration and shared fixtures for the test suite.
"""

import asyncio
from collections import Counter
from decimal import Decimal
from typing import Dict, List, Optional, Tuple, Union

import pytest

from voucher.config import NetworkType, VoucherConfig
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
from voucher.core.transaction import Transaction
from voucher.node.interface import (
    AccountNotFoundError,
    GatewayError,
    LedgerGateway,
)
from voucher.tx.signer import EcdsaSigner, Signer, generate_test_key


FUSD_ADDRESS = "e223d8a629e49c68"
FUNGIBLE_TOKEN_ADDRESS = "9a0766d93b6608b7"
FLOW_TOKEN_ADDRESS = "7e60df042a9c0868"
SERVICE_ADDRESS = "f8d6e0586b0a20c7"


# ============================================================================
# Configuration Fixtures
# ============================================================================

@pytest.fixture
def test_config() -> VoucherConfig:
    """Create a test configuration."""
    return VoucherConfig(
        network=NetworkType.EMULATOR,
        account_address=SERVICE_ADDRESS,
        fusd_address=FUSD_ADDRESS,
        fungible_token_address=FUNGIBLE_TOKEN_ADDRESS,
        flow_token_address=FLOW_TOKEN_ADDRESS,
        gas_limit=100,
        poll_interval_seconds=0.01,
        seal_timeout_seconds=1.0,
        log_level="DEBUG",
    )


# ============================================================================
# Test Data Generators
# ============================================================================

def generate_test_address(index: int = 0) -> Address:
    """Generate a deterministic test address."""
    return Address.from_hex(f"01cf0e2f{index:08x}")


def generate_block_id(height: int = 0) -> bytes:
    """Generate a deterministic block id."""
    return bytes([height % 256]) * 32


def fusd_event(
    name: str,
    amount: Union[str, Decimal],
    address: Optional[Address],
    field_name: str,
    contract: str = FUSD_ADDRESS,
) -> Event:
    """Create a decoded FUSD event."""
    return Event(
        type=f"A.{contract}.FUSD.{name}",
        fields={"amount": Decimal(amount), field_name: address},
    )


def transfer_events(
    amount: Union[str, Decimal],
    payer: Address,
    recipient: Address,
) -> List[Event]:
    """Create the canonical withdrawal + deposit pair."""
    return [
        fusd_event("TokensWithdrawn", amount, payer, "from"),
        fusd_event("TokensDeposited", amount, recipient, "to"),
    ]


def sealed_result(events: Optional[List[Event]] = None, error_message: str = "") -> TransactionResult:
    return TransactionResult(
        status=TransactionStatus.SEALED,
        error_message=error_message,
        events=events or [],
    )


# ============================================================================
# Mock Ledger Gateway
# ============================================================================

class MockLedgerGateway(LedgerGateway):
    """
    In-memory gateway for testing.

    Counts every remote call, bumps the proposal key sequence number on
    every submitted transaction and serves scripted transaction results.
    """

    def __init__(self):
        self.accounts: Dict[Address, Account] = {}
        self.block_height = 100
        self.calls: Counter = Counter()
        self.submitted: List[Transaction] = []
        self.results: Dict[str, List[Union[TransactionResult, Exception]]] = {}
        self.default_result = sealed_result()
        self.poll_times: List[float] = []
        self.submit_error: Optional[Exception] = None
        self._connected = False

    async def connect(self) -> None:
        self._connected = True

    async def disconnect(self) -> None:
        self._connected = False

    @property
    def total_calls(self) -> int:
        return sum(self.calls.values())

    def add_account(
        self,
        address: Address,
        public_key: bytes = b"\x01" * 64,
        balance: Decimal = Decimal("100.00000000"),
        sequence_number: int = 0,
        hash_algorithm: HashAlgorithm = HashAlgorithm.SHA3_256,
        key_count: int = 1,
    ) -> Account:
        """Register an account with ``key_count`` keys."""
        keys = [
            AccountKey(
                index=index,
                public_key=public_key,
                signature_algorithm=SignatureAlgorithm.ECDSA_P256,
                hash_algorithm=hash_algorithm,
                weight=1000,
                sequence_number=sequence_number,
            )
            for index in range(key_count)
        ]
        account = Account(address=address, balance=balance, keys=keys)
        self.accounts[address] = account
        return account

    def bump_sequence(self, address: Address, key_index: int = 0) -> None:
        """Simulate the ledger incrementing a key's sequence number."""
        account = self.accounts[address]
        keys = [
            AccountKey(
                index=key.index,
                public_key=key.public_key,
                signature_algorithm=key.signature_algorithm,
                hash_algorithm=key.hash_algorithm,
                weight=key.weight,
                sequence_number=key.sequence_number + (1 if key.index == key_index else 0),
                revoked=key.revoked,
            )
            for key in account.keys
        ]
        self.accounts[address] = Account(account.address, account.balance, keys)

    def script_results(self, transaction_id: str, *results: Union[TransactionResult, Exception]) -> None:
        """Queue results (or errors) returned by successive polls."""
        self.results[transaction_id] = list(results)

    async def get_account(self, address: Address) -> Account:
        self.calls["get_account"] += 1
        if address not in self.accounts:
            raise AccountNotFoundError(f"Account not found: {address}", 404)
        return self.accounts[address]

    async def get_latest_block_header(self) -> BlockHeader:
        self.calls["get_latest_block_header"] += 1
        return BlockHeader(id=generate_block_id(self.block_height), height=self.block_height)

    async def send_transaction(self, tx: Transaction) -> str:
        self.calls["send_transaction"] += 1
        if self.submit_error:
            raise self.submit_error
        self.submitted.append(tx)
        if tx.proposal_key.address in self.accounts:
            self.bump_sequence(tx.proposal_key.address, tx.proposal_key.key_index)
        return tx.id

    async def get_transaction_result(self, transaction_id: str) -> TransactionResult:
        self.calls["get_transaction_result"] += 1
        self.poll_times.append(asyncio.get_running_loop().time())

        queue = self.results.get(transaction_id)
        if queue:
            item = queue.pop(0) if len(queue) > 1 else queue[0]
            if isinstance(item, Exception):
                raise item
            return item
        if transaction_id in self.results:
            raise GatewayError("Transaction not found", 404)
        return self.default_result


@pytest.fixture
def mock_gateway() -> MockLedgerGateway:
    """Create a mock gateway."""
    return MockLedgerGateway()


# ============================================================================
# Test Signer
# ============================================================================

class RecordingSigner(Signer):
    """Signer that records every message it signs into a shared log."""

    def __init__(self, name: str, inner: EcdsaSigner, log: List[Tuple[str, bytes]]):
        self.name = name
        self.inner = inner
        self.log = log

    def sign(self, message: bytes, hash_algorithm: HashAlgorithm) -> bytes:
        self.log.append((self.name, message))
        return self.inner.sign(message, hash_algorithm)


@pytest.fixture
def test_signer(test_config) -> EcdsaSigner:
    """Create a test signer with a random key."""
    return generate_test_key(SignatureAlgorithm.ECDSA_P256, test_config)


@pytest.fixture
def service_address() -> Address:
    return Address.from_hex(SERVICE_ADDRESS)


@pytest.fixture
def funded_gateway(mock_gateway, test_signer, service_address) -> MockLedgerGateway:
    """Mock gateway with the service account registered under the test signer's key."""
    mock_gateway.add_account(service_address, public_key=test_signer.public_key)
    return mock_gateway
