"""
Test suite for transaction construction functionality.

Tests the canonical transaction encoding and the transaction builder.
"""

import hashlib
from decimal import Decimal

import pytest
import rlp

from voucher.accounts import KeyIndexError
from voucher.core.amount import PrecisionError
from voucher.core.cadence import Argument
from voucher.core.transaction import (
    TRANSACTION_DOMAIN_TAG,
    ProposalKey,
    Transaction,
)
from voucher.errors import InvalidInputError
from voucher.tx.builder import TransactionBuilder, TransactionBuildError

from tests.conftest import generate_block_id, generate_test_address


SCRIPT = b"transaction { prepare(signer: &Account) {} }"


def make_transaction(proposer=None, payer=None, authorizers=None) -> Transaction:
    proposer = proposer or generate_test_address(1)
    payer = payer or proposer
    return Transaction(
        script=SCRIPT,
        arguments=(Argument.string("x").encode(),),
        reference_block_id=generate_block_id(7),
        gas_limit=100,
        proposal_key=ProposalKey(proposer, 0, 5),
        payer=payer,
        authorizers=tuple(authorizers or [proposer]),
    )


# ============================================================================
# Test Transaction Model
# ============================================================================

class TestTransactionModel:
    """Tests for the transaction canonical form."""

    def test_domain_tag_is_padded(self):
        """Test the domain tag is right padded to 32 bytes."""
        assert len(TRANSACTION_DOMAIN_TAG) == 32
        assert TRANSACTION_DOMAIN_TAG.startswith(b"FLOW-V0.0-transaction")
        assert TRANSACTION_DOMAIN_TAG.endswith(b"\x00" * 11)

    def test_payload_message(self):
        """Test the payload message is the tag followed by the RLP payload."""
        tx = make_transaction()
        message = tx.payload_message()

        assert message.startswith(TRANSACTION_DOMAIN_TAG)
        assert message[32:] == rlp.encode(tx.payload_canonical_form())

    def test_payload_field_order(self):
        """Test the payload fields appear in canonical order."""
        proposer = generate_test_address(1)
        tx = make_transaction(proposer)
        form = tx.payload_canonical_form()

        assert form[0] == SCRIPT
        assert form[2] == generate_block_id(7)
        assert form[3] == 100
        assert form[4] == proposer.value
        assert form[5] == 0
        assert form[6] == 5
        assert form[7] == proposer.value
        assert form[8] == [proposer.value]

    def test_signers_are_deduplicated(self):
        """Test the signer list is proposer, payer, authorizers without repeats."""
        proposer = generate_test_address(1)
        payer = generate_test_address(2)
        other = generate_test_address(3)
        tx = make_transaction(proposer, payer, [proposer, other, payer])

        assert tx.signers == [proposer, payer, other]
        assert tx.signer_index(other) == 2

    def test_signer_index_unknown_address(self):
        """Test an address outside the signer list is rejected."""
        tx = make_transaction()

        with pytest.raises(InvalidInputError, match="not a signer"):
            tx.signer_index(generate_test_address(99))

    def test_payer_does_not_sign_payload(self):
        """Test the payer is excluded from required payload signers."""
        proposer = generate_test_address(1)
        payer = generate_test_address(2)
        tx = make_transaction(proposer, payer, [proposer])

        assert tx.required_payload_signers == [proposer]
        assert make_transaction(proposer).required_payload_signers == []

    def test_signatures_sorted(self):
        """Test signatures are kept in signer order regardless of attachment order."""
        proposer = generate_test_address(1)
        payer = generate_test_address(2)
        other = generate_test_address(3)
        tx = make_transaction(proposer, payer, [other])

        tx = tx.with_payload_signature(other, 0, b"b" * 64)
        tx = tx.with_payload_signature(proposer, 0, b"a" * 64)

        assert [sig.signer_index for sig in tx.payload_signatures] == [0, 2]

    def test_id_is_sha3_of_full_form(self):
        """Test the id covers payload and both signature lists."""
        tx = make_transaction().with_envelope_signature(generate_test_address(1), 0, b"s" * 64)
        expected = hashlib.sha3_256(rlp.encode([
            tx.payload_canonical_form(),
            [],
            [[0, 0, b"s" * 64]],
        ])).hexdigest()

        assert tx.id == expected
        assert len(tx.id) == 64

    def test_id_changes_with_signatures(self):
        """Test attaching a signature yields a different id."""
        tx = make_transaction()
        signed = tx.with_envelope_signature(generate_test_address(1), 0, b"s" * 64)

        assert tx.id != signed.id
        assert tx.envelope_signatures == ()

    def test_submittable(self):
        """Test a transaction needs the payer's envelope signature to be submittable."""
        proposer = generate_test_address(1)
        tx = make_transaction(proposer)

        assert tx.is_submittable is False
        assert tx.with_envelope_signature(proposer, 0, b"s" * 64).is_submittable is True


# ============================================================================
# Test Transaction Builder
# ============================================================================

class TestTransactionBuilder:
    """Tests for transaction builder functionality."""

    @pytest.mark.asyncio
    async def test_build(self, mock_gateway, test_config):
        """Test building a transaction from current ledger state."""
        proposer = generate_test_address(1)
        mock_gateway.add_account(proposer, sequence_number=12)
        builder = TransactionBuilder(mock_gateway, config=test_config)

        tx = await builder.build(
            script=SCRIPT,
            arguments=[Argument.ufix64(Decimal("10.00000000"))],
            proposer=proposer,
            proposer_key_index=0,
            payer=proposer,
            authorizers=[proposer],
        )

        assert tx.proposal_key == ProposalKey(proposer, 0, 12)
        assert tx.reference_block_id == generate_block_id(mock_gateway.block_height)
        assert tx.gas_limit == test_config.gas_limit
        assert tx.arguments == (b'{"type":"UFix64","value":"10.00000000"}',)
        assert tx.payload_signatures == ()
        assert tx.envelope_signatures == ()

    @pytest.mark.asyncio
    async def test_build_reads_ledger_once_each(self, mock_gateway, test_config):
        """Test one account read and one header read per build."""
        proposer = generate_test_address(1)
        mock_gateway.add_account(proposer)
        builder = TransactionBuilder(mock_gateway, config=test_config)

        await builder.build(SCRIPT, [], proposer, 0, proposer, [proposer])

        assert mock_gateway.calls["get_account"] == 1
        assert mock_gateway.calls["get_latest_block_header"] == 1

    @pytest.mark.asyncio
    async def test_sequence_number_is_fresh(self, mock_gateway, test_config):
        """Test consecutive builds pick up the incremented sequence number."""
        proposer = generate_test_address(1)
        mock_gateway.add_account(proposer, sequence_number=3)
        builder = TransactionBuilder(mock_gateway, config=test_config)

        first = await builder.build(SCRIPT, [], proposer, 0, proposer, [proposer])
        mock_gateway.bump_sequence(proposer)
        second = await builder.build(SCRIPT, [], proposer, 0, proposer, [proposer])

        assert first.proposal_key.sequence_number == 3
        assert second.proposal_key.sequence_number == 4

    @pytest.mark.asyncio
    async def test_precision_checked_before_ledger(self, mock_gateway, test_config):
        """Test a bad amount fails before any remote call."""
        proposer = generate_test_address(1)
        mock_gateway.add_account(proposer)
        builder = TransactionBuilder(mock_gateway, config=test_config)

        with pytest.raises(PrecisionError):
            await builder.build(
                SCRIPT,
                [Argument.ufix64(Decimal("10.5"))],
                proposer, 0, proposer, [proposer],
            )

        assert mock_gateway.total_calls == 0

    @pytest.mark.asyncio
    async def test_explicit_gas_limit(self, mock_gateway, test_config):
        """Test the gas limit can be overridden per build."""
        proposer = generate_test_address(1)
        mock_gateway.add_account(proposer)
        builder = TransactionBuilder(mock_gateway, config=test_config)

        tx = await builder.build(SCRIPT, [], proposer, 0, proposer, [proposer], gas_limit=9999)

        assert tx.gas_limit == 9999

    @pytest.mark.asyncio
    @pytest.mark.parametrize("kwargs, message", [
        ({"gas_limit": 0}, "Gas limit"),
        ({"authorizers": []}, "authorizer"),
        ({"script": b""}, "script is empty"),
    ])
    async def test_invalid_shape(self, mock_gateway, test_config, kwargs, message):
        """Test invalid transaction shapes are rejected without remote calls."""
        proposer = generate_test_address(1)
        mock_gateway.add_account(proposer)
        builder = TransactionBuilder(mock_gateway, config=test_config)
        params = {
            "script": SCRIPT,
            "arguments": [],
            "proposer": proposer,
            "proposer_key_index": 0,
            "payer": proposer,
            "authorizers": [proposer],
        }
        params.update(kwargs)

        with pytest.raises(TransactionBuildError, match=message):
            await builder.build(**params)

        assert mock_gateway.total_calls == 0

    @pytest.mark.asyncio
    async def test_missing_key_index(self, mock_gateway, test_config):
        """Test building with a key index the proposer does not have."""
        proposer = generate_test_address(1)
        mock_gateway.add_account(proposer, key_count=1)
        builder = TransactionBuilder(mock_gateway, config=test_config)

        with pytest.raises(KeyIndexError):
            await builder.build(SCRIPT, [], proposer, 3, proposer, [proposer])
