"""
Flow Access REST API adapter for ledger integration.

Provides ledger access via the access node's HTTP API.
"""

import base64
from typing import Any, List, Optional

import httpx
import structlog

from voucher.config import VoucherConfig, get_config
from voucher.core.amount import from_base_units
from voucher.core.cadence import CadenceDecodeError, decode_event_payload
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
from voucher.core.transaction import Transaction, TransactionSignature
from voucher.node.interface import (
    AccountNotFoundError,
    GatewayError,
    LedgerGateway,
    MalformedResponseError,
    SequenceNumberConflictError,
    TransactionSubmitError,
)

logger = structlog.get_logger(__name__)


def _b64(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def _hex(data: str) -> bytes:
    text = data[2:] if data.startswith("0x") else data
    return bytes.fromhex(text)


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text
    if isinstance(body, dict) and body.get("message"):
        return str(body["message"])
    return response.text


class FlowRestAdapter(LedgerGateway):
    """
    Flow Access REST API adapter.

    Implements the LedgerGateway using the access node's REST API.
    """

    def __init__(
        self,
        config: Optional[VoucherConfig] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the REST adapter.

        Args:
            config: Client configuration. Uses global config if not provided.
            transport: Custom HTTP transport (used by tests)
        """
        self.config = config or get_config()
        self.base_url = self.config.api_url
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def headers(self) -> dict:
        return {"Content-Type": "application/json"}

    async def connect(self) -> None:
        """Establish connection (create HTTP client)."""
        if self._client is not None:
            return

        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            headers=self.headers,
            timeout=self.config.request_timeout_seconds,
            transport=self._transport,
        )
        logger.info("access_node_connected", base_url=self.base_url)

    async def disconnect(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None
            logger.info("access_node_disconnected")

    async def _request(
        self,
        method: str,
        path: str,
        **kwargs,
    ) -> Any:
        """Make an API request and return the decoded JSON body."""
        if not self._client:
            await self.connect()

        try:
            response = await self._client.request(method, path, **kwargs)
        except httpx.RequestError as e:
            logger.error("access_node_request_error", path=path, error=str(e))
            raise GatewayError(f"Access node request failed: {e}")

        if response.status_code != 200:
            error_msg = _error_message(response)
            logger.error(
                "access_node_request_failed",
                path=path,
                status=response.status_code,
                error=error_msg,
            )
            if response.status_code == 404 and path.startswith("/accounts/"):
                raise AccountNotFoundError(f"Account not found: {error_msg}", 404)
            raise GatewayError(f"Access node API error: {error_msg}", response.status_code)

        try:
            return response.json()
        except ValueError as e:
            raise MalformedResponseError(f"Access node returned invalid JSON: {e}")

    async def get_account(self, address: Address) -> Account:
        """Get an account and its keys at the latest sealed block."""
        data = await self._request(
            "GET",
            f"/accounts/{address.hex}",
            params={"block_height": "sealed", "expand": "keys"},
        )

        try:
            account = Account(
                address=Address.from_hex(data["address"]),
                balance=from_base_units(int(data["balance"])),
                keys=[self._parse_key(item) for item in data.get("keys") or []],
            )
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            raise MalformedResponseError(f"Malformed account response: {e}")

        logger.debug("account_fetched", address=address.hex, keys=len(account.keys))
        return account

    def _parse_key(self, data: dict) -> AccountKey:
        return AccountKey(
            index=int(data["index"]),
            public_key=_hex(data["public_key"]),
            signature_algorithm=SignatureAlgorithm.parse(data["signing_algorithm"]),
            hash_algorithm=HashAlgorithm.parse(data["hashing_algorithm"]),
            weight=int(data["weight"]),
            sequence_number=int(data["sequence_number"]),
            revoked=bool(data.get("revoked", False)),
        )

    async def get_latest_block_header(self) -> BlockHeader:
        """Get the latest sealed block header."""
        data = await self._request("GET", "/blocks", params={"height": "sealed"})

        try:
            header = data[0]["header"]
            return BlockHeader(
                id=_hex(header["id"]),
                height=int(header["height"]),
                timestamp=header.get("timestamp"),
            )
        except (AttributeError, IndexError, KeyError, TypeError, ValueError) as e:
            raise MalformedResponseError(f"Malformed block response: {e}")

    def _signatures(self, signatures: List[TransactionSignature]) -> List[dict]:
        return [
            {
                "address": sig.address.hex,
                "key_index": str(sig.key_index),
                "signature": _b64(sig.signature),
            }
            for sig in signatures
        ]

    def _transaction_body(self, tx: Transaction) -> dict:
        return {
            "script": _b64(tx.script),
            "arguments": [_b64(arg) for arg in tx.arguments],
            "reference_block_id": tx.reference_block_id.hex(),
            "gas_limit": str(tx.gas_limit),
            "payer": tx.payer.hex,
            "proposal_key": {
                "address": tx.proposal_key.address.hex,
                "key_index": str(tx.proposal_key.key_index),
                "sequence_number": str(tx.proposal_key.sequence_number),
            },
            "authorizers": [address.hex for address in tx.authorizers],
            "payload_signatures": self._signatures(tx.payload_signatures),
            "envelope_signatures": self._signatures(tx.envelope_signatures),
        }

    async def send_transaction(self, tx: Transaction) -> str:
        """Submit a signed transaction."""
        if not self._client:
            await self.connect()

        try:
            response = await self._client.post("/transactions", json=self._transaction_body(tx))
        except httpx.RequestError as e:
            raise TransactionSubmitError(f"Transaction submission request failed: {e}")

        if response.status_code not in (200, 201):
            error_data = _error_message(response)
            logger.error("tx_submit_failed", status=response.status_code, error=error_data)
            if "sequence number" in error_data.lower():
                raise SequenceNumberConflictError(
                    f"Proposal key sequence number rejected: {error_data}",
                    status_code=response.status_code,
                )
            raise TransactionSubmitError(
                f"Transaction submission failed: {error_data}",
                status_code=response.status_code,
            )

        try:
            tx_id = response.json()["id"]
        except (ValueError, KeyError, TypeError) as e:
            raise TransactionSubmitError(f"Malformed submission response: {e}")

        logger.info("tx_submitted", tx_id=tx_id)
        return tx_id

    async def get_transaction_result(self, transaction_id: str) -> TransactionResult:
        """Get the current result of a transaction."""
        data = await self._request("GET", f"/transaction_results/{transaction_id}")

        try:
            events = [
                self._parse_event(item, transaction_id)
                for item in data.get("events") or []
            ]
            return TransactionResult(
                status=TransactionStatus.parse(data["status"]),
                error_message=data.get("error_message") or "",
                events=events,
                status_code=int(data.get("status_code") or 0),
                block_id=data.get("block_id"),
            )
        except (AttributeError, KeyError, TypeError, ValueError, CadenceDecodeError) as e:
            raise MalformedResponseError(f"Malformed transaction result: {e}")

    def _parse_event(self, data: dict, transaction_id: str) -> Event:
        event = decode_event_payload(
            base64.b64decode(data["payload"]),
            transaction_id=data.get("transaction_id", transaction_id),
            event_index=int(data.get("event_index", 0)),
        )
        if data.get("type") and data["type"] != event.type:
            logger.warning(
                "event_type_mismatch",
                declared=data["type"],
                payload=event.type,
            )
        return event
