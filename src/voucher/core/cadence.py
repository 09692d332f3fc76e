"""
JSON-Cadence values.

Transaction arguments are sent as JSON-Cadence documents and event
payloads come back in the same format.
"""

import json
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional

from voucher.core.amount import format_ufix64, require_ufix64
from voucher.core.models import Address, Event

_INTEGER_TYPES = {
    "Int", "Int8", "Int16", "Int32", "Int64", "Int128", "Int256",
    "UInt", "UInt8", "UInt16", "UInt32", "UInt64", "UInt128", "UInt256",
    "Word8", "Word16", "Word32", "Word64",
}
_FIXED_POINT_TYPES = {"UFix64", "Fix64"}
_COMPOSITE_TYPES = {"Struct", "Resource", "Event", "Contract", "Enum"}


class CadenceDecodeError(ValueError):
    """Raised when a JSON-Cadence document cannot be decoded."""
    pass


@dataclass(frozen=True)
class Argument:
    """
    A positional transaction argument.

    Use the ``string``, ``ufix64`` and ``address`` constructors rather than
    building instances directly.
    """
    type: str
    value: Any

    @classmethod
    def string(cls, value: str) -> "Argument":
        return cls("String", str(value))

    @classmethod
    def ufix64(cls, amount: Decimal) -> "Argument":
        return cls("UFix64", amount)

    @classmethod
    def address(cls, address: Address) -> "Argument":
        return cls("Address", address)

    def to_json(self) -> Dict[str, Any]:
        if self.type == "UFix64":
            require_ufix64(self.value, "UFix64 argument")
            return {"type": self.type, "value": format_ufix64(self.value)}
        if self.type == "Address":
            return {"type": self.type, "value": str(self.value)}
        return {"type": self.type, "value": self.value}

    def encode(self) -> bytes:
        """Encode the argument as a JSON-Cadence document."""
        return json.dumps(self.to_json(), separators=(",", ":")).encode("utf-8")


def decode_value(document: Dict[str, Any]) -> Any:
    """
    Decode a JSON-Cadence value into a Python value.

    UFix64/Fix64 become Decimal, integers become int, addresses become
    Address, optionals are unwrapped (None when empty) and events become
    Event instances.
    """
    if not isinstance(document, dict) or "type" not in document:
        raise CadenceDecodeError(f"Not a JSON-Cadence value: {document!r}")

    kind = document["type"]
    value = document.get("value")

    try:
        if kind == "Optional":
            return None if value is None else decode_value(value)
        if kind == "Void":
            return None
        if kind == "Address":
            return Address.from_hex(value)
        if kind in _FIXED_POINT_TYPES:
            return Decimal(value)
        if kind in _INTEGER_TYPES:
            return int(value)
        if kind in ("String", "Character"):
            return str(value)
        if kind == "Bool":
            return bool(value)
        if kind == "Array":
            return [decode_value(item) for item in value]
        if kind == "Dictionary":
            return {
                decode_value(entry["key"]): decode_value(entry["value"])
                for entry in value
            }
        if kind in _COMPOSITE_TYPES:
            fields = _decode_fields(value.get("fields", []))
            if kind == "Event":
                return Event(type=value["id"], fields=fields)
            return fields
    except CadenceDecodeError:
        raise
    except (KeyError, TypeError, AttributeError, InvalidOperation, ValueError) as e:
        raise CadenceDecodeError(f"Malformed {kind} value: {e}") from e

    return value


def _decode_fields(fields: List[Dict[str, Any]]) -> Dict[str, Any]:
    return {item["name"]: decode_value(item["value"]) for item in fields}


def decode_event_payload(
    payload: bytes,
    transaction_id: Optional[str] = None,
    event_index: int = 0,
) -> Event:
    """
    Decode a raw event payload.

    Args:
        payload: JSON-Cadence encoded event
        transaction_id: Id of the emitting transaction
        event_index: Position of the event within the transaction

    Returns:
        Decoded event
    """
    try:
        document = json.loads(payload)
    except (TypeError, ValueError) as e:
        raise CadenceDecodeError(f"Event payload is not JSON: {e}") from e

    event = decode_value(document)
    if not isinstance(event, Event):
        raise CadenceDecodeError(f"Payload is not an event: {document.get('type')}")

    return Event(
        type=event.type,
        fields=event.fields,
        transaction_id=transaction_id,
        event_index=event_index,
    )
