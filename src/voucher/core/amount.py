"""
Token amounts.

Every token amount handled by the client is a UFix64: a decimal with
exactly eight fractional digits. Amounts with any other scale are
rejected, never rounded.
"""

from decimal import Decimal, InvalidOperation
from typing import Union

from voucher.errors import VoucherError

UFIX64_DECIMALS = 8
UFIX64_UNIT = Decimal(10) ** UFIX64_DECIMALS
UFIX64_MAX = Decimal(2 ** 64 - 1) / UFIX64_UNIT


class PrecisionError(VoucherError):
    """Raised when an amount does not have exactly eight decimal places."""

    def __init__(self, amount, token: str = "Token"):
        super().__init__(
            f"{token} amount must have exactly {UFIX64_DECIMALS} decimal places "
            f"of precision (e.g. 10.00000000), got {amount}"
        )
        self.amount = amount
        self.token = token


def scale(amount: Decimal) -> int:
    """Number of fractional digits carried by a decimal."""
    exponent = amount.as_tuple().exponent
    if not isinstance(exponent, int):
        raise PrecisionError(amount)
    return -exponent


def parse_amount(value: Union[str, Decimal], token: str = "Token") -> Decimal:
    """
    Convert a string or Decimal into a UFix64 amount.

    Floats and ints are refused; they carry no scale.

    Raises:
        PrecisionError: If the value is not a non-negative decimal with
            exactly eight fractional digits
    """
    if isinstance(value, (float, int)):
        raise PrecisionError(value, token)

    if isinstance(value, Decimal):
        amount = value
    else:
        try:
            amount = Decimal(str(value).strip())
        except InvalidOperation:
            raise PrecisionError(value, token) from None

    require_ufix64(amount, token)
    return amount


def require_ufix64(amount: Decimal, token: str = "Token") -> None:
    """Check the precision and range of a UFix64 amount."""
    if not isinstance(amount, Decimal) or not amount.is_finite():
        raise PrecisionError(amount, token)
    if scale(amount) != UFIX64_DECIMALS:
        raise PrecisionError(amount, token)
    if amount < 0 or amount > UFIX64_MAX:
        raise PrecisionError(amount, token)


def format_ufix64(amount: Decimal) -> str:
    """Render an amount the way JSON-Cadence expects it."""
    return format(amount, "f")


def from_base_units(units: int) -> Decimal:
    """Convert an integer count of 10^-8 units into an amount."""
    return (Decimal(int(units)) / UFIX64_UNIT).quantize(Decimal(1).scaleb(-UFIX64_DECIMALS))
