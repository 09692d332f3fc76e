"""
Test suite for token amount precision.

Tests that amounts are accepted only with exactly eight decimal places.
"""

from decimal import Decimal

import pytest

from voucher.core.amount import (
    UFIX64_MAX,
    PrecisionError,
    format_ufix64,
    from_base_units,
    parse_amount,
    require_ufix64,
)
from voucher.errors import VoucherError


# ============================================================================
# Test Parsing
# ============================================================================

class TestParseAmount:
    """Tests for converting user input into amounts."""

    @pytest.mark.parametrize("value", ["10.00000000", "0.00000001", "12.50000000", " 1.00000000 "])
    def test_accepts_eight_decimals(self, value):
        """Test strings with exactly eight decimals are accepted."""
        assert parse_amount(value) == Decimal(value.strip())

    def test_accepts_decimal(self):
        """Test Decimal values keep their identity."""
        amount = Decimal("5.00000000")
        assert parse_amount(amount) is amount

    @pytest.mark.parametrize("value", ["10", "10.0", "10.00", "1.0000000", "1.000000000"])
    def test_rejects_other_scales(self, value):
        """Test any other number of decimals is refused."""
        with pytest.raises(PrecisionError, match="exactly 8 decimal places"):
            parse_amount(value, "FUSD")

    @pytest.mark.parametrize("value", [10, 10.5, 1e-8])
    def test_rejects_numbers_without_scale(self, value):
        """Test ints and floats are refused."""
        with pytest.raises(PrecisionError):
            parse_amount(value)

    @pytest.mark.parametrize("value", ["abc", "", "NaN", "Infinity"])
    def test_rejects_non_numbers(self, value):
        """Test unparsable and non-finite input is refused."""
        with pytest.raises(PrecisionError):
            parse_amount(value)

    def test_rejects_negative(self):
        """Test negative amounts are refused."""
        with pytest.raises(PrecisionError):
            parse_amount("-1.00000000")

    def test_rejects_out_of_range(self):
        """Test amounts above the UFix64 maximum are refused."""
        too_big = (UFIX64_MAX + Decimal("0.00000001"))
        with pytest.raises(PrecisionError):
            require_ufix64(too_big)

    def test_accepts_maximum(self):
        """Test the UFix64 maximum itself is accepted."""
        require_ufix64(UFIX64_MAX)

    def test_error_names_token(self):
        """Test the error message names the token and echoes the amount."""
        with pytest.raises(PrecisionError) as exc_info:
            parse_amount("10.5", "FUSD")

        assert "FUSD amount" in str(exc_info.value)
        assert "10.5" in str(exc_info.value)
        assert exc_info.value.token == "FUSD"
        assert isinstance(exc_info.value, VoucherError)


# ============================================================================
# Test Formatting
# ============================================================================

class TestFormatting:
    """Tests for rendering and converting amounts."""

    def test_format_keeps_trailing_zeros(self):
        """Test formatting never drops the fractional digits."""
        assert format_ufix64(Decimal("12.50000000")) == "12.50000000"

    def test_format_avoids_exponent(self):
        """Test tiny amounts are not rendered in scientific notation."""
        assert format_ufix64(Decimal("0.00000001")) == "0.00000001"

    def test_from_base_units(self):
        """Test integer base units convert to eight-decimal amounts."""
        amount = from_base_units(1250000000)

        assert amount == Decimal("12.5")
        assert format_ufix64(amount) == "12.50000000"

    def test_from_base_units_zero(self):
        """Test a zero balance still carries eight decimals."""
        assert format_ufix64(from_base_units(0)) == "0.00000000"
