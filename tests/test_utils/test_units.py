"""Tests for exact display/smallest-unit conversion."""

from __future__ import annotations

from decimal import Decimal

import pytest

from wallet_ledger.utils.units import (
    format_amount,
    from_smallest_unit,
    parse_amount,
    to_smallest_unit,
)

# ---------------------------------------------------------------------------
# parse_amount
# ---------------------------------------------------------------------------


class TestParseAmount:
    def test_string(self) -> None:
        assert parse_amount("1.25") == Decimal("1.25")

    def test_strips_whitespace(self) -> None:
        assert parse_amount("  2 ") == Decimal("2")

    def test_float_uses_shortest_repr(self) -> None:
        assert parse_amount(0.1) == Decimal("0.1")

    def test_decimal_passthrough(self) -> None:
        value = Decimal("3.5")
        assert parse_amount(value) is value

    @pytest.mark.parametrize("value", ["", "abc", "1,5", "NaN", "Infinity", "-inf"])
    def test_rejects_non_finite_or_garbage(self, value: str) -> None:
        with pytest.raises(ValueError):
            parse_amount(value)

    def test_rejects_bool(self) -> None:
        with pytest.raises(ValueError):
            parse_amount(True)


# ---------------------------------------------------------------------------
# to_smallest_unit
# ---------------------------------------------------------------------------


class TestToSmallestUnit:
    def test_whole_amount(self) -> None:
        assert to_smallest_unit("1") == 10**18

    def test_fractional_amount(self) -> None:
        assert to_smallest_unit("1.5") == 1_500_000_000_000_000_000

    def test_one_tenth_is_exact(self) -> None:
        assert to_smallest_unit("0.1") == 10**17
        assert to_smallest_unit(0.1) == 10**17

    def test_smallest_unit(self) -> None:
        assert to_smallest_unit("0.000000000000000001") == 1

    def test_large_value_keeps_every_digit(self) -> None:
        amount = "123456789.123456789123456789"
        assert to_smallest_unit(amount) == 123456789123456789123456789

    def test_custom_decimals(self) -> None:
        assert to_smallest_unit("12.34", 2) == 1234
        assert to_smallest_unit("7", 0) == 7

    def test_too_many_decimal_places(self) -> None:
        with pytest.raises(ValueError, match="decimal places"):
            to_smallest_unit("1.0000000000000000001")

    def test_too_many_places_for_zero_decimals(self) -> None:
        with pytest.raises(ValueError):
            to_smallest_unit("1.5", 0)

    def test_trailing_zeros_beyond_scale_are_fine(self) -> None:
        assert to_smallest_unit("1.50", 1) == 15

    def test_negative_values_scale(self) -> None:
        assert to_smallest_unit("-2") == -2 * 10**18

    def test_garbage(self) -> None:
        with pytest.raises(ValueError):
            to_smallest_unit("ten")


# ---------------------------------------------------------------------------
# from_smallest_unit / format_amount
# ---------------------------------------------------------------------------


class TestFromSmallestUnit:
    def test_integer_string(self) -> None:
        assert from_smallest_unit("1500", 3) == Decimal("1.5")

    def test_int(self) -> None:
        assert from_smallest_unit(10**18) == Decimal("1")

    def test_wei(self) -> None:
        assert from_smallest_unit("1") == Decimal("1E-18")

    def test_negative(self) -> None:
        assert from_smallest_unit("-5", 1) == Decimal("-0.5")

    @pytest.mark.parametrize("raw", ["1.5", "", "0x10", "abc", "1e3"])
    def test_rejects_non_integer_strings(self, raw: str) -> None:
        with pytest.raises(ValueError):
            from_smallest_unit(raw)

    def test_rejects_float(self) -> None:
        with pytest.raises(ValueError):
            from_smallest_unit(1.5)  # type: ignore[arg-type]

    def test_rejects_bool(self) -> None:
        with pytest.raises(ValueError):
            from_smallest_unit(True)

    def test_round_trip_is_exact(self) -> None:
        for amount in ("0.1", "1.5", "0.000000000000000001", "98765.4321"):
            assert from_smallest_unit(to_smallest_unit(amount)) == Decimal(amount)


class TestFormatAmount:
    def test_drops_trailing_zeros(self) -> None:
        assert format_amount(Decimal("1.500")) == "1.5"

    def test_no_exponent_for_whole_numbers(self) -> None:
        assert format_amount(from_smallest_unit(10**20)) == "100"

    def test_no_exponent_for_tiny_numbers(self) -> None:
        assert format_amount(from_smallest_unit(1)) == "0.000000000000000001"

    def test_zero(self) -> None:
        assert format_amount(Decimal("0.000")) == "0"
