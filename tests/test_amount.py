import pytest
from decimal import Decimal

from amount import AMOUNT_CONTEXT, MAX_AMOUNT, checked_add, checked_sub, format_amount, parse_amount
from exceptions import AmountOverflowError


class TestParseAmount:
    def test_parses_strings_with_whitespace(self):
        assert parse_amount(" 1.5 ") == Decimal("1.5")

    def test_blank_is_none(self):
        assert parse_amount("") is None
        assert parse_amount("   ") is None
        assert parse_amount(None) is None

    def test_four_decimal_places_accepted(self):
        assert parse_amount("0.0001") == Decimal("0.0001")

    def test_trailing_zeros_beyond_scale_accepted(self):
        assert parse_amount("2.50000") == Decimal("2.5")

    def test_five_decimal_places_rejected(self):
        with pytest.raises(ValueError):
            parse_amount("0.00001")

    @pytest.mark.parametrize("raw", ["abc", "NaN", "Infinity", "1e999999"])
    def test_invalid_values_rejected(self, raw):
        with pytest.raises(ValueError):
            parse_amount(raw)

    def test_float_input(self):
        assert parse_amount(10.25) == Decimal("10.25")

    def test_negative_values_parse(self):
        # sign is a processing concern, not a parsing one
        assert parse_amount("-3") == Decimal("-3")


class TestCheckedArithmetic:
    def test_exact_at_full_width(self):
        step = Decimal("0.0001")
        assert checked_add(checked_sub(MAX_AMOUNT, step), step) == MAX_AMOUNT
        assert checked_add(checked_sub(MAX_AMOUNT, Decimal("1")), Decimal("1")) == MAX_AMOUNT

    def test_add_overflow(self):
        with pytest.raises(AmountOverflowError) as exc_info:
            checked_add(MAX_AMOUNT, Decimal("0.0001"))
        assert exc_info.value.error_code == "AMOUNT_OVERFLOW"

    def test_sub_overflow(self):
        with pytest.raises(AmountOverflowError):
            checked_sub(AMOUNT_CONTEXT.minus(MAX_AMOUNT), Decimal("1"))


class TestFormatAmount:
    @pytest.mark.parametrize("value, expected", [
        ("10", "10"),
        ("10.0", "10"),
        ("1.5000", "1.5"),
        ("0.0001", "0.0001"),
        ("-3.25", "-3.25"),
        ("0", "0"),
        ("-0.0000", "0"),
        ("1E+3", "1000"),
    ])
    def test_formats_without_trailing_zeros(self, value, expected):
        assert format_amount(Decimal(value)) == expected
