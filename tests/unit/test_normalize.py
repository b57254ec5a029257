"""Unit tests for playday_sync.normalize."""

import pytest

from playday_sync.normalize import (
    INT_MAX,
    INT_MIN,
    coerce_identifier,
    coerce_text,
    is_absent,
    parse_int,
    trim,
)


# ---------------------------------------------------------------------------
# trim
# ---------------------------------------------------------------------------

class TestTrim:
    def test_strips_whitespace(self):
        assert trim("  hello  ") == "hello"

    def test_empty_string_returns_none(self):
        assert trim("") is None

    def test_whitespace_only_returns_none(self):
        assert trim("   ") is None

    def test_none_returns_none(self):
        assert trim(None) is None


# ---------------------------------------------------------------------------
# is_absent
# ---------------------------------------------------------------------------

class TestIsAbsent:
    @pytest.mark.parametrize("value", [None, "", "   ", "null", "undefined", " null "])
    def test_absent_values(self, value):
        assert is_absent(value) is True

    @pytest.mark.parametrize("value", ["Arena", "0", 0, False, "NULL", "None"])
    def test_present_values(self, value):
        assert is_absent(value) is False


# ---------------------------------------------------------------------------
# parse_int
# ---------------------------------------------------------------------------

class TestParseInt:
    def test_plain_digits(self):
        assert parse_int("5000") == 5000

    def test_surrounding_whitespace(self):
        assert parse_int("  600 ") == 600

    def test_signed(self):
        assert parse_int("-15") == -15
        assert parse_int("+15") == 15

    def test_digit_groups_with_space(self):
        assert parse_int("5 000") == 5000

    def test_digit_groups_with_nbsp(self):
        assert parse_int("12\u00a0500") == 12500

    def test_digit_groups_with_narrow_nbsp(self):
        assert parse_int("1\u202f000\u202f000") == 1000000

    def test_badly_grouped_digits_return_none(self):
        assert parse_int("50 00") is None

    def test_text_returns_none(self):
        assert parse_int("abc") is None

    def test_fraction_returns_none(self):
        assert parse_int("12.5") is None

    def test_absent_returns_none_not_zero(self):
        assert parse_int("") is None
        assert parse_int("null") is None
        assert parse_int(None) is None

    def test_zero_is_kept(self):
        assert parse_int("0") == 0

    def test_native_int(self):
        assert parse_int(700) == 700

    def test_whole_float(self):
        assert parse_int(700.0) == 700

    def test_fractional_float_returns_none(self):
        assert parse_int(700.5) is None

    def test_bool_returns_none(self):
        assert parse_int(True) is None

    def test_int4_bounds_kept(self):
        assert parse_int("2147483647") == INT_MAX
        assert parse_int("-2147483648") == INT_MIN

    def test_beyond_int4_returns_none(self):
        assert parse_int("99999999999") is None
        assert parse_int("2147483648") is None
        assert parse_int("-2147483649") is None

    def test_native_beyond_int4_returns_none(self):
        assert parse_int(2**31) is None
        assert parse_int(1e12) is None

    def test_grouped_beyond_int4_returns_none(self):
        assert parse_int("10 000 000 000") is None


# ---------------------------------------------------------------------------
# coerce_text / coerce_identifier
# ---------------------------------------------------------------------------

class TestCoerceText:
    def test_passthrough(self):
        assert coerce_text("Каждый четверг") == "Каждый четверг"

    def test_absent_becomes_none(self):
        assert coerce_text("undefined") is None
        assert coerce_text("  ") is None

    def test_number_stringified(self):
        assert coerce_text(42) == "42"
        assert coerce_text(42.0) == "42"
        assert coerce_text(4.5) == "4.5"

    def test_bool_stringified(self):
        assert coerce_text(True) == "true"


class TestCoerceIdentifier:
    def test_trims(self):
        assert coerce_identifier("  rec123 ") == "rec123"

    def test_numeric_identifier(self):
        assert coerce_identifier(123456) == "123456"

    def test_absent(self):
        assert coerce_identifier("null") is None
